# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from config import settings
from database import get_db
from models.users import User
from schemas import user as schemas
from utils.tokenJWT import create_access_token, get_current_user
from utils.audit import write_log
from utils.roles import grant_role, is_admin, user_to_out
from utils.otp import issue_otp, consume_otp
from utils.mailer import mail_client, otp_email_html

router = APIRouter(prefix="/auth", tags=["Auth"])

ADMIN_DENIED = "Access denied. Not an authorized admin email."


def _normalize(email: str) -> str:
    return email.strip().lower()


def _find_user(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email).first()


def _create_shopper(db: Session, email: str) -> User:
    user = User(email=email)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent verification created the account first
        db.rollback()
        return _find_user(db, email)
    db.refresh(user)
    grant_role(db, user, "user")
    return user


def _admin_user_or_403(db: Session, email: str, request: Request, action: str) -> User:
    user = _find_user(db, email)
    if not user or not is_admin(user):
        write_log(db, user_id=user.id if user else None, action=action, resource="auth",
                  status="FAIL", request=request, meta={"email": email, "reason": "not admin"})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ADMIN_DENIED)
    return user


def _session_for(user: User) -> dict:
    roles = sorted(r.role for r in user.roles)
    token = create_access_token(data={"sub": user.email, "uid": user.id, "roles": roles})
    return {"access_token": token, "token_type": "bearer", "user": user_to_out(user)}


# Email a login code to a shopper
@router.post("/otp/send")
async def send_user_otp(payload: schemas.OtpSendRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize(payload.email)
    record = issue_otp(db, email, purpose="user")
    await mail_client.send(
        email, "Your Login Code", otp_email_html(record.otp_code, settings.OTP_EXPIRE_MINUTES)
    )
    write_log(db, user_id=None, action="OTP_SEND", resource="auth", status="SUCCESS",
              request=request, meta={"email": email})
    return {"success": True, "message": "OTP sent successfully"}


# Verify a shopper code; first successful login creates the account
@router.post("/otp/verify", response_model=schemas.Token)
def verify_user_otp(payload: schemas.OtpVerifyRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize(payload.email)
    if not consume_otp(db, email, payload.otp, purpose="user"):
        write_log(db, user_id=None, action="OTP_VERIFY", resource="auth", status="FAIL",
                  request=request, meta={"email": email})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")

    user = _find_user(db, email) or _create_shopper(db, email)

    write_log(db, user_id=user.id, action="OTP_VERIFY", resource="auth", status="SUCCESS",
              request=request, meta={"email": email})
    return _session_for(user)


# Email an admin access code; only identities holding the admin role qualify
@router.post("/admin/otp/send")
async def send_admin_otp(payload: schemas.OtpSendRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize(payload.email)
    user = _admin_user_or_403(db, email, request, "ADMIN_OTP_SEND")
    record = issue_otp(db, email, purpose="admin")
    await mail_client.send(
        email, "Your Admin Access Code",
        otp_email_html(record.otp_code, settings.OTP_EXPIRE_MINUTES, heading="Your one-time password for admin access"),
    )
    write_log(db, user_id=user.id, action="ADMIN_OTP_SEND", resource="auth", status="SUCCESS",
              request=request, meta={"email": email})
    return {"success": True, "message": "OTP sent successfully"}


@router.post("/admin/otp/verify", response_model=schemas.Token)
def verify_admin_otp(payload: schemas.OtpVerifyRequest, request: Request, db: Session = Depends(get_db)):
    email = _normalize(payload.email)
    user = _admin_user_or_403(db, email, request, "ADMIN_OTP_VERIFY")
    if not consume_otp(db, email, payload.otp, purpose="admin"):
        write_log(db, user_id=user.id, action="ADMIN_OTP_VERIFY", resource="auth", status="FAIL",
                  request=request, meta={"email": email})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP code")

    write_log(db, user_id=user.id, action="ADMIN_OTP_VERIFY", resource="auth", status="SUCCESS",
              request=request, meta={"email": email})
    return _session_for(user)


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return user_to_out(current_user)
