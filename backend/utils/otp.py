# backend/utils/otp.py
import secrets
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from config import settings
from models.otp import OtpCode

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_otp_code() -> str:
    # Six digits, never starting with 0
    return str(100000 + secrets.randbelow(900000))


def _mask(code: str) -> str:
    return f"{code[:2]}****"


def issue_otp(db: Session, email: str, purpose: str = "user", now: Optional[datetime] = None) -> OtpCode:
    """Replace any unused code for this address with a fresh one."""
    now = now or datetime.utcnow()
    db.query(OtpCode).filter(
        OtpCode.email == email,
        OtpCode.purpose == purpose,
        OtpCode.used == False,  # noqa: E712
    ).delete(synchronize_session=False)

    record = OtpCode(
        email=email,
        otp_code=generate_otp_code(),
        purpose=purpose,
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        used=False,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Issued %s OTP %s for %s", purpose, _mask(record.otp_code), email)
    return record


def purge_expired(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    removed = db.query(OtpCode).filter(OtpCode.expires_at < now).delete(synchronize_session=False)
    db.commit()
    return removed


def consume_otp(db: Session, email: str, code: str, purpose: str = "user", now: Optional[datetime] = None) -> bool:
    """Mark a matching, unexpired, unused code as used. Returns False when none matches."""
    now = now or datetime.utcnow()
    purge_expired(db, now)

    record = (
        db.query(OtpCode)
        .filter(
            OtpCode.email == email,
            OtpCode.otp_code == code,
            OtpCode.purpose == purpose,
            OtpCode.used == False,  # noqa: E712
            OtpCode.expires_at >= now,
        )
        .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
        .first()
    )
    if record is None:
        logger.info("No valid %s OTP for %s (code %s)", purpose, email, _mask(code))
        return False

    # Conditional flip so two concurrent verifications cannot both use the code
    updated = db.query(OtpCode).filter(OtpCode.id == record.id, OtpCode.used == False).update(  # noqa: E712
        {OtpCode.used: True}, synchronize_session=False
    )
    db.commit()
    return updated == 1
