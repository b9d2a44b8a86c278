import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models.newsletter import NewsletterSubscriber
from schemas.newsletter import NewsletterSubscribe, NewsletterSubscriberOut
from utils.audit import write_log
from utils.mailer import mail_client, welcome_email_html

router = APIRouter(prefix="/newsletter", tags=["Newsletter"])
logger = logging.getLogger(__name__)


def _is_subscribed(db: Session, email: str) -> bool:
    return db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).first() is not None


# Store the address and send the welcome email in the background
@router.post("/subscribe", response_model=NewsletterSubscriberOut, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: NewsletterSubscribe,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    email = payload.email.strip().lower()
    if _is_subscribed(db, email):
        raise HTTPException(status_code=409, detail="Already subscribed")

    subscriber = NewsletterSubscriber(email=email)
    db.add(subscriber)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        db.rollback()
        raise HTTPException(status_code=409, detail="Already subscribed")
    db.refresh(subscriber)

    background_tasks.add_task(mail_client.send, email, "Welcome to our newsletter!", welcome_email_html())
    write_log(db, user_id=None, action="NEWSLETTER_SUBSCRIBE", resource="newsletter", status="SUCCESS",
              request=request, meta={"email": email})
    logger.info("New newsletter subscriber %s", email)
    return subscriber
