from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional

class NewsletterSubscribe(BaseModel):
    email: EmailStr

class NewsletterSubscriberOut(BaseModel):
    id: int
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
