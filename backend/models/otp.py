from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from database import Base

# Emailed one-time passcode; purpose separates shopper logins from admin logins
class OtpCode(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, index=True)
    otp_code = Column(String(6), nullable=False)
    purpose = Column(String(10), nullable=False, default="user")
    expires_at = Column(DateTime, nullable=False, index=True)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
