from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Literal

# Request to email a one-time passcode
class OtpSendRequest(BaseModel):
    email: EmailStr

# Passcode verification; codes are six digits
class OtpVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(pattern=r"^\d{6}$")

# Output schema for user profile details
class UserResponse(BaseModel):
    id: str
    email: EmailStr
    username: Optional[str] = None
    roles: List[str] = []

# Session issued after a successful verification
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

# Schema for administrative role grants
class RoleUpdate(BaseModel):
    email: EmailStr
    role: Literal["admin", "user"]
