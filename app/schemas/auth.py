from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

PHONE_PATTERN = r"^\d{10}$"

class IdentifierRequest(BaseModel):
    """Exactly one of phone or email; the OTP is issued to that identifier."""
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def check_one_identifier(self):
        if (self.phone is None) == (self.email is None):
            raise ValueError("Provide either phone or email")
        return self

    @property
    def identifier(self) -> str:
        return self.phone if self.phone is not None else str(self.email)

class SendOTPRequest(IdentifierRequest):
    pass

class VerifyOTPRequest(IdentifierRequest):
    otp: str

class RegisterRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = None

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    email: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    created_at: datetime

class MessageResponse(BaseModel):
    success: bool = True
    message: str

class VerifyOTPResponse(BaseModel):
    success: bool = True
    is_new_user: bool
    user: Optional[UserResponse] = None
    access_token: Optional[str] = None
    token_type: Optional[str] = None

class RegisterResponse(BaseModel):
    success: bool = True
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
