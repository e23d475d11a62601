from pydantic import BaseModel, Field

from typing import Any, Dict, Literal, Optional


class RegisterRequest(BaseModel):
    account_type: Literal["job_seeker", "organization"]
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    # Opaque profile payloads; list fields are sanitized server side
    personal_info: Optional[Dict[str, Any]] = None
    company_info: Optional[Dict[str, Any]] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    account_type: str
    message: Optional[str] = None


# Password reset
class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=1)


class AcceptedResponse(BaseModel):
    accepted: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    detail: str
