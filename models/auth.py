from typing import Optional
from pydantic import BaseModel, EmailStr


# -----------------------------------------------------
# LOGIN REQUEST (identity provider email/password)
# -----------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# -----------------------------------------------------
# SIGN-UP REQUEST
# -----------------------------------------------------
class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = None


# -----------------------------------------------------
# TOKEN RESPONSE (provider session JWT + resolved role)
# -----------------------------------------------------
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    landing: str = "/dashboard"
