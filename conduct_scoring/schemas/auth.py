# conduct_scoring/schemas/auth.py
from typing import Literal

from pydantic import BaseModel, EmailStr


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    role: Literal["teacher", "student"]
    student_code: str | None = None
    class_id: str | None = None
    phone: str | None = None
