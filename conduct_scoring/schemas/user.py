# conduct_scoring/schemas/user.py
from pydantic import BaseModel, EmailStr
from datetime import datetime


class UserBase(BaseModel):
    email: EmailStr
    full_name: str
    role: str  # "teacher" / "student"
    student_code: str | None = None
    class_id: str | None = None
    phone: str | None = None


class UserCreate(UserBase):
    password: str


class UserPublic(UserBase):
    id: int
    avatar: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    """Self-service profile edit; fields left out are not changed."""
    full_name: str | None = None
    phone: str | None = None
    class_id: str | None = None


class StudentCreate(BaseModel):
    email: EmailStr
    class_id: str
    full_name: str | None = None  # defaults to the local part of the email
    student_code: str | None = None
    phone: str | None = None


class StudentCreated(UserPublic):
    # Shown once so the teacher can hand it to the student
    temporary_password: str


class StudentSummary(BaseModel):
    """One roster row for the teacher's student list and CSV export."""
    id: int
    student_code: str | None = None
    full_name: str
    email: str
    phone: str | None = None
    class_id: str | None = None
    total_records: int = 0
    average_score: int = 0
    grade_level: str
    last_submission: datetime | None = None
