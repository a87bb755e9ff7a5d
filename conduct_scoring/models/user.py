# conduct_scoring/models/user.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from conduct_scoring.db.base_class import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(150), nullable=False)
    role = Column(String(20), nullable=False)  # 'teacher' / 'student'

    # Student-only profile fields
    student_code = Column(String(50), unique=True, nullable=True)  # e.g. SV2024001
    class_id = Column(String(50), nullable=True, index=True)  # teachers: homeroom class
    phone = Column(String(30), nullable=True)
    avatar = Column(String(255), nullable=True)  # /uploads/avatar/... reference

    created_at = Column(DateTime(timezone=True), server_default=func.now())
