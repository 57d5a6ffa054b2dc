"""
User model with credentials, role and token lifecycle state.

Key design decisions:
- verification_code is only set while is_verified is false
- at most one outstanding reset code; a new request overwrites it
- codes carry explicit expiry timestamps, checked server-side
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from unihub.db.base import Base, TimestampMixin


class Role(str, enum.Enum):
    STUDENT = "student"
    HEAD_ADMIN = "head_admin"
    SUPER_ADMIN = "super_admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    surname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.STUDENT.value)
    phone = Column(String(50), nullable=True)
    gender = Column(String(20), nullable=True)
    birth_date = Column(String(20), nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False)
    verification_code = Column(String(6), nullable=True)
    verification_expires = Column(DateTime(timezone=True), nullable=True)
    reset_password_code = Column(String(6), nullable=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'head_admin', 'super_admin')", name="check_user_role"
        ),
    )

    @property
    def owner_id(self) -> int:
        return self.id

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
