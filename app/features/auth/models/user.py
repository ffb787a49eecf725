import enum

from sqlalchemy import JSON, Boolean, Column, Enum, String
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class UserRole(str, enum.Enum):
    student = "student"
    staff = "staff"
    admin = "admin"


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole, name="user_role"), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    full_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    roll_number = Column(String(64), nullable=True)
    # Open attribute bag owned by the resource controllers
    profile_details = Column(JSON, default=dict, nullable=False)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
