from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    trainer = "trainer"
    admin = "admin"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class NotificationType(str, Enum):
    busy = "busy"
    session = "session"


class User(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
    password_hash: str
    role: UserRole = Field(default=UserRole.trainer, index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class BusySlot(SQLModel, table=True):
    __tablename__ = "busy_slots"

    id: Optional[int] = Field(default=None, primary_key=True)
    trainer_id: int = Field(foreign_key="user.id", index=True)
    start_time: datetime = Field(index=True)
    end_time: datetime
    reason: Optional[str] = None


class TrainingSession(SQLModel, table=True):
    __tablename__ = "sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    trainer_id: int = Field(foreign_key="user.id", index=True)
    course_name: str
    date: str = Field(index=True)
    time: str
    location: str
    duration: int = 60
    created_by_trainer: bool = False
    approval_status: ApprovalStatus = Field(default=ApprovalStatus.approved, index=True)
    attended: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True)
    message: str
    recipient_role: UserRole = Field(default=UserRole.admin, index=True)
    read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
