"""
Request bodies.

Fields the stores require are still Optional here so a missing field reaches
the store and is answered with the store's own 400 message.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class BusySlotIn(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reason: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # stored times are naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class SessionCreate(BaseModel):
    trainer_id: Optional[int] = None
    course_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[int] = None
    created_by_trainer: Optional[bool] = None


class SessionUpdate(BaseModel):
    trainer_id: Optional[int] = None
    course_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[int] = None


class ApprovalIn(BaseModel):
    approval_status: Optional[str] = None


class NotificationIn(BaseModel):
    type: Optional[str] = None
    message: Optional[str] = None
