from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from trainer_timetable.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from trainer_timetable.models import (
    ApprovalStatus,
    NotificationType,
    TrainingSession,
    User,
    UserRole,
)
from trainer_timetable.services.busy_slots import find_busy_conflict
from trainer_timetable.services.notifications import notify_admins
from trainer_timetable.services.users import lock_trainer
from trainer_timetable.settings import settings
from trainer_timetable.time_utils import TimeRange, format_hm, format_ymd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionDetail:
    """A session joined with its trainer's identity for display."""

    session: TrainingSession
    trainer_name: str
    trainer_email: str


def _validate(
    trainer_id: Optional[int],
    course_name: Optional[str],
    date: Optional[str],
    time: Optional[str],
    location: Optional[str],
    duration: int,
) -> Tuple[str, str, str, str, TimeRange]:
    course_name = (course_name or "").strip()
    location = (location or "").strip()
    if not trainer_id or not course_name or not date or not time or not location:
        raise ValidationError("All fields are required")
    occupied = TimeRange.for_session(date, time, duration)
    return (
        course_name,
        location,
        format_ymd(occupied.start.date()),
        format_hm(occupied.start.time()),
        occupied,
    )


def _detail(session: Session, training: TrainingSession) -> SessionDetail:
    trainer = session.get(User, training.trainer_id)
    return SessionDetail(
        session=training,
        trainer_name=trainer.name if trainer else "",
        trainer_email=trainer.email if trainer else "",
    )


def _get(session: Session, session_id: int) -> TrainingSession:
    training = session.get(TrainingSession, session_id)
    if not training:
        raise NotFoundError("Session not found")
    return training


def create_session(
    session: Session,
    trainer_id: Optional[int],
    course_name: Optional[str],
    date: Optional[str],
    time: Optional[str],
    location: Optional[str],
    duration: Optional[int],
    caller_role: UserRole,
    caller_id: int,
    created_by_trainer: Optional[bool] = None,
) -> SessionDetail:
    if duration is None:
        duration = settings.default_session_minutes
    course_name, location, date, time, occupied = _validate(
        trainer_id, course_name, date, time, location, duration
    )

    if caller_role == UserRole.trainer:
        if trainer_id != caller_id:
            raise AuthorizationError("Trainers can only schedule their own sessions")
        trainer = lock_trainer(session, trainer_id)
        conflict = find_busy_conflict(session, trainer_id, occupied)
        if conflict:
            session.rollback()
            logger.info(
                "Rejected session for trainer %s on %s %s: busy slot %s",
                trainer_id, date, time, conflict.id,
            )
            raise ConflictError("You are already busy at this time.")
        by_trainer = True
        status = ApprovalStatus.pending
    elif caller_role == UserRole.admin:
        # Admins schedule over busy slots on purpose; conflicts are theirs to resolve.
        trainer = lock_trainer(session, trainer_id)
        by_trainer = bool(created_by_trainer)
        status = ApprovalStatus.approved
    else:
        raise AuthorizationError("Access denied: insufficient role")

    training = TrainingSession(
        trainer_id=trainer_id,
        course_name=course_name,
        date=date,
        time=time,
        location=location,
        duration=duration,
        created_by_trainer=by_trainer,
        approval_status=status,
    )
    session.add(training)
    session.commit()
    session.refresh(training)
    logger.info(
        "Created session %s for trainer %s on %s %s (%s)",
        training.id, trainer_id, date, time, status.value,
    )

    if caller_role == UserRole.trainer:
        notify_admins(
            session,
            NotificationType.session.value,
            f"Trainer {trainer.email} scheduled class '{training.course_name}' on {date} {time}",
        )
    return _detail(session, training)


def update_session(
    session: Session,
    session_id: int,
    trainer_id: Optional[int],
    course_name: Optional[str],
    date: Optional[str],
    time: Optional[str],
    location: Optional[str],
    duration: Optional[int] = None,
) -> SessionDetail:
    """Admin edit; replaces every field and does not consult busy slots."""
    training = _get(session, session_id)
    if duration is None:
        duration = training.duration
    course_name, location, date, time, _ = _validate(
        trainer_id, course_name, date, time, location, duration
    )
    lock_trainer(session, trainer_id)

    training.trainer_id = trainer_id
    training.course_name = course_name
    training.date = date
    training.time = time
    training.location = location
    training.duration = duration
    session.add(training)
    session.commit()
    session.refresh(training)
    logger.info("Updated session %s", training.id)
    return _detail(session, training)


def delete_session(session: Session, session_id: int) -> SessionDetail:
    training = _get(session, session_id)
    detail = _detail(session, training)
    session.delete(training)
    session.commit()
    logger.info("Deleted session %s", session_id)
    return detail


def toggle_attendance(session: Session, session_id: int, trainer_id: int) -> bool:
    training = session.get(TrainingSession, session_id)
    if not training or training.trainer_id != trainer_id:
        raise NotFoundError("Session not found or not authorized")
    training.attended = not training.attended
    session.add(training)
    session.commit()
    session.refresh(training)
    return training.attended


def set_approval(session: Session, session_id: int, new_status: Optional[str]) -> SessionDetail:
    """Any status may move to any other; there is no transition guard."""
    try:
        status = ApprovalStatus(new_status)
    except ValueError:
        raise ValidationError("Invalid approval status")
    training = _get(session, session_id)
    training.approval_status = status
    session.add(training)
    session.commit()
    session.refresh(training)
    logger.info("Session %s approval set to %s", training.id, status.value)
    return _detail(session, training)


def _list(session: Session, trainer_id: Optional[int] = None) -> List[SessionDetail]:
    stmt = select(TrainingSession, User).join(User, User.id == TrainingSession.trainer_id)
    if trainer_id is not None:
        stmt = stmt.where(TrainingSession.trainer_id == trainer_id)
    rows = session.exec(
        stmt.order_by(
            TrainingSession.date.desc(),
            TrainingSession.time.desc(),
            TrainingSession.id.desc(),
        )
    ).all()
    return [
        SessionDetail(session=training, trainer_name=trainer.name, trainer_email=trainer.email)
        for training, trainer in rows
    ]


def list_sessions_for_trainer(session: Session, trainer_id: int) -> List[SessionDetail]:
    return _list(session, trainer_id=trainer_id)


def list_all_sessions(session: Session) -> List[SessionDetail]:
    return _list(session)
