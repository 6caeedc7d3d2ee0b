from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from trainer_timetable.auth import hash_password
from trainer_timetable.errors import ConflictError, NotFoundError, ValidationError
from trainer_timetable.models import BusySlot, TrainingSession, User, UserRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def lock_trainer(session: Session, trainer_id: int) -> User:
    """
    Load a trainer row with ``SELECT ... FOR UPDATE``.

    Schedule writes for one trainer take this lock before their conflict scan,
    so two concurrent requests cannot both pass the check and double-book.
    The lock is held until the caller commits or rolls back.
    """
    trainer = session.exec(
        select(User).where(User.id == trainer_id).with_for_update()
    ).first()
    if not trainer or trainer.role != UserRole.trainer:
        raise NotFoundError("Trainer not found")
    return trainer


def _parse_role(role: Optional[str]) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise ValidationError('Role must be either "trainer" or "admin"')


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def _email_taken(session: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return session.exec(stmt).first() is not None


def _commit_user(session: Session, user: User) -> User:
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("User with this email already exists")
    session.refresh(user)
    return user


def create_user(
    session: Session,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    role: Optional[str],
) -> User:
    if not name or not email or not password or not role:
        raise ValidationError("Name, email, password, and role are required")
    _check_password(password)
    role_enum = _parse_role(role)
    email = email.strip().lower()
    if _email_taken(session, email):
        raise ConflictError("User with this email already exists")

    user = _commit_user(
        session,
        User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=role_enum,
        ),
    )
    logger.info("Created %s account %s (id=%s)", role_enum.value, email, user.id)
    return user


def register_user(
    session: Session,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> User:
    """Self-registration always yields a trainer; admins are created by admins."""
    return create_user(
        session=session,
        name=name,
        email=email,
        password=password,
        role=UserRole.trainer.value,
    )


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(session: Session) -> List[User]:
    return list(session.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all())


def list_trainers(session: Session) -> List[User]:
    return list(
        session.exec(
            select(User)
            .where(User.role == UserRole.trainer)
            .order_by(User.created_at.desc(), User.id.desc())
        ).all()
    )


def _has_schedule(session: Session, user_id: int) -> bool:
    slot = session.exec(select(BusySlot.id).where(BusySlot.trainer_id == user_id)).first()
    if slot is not None:
        return True
    training = session.exec(
        select(TrainingSession.id).where(TrainingSession.trainer_id == user_id)
    ).first()
    return training is not None


def update_user(
    session: Session,
    user_id: int,
    name: Optional[str],
    email: Optional[str],
    role: Optional[str],
    password: Optional[str] = None,
) -> User:
    if not name or not email or not role:
        raise ValidationError("Name, email, and role are required")
    user = get_user(session, user_id)
    role_enum = _parse_role(role)
    email = email.strip().lower()
    if _email_taken(session, email, exclude_id=user.id):
        raise ConflictError("User with this email already exists")
    leaving_trainer = user.role == UserRole.trainer and role_enum != UserRole.trainer
    if leaving_trainer and _has_schedule(session, user.id):
        raise ConflictError("Trainer still has scheduled sessions or busy slots")
    if password:
        _check_password(password)
        user.password_hash = hash_password(password)

    user.name = name.strip()
    user.email = email
    user.role = role_enum
    return _commit_user(session, user)


def update_profile(
    session: Session,
    user_id: int,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str] = None,
) -> User:
    if not name or not email:
        raise ValidationError("Name and email are required")
    user = get_user(session, user_id)
    return update_user(
        session=session,
        user_id=user.id,
        name=name,
        email=email,
        role=user.role.value,
        password=password,
    )


def delete_user(session: Session, user_id: int) -> User:
    user = get_user(session, user_id)
    for slot in session.exec(select(BusySlot).where(BusySlot.trainer_id == user.id)).all():
        session.delete(slot)
    for training in session.exec(
        select(TrainingSession).where(TrainingSession.trainer_id == user.id)
    ).all():
        session.delete(training)
    session.delete(user)
    session.commit()
    logger.info("Deleted account %s (id=%s)", user.email, user.id)
    return user
