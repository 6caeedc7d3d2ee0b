from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from trainer_timetable.errors import ConflictError, NotFoundError
from trainer_timetable.models import BusySlot, NotificationType, User
from trainer_timetable.services.notifications import notify_admins
from trainer_timetable.services.users import lock_trainer
from trainer_timetable.time_utils import TimeRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusySlotDetail:
    slot: BusySlot
    trainer_name: str
    trainer_email: str


def slot_range(slot: BusySlot) -> TimeRange:
    return TimeRange(start=slot.start_time, end=slot.end_time)


def find_busy_conflict(
    session: Session,
    trainer_id: int,
    candidate: TimeRange,
    exclude_id: Optional[int] = None,
) -> Optional[BusySlot]:
    """First busy slot of the trainer that overlaps ``candidate``, if any."""
    stmt = select(BusySlot).where(BusySlot.trainer_id == trainer_id)
    if exclude_id is not None:
        stmt = stmt.where(BusySlot.id != exclude_id)
    for slot in session.exec(stmt.order_by(BusySlot.start_time.asc())).all():
        if candidate.overlaps(slot_range(slot)):
            return slot
    return None


def _format_dt(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def _get_owned_slot(session: Session, slot_id: int, trainer_id: int) -> BusySlot:
    slot = session.get(BusySlot, slot_id)
    if not slot or slot.trainer_id != trainer_id:
        raise NotFoundError("Busy slot not found")
    return slot


def create_busy_slot(
    session: Session,
    trainer_id: int,
    start: Optional[datetime],
    end: Optional[datetime],
    reason: Optional[str] = None,
) -> BusySlot:
    candidate = TimeRange.from_optional(start, end)
    trainer = lock_trainer(session, trainer_id)

    conflict = find_busy_conflict(session, trainer_id, candidate)
    if conflict:
        session.rollback()
        logger.info(
            "Rejected busy slot for trainer %s: overlaps slot %s", trainer_id, conflict.id
        )
        raise ConflictError("Busy slot overlaps with existing busy time")

    slot = BusySlot(
        trainer_id=trainer_id,
        start_time=candidate.start,
        end_time=candidate.end,
        reason=(reason or "").strip() or None,
    )
    session.add(slot)
    session.commit()
    session.refresh(slot)
    logger.info("Created busy slot %s for trainer %s", slot.id, trainer_id)

    notify_admins(
        session,
        NotificationType.busy.value,
        f"Trainer {trainer.email} added busy slot from "
        f"{_format_dt(candidate.start)} to {_format_dt(candidate.end)}",
    )
    return slot


def update_busy_slot(
    session: Session,
    slot_id: int,
    trainer_id: int,
    start: Optional[datetime],
    end: Optional[datetime],
    reason: Optional[str] = None,
) -> BusySlot:
    lock_trainer(session, trainer_id)
    slot = _get_owned_slot(session, slot_id, trainer_id)
    candidate = TimeRange.from_optional(start, end)

    conflict = find_busy_conflict(session, trainer_id, candidate, exclude_id=slot.id)
    if conflict:
        session.rollback()
        logger.info(
            "Rejected update of busy slot %s: overlaps slot %s", slot_id, conflict.id
        )
        raise ConflictError("Busy slot overlaps with existing busy time")

    slot.start_time = candidate.start
    slot.end_time = candidate.end
    slot.reason = (reason or "").strip() or None
    session.add(slot)
    session.commit()
    session.refresh(slot)
    logger.info("Updated busy slot %s for trainer %s", slot.id, trainer_id)
    return slot


def delete_busy_slot(session: Session, slot_id: int, trainer_id: int) -> BusySlot:
    slot = _get_owned_slot(session, slot_id, trainer_id)
    session.delete(slot)
    session.commit()
    logger.info("Deleted busy slot %s for trainer %s", slot_id, trainer_id)
    return slot


def list_busy_slots_for_trainer(session: Session, trainer_id: int) -> List[BusySlot]:
    return list(
        session.exec(
            select(BusySlot)
            .where(BusySlot.trainer_id == trainer_id)
            .order_by(BusySlot.start_time.asc(), BusySlot.id.asc())
        ).all()
    )


def list_all_busy_slots(session: Session) -> List[BusySlotDetail]:
    rows = session.exec(
        select(BusySlot, User)
        .join(User, User.id == BusySlot.trainer_id)
        .order_by(BusySlot.start_time.asc(), BusySlot.id.asc())
    ).all()
    return [
        BusySlotDetail(slot=slot, trainer_name=trainer.name, trainer_email=trainer.email)
        for slot, trainer in rows
    ]
