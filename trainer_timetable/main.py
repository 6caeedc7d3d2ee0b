import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import JSONResponse
from sqlmodel import Session

from trainer_timetable.auth import (
    authenticate_user,
    ensure_bootstrap_admin,
    get_current_user,
    require_roles,
)
from trainer_timetable.db import create_db_and_tables, engine, get_session
from trainer_timetable.errors import SchedulingError
from trainer_timetable.logging_config import configure_logging
from trainer_timetable.models import BusySlot, Notification, User, UserRole
from trainer_timetable.schemas import (
    ApprovalIn,
    BusySlotIn,
    LoginIn,
    NotificationIn,
    ProfileUpdate,
    RegisterIn,
    SessionCreate,
    SessionUpdate,
    UserCreate,
    UserUpdate,
)
from trainer_timetable.services import busy_slots, notifications, sessions, users
from trainer_timetable.services.busy_slots import BusySlotDetail
from trainer_timetable.services.sessions import SessionDetail
from trainer_timetable.settings import settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Trainer Timetable")
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    same_site="lax",
    https_only=settings.cookie_secure,
)


@app.exception_handler(SchedulingError)
def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    create_db_and_tables()
    with Session(engine) as session:
        ensure_bootstrap_admin(
            session=session,
            name=settings.bootstrap_admin_name,
            email=settings.bootstrap_admin_email,
            password=settings.bootstrap_admin_password,
        )


def user_out(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at,
    }


def busy_slot_out(slot: BusySlot) -> dict:
    return {
        "id": slot.id,
        "trainer_id": slot.trainer_id,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "reason": slot.reason,
    }


def busy_slot_detail_out(detail: BusySlotDetail) -> dict:
    return {
        **busy_slot_out(detail.slot),
        "trainer_name": detail.trainer_name,
        "trainer_email": detail.trainer_email,
    }


def session_out(detail: SessionDetail) -> dict:
    s = detail.session
    return {
        "id": s.id,
        "trainer_id": s.trainer_id,
        "trainer_name": detail.trainer_name,
        "trainer_email": detail.trainer_email,
        "course_name": s.course_name,
        "date": s.date,
        "time": s.time,
        "location": s.location,
        "duration": s.duration,
        "created_by_trainer": s.created_by_trainer,
        "approval_status": s.approval_status,
        "attended": s.attended,
    }


def notification_out(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "message": n.message,
        "recipient_role": n.recipient_role,
        "read": n.read,
        "created_at": n.created_at,
    }


@app.get("/health")
def health():
    return {"ok": True}


# Auth

@app.post("/api/auth/register", status_code=201)
def api_register(
    body: RegisterIn,
    session: Session = Depends(get_session),
):
    user = users.register_user(
        session=session, name=body.name, email=body.email, password=body.password
    )
    return user_out(user)


@app.post("/api/auth/login")
def api_login(
    request: Request,
    body: LoginIn,
    session: Session = Depends(get_session),
):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    user = authenticate_user(
        session=session, email=body.email.strip().lower(), password=body.password
    )
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    request.session["user_id"] = user.id
    return {"user": user_out(user)}


@app.post("/api/auth/logout")
def api_logout(request: Request):
    request.session.clear()
    return {"ok": True}


@app.get("/api/auth/profile")
def api_profile(user: User = Depends(get_current_user)):
    return {"user": user_out(user)}


# Busy slots

@app.get("/api/busy-slots")
def api_list_busy_slots(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if user.role == UserRole.admin:
        return [busy_slot_detail_out(d) for d in busy_slots.list_all_busy_slots(session)]
    return [
        busy_slot_out(s)
        for s in busy_slots.list_busy_slots_for_trainer(session, trainer_id=user.id)
    ]


@app.post("/api/busy-slots", status_code=201)
def api_create_busy_slot(
    body: BusySlotIn,
    user: User = Depends(require_roles([UserRole.trainer])),
    session: Session = Depends(get_session),
):
    slot = busy_slots.create_busy_slot(
        session=session,
        trainer_id=user.id,
        start=body.start_time,
        end=body.end_time,
        reason=body.reason,
    )
    return busy_slot_out(slot)


@app.put("/api/busy-slots/{slot_id}")
def api_update_busy_slot(
    slot_id: int,
    body: BusySlotIn,
    user: User = Depends(require_roles([UserRole.trainer])),
    session: Session = Depends(get_session),
):
    slot = busy_slots.update_busy_slot(
        session=session,
        slot_id=slot_id,
        trainer_id=user.id,
        start=body.start_time,
        end=body.end_time,
        reason=body.reason,
    )
    return busy_slot_out(slot)


@app.delete("/api/busy-slots/{slot_id}")
def api_delete_busy_slot(
    slot_id: int,
    user: User = Depends(require_roles([UserRole.trainer])),
    session: Session = Depends(get_session),
):
    slot = busy_slots.delete_busy_slot(session=session, slot_id=slot_id, trainer_id=user.id)
    return busy_slot_out(slot)


# Sessions

@app.get("/api/sessions")
def api_list_sessions(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if user.role == UserRole.admin:
        return [session_out(d) for d in sessions.list_all_sessions(session)]
    return [session_out(d) for d in sessions.list_sessions_for_trainer(session, user.id)]


@app.post("/api/sessions", status_code=201)
def api_create_session(
    body: SessionCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    detail = sessions.create_session(
        session=session,
        trainer_id=body.trainer_id,
        course_name=body.course_name,
        date=body.date,
        time=body.time,
        location=body.location,
        duration=body.duration,
        caller_role=user.role,
        caller_id=user.id,
        created_by_trainer=body.created_by_trainer,
    )
    return session_out(detail)


@app.put("/api/sessions/{session_id}")
def api_update_session(
    session_id: int,
    body: SessionUpdate,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    detail = sessions.update_session(
        session=session,
        session_id=session_id,
        trainer_id=body.trainer_id,
        course_name=body.course_name,
        date=body.date,
        time=body.time,
        location=body.location,
        duration=body.duration,
    )
    return session_out(detail)


@app.delete("/api/sessions/{session_id}")
def api_delete_session(
    session_id: int,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    return session_out(sessions.delete_session(session=session, session_id=session_id))


@app.patch("/api/sessions/{session_id}/attendance")
def api_toggle_attendance(
    session_id: int,
    user: User = Depends(require_roles([UserRole.trainer])),
    session: Session = Depends(get_session),
):
    attended = sessions.toggle_attendance(
        session=session, session_id=session_id, trainer_id=user.id
    )
    return {"id": session_id, "attended": attended}


@app.put("/api/sessions/{session_id}/approve")
def api_set_approval(
    session_id: int,
    body: ApprovalIn,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    detail = sessions.set_approval(
        session=session, session_id=session_id, new_status=body.approval_status
    )
    return session_out(detail)


# Notifications

@app.get("/api/notifications")
def api_list_notifications(
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    items = notifications.list_admin_notifications(session, limit=settings.notification_limit)
    return [notification_out(n) for n in items]


@app.post("/api/notifications", status_code=201)
def api_send_notification(
    body: NotificationIn,
    user: User = Depends(require_roles([UserRole.trainer])),
    session: Session = Depends(get_session),
):
    n = notifications.send_admin_notification(session, type=body.type, message=body.message)
    return notification_out(n)


@app.patch("/api/notifications/{notification_id}/read")
def api_mark_notification_read(
    notification_id: int,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    return notification_out(notifications.mark_notification_read(session, notification_id))


# Users

@app.get("/api/users")
def api_list_users(
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    return [user_out(u) for u in users.list_users(session)]


@app.post("/api/users", status_code=201)
def api_create_user(
    body: UserCreate,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    created = users.create_user(
        session=session,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return user_out(created)


@app.get("/api/users/trainers")
def api_list_trainers(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [user_out(u) for u in users.list_trainers(session)]


@app.get("/api/users/profile")
def api_get_profile(user: User = Depends(get_current_user)):
    return {"user": user_out(user)}


@app.put("/api/users/profile")
def api_update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    updated = users.update_profile(
        session=session,
        user_id=user.id,
        name=body.name,
        email=body.email,
        password=body.password,
    )
    return {"user": user_out(updated)}


@app.get("/api/users/{user_id}")
def api_get_user(
    user_id: int,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    return user_out(users.get_user(session, user_id))


@app.put("/api/users/{user_id}")
def api_update_user(
    user_id: int,
    body: UserUpdate,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    updated = users.update_user(
        session=session,
        user_id=user_id,
        name=body.name,
        email=body.email,
        role=body.role,
        password=body.password,
    )
    return user_out(updated)


@app.delete("/api/users/{user_id}")
def api_delete_user(
    user_id: int,
    user: User = Depends(require_roles([UserRole.admin])),
    session: Session = Depends(get_session),
):
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    return user_out(users.delete_user(session, user_id))
