import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from trainer_timetable.auth import hash_password
from trainer_timetable.db import get_session
from trainer_timetable.main import app
from trainer_timetable.models import User, UserRole

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    def factory(name: str, email: str, role: UserRole = UserRole.trainer) -> User:
        user = User(name=name, email=email, password_hash=PASSWORD_HASH, role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return factory


@pytest.fixture
def admin(make_user):
    return make_user("Ada Admin", "admin@example.com", UserRole.admin)


@pytest.fixture
def trainer(make_user):
    return make_user("Tom Trainer", "tom@example.com")


@pytest.fixture
def other_trainer(make_user):
    return make_user("Tina Trainer", "tina@example.com")


@pytest.fixture
def client_factory(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    clients = []

    def factory(email=None) -> TestClient:
        client = TestClient(app)
        clients.append(client)
        if email:
            resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
            assert resp.status_code == 200, resp.text
        return client

    yield factory

    for client in clients:
        client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client_factory, admin):
    return client_factory(admin.email)


@pytest.fixture
def trainer_client(client_factory, trainer):
    return client_factory(trainer.email)
