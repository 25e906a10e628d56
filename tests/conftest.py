"""Shared fixtures: an on-disk SQLite database, seed helpers and an API client."""
from __future__ import annotations

import os

os.environ["LOG_DIR"] = ""
os.environ["AUTH_ENABLED"] = "1"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["CRON_SECRET"] = "cron-secret"
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from backoffice.core.security import AuthenticatedUser, get_security_provider  # noqa: E402
from backoffice.db.session import get_db_session  # noqa: E402
from backoffice.main import create_app  # noqa: E402
from backoffice.models import (  # noqa: E402
    Base,
    Bill,
    BillItem,
    Client,
    Project,
    ProjectManager,
    Proposal,
    ProposalItem,
    User,
)
from backoffice.models.users import UserRole  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    """File backed SQLite so worker threads see the same data."""

    engine = create_engine(
        f"sqlite:///{tmp_path / 'backoffice.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )

    # pysqlite manages transactions itself and breaks SAVEPOINT; hand control to SQLAlchemy.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def session(session_factory) -> Session:
    with session_factory() as session:
        yield session


class Seeder:
    """Insert minimal rows for tests; every helper flushes."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def _save(self, instance):
        self.session.add(instance)
        self.session.flush()
        return instance

    def user(self, *, role: UserRole = UserRole.STAFF, name: str | None = None) -> User:
        number = self._next()
        return self._save(
            User(
                name=name or f"User {number}",
                email=f"user{number}@example.com",
                role=role.value,
            )
        )

    def client(self, *, manager: User | None = None, name: str = "Acme Ltd") -> Client:
        return self._save(
            Client(name=name, client_manager_id=manager.id if manager else None)
        )

    def proposal(self, client: Client, creator: User, **values) -> Proposal:
        values.setdefault("title", "Website retainer")
        values.setdefault("status", "APPROVED")
        return self._save(Proposal(client_id=client.id, created_by=creator.id, **values))

    def proposal_item(self, proposal: Proposal, **values) -> ProposalItem:
        values.setdefault("description", "Hosting")
        return self._save(ProposalItem(proposal_id=proposal.id, **values))

    def project(
        self,
        client: Client,
        *,
        proposal: Proposal | None = None,
        managers: tuple[User, ...] = (),
        **values,
    ) -> Project:
        values.setdefault("name", f"Project {self._next()}")
        project = self._save(
            Project(client_id=client.id, proposal_id=proposal.id if proposal else None, **values)
        )
        for manager in managers:
            self._save(ProjectManager(project_id=project.id, user_id=manager.id))
        return project

    def bill(
        self,
        client: Client,
        creator: User,
        *,
        amount: Decimal | str = "100.00",
        items: tuple[dict, ...] = (),
        **values,
    ) -> Bill:
        bill = Bill(client_id=client.id, created_by=creator.id, amount=Decimal(amount), **values)
        for item in items:
            bill.items.append(BillItem(**item))
        return self._save(bill)


@pytest.fixture()
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture()
def app(session_factory):
    app = create_app()

    def _session_override():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = _session_override
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def api(app) -> TestClient:
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def auth_headers():
    """Build bearer headers for a user with the given role."""

    def build(user_id: str = "admin-1", role: UserRole = UserRole.ADMIN) -> dict[str, str]:
        token = get_security_provider().create_access_token(
            AuthenticatedUser(user_id=user_id, role=role)
        )
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture()
def today() -> date:
    return date(2024, 3, 15)


@pytest.fixture()
def now() -> datetime:
    return datetime(2024, 3, 15, 6, 0, 0)
