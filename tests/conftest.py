"""Shared fixtures and utilities for tests."""

import os
import tempfile

# Settings are read when application modules are first imported
_TEST_DIR = tempfile.mkdtemp(prefix="recruit-tests-")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")

from dataclasses import dataclass
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.access.actor import Actor
from core.audit import AuditEntry
from core.utils.datetime import now
from database.engine import Base
import database.models  # noqa: F401
from database.models.assignments import (
    AgentAssignment,
    AgentAssignmentStatus,
    agent_assignment_candidates,
    agent_assignment_hrs,
)
from database.models.candidates import Candidate
from database.models.companies import Company
from database.models.jobs import Job, JobStatus
from database.models.users import User, UserRole


class RecordingAuditSink:
    """Keeps audit entries in memory."""

    def __init__(self):
        self.entries: list[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)


@dataclass
class FakeOracle:
    """Scoring oracle returning a canned body and remembering its calls."""

    response: object = None
    error: Exception | None = None

    def __post_init__(self):
        self.calls = []

    async def score(self, subject, pool, direction):
        self.calls.append((subject, pool, direction))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit():
    return RecordingAuditSink()


def make_actor(user_id: int, role: UserRole) -> Actor:
    return Actor.for_role(user_id, role)


@pytest.fixture
async def seed(session):
    """
    A small world:

    - admin, superadmin
    - agent A scoped to HR H1 and candidates C1, C2; agent B without a record
    - HR H1 owns jobs J1 (open) and J3 (cancelled); HR H2 owns J2 (open)
    - candidates C1, C2, C3 (C3 is outside every scope)
    """
    users = {
        "admin": User(custom_id="ADM0001", email="admin@example.com", first_name="Ada", last_name="Admin", role=UserRole.ADMIN),
        "superadmin": User(custom_id="SUP0001", email="root@example.com", first_name="Sam", last_name="Root", role=UserRole.SUPERADMIN),
        "agent_a": User(custom_id="AGT0001", email="alice.agent@example.com", first_name="Alice", last_name="Agent", role=UserRole.AGENT),
        "agent_b": User(custom_id="AGT0002", email="bob.agent@example.com", first_name="Bob", last_name="Agent", role=UserRole.AGENT),
        "hr1": User(custom_id="HR0001", email="hannah.hr@example.com", first_name="Hannah", last_name="Hiring", role=UserRole.HR),
        "hr2": User(custom_id="HR0002", email="henry.hr@example.com", first_name="Henry", last_name="Hiring", role=UserRole.HR),
        "cand1": User(custom_id="CAN0001", email="carol@example.com", first_name="Carol", last_name="Python", role=UserRole.CANDIDATE),
        "cand2": User(custom_id="CAN0002", email="dave@example.com", first_name="Dave", last_name="Golang", role=UserRole.CANDIDATE),
        "cand3": User(custom_id="CAN0003", email="erin@example.com", first_name="Erin", last_name="Rust", role=UserRole.CANDIDATE),
    }
    session.add_all(users.values())
    await session.flush()

    company = Company(
        company_code="CMP0001",
        name="Acme Robotics",
        industry="Manufacturing",
        location="Berlin",
        created_by=users["hr1"].id,
    )
    other_company = Company(company_code="CMP0002", name="Globex", industry="Energy")
    session.add_all([company, other_company])
    await session.flush()

    base = now() - timedelta(days=3)
    jobs = {
        "j1": Job(job_code="JOB0001", title="Backend Engineer", description="Python services", location="Berlin", company_id=company.id, created_by=users["hr1"].id, status=JobStatus.OPEN, skills=["python", "sql"], created_at=base, posted_at=base),
        "j2": Job(job_code="JOB0002", title="Data Engineer", description="Pipelines", location="Remote", company_id=other_company.id, created_by=users["hr2"].id, status=JobStatus.OPEN, skills=["spark"], created_at=base + timedelta(hours=1), posted_at=base),
        "j3": Job(job_code="JOB0003", title="Backend Lead", description="Cancelled role", location="Berlin", company_id=company.id, created_by=users["hr1"].id, status=JobStatus.CANCELLED, skills=["python"], created_at=base + timedelta(hours=2), posted_at=base),
    }
    session.add_all(jobs.values())

    candidates = {
        "c1": Candidate(user_id=users["cand1"].id, summary="Backend developer", location="Berlin", skills=["python", "fastapi"], total_experience=5),
        "c2": Candidate(user_id=users["cand2"].id, summary="Go developer", location="Munich", skills=["go"], total_experience=3),
        "c3": Candidate(user_id=users["cand3"].id, summary="Systems developer", location="Paris", skills=["rust"], total_experience=7),
    }
    session.add_all(candidates.values())
    await session.flush()

    record = AgentAssignment(
        agent_id=users["agent_a"].id,
        assigned_by=users["admin"].id,
        status=AgentAssignmentStatus.ACTIVE,
    )
    session.add(record)
    await session.flush()
    await session.execute(
        insert(agent_assignment_hrs),
        [{"agent_assignment_id": record.id, "hr_id": users["hr1"].id}],
    )
    await session.execute(
        insert(agent_assignment_candidates),
        [
            {"agent_assignment_id": record.id, "candidate_id": candidates["c1"].id},
            {"agent_assignment_id": record.id, "candidate_id": candidates["c2"].id},
        ],
    )
    await session.commit()

    ids = {name: user.id for name, user in users.items()}
    ids.update({name: job.id for name, job in jobs.items()})
    ids.update({name: candidate.id for name, candidate in candidates.items()})
    ids["company"] = company.id
    ids["other_company"] = other_company.id
    ids["agent_a_record"] = record.id

    return SimpleNamespace(
        **ids,
        actors=SimpleNamespace(
            admin=make_actor(ids["admin"], UserRole.ADMIN),
            superadmin=make_actor(ids["superadmin"], UserRole.SUPERADMIN),
            agent_a=make_actor(ids["agent_a"], UserRole.AGENT),
            agent_b=make_actor(ids["agent_b"], UserRole.AGENT),
            hr1=make_actor(ids["hr1"], UserRole.HR),
            hr2=make_actor(ids["hr2"], UserRole.HR),
            cand1=make_actor(ids["cand1"], UserRole.CANDIDATE),
        ),
    )


@pytest.fixture
def oracle_factory():
    """Build FakeOracle instances: oracle_factory(response=...) or (error=...)."""
    return FakeOracle
