"""
Pytest configuration and fixtures for all tests.

Tests run against SQLite in-memory databases; the access-control tables come
from the SQLAlchemy metadata, the business tables read by the report queries
are created from plain DDL.
"""

import pytest
from typing import Generator, Iterable
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from academy_backend.model import Base
from academy_backend.model.auth import Permission, Role, RolePermission, User, UserRole
from academy_backend.model.organization import Rank, Staff
from academy_backend.permissions.claims import ClaimVerifier

TEST_SECRET = "test-secret"

BUSINESS_TABLES = [
    "CREATE TABLE people (id TEXT PRIMARY KEY, first_name TEXT, last_name TEXT)",
    "CREATE TABLE cohorts (id TEXT PRIMARY KEY, cohort_no INTEGER, name TEXT, track TEXT)",
    "CREATE TABLE platoons (id TEXT PRIMARY KEY, cohort_id TEXT, platoon_no INTEGER, name TEXT)",
    """CREATE TABLE candidates (
        id TEXT PRIMARY KEY, person_id TEXT, user_id TEXT, cohort_id TEXT, platoon_id TEXT,
        candidate_no TEXT, status TEXT, military_no TEXT, sports_no TEXT
    )""",
    "CREATE TABLE exam_types (id TEXT PRIMARY KEY, name TEXT)",
    """CREATE TABLE exams (
        id TEXT PRIMARY KEY, exam_type_id TEXT, candidate_id TEXT, status TEXT,
        scheduled_at TEXT, performed_at TEXT
    )""",
    "CREATE TABLE exam_results (id TEXT PRIMARY KEY, exam_id TEXT, fit_status TEXT)",
    """CREATE TABLE requests (
        id TEXT PRIMARY KEY, candidate_id TEXT, title TEXT, body TEXT, request_type TEXT,
        status TEXT, priority TEXT, assigned_to TEXT, submitted_at TEXT
    )""",
    "CREATE TABLE attendance_sessions (id TEXT PRIMARY KEY, section_id TEXT, session_at TEXT)",
    "CREATE TABLE attendance (id TEXT PRIMARY KEY, attendance_session_id TEXT, candidate_id TEXT, present BOOLEAN)",
    "CREATE TABLE courses (id TEXT PRIMARY KEY, code TEXT, title TEXT)",
    "CREATE TABLE course_sections (id TEXT PRIMARY KEY, course_id TEXT, term_id TEXT, instructor_staff_id TEXT)",
    "CREATE TABLE enrollments (candidate_id TEXT, section_id TEXT)",
    "CREATE TABLE assessments (id TEXT PRIMARY KEY, section_id TEXT)",
    "CREATE TABLE grades (id TEXT PRIMARY KEY, assessment_id TEXT, candidate_id TEXT, score REAL)",
]


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)
    with engine.begin() as connection:
        for statement in BUSINESS_TABLES:
            connection.execute(text(statement))

    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def test_db(session_factory) -> Generator[Session, None, None]:
    """Create a test database session using SQLite in-memory."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def verifier() -> ClaimVerifier:
    return ClaimVerifier(secret=TEST_SECRET)


# Data helpers

def add_role(db: Session, name: str, permission_codes: Iterable[str] = ()) -> Role:
    role = Role(name=name)
    db.add(role)
    db.flush()
    for code in permission_codes:
        permission = db.query(Permission).filter(Permission.code == code).first()
        if permission is None:
            permission = Permission(code=code)
            db.add(permission)
            db.flush()
        db.add(RolePermission(role_id=role.id, permission_id=permission.id))
    db.commit()
    return role


def add_user(db: Session, username: str, roles: Iterable[Role] = ()) -> User:
    user = User(username=username, email=f"{username}@academy.test")
    db.add(user)
    db.flush()
    for role in roles:
        db.add(UserRole(user_id=user.id, role_id=role.id))
    db.commit()
    return user


def add_staff(db: Session, user: User = None, rank: Rank = None, rank_id: str = None) -> Staff:
    staff = Staff(
        user_id=user.id if user is not None else None,
        rank_id=rank.id if rank is not None else rank_id,
    )
    db.add(staff)
    db.commit()
    return staff


def role_ids_of(db: Session, user: User) -> set:
    db.expire_all()
    return {row.role_id for row in db.query(UserRole).filter(UserRole.user_id == user.id)}
