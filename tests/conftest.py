"""
Shared fixtures: a throwaway SQLite database per test, in-memory object
storage and helpers to create users, subjects and notes.
"""
import os
from datetime import datetime, timedelta

# Must be set before the application modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("USE_IN_MEMORY_STORAGE", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_FILE_LOGGING", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app import app
from core.security import create_access_token, get_email_domain, get_password_hash
from core.storage import InMemoryStorageClient, set_storage_client
from db_config import Base, get_async_db
from models.models import Note, NoteVisibilityEnum, Subject, User, UserRoleEnum

BASE_TIME = datetime(2024, 9, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def storage():
    client = InMemoryStorageClient()
    set_storage_client(client)
    yield client
    set_storage_client(None)


@pytest.fixture
def database_path(tmp_path):
    return tmp_path / "notes.db"


@pytest.fixture
def db(database_path):
    """Synchronous session for arranging test data."""
    engine = create_engine(f"sqlite:///{database_path}")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db, database_path):
    """TestClient whose requests use the same database file as `db`."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    session_factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_async_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_get_async_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, email="alice@example.edu", full_name="Alice Student", role=UserRoleEnum.student,
              college_domain=None, is_active=True, password="password123"):
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        full_name=full_name,
        role=role,
        college_domain=college_domain or get_email_domain(email),
        is_active=is_active,
        is_verified=True,
    )
    db.add(user)
    db.commit()
    return user


def make_subject(db, subject_id="math-101", name="Calculus I", college_domain="example.edu", color="#8B5CF6"):
    subject = Subject(id=subject_id, name=name, code=subject_id.upper(), college_domain=college_domain, color=color)
    db.add(subject)
    db.commit()
    return subject


def make_note(db, uploader, title="Lecture notes", storage=None, description=None,
              visibility=NoteVisibilityEnum.public, college_domain=None, minutes=0,
              subject_id=None, semester=None, year_of_study=None, tags=(), file_name="notes.pdf"):
    """Create a note `minutes` after BASE_TIME, storing a file for it when `storage` is given."""
    domain = college_domain or uploader.college_domain
    note = Note(
        title=title,
        description=description,
        uploader_id=uploader.id,
        subject_id=subject_id,
        file_name=file_name,
        file_path=f"{domain}/{uploader.id}/{minutes}_{title.lower().replace(' ', '_')}.pdf",
        file_size=1024,
        file_type="pdf",
        mime_type="application/pdf",
        semester=semester,
        year_of_study=year_of_study,
        visibility=visibility,
        college_domain=domain,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    note.set_tags(tags)
    db.add(note)
    db.commit()
    if storage is not None:
        storage.upload(note.file_path, b"%PDF-1.4 test", "application/pdf")
    return note


def auth_headers(user):
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(db):
    return make_user(db)


@pytest.fixture
def bob(db):
    return make_user(db, email="bob@example.edu", full_name="Bob Student")


@pytest.fixture
def outsider(db):
    return make_user(db, email="carol@other.edu", full_name="Carol Outsider")


@pytest.fixture
def admin(db):
    return make_user(db, email="dean@example.edu", full_name="Dean", role=UserRoleEnum.admin)
