#!/usr/bin/env python3
"""
Add or remove a small set of sample notes for local browsing.

Usage:
    python scripts/sample_notes.py add [--email someone@example.edu]
    python scripts/sample_notes.py remove
"""
import argparse
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import DEFAULT_COLLEGE_DOMAIN
from core.file_utils import delete_stored_file
from core.logging import setup_logging, get_logger
from core.storage import StorageClient, StorageError, get_storage_client
from db_config import SessionLocal
from models.models import Note, NoteVisibilityEnum, Subject, User

setup_logging()
logger = get_logger("sample_notes")

SAMPLE_PREFIX = "sample-"

# Minimal valid PDF so that downloads of sample notes resolve
PLACEHOLDER_PDF = (
    b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
    b"2 0 obj<</Type/Pages/Kids[]/Count 0>>endobj\ntrailer<</Root 1 0 R>>\n%%EOF\n"
)

SAMPLE_NOTES = [
    {
        "title": "Introduction to React Hooks",
        "description": "Comprehensive guide covering useState, useEffect, and custom hooks with practical examples.",
        "file_name": "react-hooks-guide.pdf",
        "slug": "react-hooks",
        "file_size": 2500000,
        "semester": "Fall 2024",
        "year_of_study": 2,
        "tags": ["react", "hooks", "javascript", "frontend"],
        "subject": 0,
    },
    {
        "title": "Database Design Principles",
        "description": "Essential concepts for designing efficient and scalable database schemas.",
        "file_name": "database-design.pdf",
        "slug": "database-design",
        "file_size": 1800000,
        "semester": "Spring 2024",
        "year_of_study": 3,
        "tags": ["database", "sql", "design", "normalization"],
        "subject": 1,
    },
    {
        "title": "Machine Learning Basics",
        "description": "Introduction to machine learning algorithms and their practical applications.",
        "file_name": "ml-basics.pdf",
        "slug": "ml-basics",
        "file_size": 3200000,
        "semester": "Fall 2024",
        "year_of_study": 4,
        "tags": ["machine-learning", "ai", "algorithms", "python"],
        "subject": 2,
    },
    {
        "title": "JavaScript ES6 Features",
        "description": "Modern JavaScript features including arrow functions, destructuring, and async/await.",
        "file_name": "es6-features.pdf",
        "slug": "es6-features",
        "file_size": 1500000,
        "semester": "Spring 2024",
        "year_of_study": 2,
        "tags": ["javascript", "es6", "programming", "web-development"],
        "subject": 0,
    },
    {
        "title": "Calculus Study Guide",
        "description": "Complete study guide covering derivatives, integrals, and applications.",
        "file_name": "calculus-study-guide.pdf",
        "slug": "calculus",
        "file_size": 4100000,
        "semester": "Fall 2024",
        "year_of_study": 1,
        "tags": ["calculus", "mathematics", "derivatives", "integrals"],
        "subject": 1,
    },
]


def sample_path(user_id: str, slug: str) -> str:
    return f"{DEFAULT_COLLEGE_DOMAIN}/{user_id}/{SAMPLE_PREFIX}{slug}.pdf"


def add_sample_notes(db: Session, storage: StorageClient, email: str = None) -> list:
    """
    Insert the sample notes for one user, skipping any already present.

    Returns:
        list: Titles of the notes that were inserted
    """
    user_query = select(User).order_by(User.created_at)
    if email:
        user_query = user_query.where(func.lower(User.email) == email.lower())
    user = db.execute(user_query.limit(1)).scalar_one_or_none()
    if user is None:
        raise LookupError("No users found. Please create a user account first.")

    subjects = db.execute(
        select(Subject)
        .where(Subject.college_domain == DEFAULT_COLLEGE_DOMAIN, Subject.is_active.is_(True))
        .order_by(Subject.name)
        .limit(3)
    ).scalars().all()

    inserted = []
    for sample in SAMPLE_NOTES:
        path = sample_path(user.id, sample["slug"])
        if db.execute(select(Note.id).where(Note.file_path == path)).scalar_one_or_none():
            continue
        storage.upload(path, PLACEHOLDER_PDF, "application/pdf", upsert=True)

        subject = subjects[sample["subject"]] if sample["subject"] < len(subjects) else None
        note = Note(
            title=sample["title"],
            description=sample["description"],
            uploader_id=user.id,
            subject_id=subject.id if subject else None,
            file_name=sample["file_name"],
            file_path=path,
            file_size=sample["file_size"],
            file_type="pdf",
            mime_type="application/pdf",
            semester=sample["semester"],
            year_of_study=sample["year_of_study"],
            visibility=NoteVisibilityEnum.public,
            college_domain=DEFAULT_COLLEGE_DOMAIN,
        )
        note.set_tags(sample["tags"])
        db.add(note)
        inserted.append(sample["title"])

    db.commit()
    return inserted


def remove_sample_notes(db: Session, storage: StorageClient) -> int:
    """Delete every sample note row and its stored placeholder; returns the number removed."""
    notes = db.execute(
        select(Note).where(Note.file_path.like(f"%/{SAMPLE_PREFIX}%"))
    ).scalars().all()
    paths = [note.file_path for note in notes]
    for note in notes:
        db.delete(note)
    db.commit()

    for path in paths:
        delete_stored_file(storage, path)
    return len(paths)


def main():
    parser = argparse.ArgumentParser(description="Manage sample notes")
    sub = parser.add_subparsers(dest="command", required=True)
    add = sub.add_parser("add", help="Insert the sample notes")
    add.add_argument("--email", help="Owner of the sample notes (default: oldest user)")
    sub.add_parser("remove", help="Delete the sample notes")
    args = parser.parse_args()

    db = SessionLocal()
    storage = get_storage_client()
    try:
        if args.command == "add":
            print("📚 Adding sample notes to database...")
            titles = add_sample_notes(db, storage, args.email)
            print(f"✅ Successfully added {len(titles)} sample notes!")
            for index, title in enumerate(titles, 1):
                print(f"   {index}. {title}")
        else:
            print("🗑️  Removing sample notes...")
            removed = remove_sample_notes(db, storage)
            print(f"✅ Removed {removed} sample notes")
    except LookupError as e:
        print(f"⚠️  {e}")
        sys.exit(1)
    except (SQLAlchemyError, StorageError) as e:
        db.rollback()
        logger.error("Sample notes command failed", command=args.command, error=str(e))
        print(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
