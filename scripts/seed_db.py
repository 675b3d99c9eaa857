#!/usr/bin/env python3
"""
Seed the subject catalog for a college domain.

Usage:
    python scripts/seed_db.py
    python scripts/seed_db.py --domain example.edu
"""
import argparse
import re
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import DEFAULT_COLLEGE_DOMAIN, DEFAULT_SUBJECT_COLOR
from core.logging import setup_logging, get_logger
from db_config import SessionLocal
from models.models import Subject

setup_logging()
logger = get_logger("seed_db")

DEFAULT_SUBJECTS = [
    ("Computer Science", "CS", "Programming, algorithms, and software development", "#3B82F6"),
    ("Mathematics", "MATH", "Calculus, algebra, statistics, and mathematical analysis", "#8B5CF6"),
    ("Physics", "PHYS", "Classical mechanics, electromagnetism, and quantum physics", "#06B6D4"),
    ("Chemistry", "CHEM", "Organic, inorganic, and physical chemistry", "#10B981"),
    ("Biology", "BIO", "Life sciences, anatomy, and molecular biology", "#22C55E"),
    ("English Literature", "ENG", "Literary analysis, writing, and composition", "#F59E0B"),
    ("History", "HIST", "World history, historical analysis, and research methods", "#B45309"),
    ("Economics", "ECON", "Microeconomics, macroeconomics, and financial analysis", "#EF4444"),
    ("Psychology", "PSYC", "Cognitive psychology, behavioral analysis, and research methods", "#EC4899"),
    ("Engineering", "ENGR", "Mechanical, electrical, and civil engineering principles", "#6366F1"),
]


def subject_id_for(code: str, college_domain: str) -> str:
    """Stable subject id: the lower-cased code, prefixed by the domain outside the shared catalog."""
    slug = code.lower()
    if college_domain == DEFAULT_COLLEGE_DOMAIN:
        return slug
    return f"{re.sub(r'[^a-z0-9]+', '-', college_domain.lower()).strip('-')}-{slug}"


def seed_subjects(db: Session, college_domain: str = DEFAULT_COLLEGE_DOMAIN) -> int:
    """Insert missing subjects for a domain, refresh existing ones; returns the number inserted."""
    existing = {
        s.name: s
        for s in db.execute(
            select(Subject).where(Subject.college_domain == college_domain)
        ).scalars()
    }

    inserted = 0
    for name, code, description, color in DEFAULT_SUBJECTS:
        subject = existing.get(name)
        if subject is None:
            db.add(Subject(
                id=subject_id_for(code, college_domain),
                name=name,
                code=code,
                description=description,
                color=color or DEFAULT_SUBJECT_COLOR,
                college_domain=college_domain,
                is_active=True,
            ))
            inserted += 1
        else:
            subject.code = code
            subject.description = description
    db.commit()
    return inserted


def main():
    parser = argparse.ArgumentParser(description="Seed subjects")
    parser.add_argument("--domain", default=DEFAULT_COLLEGE_DOMAIN,
                        help=f"College domain to seed (default: {DEFAULT_COLLEGE_DOMAIN})")
    args = parser.parse_args()

    print(f"🌱 Seeding subjects for {args.domain}...")
    db = SessionLocal()
    try:
        inserted = seed_subjects(db, args.domain)
        subjects = db.execute(
            select(Subject).where(Subject.college_domain == args.domain).order_by(Subject.name)
        ).scalars().all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Seeding failed", domain=args.domain, error=str(e))
        print(f"❌ Error seeding subjects: {e}")
        sys.exit(1)
    finally:
        db.close()

    print(f"✅ {inserted} subjects added, {len(subjects)} available:")
    for subject in subjects:
        print(f"   - {subject.name} ({subject.code})")


if __name__ == "__main__":
    main()
