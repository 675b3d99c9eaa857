#!/usr/bin/env python3
"""
Remove note records whose file is missing from object storage.

Usage:
    python scripts/cleanup_orphaned_notes.py --dry-run
    python scripts/cleanup_orphaned_notes.py
"""
import argparse
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.logging import setup_logging, get_logger
from core.storage import StorageClient, StorageError, get_storage_client
from db_config import SessionLocal
from models.models import Note

setup_logging()
logger = get_logger("cleanup_orphaned_notes")


def find_orphaned_notes(db: Session, storage: StorageClient):
    """
    Split notes into orphaned and valid ones.

    Notes whose object cannot be checked are reported as valid and left alone.

    Returns:
        tuple: (orphaned, valid) lists of (id, title, file_path)
    """
    rows = db.execute(
        select(Note.id, Note.title, Note.file_path).order_by(Note.created_at.desc())
    ).all()

    orphaned, valid = [], []
    for row in rows:
        try:
            exists = storage.exists(row.file_path)
        except StorageError as e:
            logger.warning("Could not check stored file", note_id=row.id, error=str(e))
            exists = True
        (valid if exists else orphaned).append(tuple(row))
    return orphaned, valid


def remove_notes(db: Session, note_ids: list) -> int:
    if not note_ids:
        return 0
    result = db.execute(delete(Note).where(Note.id.in_(note_ids)))
    db.commit()
    return result.rowcount


def main():
    parser = argparse.ArgumentParser(description="Remove notes whose files are missing")
    parser.add_argument("--dry-run", action="store_true", help="Report orphans without deleting them")
    args = parser.parse_args()

    print("🔍 Checking for orphaned notes (database records without actual files)...")
    db = SessionLocal()
    try:
        orphaned, valid = find_orphaned_notes(db, get_storage_client())

        print("\n📊 Results:")
        print(f"   ✅ Valid notes (file exists): {len(valid)}")
        print(f"   ❌ Orphaned notes (no file): {len(orphaned)}")
        for _, title, file_path in orphaned:
            print(f"   - {title} ({file_path})")

        if orphaned and not args.dry_run:
            print(f"\n🗑️  Removing {len(orphaned)} orphaned notes from database...")
            removed = remove_notes(db, [note_id for note_id, _, _ in orphaned])
            logger.info("Orphaned notes removed", count=removed)
            print(f"✅ Removed {removed} orphaned notes")
        elif orphaned:
            print("\nℹ️  Dry run, nothing deleted")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Orphan cleanup failed", error=str(e))
        print(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        db.close()

    print("\n🎉 Cleanup complete!")


if __name__ == "__main__":
    main()
