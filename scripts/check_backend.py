#!/usr/bin/env python3
"""
Check database and object storage connectivity with the configured credentials.

Usage:
    python scripts/check_backend.py
"""
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.logging import setup_logging, get_logger
from core.storage import StorageError, get_storage_client
from db_config import SessionLocal
from models.models import Note, Subject, User

setup_logging()
logger = get_logger("check_backend")


def check_database() -> bool:
    print("🗄️  Checking database...")
    db = SessionLocal()
    try:
        for label, model in (("users", User), ("subjects", Subject), ("notes", Note)):
            count = db.execute(select(func.count()).select_from(model)).scalar_one()
            print(f"   ✅ {label}: {count} rows")
        return True
    except SQLAlchemyError as e:
        logger.error("Database check failed", error=str(e))
        print(f"   ❌ Database error: {e}")
        return False
    finally:
        db.close()


def check_storage() -> bool:
    print(f"\n🪣 Checking storage bucket {settings.storage_bucket}...")
    if not settings.has_storage_credentials:
        print("   ⚠️  No storage service credentials configured")
    storage = get_storage_client()
    try:
        storage.ping()
        objects = storage.list(limit=100)
    except StorageError as e:
        logger.error("Storage check failed", bucket=settings.storage_bucket, error=str(e))
        print(f"   ❌ Storage error: {e}")
        return False
    print(f"   ✅ Bucket reachable, {len(objects)} objects listed")
    return True


def main():
    database_ok = check_database()
    storage_ok = check_storage()
    if database_ok and storage_ok:
        print("\n✅ Backend is reachable")
        return
    print("\n❌ Backend check failed")
    sys.exit(1)


if __name__ == "__main__":
    main()
