#!/usr/bin/env python3
"""
Create the database tables and, for S3 storage, the notes bucket.

Usage:
    python scripts/setup_db.py
    python scripts/setup_db.py --skip-bucket
"""
import argparse
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.logging import setup_logging, get_logger
from core.storage import S3StorageClient, get_storage_client
from db_config import Base, engine
import models  # noqa: F401  registers the tables on Base.metadata

setup_logging()
logger = get_logger("setup_db")


def create_tables(bind=engine) -> list:
    """Create every missing table; returns the names that were created."""
    existing = set(inspect(bind).get_table_names())
    Base.metadata.create_all(bind)
    return sorted(set(Base.metadata.tables) - existing)


def ensure_bucket() -> bool:
    storage = get_storage_client()
    if not isinstance(storage, S3StorageClient):
        print("ℹ️  In-memory storage configured, no bucket to create")
        return False
    created = storage.ensure_bucket()
    if created:
        print(f"   ✅ Created bucket {settings.storage_bucket}")
    else:
        print(f"   ✅ Bucket {settings.storage_bucket} already exists")
    return created


def main():
    parser = argparse.ArgumentParser(description="Create tables and storage bucket")
    parser.add_argument("--skip-bucket", action="store_true", help="Only create database tables")
    args = parser.parse_args()

    print("🏗️  Setting up database...")
    try:
        created = create_tables()
    except SQLAlchemyError as e:
        logger.error("Table creation failed", error=str(e))
        print(f"❌ Error creating tables: {e}")
        sys.exit(1)

    for table in created:
        print(f"   ✅ Created {table}")
    if not created:
        print("   ✅ All tables already exist")

    if not args.skip_bucket:
        print("\n🪣 Checking storage bucket...")
        try:
            ensure_bucket()
        except (BotoCoreError, ClientError) as e:
            logger.error("Bucket setup failed", bucket=settings.storage_bucket, error=str(e))
            print(f"❌ Error creating bucket: {e}")
            sys.exit(1)

    print("\n✅ Setup complete!")


if __name__ == "__main__":
    main()
