"""
FastAPI main application entry point.
"""

import json
import os
import uvicorn

# Import logging system first
from core.logging import setup_logging, get_logger, database_logger

# Setup logging early
setup_logging()
logger = get_logger("main")

from sqlalchemy.exc import SQLAlchemyError

from db_config import get_db
from models.models import User, UserRoleEnum
from app import app
from core.security import get_password_hash, get_email_domain
from core.config import settings

os.makedirs("cache", exist_ok=True)


def ensure_default_admin(db) -> None:
    """Create the configured admin account, or reset its password when asked to."""
    admin_email = settings.default_admin_email
    admin_password = settings.default_admin_password
    if not (admin_email and admin_password):
        return

    admin_email = admin_email.strip().lower()
    admin_user = db.query(User).filter(User.email == admin_email).first()

    if not admin_user:
        logger.info("Creating default admin user", email=admin_email)
        admin_user = User(
            email=admin_email,
            password_hash=get_password_hash(admin_password),
            full_name="Admin",
            college_domain=get_email_domain(admin_email),
            role=UserRoleEnum.admin,
            is_active=True,
            is_verified=True,
        )
        db.add(admin_user)
        db.commit()
        db.refresh(admin_user)
        logger.info("Default admin user created successfully", user_id=admin_user.id)
    elif settings.force_reset_password_admin:
        logger.info("Resetting admin user password", email=admin_email)
        admin_user.password_hash = get_password_hash(admin_password)
        db.commit()
        logger.info("Admin user password reset successfully")


@app.on_event("startup")
async def startup_db_client():
    """Initialize default users on startup."""
    logger.info("Starting database initialization")

    db = next(get_db())
    try:
        ensure_default_admin(db)
        logger.info("Database initialization completed successfully")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error initializing database", error=str(e), exc_info=True)
        database_logger.error("Database initialization failed", error=str(e), exc_info=True)
    finally:
        db.close()


# Run the application
if __name__ == "__main__":
    # Export OpenAPI schema to a JSON file
    try:
        logger.info("Exporting OpenAPI schema")
        openapi_schema = app.openapi()
        output_path = "cache/openapi.json"
        with open(output_path, "w") as f:
            json.dump(openapi_schema, f, indent=2)
        logger.info("OpenAPI schema successfully exported", output_path=output_path)
    except OSError as e:
        logger.error("Error exporting OpenAPI schema", error=str(e), exc_info=True)

    logger.info("Starting uvicorn server", host="0.0.0.0", port=8000)
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )
