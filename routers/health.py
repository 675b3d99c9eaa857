"""
Health check and system monitoring endpoints.
"""
import asyncio
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import structlog

from core.backend import BackendClient, get_backend_client
from core.config import settings
from core.storage import StorageError

router = APIRouter(prefix="/health", tags=["Health"])
api_router = APIRouter(prefix="/api", tags=["Health"])
logger = structlog.get_logger("health")


class HealthChecker:
    """Service for performing various health checks."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def check_database(self) -> Dict[str, Any]:
        """Check database connectivity and basic operations."""
        try:
            start_time = time.time()

            result = await self.client.db.execute(text("SELECT 1"))
            result.fetchone()
            user_count = await self.client.ping()

            response_time = (time.time() - start_time) * 1000

            return {
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
                "user_count": user_count,
                "details": "Database connection successful"
            }

        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
                "details": "Database connection failed"
            }

    async def check_storage(self) -> Dict[str, Any]:
        """Check that the notes bucket is reachable."""
        try:
            start_time = time.time()
            await asyncio.to_thread(self.client.storage.ping)
            return {
                "status": "healthy",
                "bucket": settings.storage_bucket,
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
            }
        except StorageError as e:
            logger.error("Storage health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "bucket": settings.storage_bucket,
                "error": str(e),
            }

    def check_system_resources(self) -> Dict[str, Any]:
        """Check system resource usage."""
        try:
            cpu_percent = psutil.cpu_percent(interval=None)
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "status": "healthy",
                "cpu_percent": cpu_percent,
                "memory": {
                    "total_gb": round(memory.total / (1024**3), 2),
                    "available_gb": round(memory.available / (1024**3), 2),
                    "percent_used": memory.percent
                },
                "disk": {
                    "total_gb": round(disk.total / (1024**3), 2),
                    "free_gb": round(disk.free / (1024**3), 2),
                    "percent_used": round((disk.used / disk.total) * 100, 2)
                }
            }

        except (psutil.Error, OSError) as e:
            logger.error("System resource check failed", error=str(e))
            return {
                "status": "error",
                "error": str(e)
            }


@router.get("/", summary="Basic health check")
async def health_check():
    """
    Basic health check endpoint to verify the API is running.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "version": settings.app_version
    }


@router.get("/detailed", summary="Detailed health check")
async def detailed_health_check(client: BackendClient = Depends(get_backend_client)):
    """
    Comprehensive health check including database, object storage, and system resources.
    """
    checker = HealthChecker(client)

    checks = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "database": await checker.check_database(),
        "storage": await checker.check_storage(),
        "system": checker.check_system_resources()
    }

    overall_status = "healthy"

    if checks["database"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif checks["storage"]["status"] != "healthy":
        overall_status = "degraded"

    system = checks["system"]
    if overall_status == "healthy" and system["status"] == "healthy":
        if (system.get("cpu_percent", 0) > 90 or
            system.get("memory", {}).get("percent_used", 0) > 90 or
            system.get("disk", {}).get("percent_used", 0) > 90):
            overall_status = "degraded"

    checks["overall_status"] = overall_status

    logger.info("Health check performed", status=overall_status, checks=checks)

    if overall_status == "unhealthy":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=checks
        )

    return checks


@api_router.get("/db-health", summary="Backend liveness probe")
async def db_health(client: BackendClient = Depends(get_backend_client)):
    """
    Round-trip to the relational backend.

    Returns 200 with `status: healthy` when the query succeeds, 500 otherwise.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await client.ping()
    except SQLAlchemyError as e:
        logger.error("Database liveness probe failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "unhealthy",
                "timestamp": timestamp,
                "error": "Database connection failed",
                "details": str(e),
            },
        )

    return {
        "status": "healthy",
        "timestamp": timestamp,
        "database": "connected",
        "message": "Database connection successful",
    }
