"""
EcoWave Hub admin API: users, events, rewards, feedback, missions and the admin audit trail.
"""
import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from core.logger import logger
from database.connection import Database
from storage.local_store import JsonFileStore
from storage.s3_client import S3Client
from services.admin_logger import AdminLogger
from services.data_service_factory import DataServiceFactory, resolve_service_type
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.events import router as events_router
from routers.rewards import router as rewards_router
from routers.feedback import router as feedback_router
from routers.missions import router as missions_router
from routers.dashboard import router as dashboard_router
from routers.admin_history import router as admin_history_router
from routers.images import router as images_router


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for FastAPI app.
    Build the data service and admin logger, then probe the activity log in the background.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.APP_NAME}...")
    logger.info("=" * 60)

    service_type = resolve_service_type(config.DATA_SERVICE_TYPE)

    # Database (direct backend access only)
    if service_type == "database":
        try:
            config.db = Database(
                database_url=config.DATABASE_URL,
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW
            )
            if config.DB_CREATE_TABLES:
                config.db.create_tables()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    # Image storage
    if config.USE_S3:
        try:
            config.s3_client = S3Client(
                bucket_name=config.S3_BUCKET_NAME,
                aws_access_key_id=config.S3_ACCESS_KEY_ID,
                aws_secret_access_key=config.S3_SECRET_ACCESS_KEY,
                region_name=config.S3_REGION,
                endpoint_url=config.S3_ENDPOINT_URL,
                public_base_url=config.S3_PUBLIC_BASE_URL,
                cache_control=config.IMAGE_CACHE_CONTROL,
            )
        except Exception as e:
            logger.error(f"Failed to initialize S3 client: {e}", exc_info=True)
            logger.warning("Continuing without S3 - image uploads will be rejected")
            config.s3_client = None
    else:
        logger.info("S3 storage disabled - image uploads will be rejected")
        config.s3_client = None

    config.data_service = DataServiceFactory.get_instance()
    config.admin_logger = AdminLogger(
        config.data_service,
        JsonFileStore(config.ADMIN_LOG_FALLBACK_PATH),
        max_local_entries=config.ADMIN_LOG_MAX_LOCAL_ENTRIES,
        reprobe_interval=config.ADMIN_LOG_REPROBE_SECONDS,
        history_fallback_limit=config.ADMIN_HISTORY_FALLBACK_LIMIT,
    )

    logger.info("=" * 60)
    logger.info(f"Server ready! (data service: {config.data_service.name})")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info("API Docs: http://localhost:8000/docs")
    logger.info("=" * 60)

    # Probe the remote activity log without delaying startup
    probe = asyncio.create_task(asyncio.to_thread(config.admin_logger.test_database_connection))

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if not probe.done():
        probe.cancel()
    if config.db:
        config.db.engine.dispose()
        logger.info("Database connections closed")


# Initialize FastAPI app
app = FastAPI(
    title=config.APP_NAME,
    description="Admin API for the EcoWave Hub sustainability program",
    version=config.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=config.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(events_router)
app.include_router(rewards_router)
app.include_router(feedback_router)
app.include_router(missions_router)
app.include_router(dashboard_router)
app.include_router(admin_history_router)
app.include_router(images_router)


@app.get("/")
def root():
    """API information. Public endpoint."""
    return {
        "message": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
        "data_service": config.data_service.name if config.data_service else None,
        "docs": "/docs",
    }


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring. Public endpoint."""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "checks": {}
    }

    if config.data_service is None:
        health_status["checks"]["data_service"] = {"status": "error", "error": "not initialized"}
        health_status["status"] = "degraded"
    else:
        health_status["checks"]["data_service"] = {"status": "ok", "type": config.data_service.name}

    if config.db is not None:
        try:
            config.db.ping()
            health_status["checks"]["database"] = {"status": "ok"}
        except Exception as e:
            health_status["checks"]["database"] = {"status": "error", "error": str(e)}
            health_status["status"] = "degraded"

    if config.s3_client is not None:
        try:
            config.s3_client.s3_client.head_bucket(Bucket=config.s3_client.bucket_name)
            health_status["checks"]["s3"] = {"status": "ok", "bucket": config.s3_client.bucket_name}
        except Exception as e:
            health_status["checks"]["s3"] = {"status": "error", "bucket": config.s3_client.bucket_name, "error": str(e)}
            health_status["status"] = "degraded"
    else:
        health_status["checks"]["s3"] = {"status": "disabled"}

    if config.admin_logger is not None:
        # A local-only audit trail is degraded service, not an outage
        health_status["checks"]["admin_log"] = {
            "remote_available": config.admin_logger.database_available,
            "local_entries": len(config.admin_logger.get_local_entries()),
        }

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
