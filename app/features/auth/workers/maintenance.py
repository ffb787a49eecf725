"""
Periodic cleanup of the session and OTP tables.

Expired rows are already excluded at read time, so this sweep only reclaims
space; nothing depends on it running.
"""
import asyncio

from celery import shared_task

from app.features.auth.services.otp_service import OTPService
from app.features.auth.services.session_service import SessionService
from app.platform.logger import get_logger
from app.platform.utils.time import utc_now

logger = get_logger(__name__)


async def run_cleanup(session_factory=None) -> dict:
    engine = None
    if session_factory is None:
        from app.platform.db import session as db_session

        session_factory = db_session.SessionLocal
        engine = db_session.engine

    try:
        async with session_factory() as db:
            sessions_deleted = await SessionService(db).cleanup()
            otps_deleted = await OTPService(db).purge_expired()
    finally:
        if engine is not None:
            # Pooled connections are bound to this run's event loop
            await engine.dispose()

    logger.info(f"Maintenance removed {sessions_deleted} session(s) and {otps_deleted} OTP(s)")
    return {
        "sessions_deleted": sessions_deleted,
        "otps_deleted": otps_deleted,
        "timestamp": utc_now().isoformat(),
    }


@shared_task(bind=True, name="app.features.auth.workers.maintenance.cleanup_auth_tables")
def cleanup_auth_tables(self):
    """Runs on Celery Beat every CLEANUP_INTERVAL_SECONDS."""
    logger.info("Starting auth table cleanup...")
    return asyncio.run(run_cleanup())
