from celery import Celery

from app.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Only maintenance work runs here; request handling never waits on a worker.
    """
    celery_app = Celery(
        "department_portal",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        result_expires=3600,
        task_default_queue="default",
        task_acks_late=True,
        # Celery Beat schedule for periodic tasks
        beat_schedule={
            "cleanup-auth-tables": {
                "task": "app.features.auth.workers.maintenance.cleanup_auth_tables",
                "schedule": settings.CLEANUP_INTERVAL_SECONDS,
            },
        },
    )

    celery_app.autodiscover_tasks(["app.features.auth.workers"], related_name="maintenance")

    return celery_app


# Global Celery app instance
celery_app = create_celery_app()
