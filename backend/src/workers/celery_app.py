"""Celery application for background notification jobs.

Workers are started with:

    celery -A workers.celery_app worker --loglevel=info

With CELERY_TASK_ALWAYS_EAGER=true (tests, local development without a
broker) tasks run inline in the calling process.
"""

from celery import Celery

from config import get_settings


def create_celery_app() -> Celery:
    settings = get_settings()

    app = Celery(
        "compliance",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["workers.notification_worker"],
    )
    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        task_eager_propagates=False,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
    )
    return app


celery_app = create_celery_app()
