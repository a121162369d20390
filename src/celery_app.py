"""Celery application configuration."""

from celery import Celery

from src.config import get_settings

settings = get_settings()

app = Celery(
    "checkin",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.receipt_scan"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=120,  # vision calls are a single request
    task_soft_time_limit=90,
)
