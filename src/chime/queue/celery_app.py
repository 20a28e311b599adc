"""Celery application configuration."""

from celery import Celery

from chime.config import get_settings


def create_celery_app() -> Celery:
    settings = get_settings()

    app = Celery("chime")
    app.config_from_object(
        {
            "broker_url": settings.effective_celery_broker,
            "result_backend": settings.effective_celery_backend,
            "task_serializer": "json",
            "result_serializer": "json",
            "accept_content": ["json"],
            "timezone": "UTC",
            "enable_utc": True,
            "task_track_started": True,
            "worker_prefetch_multiplier": 1,
            "task_routes": {
                "chime.queue.workers.run_tick": {"queue": "ticks"},
            },
            "beat_schedule": {
                "chime-tick": {
                    "task": "chime.queue.workers.run_tick",
                    "schedule": float(settings.tick_interval_seconds),
                    # a tick that waited longer than one interval is superseded by the next
                    "options": {"expires": float(settings.tick_interval_seconds)},
                },
            },
        }
    )
    app.autodiscover_tasks(["chime.queue"], related_name="workers")
    return app


celery_app = create_celery_app()
