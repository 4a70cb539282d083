# app/celery_worker.py
from celery import Celery

from app.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
    LOW_STOCK_REPORT_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# explicit imports so the worker registers every task
celery_app.conf.imports = (
    "app.tasks.stock",
    "app.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "low-stock-report": {
        "task": "app.tasks.stock.low_stock_report_task",
        "schedule": LOW_STOCK_REPORT_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"

# tests and local runs without a broker execute tasks inline
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_eager_propagates = CELERY_TASK_ALWAYS_EAGER
