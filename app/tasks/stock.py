# app/tasks/stock.py
from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="app.tasks.stock.low_stock_report_task")
def low_stock_report_task():
    logger.info("Low stock report task started")

    db = SessionLocal()
    try:
        variants = ProductRepo(db).low_stock_variants()

        logger.info(f"Found {len(variants)} variant(s) at or below their low stock threshold")

        for v in variants:
            logger.warning(
                f"Low stock: {v.sku} ({v.product.name}) has {v.inventory_quantity} left, "
                f"threshold {v.low_stock_threshold}"
            )

        return [{"sku": v.sku, "quantity": v.inventory_quantity} for v in variants]
    finally:
        db.close()
