"""
Celery Tasks
Background tasks that run outside the request path.
"""

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from food_ordering.celery_worker import celery_app
from food_ordering.database import get_sync_session
from food_ordering.models import Order

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True
)
def backfill_order_total(self, order_id: str, total_amount: int) -> dict:
    """
    Persist a computed total for an order stored without one.

    Only writes while the stored total is still empty, so a total
    confirmed by the payment provider in the meantime is kept.

    Args:
        order_id: Order to update
        total_amount: Total computed on the read path

    Returns:
        dict: Whether a row was updated
    """
    task_id = self.request.id

    with get_sync_session() as session:
        result = session.execute(
            update(Order)
            .where(Order.id == order_id, Order.total_amount.is_(None))
            .values(total_amount=total_amount)
        )
        session.commit()

    updated = result.rowcount == 1
    if updated:
        logger.info(f"Task {task_id}: Order {order_id} total backfilled ({total_amount})")
    else:
        logger.info(f"Task {task_id}: Order {order_id} already has a total or is gone")

    return {
        'order_id': order_id,
        'total_amount': total_amount,
        'updated': updated,
    }
