"""Run the unpaid order sweep once, e.g. from cron: python -m framel.jobs.order_expiry"""
import logging

from sqlmodel import Session

from framel.config import settings
from framel.database import get_engine
from framel.services.order_expiry_service import expire_unpaid_orders

logger = logging.getLogger(__name__)


def run():
    if settings.ORDER_EXPIRY_HOURS <= 0:
        logger.info("ORDER_EXPIRY_HOURS is 0, unpaid order sweep disabled")
        return []

    with Session(get_engine()) as session:
        return expire_unpaid_orders(session)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    run()
