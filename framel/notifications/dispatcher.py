import logging

from framel.config import settings
from framel.notifications.channels import Channel
from framel.notifications.email_handlers import send_admin_email, send_user_email
from framel.notifications.events import NotificationEvent
from framel.notifications.rules import NOTIFICATION_RULES, SUBJECTS

logger = logging.getLogger(__name__)


def dispatch_order_event(
    *,
    event: NotificationEvent,
    order,
    extra: dict | None = None,
    notify_user: bool = True,
    notify_admin: bool = True,
):
    """
    Central notification dispatcher.

    Called after the state change is committed. Email problems are logged
    and swallowed; they never undo or fail an order operation.
    """

    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    subject = SUBJECTS[event].format(code=order.order_code)
    context = {
        "order": order,
        "store_name": settings.STORE_NAME,
        "event": event.value,
        **extra,
    }

    sent = []

    # -------------------------
    # USER EMAIL
    # -------------------------
    user_template = rules.get(Channel.EMAIL_USER)
    if notify_user and user_template and order.contact_email:
        try:
            if send_user_email(user_template, subject, order.contact_email, **context):
                sent.append(Channel.EMAIL_USER)
        except Exception:
            logger.exception(f"User email failed for {event.value} on {order.order_code}")

    # -------------------------
    # ADMIN EMAIL
    # -------------------------
    admin_template = rules.get(Channel.EMAIL_ADMIN)
    if notify_admin and admin_template:
        try:
            if send_admin_email(admin_template, subject, **context):
                sent.append(Channel.EMAIL_ADMIN)
        except Exception:
            logger.exception(f"Admin email failed for {event.value} on {order.order_code}")

    return sent
