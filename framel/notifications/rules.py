from framel.notifications.events import NotificationEvent
from framel.notifications.channels import Channel


NOTIFICATION_RULES = {

    NotificationEvent.ORDER_PLACED: {
        Channel.EMAIL_USER: "user_emails/order_placed.html",
        Channel.EMAIL_ADMIN: "admin_emails/new_order.html",
    },

    NotificationEvent.PAYMENT_SUCCESS: {
        Channel.EMAIL_USER: "user_emails/payment_success.html",
        Channel.EMAIL_ADMIN: "admin_emails/payment_received.html",
    },

    NotificationEvent.PAYMENT_FAILED: {
        Channel.EMAIL_USER: "user_emails/payment_failed.html",
    },

    NotificationEvent.ORDER_DISPATCHED: {
        Channel.EMAIL_USER: "user_emails/order_status.html",
    },

    NotificationEvent.ORDER_DELIVERED: {
        Channel.EMAIL_USER: "user_emails/order_status.html",
    },

    NotificationEvent.ORDER_CANCELLED: {
        Channel.EMAIL_USER: "user_emails/order_cancelled.html",
        Channel.EMAIL_ADMIN: "admin_emails/order_cancelled.html",
    },

}

SUBJECTS = {
    NotificationEvent.ORDER_PLACED: "Order {code} received",
    NotificationEvent.PAYMENT_SUCCESS: "Payment received for order {code}",
    NotificationEvent.PAYMENT_FAILED: "Payment for order {code} did not go through",
    NotificationEvent.ORDER_DISPATCHED: "Order {code} is on its way",
    NotificationEvent.ORDER_DELIVERED: "Order {code} delivered",
    NotificationEvent.ORDER_CANCELLED: "Order {code} cancelled",
}
