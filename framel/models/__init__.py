from framel.models.user import User
from framel.models.product import Product
from framel.models.cart import Cart, CartItem
from framel.models.order import Order
from framel.models.order_item import OrderItem
from framel.models.order_sequence import OrderSequence
from framel.models.order_event import OrderEvent
from framel.models.payment_attempt import PaymentAttempt

# add ALL models here
