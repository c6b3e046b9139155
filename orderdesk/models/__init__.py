from orderdesk.models.user import User
from orderdesk.models.order import Order
from orderdesk.models.order_event import OrderEvent
from orderdesk.models.invoice import Invoice

# add ALL models here
