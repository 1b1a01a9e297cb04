from .orders import Order, PaidOrderItem

__all__ = [
    'Order', 'PaidOrderItem',
]
