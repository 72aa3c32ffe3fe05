"""
Database models for the storefront loyalty service.
Points ledger, coupons and the order/user rows they hang off.
"""
from .user import User
from .order import Order, OrderItem, OrderStatus, Product
from .points import PointEntry, PointEntryType
from .coupon import Coupon, DiscountType
from .notification import Notification, NotificationType

__all__ = [
    'User',
    'Order',
    'OrderItem',
    'OrderStatus',
    'Product',
    # Points ledger
    'PointEntry',
    'PointEntryType',
    # Coupons
    'Coupon',
    'DiscountType',
    # Notifications
    'Notification',
    'NotificationType',
]
