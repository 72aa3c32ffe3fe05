"""
Loyalty services.
"""
from .points_calculator import calculate_order_points, calculate_point_expiry_date
from .points_service import PointsService, points_service
from .coupon_templates import COUPON_TEMPLATES, CouponTemplate, CouponTemplateKey
from .coupon_service import (
    CouponService,
    coupon_service,
    generate_coupon_code,
    calculate_coupon_expiry_date
)
from .checkout_service import CheckoutService, checkout_service, calculate_discount
from .notification_service import NotificationService, notification_service
from .email_service import EmailService, email_service
from .point_expiry_alerts import process_point_expiry_alerts, process_scheduled_expiry_alerts
from .order_service import OrderService, order_service
