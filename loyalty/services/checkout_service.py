"""
Checkout-time validation of coupons and points.

Validation is read-only: nothing here writes to the database. Consuming
points happens in points_service.consume_points, which re-checks the balance
under a row lock.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app

from ..models import Coupon, DiscountType
from .points_service import points_service


def calculate_discount(coupon: Coupon, subtotal: int) -> int:
    """
    Discount a coupon gives on a subtotal.

    Percentage coupons are truncated to whole currency units; fixed
    coupons never exceed the subtotal.
    """
    if coupon.discount_type == DiscountType.PERCENTAGE:
        return int(subtotal * coupon.discount_value / 100)
    return min(coupon.discount_value, subtotal)


class CheckoutService:
    """Validates a coupon code or a points amount for the current user."""

    def validate_coupon(
        self,
        code: str,
        user_id: int,
        subtotal: int,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Check a coupon code against the current cart.

        Checks run in this order and the first failure is reported:
        unknown code, already used, expired, minimum purchase not met,
        issued to another user.

        Returns:
            Dict with valid flag, message and, when valid, the coupon and
            discount_amount
        """
        now = now or datetime.utcnow()
        currency = current_app.config.get('CURRENCY_SYMBOL', '¥')

        coupon = Coupon.query.filter_by(code=code).first()
        if not coupon:
            return {'valid': False, 'message': 'Invalid coupon code'}

        if coupon.is_used:
            return {'valid': False, 'message': 'This coupon has already been used'}

        if coupon.is_expired(now):
            return {'valid': False, 'message': 'This coupon has expired'}

        if coupon.minimum_purchase and subtotal < coupon.minimum_purchase:
            return {
                'valid': False,
                'message': f'This coupon requires a minimum purchase of {currency}{coupon.minimum_purchase:,}'
            }

        if coupon.user_id != user_id:
            return {'valid': False, 'message': 'This coupon belongs to another user'}

        return {
            'valid': True,
            'coupon': coupon.to_dict(),
            'discount_amount': calculate_discount(coupon, subtotal),
            'message': 'Coupon applied'
        }

    def validate_points(self, user_id: int, points_to_use: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Check that a user can spend a number of points.

        Zero is accepted; negative amounts and amounts above the
        non-expired balance are rejected.
        """
        available = points_service.get_available_balance(user_id, now)

        if points_to_use < 0:
            return {
                'success': False,
                'available_points': available,
                'message': 'Points to use cannot be negative'
            }

        if points_to_use > available:
            return {
                'success': False,
                'available_points': available,
                'message': f'Not enough points (available: {available})'
            }

        return {
            'success': True,
            'available_points': available,
            'validated_points': points_to_use,
            'message': f'{points_to_use} points can be applied'
        }


# Singleton instance
checkout_service = CheckoutService()
