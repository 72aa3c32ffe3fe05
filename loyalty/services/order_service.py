"""
Order lifecycle hooks for the loyalty program.

complete_order and cancel_order change the order status first and then run
the loyalty bookkeeping. Bookkeeping failures are reported in the result
but never undo the status change.
"""
from datetime import datetime
from typing import Any, Dict

from flask import current_app

from ..extensions import db
from ..models import Order, OrderStatus
from ..utils.exceptions import (
    AuthorizationError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
)
from .coupon_service import coupon_service
from .points_service import points_service


def _load_owned_order(order_id: int, user_id: int) -> Order:
    order = Order.query.get(order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    if order.user_id != user_id:
        raise AuthorizationError('This order belongs to another user')
    return order


class OrderService:
    """Completes and cancels orders on behalf of their owner."""

    def _drop_coupon(self, order: Order, reason: str) -> None:
        current_app.logger.warning(
            f"Coupon {order.coupon_id} removed from order {order.order_number}: {reason}"
        )
        order.coupon_id = None
        order.discount_amount = 0
        db.session.commit()

    def complete_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        """
        Mark an order completed and run the loyalty follow-ups.

        Follow-ups, in order: award points (unless already awarded), mark
        the applied coupon used, evaluate coupon issuance. An applied coupon
        that can no longer be claimed is detached and its discount removed.

        Raises:
            OrderNotFoundError: Unknown order
            AuthorizationError: Order owned by another user
            InvalidStatusTransitionError: Order already completed or cancelled
        """
        order = _load_owned_order(order_id, user_id)

        if order.status != OrderStatus.PENDING:
            raise InvalidStatusTransitionError('order', order.status, OrderStatus.COMPLETED)

        order.status = OrderStatus.COMPLETED
        order.completed_at = datetime.utcnow()
        db.session.commit()

        current_app.logger.info(f"Order {order.order_number} completed")

        if order.points_awarded:
            points_result = {'success': True, 'message': 'Points already awarded'}
        else:
            points_result = points_service.award_order_points(order.id)
            if not points_result.get('success'):
                current_app.logger.error(
                    f"Points not awarded for order {order.order_number}: {points_result.get('error')}"
                )

        coupon_used_result = None
        if order.coupon_id:
            coupon_used_result = coupon_service.mark_coupon_used(order.coupon_id, order.id)
            if not coupon_used_result.get('success'):
                self._drop_coupon(order, coupon_used_result.get('error'))

        coupon_result = coupon_service.issue_coupon_if_eligible(order.user_id, order_id=order.id)
        if not coupon_result.get('success'):
            current_app.logger.error(
                f"Coupon evaluation failed for user {order.user_id}: {coupon_result.get('error')}"
            )

        return {
            'success': True,
            'order': order.to_dict(),
            'points': points_result,
            'coupon': coupon_result,
            'coupon_used': coupon_used_result
        }

    def cancel_order(self, order_id: int, user_id: int, reason: str = None) -> Dict[str, Any]:
        """
        Cancel an order, reverse its earned points and give back spent points.

        Raises:
            OrderNotFoundError: Unknown order
            AuthorizationError: Order owned by another user
            InvalidStatusTransitionError: Order already cancelled
        """
        order = _load_owned_order(order_id, user_id)

        if order.status == OrderStatus.CANCELLED:
            raise InvalidStatusTransitionError('order', order.status, OrderStatus.CANCELLED)

        reason = reason or 'Order cancelled'

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = datetime.utcnow()
        db.session.commit()

        current_app.logger.info(f"Order {order.order_number} cancelled: {reason}")

        points_result = points_service.cancel_order_points(order.id, reason)
        restore_result = points_service.restore_used_points(order.id)

        return {
            'success': True,
            'order': order.to_dict(),
            'points': points_result,
            'restored': restore_result
        }


# Singleton instance
order_service = OrderService()
