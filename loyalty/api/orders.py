"""
Order lifecycle API endpoints.

Completing an order awards its points, consumes the applied coupon and
evaluates coupon issuance. Cancelling reverses earned points and gives back
spent points.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.user_auth import require_user
from ..services.order_service import order_service
from ..utils.errors import ErrorCode, bad_request, forbidden, not_found
from ..utils.exceptions import (
    AuthorizationError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
)

orders_bp = Blueprint('orders', __name__)


def _run(action):
    """Map lifecycle exceptions to error responses."""
    try:
        return jsonify(action())
    except OrderNotFoundError:
        return not_found('Order not found', ErrorCode.ORDER_NOT_FOUND)
    except AuthorizationError as e:
        return forbidden(e.message)
    except InvalidStatusTransitionError as e:
        return bad_request(e.message, ErrorCode.INVALID_STATUS)


@orders_bp.route('/complete', methods=['POST'])
@require_user
def complete_order():
    """
    Complete a pending order.

    Request body:
        orderId: Order to complete
    """
    data = request.get_json(silent=True) or {}

    order_id = data.get('orderId')
    if not order_id:
        return bad_request('Order ID is required', ErrorCode.MISSING_FIELD)

    return _run(lambda: order_service.complete_order(order_id, g.user.id))


@orders_bp.route('/cancel', methods=['POST'])
@require_user
def cancel_order():
    """
    Cancel an order.

    Request body:
        orderId: Order to cancel
        reason: Optional cancellation reason shown to the user
    """
    data = request.get_json(silent=True) or {}

    order_id = data.get('orderId')
    if not order_id:
        return bad_request('Order ID is required', ErrorCode.MISSING_FIELD)

    return _run(lambda: order_service.cancel_order(order_id, g.user.id, data.get('reason')))
