"""
Checkout API endpoints.

Coupon and points checks called by the storefront checkout page before the
order is placed. Business-rule failures (expired coupon, not enough points)
are returned as regular payloads, not as error responses.
"""
from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..middleware.user_auth import require_user
from ..models import Order, OrderStatus
from ..services.checkout_service import checkout_service
from ..services.points_service import points_service
from ..utils.errors import ErrorCode, bad_request, not_found

checkout_bp = Blueprint('checkout', __name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@checkout_bp.route('/validate-coupon', methods=['POST'])
@require_user
def validate_coupon():
    """
    Check a coupon code against the cart subtotal.

    Request body:
        code: Coupon code
        subtotal: Cart subtotal

    Always 200 once the code is present; see `valid` and `message`.
    """
    data = request.get_json(silent=True) or {}

    code = (data.get('code') or '').strip()
    if not code:
        return jsonify({'valid': False, 'message': 'Coupon code is required'}), 400

    subtotal = data.get('subtotal', 0)
    if not _is_number(subtotal):
        return jsonify({'valid': False, 'message': 'Subtotal must be a number'}), 400

    result = checkout_service.validate_coupon(code, g.user.id, int(subtotal))
    return jsonify(result)


@checkout_bp.route('/apply-coupon', methods=['POST'])
@require_user
def apply_coupon():
    """
    Validate a coupon and, if an order is given, attach it to that order.

    Request body:
        couponCode: Coupon code
        cartTotal: Cart total
        orderId: Optional pending order to attach the coupon to
    """
    data = request.get_json(silent=True) or {}

    code = (data.get('couponCode') or '').strip()
    cart_total = data.get('cartTotal')
    if not code or not _is_number(cart_total):
        return bad_request('couponCode and a numeric cartTotal are required', ErrorCode.MISSING_FIELD)

    result = checkout_service.validate_coupon(code, g.user.id, int(cart_total))
    if not result['valid']:
        return jsonify({'isValid': False, 'message': result['message']}), 400

    order_id = data.get('orderId')
    if order_id is not None:
        order = Order.query.get(order_id)
        if not order or order.user_id != g.user.id:
            return not_found('Order not found', ErrorCode.ORDER_NOT_FOUND)
        if order.status != OrderStatus.PENDING:
            return bad_request('Coupons can only be applied to pending orders', ErrorCode.INVALID_STATUS)

        held_by = Order.query.filter(
            Order.coupon_id == result['coupon']['id'],
            Order.id != order.id,
            Order.status == OrderStatus.PENDING
        ).first()
        if held_by:
            return jsonify({
                'isValid': False,
                'message': 'This coupon is already applied to another order'
            }), 400

        order.coupon_id = result['coupon']['id']
        order.discount_amount = result['discount_amount']
        db.session.commit()

    coupon = result['coupon']
    return jsonify({
        'isValid': True,
        'discount_amount': result['discount_amount'],
        'coupon': {
            'id': coupon['id'],
            'code': coupon['code'],
            'discount_type': coupon['discount_type'],
            'discount_value': coupon['discount_value']
        },
        'message': result['message']
    })


@checkout_bp.route('/apply-points', methods=['POST'])
@require_user
def apply_points():
    """
    Check that the user can spend a number of points.

    Validation only; points are spent by /redeem-points.

    Request body:
        pointsToUse: Points the user wants to spend
        orderId: Order being placed (informational)
    """
    data = request.get_json(silent=True) or {}

    points_to_use = data.get('pointsToUse', 0)
    if not isinstance(points_to_use, int) or isinstance(points_to_use, bool):
        return jsonify({'success': False, 'message': 'pointsToUse must be a whole number'}), 400

    result = checkout_service.validate_points(g.user.id, points_to_use)
    if not result['success']:
        return jsonify({
            'success': False,
            'available_points': result['available_points'],
            'message': result['message']
        }), 400

    return jsonify({
        'success': True,
        'validatedPoints': result['validated_points'],
        'available_points': result['available_points'],
        'message': result['message']
    })


@checkout_bp.route('/redeem-points', methods=['POST'])
@require_user
def redeem_points():
    """
    Spend points on a pending order.

    Re-validates and deducts in one transaction under a per-user lock.

    Request body:
        pointsToUse: Points to spend (positive)
        orderId: Pending order
    """
    data = request.get_json(silent=True) or {}

    points_to_use = data.get('pointsToUse')
    order_id = data.get('orderId')
    if order_id is None:
        return bad_request('orderId is required', ErrorCode.MISSING_FIELD)
    if not isinstance(points_to_use, int) or isinstance(points_to_use, bool):
        return bad_request('pointsToUse must be a whole number', ErrorCode.INVALID_FIELD)

    order = Order.query.get(order_id)
    if not order or order.user_id != g.user.id:
        return not_found('Order not found', ErrorCode.ORDER_NOT_FOUND)
    if order.status != OrderStatus.PENDING:
        return bad_request('Points can only be used on pending orders', ErrorCode.INVALID_STATUS)

    result = points_service.consume_points(g.user.id, order.id, points_to_use)
    if not result['success']:
        return jsonify({'success': False, 'message': result['error']}), 400

    return jsonify({
        'success': True,
        'points_used': result['points_used'],
        'remaining_balance': result['remaining_balance'],
        'message': f"{result['points_used']} points applied to your order"
    })
