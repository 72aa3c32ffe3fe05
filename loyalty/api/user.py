"""
Account API endpoints: points, coupons and notifications of the current user.
"""
from flask import Blueprint, jsonify, g

from ..middleware.user_auth import require_user
from ..models import Notification
from ..services.coupon_service import coupon_service
from ..services.points_service import points_service

user_bp = Blueprint('user', __name__)


@user_bp.route('/points', methods=['GET'])
@require_user
def get_points():
    """Available balance and full points history, newest first."""
    history = points_service.get_points_history(g.user.id)

    return jsonify({
        'total_points': points_service.get_available_balance(g.user.id),
        'point_history': [entry.to_dict() for entry in history]
    })


@user_bp.route('/coupons', methods=['GET'])
@require_user
def get_coupons():
    coupons = coupon_service.get_user_coupons(g.user.id)

    return jsonify({
        'coupons': [coupon.to_dict() for coupon in coupons]
    })


@user_bp.route('/notifications', methods=['GET'])
@require_user
def get_notifications():
    notifications = Notification.query.filter_by(user_id=g.user.id).order_by(
        Notification.created_at.desc(),
        Notification.id.desc()
    ).all()

    return jsonify({
        'notifications': [n.to_dict() for n in notifications],
        'unread_count': sum(1 for n in notifications if not n.is_read)
    })
