"""
In-app notifications.

Rows are added to the current session only; the caller owns the transaction
so a notification is committed together with the ledger/coupon write it
describes.
"""
from typing import Any, Dict, Optional

from ..extensions import db
from ..models import Notification, NotificationType


class NotificationService:
    """Writes Notification rows for loyalty events."""

    def create_notification(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        content: str,
        meta: Optional[Dict[str, Any]] = None
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            content=content,
            meta=meta or {}
        )
        db.session.add(notification)
        return notification

    def points_earned(self, user_id: int, order, points: int, expires_at_text: str) -> Notification:
        return self.create_notification(
            user_id,
            NotificationType.POINTS_EARNED,
            'Points earned',
            f'You earned {points} points for order #{order.order_number}. '
            f'These points expire on {expires_at_text}.',
            {'order_id': order.id, 'points': points}
        )

    def points_canceled(self, user_id: int, order, points: int, reason: str) -> Notification:
        return self.create_notification(
            user_id,
            NotificationType.POINTS_CANCELED,
            'Points cancelled',
            f'{points} points from order #{order.order_number} were cancelled ({reason}).',
            {'order_id': order.id, 'points': points, 'reason': reason}
        )

    def points_redeemed(self, user_id: int, order, points: int) -> Notification:
        return self.create_notification(
            user_id,
            NotificationType.POINTS_REDEEMED,
            'Points used',
            f'You used {points} points on order #{order.order_number}.',
            {'order_id': order.id, 'points': points}
        )

    def points_expiring(self, user_id: int, points: int, expiry_date_text: str, days: int) -> Notification:
        return self.create_notification(
            user_id,
            NotificationType.POINTS_EXPIRING,
            'Points expiring soon',
            f'{points} of your points will expire on {expiry_date_text} ({days} days left). '
            'Use them before they are gone!',
            {'points': points, 'days_until_expiry': days}
        )

    def coupon_issued(self, user_id: int, coupon, discount_text: str) -> Notification:
        return self.create_notification(
            user_id,
            NotificationType.COUPON_ISSUED,
            'You received a coupon',
            f'{coupon.description}: {discount_text} with code {coupon.code}.',
            {'coupon_id': coupon.id, 'code': coupon.code, 'template_key': coupon.template_key}
        )


# Singleton instance
notification_service = NotificationService()
