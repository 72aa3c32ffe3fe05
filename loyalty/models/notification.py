"""
In-app notification model.
"""
from datetime import datetime
from ..extensions import db


class NotificationType:
    POINTS_EARNED = 'POINTS_EARNED'
    POINTS_CANCELED = 'POINTS_CANCELED'
    POINTS_EXPIRING = 'POINTS_EXPIRING'
    POINTS_REDEEMED = 'POINTS_REDEEMED'
    COUPON_ISSUED = 'COUPON_ISSUED'


class Notification(db.Model):
    """Notification shown on the user's account page."""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    type = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    meta = db.Column(db.JSON, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Notification {self.id} {self.type} for user {self.user_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'content': self.content,
            'is_read': self.is_read,
            'meta': self.meta or {},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
