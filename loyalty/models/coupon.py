"""
Coupon model.
"""
from datetime import datetime
from ..extensions import db


class DiscountType:
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class Coupon(db.Model):
    """
    Single-use coupon minted for one user from a coupon template.

    The code is globally unique and only the owning user may redeem it.
    is_used flips once, when the order it was applied to completes.
    """
    __tablename__ = 'coupons'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    code = db.Column(db.String(50), unique=True, nullable=False)

    discount_type = db.Column(db.String(20), nullable=False)  # percentage, fixed
    discount_value = db.Column(db.Integer, nullable=False)
    minimum_purchase = db.Column(db.Integer)  # NULL = no minimum

    # Template the coupon was minted from (WELCOME, BIRTHDAY, ...)
    template_key = db.Column(db.String(30), index=True)
    description = db.Column(db.String(255))

    is_used = db.Column(db.Boolean, default=False, nullable=False)
    used_at = db.Column(db.DateTime)
    used_by_order_id = db.Column(db.Integer)

    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Coupon {self.code}>'

    def is_expired(self, now: datetime = None) -> bool:
        return self.expires_at < (now or datetime.utcnow())

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'code': self.code,
            'discount_type': self.discount_type,
            'discount_value': self.discount_value,
            'minimum_purchase': self.minimum_purchase,
            'meta': {
                'template_key': self.template_key,
                'description': self.description
            },
            'is_used': self.is_used,
            'used_at': self.used_at.isoformat() if self.used_at else None,
            'used_by_order_id': self.used_by_order_id,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
