"""
Points ledger model.
"""
from datetime import datetime
from ..extensions import db


class PointEntryType:
    EARN = 'earn'        # Order points awarded
    CANCEL = 'cancel'    # Reversal of an earn entry (order cancelled)
    REDEEM = 'redeem'    # Points spent on an order
    RESTORE = 'restore'  # Reversal of a redeem entry (order cancelled)


class PointEntry(db.Model):
    """
    Signed, insert-only points ledger row.

    Positive amounts are earned or restored points, negative amounts are
    cancellations or redemptions. Every row carries its own expiry; rows that
    draw against an earn entry inherit that entry's expiry so both leave the
    balance together.

    Used for:
    - Order points earnings
    - Cancellation reversals
    - Checkout redemptions and their restoration
    """
    __tablename__ = 'point_entries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), index=True)

    amount = db.Column(db.Integer, nullable=False)
    entry_type = db.Column(db.String(20), nullable=False, default=PointEntryType.EARN)

    # Lot tracking: the earn entry this row draws against
    source_entry_id = db.Column(db.Integer, db.ForeignKey('point_entries.id'))
    # The entry this row reverses (cancel -> earn, restore -> redeem)
    related_entry_id = db.Column(db.Integer, db.ForeignKey('point_entries.id'))

    reason = db.Column(db.String(200))
    meta = db.Column(db.JSON, default=dict)

    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    order = db.relationship('Order', backref=db.backref('point_entries', lazy='dynamic'))

    def __repr__(self):
        return f'<PointEntry {self.id}: {self.amount} pts ({self.entry_type}) for user {self.user_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'order_id': self.order_id,
            'amount': self.amount,
            'entry_type': self.entry_type,
            'source_entry_id': self.source_entry_id,
            'related_entry_id': self.related_entry_id,
            'reason': self.reason,
            'meta': self.meta or {},
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
