"""
Storefront user model.
"""
from datetime import datetime
from ..extensions import db


class User(db.Model):
    """
    Storefront customer account.

    Only the fields the loyalty rules read are mapped here; credentials and
    profile management belong to the account subsystem.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255))
    birthdate = db.Column(db.Date)  # Drives the BIRTHDAY coupon trigger
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    orders = db.relationship('Order', backref='user', lazy='dynamic')
    coupons = db.relationship('Coupon', backref='user', lazy='dynamic')
    point_entries = db.relationship('PointEntry', backref='user', lazy='dynamic')
    notifications = db.relationship('Notification', backref='user', lazy='dynamic')

    def __repr__(self):
        return f'<User {self.id} {self.email}>'

    @property
    def display_name(self) -> str:
        return self.name or self.email.split('@')[0]

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'birthdate': self.birthdate.isoformat() if self.birthdate else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
