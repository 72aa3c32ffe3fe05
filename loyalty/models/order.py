"""
Order, OrderItem and Product models.

Orders are owned by the checkout subsystem; loyalty reads the line items and
writes the points/coupon bookkeeping columns.
"""
from datetime import datetime
from ..extensions import db


class OrderStatus:
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class Product(db.Model):
    """Catalog product (only the flags that affect points)."""
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False)  # Minor-unit free currency (yen)
    on_sale = db.Column(db.Boolean, default=False, nullable=False)
    campaign_id = db.Column(db.String(50))  # Set when the product is in a points campaign

    def __repr__(self):
        return f'<Product {self.id} {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'on_sale': self.on_sale,
            'campaign_id': self.campaign_id
        }


class Order(db.Model):
    """Storefront order."""
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    status = db.Column(db.String(20), default=OrderStatus.PENDING, nullable=False)

    # Loyalty bookkeeping
    points_awarded = db.Column(db.Boolean, default=False, nullable=False)
    points_used = db.Column(db.Integer, default=0, nullable=False)
    coupon_id = db.Column(db.Integer, db.ForeignKey('coupons.id'))
    discount_amount = db.Column(db.Integer, default=0, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    # Relationships
    items = db.relationship('OrderItem', backref='order', lazy='select', cascade='all, delete-orphan')
    coupon = db.relationship('Coupon', foreign_keys=[coupon_id])

    def __repr__(self):
        return f'<Order {self.order_number}>'

    @property
    def subtotal(self) -> int:
        return sum(item.price * item.quantity for item in self.items)

    def to_dict(self, include_items=False):
        data = {
            'id': self.id,
            'order_number': self.order_number,
            'user_id': self.user_id,
            'status': self.status,
            'subtotal': self.subtotal,
            'points_awarded': self.points_awarded,
            'points_used': self.points_used,
            'coupon_id': self.coupon_id,
            'discount_amount': self.discount_amount,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None
        }

        if include_items:
            data['items'] = [item.to_dict() for item in self.items]

        return data


class OrderItem(db.Model):
    """Order line item. Price is the unit price charged at checkout."""
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)

    price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship('Product')

    def __repr__(self):
        return f'<OrderItem {self.id}: {self.quantity} x product {self.product_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'price': self.price,
            'quantity': self.quantity
        }
