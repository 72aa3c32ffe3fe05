"""
Shared pytest fixtures.

The `app` fixture pushes one application context for the whole test, so
fixtures, services and test-client requests all share the same
Flask-SQLAlchemy session.
"""
from datetime import datetime, timedelta

import pytest

from loyalty import create_app
from loyalty.extensions import db
from loyalty.models import (
    Order,
    OrderItem,
    OrderStatus,
    PointEntry,
    PointEntryType,
    Product,
    User,
)


@pytest.fixture
def app():
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_user(app):
    """Established user: signed up a month ago, no birthday on file."""
    user = User(
        email='hanako@example.com',
        name='Hanako',
        created_at=datetime.utcnow() - timedelta(days=30)
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def other_user(app):
    user = User(
        email='taro@example.com',
        name='Taro',
        created_at=datetime.utcnow() - timedelta(days=30)
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(sample_user):
    return {'X-User-ID': str(sample_user.id)}


@pytest.fixture
def sample_products(app):
    """Regular, sale and campaign products."""
    products = {
        'regular': Product(name='Canvas Tote', price=1000),
        'sale': Product(name='Enamel Pin', price=1000, on_sale=True),
        'campaign': Product(name='Plush Toy', price=2000, campaign_id='spring-2026'),
    }
    db.session.add_all(products.values())
    db.session.commit()
    return products


def make_order(user, items, status=OrderStatus.PENDING, order_number=None, created_at=None):
    """Create an order for `user` from (product, quantity) pairs."""
    order = Order(
        order_number=order_number or f'ORD-{user.id}-{Order.query.count() + 1:04d}',
        user_id=user.id,
        status=status,
        created_at=created_at or datetime.utcnow()
    )
    for product, quantity in items:
        order.items.append(OrderItem(product=product, price=product.price, quantity=quantity))
    db.session.add(order)
    db.session.commit()
    return order


def add_points(user, amount, expires_at=None, order=None):
    """Insert an earn entry directly."""
    entry = PointEntry(
        user_id=user.id,
        order_id=order.id if order else None,
        amount=amount,
        entry_type=PointEntryType.EARN,
        reason='Test points',
        expires_at=expires_at or datetime.utcnow() + timedelta(days=365)
    )
    db.session.add(entry)
    db.session.commit()
    return entry


@pytest.fixture
def sample_order(sample_user, sample_products):
    """Pending order: 2 x regular (2000) + 1 x campaign (2000)."""
    return make_order(
        sample_user,
        [(sample_products['regular'], 2), (sample_products['campaign'], 1)],
        order_number='ORD-0001'
    )


@pytest.fixture
def order_factory(app):
    return make_order


@pytest.fixture
def points_factory(app):
    return add_points
