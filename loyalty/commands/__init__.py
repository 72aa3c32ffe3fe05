"""
CLI Commands for the loyalty service.

Usage:
    flask loyalty expiry-alerts               # 7/14/30-day point expiry alerts
    flask loyalty expiry-alerts --days 7      # Single lead time
    flask loyalty issue-coupon --user-id 1 --template BIRTHDAY
    flask loyalty evaluate-coupons --user-id 1
    flask loyalty balance --user-id 1
"""
from .loyalty import init_app as init_loyalty_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_loyalty_commands(app)
