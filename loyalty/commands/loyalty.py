"""
CLI Commands for loyalty administration and scheduled tasks.

The expiry alerts also run from the in-process scheduler; use the command
when running them from cron instead:

# Point expiry alerts (run daily at 9 AM)
0 9 * * * cd /app && flask loyalty expiry-alerts
"""

import click
from flask.cli import with_appcontext
from ..models import User
from ..services.coupon_service import coupon_service
from ..services.coupon_templates import CouponTemplateKey
from ..services.point_expiry_alerts import process_point_expiry_alerts, process_scheduled_expiry_alerts
from ..services.points_service import points_service


@click.group('loyalty')
def loyalty_cli():
    """Loyalty points and coupon commands."""
    pass


def _echo_alert_result(days, result):
    if not result.get('success'):
        click.echo(f"  {days} days: FAILED - {result.get('error')}")
        return
    click.echo(f"  {days} days: {result['count']} users notified")
    for detail in result.get('details', []):
        email = 'email sent' if detail['email_sent'] else 'email not sent'
        click.echo(f"    - User {detail['user_id']}: {detail['expiring_points']} points ({email})")


@loyalty_cli.command('expiry-alerts')
@click.option('--days', type=int, help='Days until expiry (default: all configured lead times)')
@with_appcontext
def expiry_alerts(days):
    """Notify users whose points are about to expire."""
    if days is not None:
        results = {days: process_point_expiry_alerts(days)}
    else:
        results = process_scheduled_expiry_alerts()

    click.echo("Point expiry alerts:")
    for lead_time, result in results.items():
        _echo_alert_result(lead_time, result)


@loyalty_cli.command('issue-coupon')
@click.option('--user-id', type=int, required=True, help='Recipient user ID')
@click.option(
    '--template',
    type=click.Choice([key.value for key in CouponTemplateKey], case_sensitive=False),
    required=True,
    help='Coupon template'
)
@click.option('--no-email', is_flag=True, help='Skip the coupon email')
@with_appcontext
def issue_coupon(user_id, template, no_email):
    """Issue a coupon from a template to a user."""
    result = coupon_service.issue_coupon(user_id, template, send_email=not no_email)

    if not result['success']:
        click.echo(f"Error: {result['error']}")
        return

    coupon = result['coupon']
    click.echo(f"Issued {result['template_key']} coupon {coupon['code']} to user {user_id}")
    click.echo(f"  Expires: {coupon['expires_at']}")


@loyalty_cli.command('evaluate-coupons')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--no-email', is_flag=True, help='Skip the coupon email')
@with_appcontext
def evaluate_coupons(user_id, no_email):
    """Run the lifecycle coupon rules for a user."""
    result = coupon_service.issue_coupon_if_eligible(user_id, send_email=not no_email)

    if not result['success']:
        click.echo(f"Error: {result['error']}")
    elif not result['coupon_issued']:
        click.echo(f"No coupon issued: {result['message']}")
    else:
        click.echo(f"Issued {result['template_key']} coupon {result['coupon']['code']}")


@loyalty_cli.command('balance')
@click.option('--user-id', type=int, required=True, help='User ID')
@with_appcontext
def balance(user_id):
    """Show a user's available points and recent ledger entries."""
    user = User.query.get(user_id)
    if not user:
        click.echo(f"User {user_id} not found")
        return

    click.echo(f"{user.email}: {points_service.get_available_balance(user.id)} points available")
    for entry in points_service.get_points_history(user.id, limit=10):
        click.echo(
            f"  {entry.created_at:%Y-%m-%d} {entry.entry_type:<8} {entry.amount:>7} "
            f"(expires {entry.expires_at:%Y-%m-%d}) {entry.reason or ''}"
        )


def init_app(app):
    """Register loyalty commands with the Flask app."""
    app.cli.add_command(loyalty_cli)
