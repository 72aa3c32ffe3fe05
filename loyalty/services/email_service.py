"""
Email Service for loyalty notifications.

Sends transactional email via SendGrid for:
- Coupon issued (lifecycle coupons)
- Birthday coupon (dedicated template)
- Points expiring soon

Every email is sent as both HTML and plain text. Sending never raises: a
missing API key or a SendGrid failure is logged and returned as
{'success': False, 'error': ...} so callers can degrade silently.

Configuration:
- SENDGRID_API_KEY: SendGrid API key
- SENDGRID_FROM_EMAIL / SENDGRID_FROM_NAME: sender identity
- SHOP_NAME / SHOP_URL / CURRENCY_SYMBOL: template variables
"""
from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app
from markupsafe import escape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from ..utils.dates import format_date


def format_discount(discount_type: str, discount_value: int, currency_symbol: str = '¥') -> str:
    """'10% off' for percentage coupons, '¥1,000 off' for fixed ones."""
    if discount_type == 'percentage':
        return f'{discount_value}% off'
    return f'{currency_symbol}{discount_value:,} off'


def format_minimum_purchase(minimum_purchase: Optional[int], currency_symbol: str = '¥') -> str:
    if minimum_purchase:
        return f'Valid on purchases of {currency_symbol}{minimum_purchase:,} or more.'
    return 'No minimum purchase required.'


class EmailService:
    """
    Service for sending loyalty emails to users.
    Uses SendGrid as the email provider.
    """

    DEFAULT_TEMPLATES = {
        'coupon_issued': {
            'subject': '[{shop_name}] Your {description} coupon is here',
            'text': '''Hi {user_name},

Here is a special coupon for you: {description}.

== Special coupon ==
{discount_text}
Coupon code: {coupon_code}
{minimum_purchase_text}
Expires: {expiry_date}

How to use it:
1. Add items to your cart
2. Enter the coupon code at checkout
3. Click "Apply" to get your discount

Each coupon can be used once.

Thank you for shopping with {shop_name}!
{shop_url}
''',
            'html': '''
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
    <h2 style="text-align: center;">{shop_name}</h2>
    <p>Hi {user_name},</p>
    <p>Here is a special coupon for you: {description}.</p>
    <div style="border: 2px dashed #5c6ac4; padding: 20px; border-radius: 8px; margin: 20px 0; text-align: center; background: #f5f7ff;">
        <h3>Special coupon</h3>
        <p style="font-size: 20px; font-weight: bold; color: #5c6ac4;">{discount_text}</p>
        <p>Coupon code</p>
        <div style="font-size: 24px; font-weight: bold; letter-spacing: 2px; color: #5c6ac4; padding: 10px;">{coupon_code}</div>
        <p>{minimum_purchase_text}</p>
        <p style="color: #e53e3e; font-weight: bold;">Expires: {expiry_date}</p>
    </div>
    <p>How to use it:</p>
    <ol>
        <li>Add items to your cart</li>
        <li>Enter the coupon code at checkout</li>
        <li>Click "Apply" to get your discount</li>
    </ol>
    <p style="font-size: 12px; color: #666;">Each coupon can be used once.</p>
    <p>Thank you for shopping with <a href="{shop_url}">{shop_name}</a>!</p>
</div>
'''
        },
        'birthday_coupon': {
            'subject': '[{shop_name}] Happy birthday, {user_name}! A gift for you',
            'text': '''Happy birthday, {user_name}!

To celebrate, here is a birthday coupon just for you.

== Birthday coupon ==
{discount_text}
Coupon code: {coupon_code}
{minimum_purchase_text}
Expires: {expiry_date}

Treat yourself to something special this month.

{shop_name}
{shop_url}
''',
            'html': '''
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
    <h2 style="text-align: center; color: #d53f8c;">Happy birthday, {user_name}!</h2>
    <p>To celebrate, here is a birthday coupon just for you.</p>
    <div style="border: 2px dashed #d53f8c; padding: 20px; border-radius: 8px; margin: 20px 0; text-align: center; background: #fff5f7;">
        <h3>Birthday coupon</h3>
        <p style="font-size: 20px; font-weight: bold; color: #d53f8c;">{discount_text}</p>
        <p>Coupon code</p>
        <div style="font-size: 24px; font-weight: bold; letter-spacing: 2px; color: #d53f8c; padding: 10px;">{coupon_code}</div>
        <p>{minimum_purchase_text}</p>
        <p style="color: #e53e3e; font-weight: bold;">Expires: {expiry_date}</p>
    </div>
    <p>Treat yourself to something special this month.</p>
    <p><a href="{shop_url}">{shop_name}</a></p>
</div>
'''
        },
        'points_expiring': {
            'subject': '[{shop_name}] {points} points expire in {days} days',
            'text': '''Hi {user_name},

{points} of your points will expire on {expiry_date} ({days} days from now).

Use them at checkout before they are gone.

{shop_name}
{shop_url}
''',
            'html': '''
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
    <h2>Your points are expiring soon</h2>
    <p>Hi {user_name},</p>
    <div style="background: #fffaf0; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p style="font-size: 20px; font-weight: bold;">{points} points</p>
        <p style="color: #e53e3e;">Expire on {expiry_date} ({days} days from now)</p>
    </div>
    <p>Use them at checkout before they are gone.</p>
    <p><a href="{shop_url}">Shop now at {shop_name}</a></p>
</div>
'''
        },
    }

    def _get_client(self) -> Optional[SendGridAPIClient]:
        """Get SendGrid client if configured."""
        api_key = current_app.config.get('SENDGRID_API_KEY')
        if not api_key:
            current_app.logger.warning("SENDGRID_API_KEY not configured")
            return None

        return SendGridAPIClient(api_key=api_key)

    def _render_template(self, template_key: str, variables: Dict[str, Any]) -> Dict[str, str]:
        """Render an email template with variables."""
        template = self.DEFAULT_TEMPLATES.get(template_key, {})

        variables.setdefault('shop_name', current_app.config.get('SHOP_NAME', 'Storefront'))
        variables.setdefault('shop_url', current_app.config.get('SHOP_URL', ''))

        html_variables = {
            key: escape(value) if isinstance(value, str) else value
            for key, value in variables.items()
        }

        return {
            'subject': template.get('subject', 'Notification').format(**variables),
            'text': template.get('text', '').format(**variables),
            'html': template.get('html', '').format(**html_variables)
        }

    def _send_email(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        text_content: str,
        html_content: str
    ) -> Dict[str, Any]:
        """Send an email via SendGrid."""
        client = self._get_client()
        if not client:
            return {'success': False, 'error': 'SendGrid not configured'}

        try:
            message = Mail(
                from_email=Email(
                    current_app.config.get('SENDGRID_FROM_EMAIL'),
                    current_app.config.get('SENDGRID_FROM_NAME')
                ),
                to_emails=To(to_email, to_name),
                subject=subject,
                plain_text_content=Content("text/plain", text_content),
                html_content=Content("text/html", html_content)
            )

            response = client.send(message)

            if response.status_code in [200, 202]:
                current_app.logger.info(f"Email sent to {to_email}: {subject}")
                return {'success': True, 'status_code': response.status_code}
            else:
                current_app.logger.error(f"SendGrid error: {response.status_code}")
                return {'success': False, 'error': f"Status code: {response.status_code}"}

        except Exception as e:
            current_app.logger.error(f"Failed to send email: {str(e)}")
            return {'success': False, 'error': str(e)}

    # ==================== Public Methods ====================

    def send_coupon_email(self, user, coupon, template_key: str = 'coupon_issued') -> Dict[str, Any]:
        """
        Send the coupon issued email.

        Args:
            user: Recipient User
            coupon: Newly issued Coupon
            template_key: 'coupon_issued' or 'birthday_coupon'

        Returns:
            Dict with send result
        """
        if not user or not user.email:
            return {'success': False, 'error': 'User has no email address'}

        currency = current_app.config.get('CURRENCY_SYMBOL', '¥')
        rendered = self._render_template(template_key, {
            'user_name': user.display_name,
            'description': coupon.description or 'coupon',
            'coupon_code': coupon.code,
            'discount_text': format_discount(coupon.discount_type, coupon.discount_value, currency),
            'minimum_purchase_text': format_minimum_purchase(coupon.minimum_purchase, currency),
            'expiry_date': format_date(coupon.expires_at)
        })

        return self._send_email(
            to_email=user.email,
            to_name=user.name,
            subject=rendered['subject'],
            text_content=rendered['text'],
            html_content=rendered['html']
        )

    def send_points_expiring_email(
        self,
        user,
        points: int,
        expiry_date: datetime,
        days_until_expiry: int
    ) -> Dict[str, Any]:
        """Send the points expiring reminder."""
        if not user or not user.email:
            return {'success': False, 'error': 'User has no email address'}

        rendered = self._render_template('points_expiring', {
            'user_name': user.display_name,
            'points': points,
            'days': days_until_expiry,
            'expiry_date': format_date(expiry_date)
        })

        return self._send_email(
            to_email=user.email,
            to_name=user.name,
            subject=rendered['subject'],
            text_content=rendered['text'],
            html_content=rendered['html']
        )


# Singleton instance
email_service = EmailService()
