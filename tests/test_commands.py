"""
Tests for the `flask loyalty` CLI commands.
"""
from unittest.mock import patch

from loyalty.models import Coupon


class TestLoyaltyCommands:
    """Tests for the loyalty command group."""

    def test_issue_coupon(self, app, sample_user):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            'loyalty', 'issue-coupon',
            '--user-id', str(sample_user.id),
            '--template', 'birthday',
            '--no-email'
        ])

        assert result.exit_code == 0
        assert 'Issued BIRTHDAY coupon BDAY' in result.output
        assert Coupon.query.filter_by(user_id=sample_user.id).count() == 1

    def test_issue_coupon_unknown_user(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['loyalty', 'issue-coupon', '--user-id', '999', '--template', 'WELCOME'])

        assert 'Error:' in result.output

    def test_evaluate_coupons_no_match(self, app, sample_user):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['loyalty', 'evaluate-coupons', '--user-id', str(sample_user.id)])

        assert result.exit_code == 0
        assert 'No coupon issued' in result.output

    def test_balance(self, app, sample_user, points_factory):
        points_factory(sample_user, 120)
        runner = app.test_cli_runner()

        result = runner.invoke(args=['loyalty', 'balance', '--user-id', str(sample_user.id)])

        assert result.exit_code == 0
        assert '120 points available' in result.output

    def test_expiry_alerts_single_lead_time(self, app):
        runner = app.test_cli_runner()

        with patch('loyalty.commands.loyalty.process_point_expiry_alerts') as mock_process:
            mock_process.return_value = {'success': True, 'count': 0, 'details': []}
            result = runner.invoke(args=['loyalty', 'expiry-alerts', '--days', '7'])

        assert result.exit_code == 0
        mock_process.assert_called_once_with(7)
        assert '7 days: 0 users notified' in result.output
