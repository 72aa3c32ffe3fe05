"""
Configuration management for the storefront loyalty service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Storefront identity (used in emails and notifications)
    SHOP_NAME = os.getenv('SHOP_NAME', 'Storefront')
    SHOP_URL = os.getenv('SHOP_URL', 'http://localhost:3000')
    CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '¥')

    # Points earning
    POINTS_BASE_RATE = 0.01           # 1% of item subtotal
    POINTS_CAMPAIGN_BONUS_RATE = 0.05  # +5% for campaign items
    POINTS_EXPIRY_YEARS = 1

    # Point expiry alerts (days before expiry)
    POINT_EXPIRY_ALERT_DAYS = (7, 14, 30)

    # Coupons
    COUPON_CODE_LENGTH = 8
    COUPON_LAUNCH_PERIOD = _env_flag('COUPON_LAUNCH_PERIOD')
    WELCOME_WINDOW_DAYS = 7
    REACTIVATION_AFTER_DAYS = 90

    # SendGrid
    SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY')
    SENDGRID_FROM_EMAIL = os.getenv('SENDGRID_FROM_EMAIL', 'noreply@storefront.example.com')
    SENDGRID_FROM_NAME = os.getenv('SENDGRID_FROM_NAME', 'Storefront')

    # Background scheduler
    ENABLE_SCHEDULER = _env_flag('ENABLE_SCHEDULER')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///loyalty_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            ConfigurationError: If SECRET_KEY is missing or too short
        """
        from .utils.exceptions import ConfigurationError

        if not cls._secret_key:
            raise ConfigurationError(
                "SECRET_KEY environment variable is not set. "
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        if len(cls._secret_key) < 32:
            raise ConfigurationError(
                "SECRET_KEY is too short (minimum 32 characters required)."
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SENDGRID_API_KEY = None
    COUPON_LAUNCH_PERIOD = False
    ENABLE_SCHEDULER = False


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    In production, this ensures SECRET_KEY is properly configured.
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
