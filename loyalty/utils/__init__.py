"""
Utility modules for the loyalty service.
"""
from .logging_config import setup_logging
from .dates import add_months, add_years, format_date
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found
)
from .exceptions import (
    LoyaltyError,
    NotFoundError,
    UserNotFoundError,
    OrderNotFoundError,
    ValidationError,
    InsufficientPointsError,
    InvalidStatusTransitionError,
    AuthorizationError,
    ConfigurationError
)
