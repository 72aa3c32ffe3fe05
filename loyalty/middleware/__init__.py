"""
Request middleware.
"""
from .user_auth import require_user, get_user_from_request
