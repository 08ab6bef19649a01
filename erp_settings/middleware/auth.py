"""
Authentication middleware for the admin settings panel
Session based login for the AJAX actions and current user helpers
"""
from functools import wraps
from typing import Optional

from flask import session, jsonify, g

from erp_settings.services.messages import get_message
from erp_settings.services.user_service import has_capability

# Injected by the app factory
user_service = None


def init_auth_middleware(us):
    """
    Initialize auth middleware with dependencies

    Args:
        us: UserService instance
    """
    global user_service
    user_service = us


def get_current_user_id() -> Optional[str]:
    return session.get('user_id')


def get_current_user() -> Optional[dict]:
    """
    Get the logged in user, cached for the current request

    Returns:
        dict: User data, or None if not logged in or the user is gone or inactive
    """
    if 'current_user' not in g:
        user = None
        user_id = get_current_user_id()
        if user_id and user_service is not None:
            user = user_service.get_user_by_id(user_id)
            if user and not user.get('is_active'):
                user = None
        g.current_user = user
    return g.current_user


def current_user_can(capability: str) -> bool:
    return has_capability(get_current_user(), capability)


def session_login_required(f):
    """Decorator to protect routes requiring a logged in user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_user():
            return f(*args, **kwargs)
        return jsonify({'success': False, 'data': get_message('error_login')}), 401
    return decorated_function
