"""
Anti-forgery tokens for the admin AJAX actions

Tokens are scoped to the session and to an action name. The admin UI fetches
one from /api/nonce and sends it back in the _wpnonce form field or the
X-CSRF-Token header.
"""
import hmac
import logging
import secrets
from functools import wraps

from flask import request, session, jsonify

from erp_settings.services.messages import get_message

logger = logging.getLogger(__name__)

NONCE_FIELD = '_wpnonce'
NONCE_HEADER = 'X-CSRF-Token'


def create_nonce(action: str) -> str:
    """Get the session token for an action, creating it on first use"""
    nonces = session.get('nonces', {})
    if action not in nonces:
        nonces[action] = secrets.token_urlsafe(32)
        session['nonces'] = nonces
    return nonces[action]


def verify_nonce(action: str) -> bool:
    """Check the submitted token against the session token for an action"""
    submitted = request.form.get(NONCE_FIELD) or request.headers.get(NONCE_HEADER)
    expected = session.get('nonces', {}).get(action)

    if not submitted or not expected:
        return False
    return hmac.compare_digest(submitted, expected)


def require_nonce(action: str):
    """Decorator rejecting requests without a valid token for the action"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not verify_nonce(action):
                logger.warning(f"[NONCE] Invalid token for {action} from {request.remote_addr}")
                return jsonify({'success': False, 'data': get_message('error_nonce')}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
