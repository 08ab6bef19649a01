"""
Authentication Routes

Handles:
- Email/password login
- Logout
- Session status and anti-forgery token issue for the admin UI
"""

import logging
from flask import Blueprint, session, jsonify, request

from erp_settings.middleware.auth import session_login_required, get_current_user
from erp_settings.middleware.nonce import create_nonce
from erp_settings.routes.ajax_routes import SETTINGS_NONCE

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

# Injected by the app factory
user_service = None


def init_auth_routes(us):
    """
    Initialize auth routes with dependencies

    Args:
        us: UserService instance
    """
    global user_service
    user_service = us


@auth_bp.route('/login', methods=['POST'])
def login():
    """Start a session from email and password"""
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({'success': False, 'data': 'Email and password are required'}), 400

    user = user_service.authenticate(email, password)
    if not user:
        logger.warning(f"[AUTH] Failed login for {email} from {request.remote_addr}")
        return jsonify({'success': False, 'data': 'Invalid email or password'}), 401

    session.clear()
    session['user_id'] = user['user_id']
    session.permanent = True

    logger.info(f"[AUTH] User logged in: {user['email']}")
    return jsonify({
        'success': True,
        'data': {
            'user_id': user['user_id'],
            'email': user['email'],
            'display_name': user['display_name'],
            'roles': user['roles'],
            'nonce': create_nonce(SETTINGS_NONCE),
        }
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user_id = session.get('user_id')
    session.clear()

    if user_id:
        logger.info(f"[AUTH] User logged out: {user_id}")
    return jsonify({'success': True})


@auth_bp.route('/auth/status')
def auth_status():
    """Check if the current session is logged in"""
    user = get_current_user()
    if not user:
        return jsonify({'authenticated': False})

    return jsonify({
        'authenticated': True,
        'user_id': user['user_id'],
        'email': user['email'],
        'display_name': user['display_name'],
        'roles': user['roles'],
    })


@auth_bp.route('/api/nonce')
@session_login_required
def get_nonce():
    """Anti-forgery token for an action, erp-settings-nonce by default"""
    action = request.args.get('action', SETTINGS_NONCE)
    return jsonify({'success': True, 'data': {'action': action, 'nonce': create_nonce(action)}})
