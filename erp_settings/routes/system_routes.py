"""
System Routes
Handles health checks and JSON error responses
"""
import logging
from datetime import datetime
from flask import Blueprint, jsonify

logger = logging.getLogger(__name__)

# Create blueprint
system_bp = Blueprint('system', __name__)

# These will be injected by the app factory
settings_registry = None
template_repository = None


def init_system_routes(sr, tr):
    """
    Initialize system routes with dependencies

    Args:
        sr: SettingsRegistry instance
        tr: TemplateRepository instance
    """
    global settings_registry, template_repository

    settings_registry = sr
    template_repository = tr


@system_bp.route('/health', methods=['GET', 'HEAD'])
def health_check():
    return jsonify({
        'ok': True,
        'timestamp': datetime.now().isoformat(),
        'settings_modules': settings_registry.modules(),
        'email_templates': len(template_repository.list()),
    })


def register_error_handlers(app):
    """Register error handlers to the Flask app"""

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify({'success': False, 'data': 'Method not allowed'}), 405

    @app.errorhandler(404)
    def not_found(_):
        return jsonify({'success': False, 'data': 'Endpoint not found'}), 404

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({'success': False, 'data': f"Too many requests: {e.description}"}), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"[SYSTEM] Unhandled error: {e}")
        return jsonify({'success': False, 'data': 'Internal server error'}), 500
