"""
Routes package - Exports all route blueprints
"""
from .ajax_routes import ajax_bp
from .auth_routes import auth_bp
from .system_routes import system_bp

__all__ = [
    'ajax_bp',
    'auth_bp',
    'system_bp'
]
