"""
Application Factory
Creates and configures the Flask application with all services and routes
"""
import logging
from datetime import timedelta
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_cors import CORS

from erp_settings.config_manager import ConfigManager

logger = logging.getLogger(__name__)


def configure_logging(config: ConfigManager):
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format=config.logging.format
    )


def create_app(config: ConfigManager = None, templates=None):
    """
    Create and configure the Flask application

    Args:
        config: Configuration, loaded from .env and the environment when omitted
        templates: Email templates to register instead of the built-in catalogue

    Returns:
        Flask: Configured Flask application instance
    """
    config = config or ConfigManager()
    configure_logging(config)

    app = Flask(__name__)

    app.config['SECRET_KEY'] = config.server.secret_key
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        SESSION_COOKIE_SECURE=config.server.session_cookie_secure,
        PERMANENT_SESSION_LIFETIME=timedelta(hours=12),
        RATELIMIT_ENABLED=config.rate_limit.enabled,
    )

    # Admin UI may be served from another origin during development
    CORS(app, resources={
        r"/ajax*": {
            "origins": ["http://localhost:*", "http://127.0.0.1:*"],
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-CSRF-Token"],
            "supports_credentials": True
        }
    })

    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=config.rate_limit.default_limits,
        storage_uri="memory://"
    )

    logger.info("[APP_FACTORY] Initializing application...")

    # =================== Initialize Services ===================
    from erp_settings.services.option_store import OptionStore
    from erp_settings.services.user_service import UserService
    from erp_settings.services.settings_registry import SettingsRegistry
    from erp_settings.services.email_templates import EmailTemplateService, build_template_repository
    from erp_settings.services.smtp_service import SmtpTestService

    option_store = OptionStore(
        config.storage.options_path,
        defaults={'admin_email': config.site.admin_email}
    )

    user_service = UserService(config.storage.users_path)
    user_service.ensure_admin(config.site.admin_email, config.site.admin_password)

    settings_registry = SettingsRegistry(option_store)
    settings_registry.register_builtin_handlers()

    template_repository = build_template_repository(templates)
    template_service = EmailTemplateService(template_repository, option_store)
    template_service.install_defaults()

    smtp_service = SmtpTestService(option_store, config.site.admin_email)

    logger.info(f"[APP_FACTORY] Services initialized - settings modules: {', '.join(settings_registry.modules())}, "
                f"email templates: {len(template_repository.list())}")

    # =================== Initialize Routes ===================
    from erp_settings.middleware.auth import init_auth_middleware
    from erp_settings.routes.ajax_routes import ajax_bp, init_ajax_routes, current_action, SMTP_TEST_ACTION
    from erp_settings.routes.auth_routes import auth_bp, init_auth_routes
    from erp_settings.routes.system_routes import system_bp, init_system_routes, register_error_handlers

    init_auth_middleware(us=user_service)
    init_ajax_routes(sr=settings_registry, ets=template_service, sts=smtp_service)
    init_auth_routes(us=user_service)
    init_system_routes(sr=settings_registry, tr=template_repository)

    # SMTP test sends real email, it gets a tighter limit on top of the defaults
    limiter.limit(
        config.rate_limit.smtp_test,
        exempt_when=lambda: current_action() != SMTP_TEST_ACTION,
        override_defaults=False
    )(ajax_bp)

    # =================== Register Blueprints ===================
    app.register_blueprint(auth_bp)
    app.register_blueprint(ajax_bp)
    app.register_blueprint(system_bp)

    register_error_handlers(app)

    # Services for scripts and tests
    app.extensions['erp_settings'] = {
        'config': config,
        'option_store': option_store,
        'user_service': user_service,
        'settings_registry': settings_registry,
        'template_repository': template_repository,
        'template_service': template_service,
        'smtp_service': smtp_service,
        'limiter': limiter,
    }

    logger.debug(f"[APP_FACTORY] Configuration: {config.to_dict()}")
    logger.info("[APP_FACTORY] Application ready")
    return app
