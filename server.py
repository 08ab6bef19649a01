#!/usr/bin/env python3
"""
ERP Settings Panel Server - Application Entry Point

Business logic lives in:
- erp_settings/services/   - Settings handlers, option store, email templates, SMTP test
- erp_settings/routes/     - AJAX dispatcher and auth endpoints
- erp_settings/core/       - Application factory
"""

import logging

logger = logging.getLogger(__name__)


def main():
    """Main application entry point"""
    from erp_settings.config_manager import ConfigManager
    from erp_settings.core.app_factory import create_app

    config = ConfigManager()
    app = create_app(config)

    logger.info("=" * 80)
    logger.info(f"[SERVER] Starting on {config.server.host}:{config.server.port}")
    logger.info(f"[SERVER] Debug mode: {config.server.debug}")
    logger.info("=" * 80)

    app.run(
        host=config.server.host,
        port=config.server.port,
        debug=config.server.debug,
        threaded=True
    )


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        logger.info("[SERVER] Shutting down gracefully...")
    except Exception as e:
        logger.error(f"[SERVER] Fatal error: {e}", exc_info=True)
        raise
