import os
import json
import logging
import secrets
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Server configuration settings"""
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    secret_key: str = ""
    session_cookie_secure: bool = False  # True when served over HTTPS


@dataclass
class SiteConfig:
    """Site identity used as fallback for email settings"""
    site_name: str = "WP ERP"
    admin_email: str = "admin@example.com"
    admin_password: str = ""  # Only used to seed the first administrator


@dataclass
class StorageConfig:
    """Where options and users are persisted"""
    data_dir: str = "data"
    options_file: str = "options.json"
    users_file: str = "users.db"

    @property
    def options_path(self) -> str:
        return os.path.join(self.data_dir, self.options_file)

    @property
    def users_path(self) -> str:
        return os.path.join(self.data_dir, self.users_file)


@dataclass
class RateLimitConfig:
    """Rate limit configuration"""
    enabled: bool = True
    default_limits: List[str] = field(default_factory=lambda: ["2000 per day", "500 per hour"])
    smtp_test: str = "5 per minute"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ConfigManager:
    """Manage application configuration"""

    def __init__(self, env_file: str = ".env", config_file: str = "config.json"):
        self.env_file = env_file
        self.config_file = config_file

        self.server = ServerConfig()
        self.site = SiteConfig()
        self.storage = StorageConfig()
        self.rate_limit = RateLimitConfig()
        self.logging = LoggingConfig()

        self._load_from_env()
        self._load_from_json()
        self._validate_config()

        logger.info("[CONFIG] Configuration loaded successfully")

    def _load_from_env(self):
        """Load configuration from .env file and the process environment"""
        from dotenv import load_dotenv
        if os.path.exists(self.env_file):
            load_dotenv(self.env_file)

        self.server.host = os.getenv('HOST', self.server.host)
        self.server.port = int(os.getenv('PORT', self.server.port))
        self.server.debug = os.getenv('DEBUG', 'False').lower() == 'true'
        self.server.secret_key = os.getenv('SECRET_KEY', self.server.secret_key)
        self.server.session_cookie_secure = os.getenv('SESSION_COOKIE_SECURE', 'False').lower() == 'true'

        self.site.site_name = os.getenv('SITE_NAME', self.site.site_name)
        self.site.admin_email = os.getenv('ADMIN_EMAIL', self.site.admin_email)
        self.site.admin_password = os.getenv('ADMIN_PASSWORD', self.site.admin_password)

        self.storage.data_dir = os.getenv('DATA_DIR', self.storage.data_dir)
        self.storage.options_file = os.getenv('OPTIONS_FILE', self.storage.options_file)
        self.storage.users_file = os.getenv('USERS_FILE', self.storage.users_file)

        self.rate_limit.enabled = os.getenv('RATELIMIT_ENABLED', 'True').lower() == 'true'
        default_limits = os.getenv('DEFAULT_RATE_LIMITS', '')
        if default_limits:
            self.rate_limit.default_limits = [limit.strip() for limit in default_limits.split(';') if limit.strip()]
        self.rate_limit.smtp_test = os.getenv('SMTP_TEST_RATE_LIMIT', self.rate_limit.smtp_test)

        self.logging.level = os.getenv('LOG_LEVEL', self.logging.level).upper()

    def _load_from_json(self):
        """Load configuration overrides from JSON file"""
        if not os.path.exists(self.config_file):
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"[CONFIG] Failed to load JSON config: {e}")
            return

        for section_name, section in self._sections().items():
            for key, value in config_data.get(section_name, {}).items():
                if hasattr(section, key):
                    setattr(section, key, value)

        logger.info(f"[CONFIG] Loaded configuration from {self.config_file}")

    def _validate_config(self):
        """Validate configuration settings"""
        if not self.server.secret_key:
            self.server.secret_key = secrets.token_hex(32)
            logger.warning("[CONFIG] SECRET_KEY not set, generated a temporary one (sessions will not survive restarts)")

        if self.logging.level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            logger.warning(f"[CONFIG] Invalid log level {self.logging.level}, reset to INFO")
            self.logging.level = 'INFO'

    def _sections(self) -> Dict[str, Any]:
        return {
            'server': self.server,
            'site': self.site,
            'storage': self.storage,
            'rate_limit': self.rate_limit,
            'logging': self.logging,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Configuration as a dictionary, secrets masked"""
        data = {name: asdict(section) for name, section in self._sections().items()}
        data['server']['secret_key'] = '********'
        data['site']['admin_password'] = '********' if self.site.admin_password else ''
        return data
