"""
Test Config Manager
"""
import json

from erp_settings.config_manager import ConfigManager


def test_env_overrides(tmp_path, monkeypatch):
    env_file = tmp_path / '.env'
    env_file.write_text('ADMIN_EMAIL=owner@example.com\nDATA_DIR=/srv/erp\n', encoding='utf-8')
    # load_dotenv writes os.environ, registering the names lets monkeypatch remove them
    for name in ('ADMIN_EMAIL', 'DATA_DIR'):
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)
    monkeypatch.setenv('SMTP_TEST_RATE_LIMIT', '3 per minute')
    monkeypatch.setenv('DEFAULT_RATE_LIMITS', '100 per day; 10 per minute')

    config = ConfigManager(env_file=str(env_file), config_file=str(tmp_path / 'missing.json'))

    assert config.site.admin_email == 'owner@example.com'
    assert config.storage.options_path == '/srv/erp/options.json'
    assert config.rate_limit.smtp_test == '3 per minute'
    assert config.rate_limit.default_limits == ['100 per day', '10 per minute']


def test_json_overrides_and_validation(tmp_path, monkeypatch):
    monkeypatch.delenv('SECRET_KEY', raising=False)
    monkeypatch.setenv('LOG_LEVEL', 'chatty')
    config_file = tmp_path / 'config.json'
    config_file.write_text(json.dumps({'server': {'port': 8080}, 'storage': {'users_file': 'staff.db'}}), encoding='utf-8')

    config = ConfigManager(env_file=str(tmp_path / 'missing.env'), config_file=str(config_file))

    assert config.server.port == 8080
    assert config.storage.users_path.endswith('staff.db')
    assert len(config.server.secret_key) == 64
    assert config.logging.level == 'INFO'


def test_to_dict_masks_secrets(tmp_path, monkeypatch):
    monkeypatch.setenv('SECRET_KEY', 'very-secret')
    monkeypatch.setenv('ADMIN_PASSWORD', 'hunter2')

    data = ConfigManager(env_file=str(tmp_path / 'missing.env'), config_file=str(tmp_path / 'missing.json')).to_dict()

    assert data['server']['secret_key'] == '********'
    assert data['site']['admin_password'] == '********'
