"""
Shared fixtures: an app over a temporary data directory, users for each role
and a logged in AJAX client
"""
import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from erp_settings.config_manager import ConfigManager
from erp_settings.core.app_factory import create_app
from erp_settings.services.option_store import OptionStore

PASSWORD = 'correct horse battery staple'

USERS = {
    'admin': ('admin@example.com', 'Site Admin', ['administrator']),
    'hr': ('hr@example.com', 'Hannah HR', ['erp_hr_manager']),
    'ac': ('accounts@example.com', 'Aaron Accounts', ['erp_ac_manager']),
    'crm': ('crm@example.com', 'Cara CRM', ['erp_crm_manager']),
    'employee': ('staff@example.com', 'Sam Staff', ['employee']),
}


@pytest.fixture
def config(tmp_path):
    config = ConfigManager(
        env_file=str(tmp_path / 'missing.env'),
        config_file=str(tmp_path / 'missing.json')
    )
    config.server.secret_key = 'test-secret-key'
    config.site.admin_email = 'admin@example.com'
    config.site.admin_password = ''
    config.storage.data_dir = str(tmp_path / 'data')
    config.rate_limit.enabled = False
    return config


@pytest.fixture
def app(config):
    app = create_app(config)
    app.config['TESTING'] = True

    user_service = app.extensions['erp_settings']['user_service']
    for email, name, roles in USERS.values():
        user_service.create_user(email, PASSWORD, display_name=name, roles=roles)

    return app


@pytest.fixture
def services(app):
    return app.extensions['erp_settings']


@pytest.fixture
def option_store(tmp_path):
    return OptionStore(str(tmp_path / 'store' / 'options.json'))


class AjaxClient:
    """Flask test client logged in as one user, posting AJAX actions with the session nonce"""

    def __init__(self, client, nonce):
        self.client = client
        self.nonce = nonce

    def post(self, action, nonce=None, **data):
        data.setdefault('_wpnonce', self.nonce if nonce is None else nonce)
        return self.client.post(f'/ajax/{action}', data=data)


def login(client, who):
    email = USERS[who][0]
    resp = client.post('/login', json={'email': email, 'password': PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()['data']['nonce']


@pytest.fixture
def ajax_as(app):
    """Factory: ajax_as('hr') returns an AjaxClient logged in as the HR manager"""
    def make(who):
        client = app.test_client()
        return AjaxClient(client, login(client, who))
    return make


@pytest.fixture
def admin(ajax_as):
    return ajax_as('admin')
