"""
AJAX Routes
Dispatches admin settings panel actions: module settings save/load, email
templates and the SMTP test connection
"""
import smtplib
import logging
from flask import Blueprint, request, jsonify

from erp_settings.middleware.auth import session_login_required, get_current_user, current_user_can
from erp_settings.middleware.nonce import require_nonce
from erp_settings.services.messages import get_message
from erp_settings.services.sanitize import sanitize_text_field, kses_post
from erp_settings.services.settings_data import process_settings_data, SettingsDataError
from erp_settings.services.settings_handlers import SettingsError
from erp_settings.services.settings_registry import UnregisteredModuleError
from erp_settings.services.email_templates import TemplateNotFoundError, EmailTemplateError
from erp_settings.services.smtp_service import SmtpTestParams, SmtpValidationError
from erp_settings.services.user_service import MANAGE_OPTIONS

logger = logging.getLogger(__name__)

# Create blueprint
ajax_bp = Blueprint('ajax', __name__)

# These will be injected by the app factory
settings_registry = None
template_service = None
smtp_service = None

SETTINGS_NONCE = 'erp-settings-nonce'
SMTP_TEST_ACTION = 'erp_smtp_test_connection'

# action name -> view
AJAX_ACTIONS = {}


def init_ajax_routes(sr, ets, sts):
    """
    Initialize AJAX routes with dependencies

    Args:
        sr: SettingsRegistry instance
        ets: EmailTemplateService instance
        sts: SmtpTestService instance
    """
    global settings_registry, template_service, smtp_service

    settings_registry = sr
    template_service = ets
    smtp_service = sts


class AjaxError(Exception):
    """Stops an action and answers with an error envelope"""

    def __init__(self, data, status: int = 400):
        super().__init__(data)
        self.data = data
        self.status = status


def send_error(data, status: int = 400):
    raise AjaxError(data, status)


def send_success(data=None):
    payload = {'success': True}
    if data is not None:
        payload['data'] = data
    return jsonify(payload)


def ajax_action(name: str, nonce_action: str = SETTINGS_NONCE):
    """Register a view as an AJAX action, guarded by the action nonce and login"""
    def decorator(f):
        AJAX_ACTIONS[name] = require_nonce(nonce_action)(session_login_required(f))
        return f
    return decorator


def current_action() -> str:
    return (request.view_args or {}).get('action') or request.values.get('action', '')


def require_capability(capability: str = MANAGE_OPTIONS):
    if not current_user_can(capability):
        user = get_current_user() or {}
        logger.warning(f"[AJAX] Permission denied: {current_action()} by {user.get('email', 'anonymous')}")
        send_error(get_message('error_permission'), 403)


@ajax_bp.errorhandler(AjaxError)
def handle_ajax_error(e):
    return jsonify({'success': False, 'data': e.data}), e.status


@ajax_bp.route('/ajax', methods=['POST'])
@ajax_bp.route('/ajax/<action>', methods=['POST'])
def dispatch(action=None):
    """Run a registered admin AJAX action"""
    action = action or request.values.get('action', '')
    view = AJAX_ACTIONS.get(action)

    if view is None:
        logger.warning(f"[AJAX] Unknown action: {action!r}")
        send_error('Invalid action', 400)

    return view()


# =================== Module Settings ===================

@ajax_action('erp-settings-save')
def settings_save():
    """Save one section of a module's settings"""
    module = sanitize_text_field(request.values.get('module'))
    section = sanitize_text_field(request.values.get('section'))
    sub_section = sanitize_text_field(request.values.get('sub_sub_section') or request.values.get('sub_section'))

    if not settings_registry.is_authorized(get_current_user(), module):
        logger.warning(f"[AJAX] Permission denied: settings save for {module!r}")
        send_error(get_message('error_permission'), 403)

    try:
        handler = settings_registry.resolve(module, request.values, sub_section)
    except UnregisteredModuleError as e:
        send_error(str(e), 404)

    try:
        handler.save(section)
    except SettingsError as e:
        logger.info(f"[AJAX] Settings save failed for {module}/{section}: {e}")
        send_error(str(e))

    return send_success({'message': get_message('save_success', 'Settings')})


@ajax_action('erp-settings-get-data')
def settings_get_data():
    """Fields and current values of one settings section"""
    require_capability(MANAGE_OPTIONS)

    try:
        data = process_settings_data(request.values, settings_registry)
    except SettingsDataError as e:
        logger.warning(f"[AJAX] Settings data processing failed: {e}")
        send_error(get_message('error_process'))

    return send_success(data)


# =================== Email Templates ===================

@ajax_action('erp_get_email_templates')
def get_email_templates():
    require_capability(MANAGE_OPTIONS)
    return send_success(template_service.list_templates())


@ajax_action('erp_get_single_email_template')
def get_single_email_template():
    require_capability(MANAGE_OPTIONS)

    template_id = sanitize_text_field(request.values.get('template'))
    try:
        email_data = template_service.get_template(template_id)
    except TemplateNotFoundError:
        send_error(get_message('not_found', 'Email template'), 404)

    return send_success(email_data)


@ajax_action('erp_update_email_template')
def update_email_template():
    """Replace a template record. is_enable must be resent as 'yes' to keep it enabled."""
    require_capability(MANAGE_OPTIONS)

    try:
        saved = template_service.update_template(
            option_id=sanitize_text_field(request.values.get('id')),
            subject=sanitize_text_field(request.values.get('subject')),
            heading=sanitize_text_field(request.values.get('heading')),
            body=kses_post(request.values.get('body')),
            is_enable=sanitize_text_field(request.values.get('is_enable')),
        )
    except EmailTemplateError as e:
        send_error(str(e))
    except TemplateNotFoundError:
        send_error(get_message('not_found', 'Email template'), 404)

    if not saved:
        send_error(get_message('error_process'), 500)

    return send_success('Template updated successfully')


@ajax_action('erp_update_email_status')
def update_email_status():
    require_capability(MANAGE_OPTIONS)

    option_id = sanitize_text_field(request.values.get('option_id'))
    option_value = sanitize_text_field(request.values.get('option_value'))

    try:
        saved = template_service.update_status(option_id, option_value)
    except TemplateNotFoundError:
        send_error(get_message('not_found', 'Email template'), 404)

    if not saved:
        send_error(get_message('error_process'), 500)

    return send_success()


# =================== SMTP ===================

@ajax_action(SMTP_TEST_ACTION)
def smtp_test_connection():
    """Send a test email with the submitted SMTP settings"""
    require_capability(MANAGE_OPTIONS)

    try:
        params = SmtpTestParams.from_form(request.values)
    except SmtpValidationError as e:
        send_error({'message': str(e)})

    user = get_current_user() or {}
    try:
        to = smtp_service.send_test_email(params, sender_name=user.get('display_name', ''))
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"[SMTP] Test email via {params.mail_server}:{params.port} failed: {e}")
        send_error(str(e), 502)

    return send_success({'message': f"Test email has been sent successfully to {to}"})
