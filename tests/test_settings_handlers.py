"""
Test Settings Handlers and Registry
Per-module save, field validation, the manager override rule and module
registration for extensions
"""
import pytest

from erp_settings.services.settings_data import process_settings_data, SettingsDataError
from erp_settings.services.settings_handlers import (
    SettingsHandler,
    SettingsError,
    Field,
    EmailSettings,
    HRSettings,
)
from erp_settings.services.settings_registry import SettingsRegistry, UnregisteredModuleError

ADMIN = {'user_id': 'u1', 'roles': ['administrator'], 'is_active': True}
HR_MANAGER = {'user_id': 'u2', 'roles': ['erp_hr_manager'], 'is_active': True}
CRM_MANAGER = {'user_id': 'u3', 'roles': ['erp_crm_manager'], 'is_active': True}
EMPLOYEE = {'user_id': 'u4', 'roles': ['employee'], 'is_active': True}


@pytest.fixture
def registry(option_store):
    registry = SettingsRegistry(option_store)
    registry.register_builtin_handlers()
    return registry


def test_builtin_modules_registered(registry):
    assert registry.modules() == ['general', 'erp-hr', 'erp-ac', 'erp-crm', 'erp-email', 'erp-integration']


def test_email_general_save_writes_section_option(option_store):
    """Saving erp-email/general stores the option read by the SMTP test"""
    handler = EmailSettings({'from_name': ' <b>Acme</b> HR ', 'from_email': 'hr@example.com',
                             'footer_text': '<p>Thanks</p><script>x</script>'}, option_store)
    handler.save('general')

    assert option_store.get_option('erp_settings_erp-email_general') == {
        'from_name': 'Acme HR',
        'from_email': 'hr@example.com',
        'header_image': '',
        'footer_text': '<p>Thanks</p>',
    }


def test_save_rejects_unknown_section(option_store):
    with pytest.raises(SettingsError, match='Invalid settings section'):
        EmailSettings({}, option_store).save('pop3')


def test_save_rejects_invalid_email(option_store):
    with pytest.raises(SettingsError, match='Invalid email address'):
        EmailSettings({'from_email': 'nobody'}, option_store).save('general')
    assert option_store.get_option('erp_settings_erp-email_general') is None


def test_save_validates_select_and_number_fields(option_store):
    with pytest.raises(SettingsError, match='Invalid value for Monday'):
        HRSettings({'mon': '12'}, option_store).save('workdays')

    with pytest.raises(SettingsError, match='Port must be a number'):
        EmailSettings({'port': 'abc'}, option_store).save('smtp')


def test_checkbox_and_defaults(option_store):
    """Unchecked boxes are stored as 'no', missing fields take their default"""
    HRSettings({'fri': '4', 'enable_extra_leave': 'on'}, option_store).save('workdays')
    HRSettings({'enable_extra_leave': 'on'}, option_store).save('leave')

    workdays = option_store.get_option('erp_settings_erp-hr_workdays')
    assert workdays['fri'] == '4'
    assert workdays['mon'] == '8'
    assert workdays['sun'] == '0'

    leave = option_store.get_option('erp_settings_erp-hr_leave')
    assert leave['enable_extra_leave'] == 'yes'
    assert leave['erp_hrm_leave_recurring'] == 'no'


def test_blank_password_keeps_stored_password(option_store):
    EmailSettings({'mail_server': 'smtp.example.com', 'password': 's3cret'}, option_store).save('smtp')
    EmailSettings({'mail_server': 'smtp.example.com', 'password': ''}, option_store).save('smtp')
    EmailSettings({'mail_server': 'smtp.example.com', 'password': '********'}, option_store).save('smtp')

    assert option_store.get_option('erp_settings_erp-email_smtp')['password'] == 's3cret'


def test_sub_section_is_part_of_option_key(option_store):
    HRSettings({'leave_year_start': '7'}, option_store, sub_section='policies').save('leave')

    assert option_store.get_option('erp_settings_erp-hr_leave_policies')['leave_year_start'] == '7'
    assert option_store.get_option('erp_settings_erp-hr_leave') is None


def test_manager_override_rule(registry):
    """HR/AC/CRM managers may save their module, nobody but admins saves the rest"""
    for module in registry.modules():
        assert registry.is_authorized(ADMIN, module)
        assert not registry.is_authorized(EMPLOYEE, module)

    assert registry.is_authorized(HR_MANAGER, 'erp-hr')
    assert registry.is_authorized(CRM_MANAGER, 'erp-crm')
    assert not registry.is_authorized(HR_MANAGER, 'erp-crm')
    assert not registry.is_authorized(HR_MANAGER, 'erp-ac')

    for module in ('general', 'erp-email', 'erp-integration'):
        assert not registry.is_authorized(HR_MANAGER, module)
        assert not registry.is_authorized(CRM_MANAGER, module)


def test_anonymous_is_never_authorized(registry):
    assert not registry.is_authorized(None, 'general')
    assert not registry.is_authorized(dict(ADMIN, is_active=False), 'general')


def test_resolve_unregistered_module(registry):
    with pytest.raises(UnregisteredModuleError, match='Unregistered settings module: erp-payroll'):
        registry.resolve('erp-payroll', {})


def test_extension_module_registration(registry, option_store):
    """External modules plug in through register() with their own manager capability"""

    class PayrollSettings(SettingsHandler):
        module_id = 'erp-payroll'
        sections = {'general': [Field('pay_day', 'Pay Day', 'number', 28)]}

    registry.register('erp-payroll', PayrollSettings, manager_capability='erp_hr_manager')

    handler = registry.resolve('erp-payroll', {'pay_day': '25'})
    handler.save('general')

    assert option_store.get_option('erp_settings_erp-payroll_general') == {'pay_day': 25}
    assert registry.is_authorized(HR_MANAGER, 'erp-payroll')


def test_process_settings_data_overlays_stored_values(registry, option_store):
    option_store.update_option('erp_settings_erp-email_smtp', {'mail_server': 'smtp.example.com', 'password': 'x'})

    data = process_settings_data({'module': 'erp-email', 'section': 'smtp'}, registry)

    assert data['module'] == 'erp-email'
    assert data['section'] == 'smtp'
    values = {f['id']: f['value'] for f in data['fields']}
    assert values['mail_server'] == 'smtp.example.com'
    assert values['port'] == 25
    assert values['password'] == '********'

    auth_field = next(f for f in data['fields'] if f['id'] == 'authentication')
    assert [o['value'] for o in auth_field['options']] == ['', 'ssl', 'tls']


@pytest.mark.parametrize('form', [
    {},
    {'module': 'erp-email'},
    {'module': 'erp-unknown', 'section': 'general'},
    {'module': 'erp-email', 'section': 'unknown'},
])
def test_process_settings_data_errors(registry, form):
    with pytest.raises(SettingsDataError):
        process_settings_data(form, registry)
