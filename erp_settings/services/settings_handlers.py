"""
Settings Handlers
One handler per ERP module. Each declares its sections and fields and saves a
submitted section into the option store.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from erp_settings.services.option_store import OptionStore
from erp_settings.services.user_service import HR_MANAGER, AC_MANAGER, CRM_MANAGER
from erp_settings.services.sanitize import (
    sanitize_text_field,
    sanitize_textarea_field,
    sanitize_email,
    kses_post,
)

logger = logging.getLogger(__name__)

CHECKBOX_ON_VALUES = ('yes', 'on', '1', 'true')

MONTHS = [(str(i), name) for i, name in enumerate(
    ['January', 'February', 'March', 'April', 'May', 'June', 'July',
     'August', 'September', 'October', 'November', 'December'], start=1)]

SECURITY_MODES = [('', 'None'), ('ssl', 'SSL'), ('tls', 'TLS')]


class SettingsError(Exception):
    """Raised when a settings section cannot be saved"""


@dataclass
class Field:
    """A single settings field"""
    id: str
    label: str
    type: str = 'text'
    default: Any = ''
    options: List[tuple] = field(default_factory=list)

    def option_values(self) -> List[str]:
        return [value for value, _ in self.options]

    def to_dict(self, value: Any) -> Dict[str, Any]:
        data = {'id': self.id, 'label': self.label, 'type': self.type, 'value': value}
        if self.options:
            data['options'] = [{'value': v, 'label': l} for v, l in self.options]
        return data


class SettingsHandler:
    """
    Base settings handler

    Subclasses set module_id and sections. save() sanitizes the submitted
    values of one section and stores them as a single option record.
    """

    module_id = ''
    sections: Dict[str, List[Field]] = {}

    def __init__(self, data: Mapping[str, Any], option_store: OptionStore, sub_section: str = ''):
        self.data = data
        self.option_store = option_store
        self.sub_section = sub_section

    def option_key(self, section: str) -> str:
        key = f"erp_settings_{self.module_id}_{section}"
        if self.sub_section:
            key = f"{key}_{self.sub_section}"
        return key

    def get_fields(self, section: str) -> List[Field]:
        if section not in self.sections:
            raise SettingsError("Invalid settings section")
        return self.sections[section]

    def get_values(self, section: str) -> Dict[str, Any]:
        """Stored values of a section overlaid on the field defaults"""
        stored = self.option_store.get_option(self.option_key(section)) or {}
        return {f.id: stored.get(f.id, f.default) for f in self.get_fields(section)}

    def save(self, section: str) -> None:
        """
        Save one section from the submitted data

        Raises:
            SettingsError: Unknown section, invalid value or storage failure
        """
        fields = self.get_fields(section)
        key = self.option_key(section)
        stored = self.option_store.get_option(key) or {}

        values = {}
        for f in fields:
            values[f.id] = self.clean_field(f, self.data.get(f.id), stored.get(f.id))

        if not self.option_store.update_option(key, values):
            raise SettingsError("Could not save settings, please try again")

        logger.info(f"[SETTINGS] Saved {self.module_id}/{section}" + (f"/{self.sub_section}" if self.sub_section else ''))

    def clean_field(self, f: Field, raw: Any, previous: Any = None) -> Any:
        """Sanitize one submitted value according to its field type"""
        if f.type == 'checkbox':
            return 'yes' if str(raw or '').strip().lower() in CHECKBOX_ON_VALUES else 'no'

        if f.type == 'password':
            value = sanitize_text_field(raw)
            # Blank or masked password keeps the stored one
            if not value or value == '********':
                return previous if previous is not None else f.default
            return value

        if raw is None:
            return f.default

        if f.type == 'email':
            value = sanitize_email(raw)
            if value is None:
                raise SettingsError(f"Invalid email address: {f.label}")
            return value

        if f.type == 'number':
            value = sanitize_text_field(raw)
            if value == '':
                return f.default
            try:
                return int(value)
            except ValueError:
                raise SettingsError(f"{f.label} must be a number")

        if f.type == 'select':
            value = sanitize_text_field(raw)
            if value not in f.option_values():
                raise SettingsError(f"Invalid value for {f.label}")
            return value

        if f.type == 'textarea':
            return sanitize_textarea_field(raw)

        if f.type == 'html':
            return kses_post(raw)

        return sanitize_text_field(raw)


class GeneralSettings(SettingsHandler):
    module_id = 'general'
    sections = {
        'general': [
            Field('company_start', 'Company Start Date'),
            Field('gen_financial_month', 'Financial Year Starts', 'select', '1', MONTHS),
            Field('date_format', 'Date Format', 'select', 'd-m-Y', [
                ('d-m-Y', 'dd-mm-yyyy'), ('m-d-Y', 'mm-dd-yyyy'), ('d/m/Y', 'dd/mm/yyyy'),
                ('m/d/Y', 'mm/dd/yyyy'), ('Y-m-d', 'yyyy-mm-dd'),
            ]),
            Field('erp_currency', 'Currency', 'select', 'USD', [
                ('USD', 'US Dollar'), ('EUR', 'Euro'), ('GBP', 'Pound Sterling'),
                ('INR', 'Indian Rupee'), ('BDT', 'Bangladeshi Taka'), ('AUD', 'Australian Dollar'),
                ('CAD', 'Canadian Dollar'), ('JPY', 'Japanese Yen'),
            ]),
            Field('erp_debug_mode', 'Debug Mode', 'checkbox', 'no'),
        ],
    }


WORKDAY_OPTIONS = [('8', 'Full Day'), ('4', 'Half Day'), ('0', 'Non-working Day')]


class HRSettings(SettingsHandler):
    module_id = 'erp-hr'
    sections = {
        'workdays': [
            Field(day, label, 'select', default, WORKDAY_OPTIONS)
            for day, label, default in [
                ('mon', 'Monday', '8'), ('tue', 'Tuesday', '8'), ('wed', 'Wednesday', '8'),
                ('thu', 'Thursday', '8'), ('fri', 'Friday', '8'), ('sat', 'Saturday', '0'),
                ('sun', 'Sunday', '0'),
            ]
        ],
        'leave': [
            Field('leave_year_start', 'Leave Year Starts', 'select', '1', MONTHS),
            Field('enable_extra_leave', 'Extra Leave', 'checkbox', 'no'),
            Field('erp_hrm_leave_recurring', 'Recurring Leave Policies', 'checkbox', 'yes'),
        ],
        'miscellaneous': [
            Field('erp_hrm_remove_wp_user', 'Remove user on employee delete', 'checkbox', 'no'),
            Field('birthday_notification', 'Birthday Notification', 'checkbox', 'yes'),
        ],
    }


class AccountingSettings(SettingsHandler):
    module_id = 'erp-ac'
    sections = {
        'general': [
            Field('fin_year_start', 'Financial Year Start Date'),
            Field('currency_position', 'Currency Position', 'select', 'left', [
                ('left', 'Left'), ('right', 'Right'), ('left_space', 'Left with space'),
                ('right_space', 'Right with space'),
            ]),
            Field('thousand_separator', 'Thousand Separator', 'select', ',', [(',', ','), ('.', '.'), ('space', 'Space')]),
            Field('decimal_separator', 'Decimal Separator', 'select', '.', [('.', '.'), (',', ',')]),
            Field('number_of_decimals', 'Number of Decimals', 'number', 2),
        ],
        'customers': [
            Field('customer_id_prefix', 'Customer ID Prefix', default='CUS-'),
            Field('vendor_id_prefix', 'Vendor ID Prefix', default='VEN-'),
        ],
    }


class CRMSettings(SettingsHandler):
    module_id = 'erp-crm'
    sections = {
        'contacts': [
            Field('default_life_stage', 'Default Life Stage', 'select', 'lead', [
                ('subscriber', 'Subscriber'), ('lead', 'Lead'), ('opportunity', 'Opportunity'),
                ('customer', 'Customer'),
            ]),
            Field('contact_owner_notification', 'Notify contact owner', 'checkbox', 'yes'),
        ],
        'subscription': [
            Field('double_optin', 'Double Opt-in', 'checkbox', 'no'),
            Field('confirm_page_title', 'Confirmation Page Title', default='Subscription confirmed'),
            Field('unsubscribe_message', 'Unsubscribe Message', 'textarea', 'You have been unsubscribed.'),
        ],
    }


class EmailSettings(SettingsHandler):
    module_id = 'erp-email'
    sections = {
        'general': [
            Field('from_name', 'From Name'),
            Field('from_email', 'From Address', 'email'),
            Field('header_image', 'Header Image'),
            Field('footer_text', 'Footer Text', 'html'),
        ],
        'smtp': [
            Field('enable_smtp', 'Enable SMTP', 'checkbox', 'no'),
            Field('mail_server', 'Mail Server'),
            Field('port', 'Port', 'number', 25),
            Field('authentication', 'Authentication', 'select', '', SECURITY_MODES),
            Field('username', 'Username'),
            Field('password', 'Password', 'password'),
            Field('debug', 'Debug', 'checkbox', 'no'),
        ],
        'imap': [
            Field('enable_imap', 'Enable IMAP', 'checkbox', 'no'),
            Field('mail_server', 'Mail Server'),
            Field('port', 'Port', 'number', 993),
            Field('authentication', 'Authentication', 'select', 'ssl', SECURITY_MODES + [('notls', 'No TLS')]),
            Field('username', 'Username'),
            Field('password', 'Password', 'password'),
            Field('schedule', 'Check Emails', 'select', 'hourly', [
                ('hourly', 'Hourly'), ('twicedaily', 'Twice Daily'), ('daily', 'Daily'),
            ]),
        ],
    }


class IntegrationSettings(SettingsHandler):
    module_id = 'erp-integration'
    sections = {
        'sms': [
            Field('gateway', 'SMS Gateway', 'select', '', [
                ('', 'None'), ('twilio', 'Twilio'), ('nexmo', 'Nexmo'), ('clickatell', 'Clickatell'),
            ]),
            Field('api_key', 'API Key'),
            Field('api_secret', 'API Secret', 'password'),
            Field('sender', 'Sender ID'),
        ],
        'slack': [
            Field('webhook_url', 'Incoming Webhook URL'),
            Field('channel', 'Channel', default='#general'),
        ],
    }


BUILTIN_HANDLERS = [
    (GeneralSettings, None),
    (HRSettings, HR_MANAGER),
    (AccountingSettings, AC_MANAGER),
    (CRMSettings, CRM_MANAGER),
    (EmailSettings, None),
    (IntegrationSettings, None),
]


def masked_values(handler: SettingsHandler, section: str) -> Dict[str, Any]:
    """Section values with password fields masked"""
    values = handler.get_values(section)
    for f in handler.get_fields(section):
        if f.type == 'password':
            values[f.id] = '********' if values.get(f.id) else ''
    return values

