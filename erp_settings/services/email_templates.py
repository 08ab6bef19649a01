"""
Email Templates
Transactional email template definitions, the template repository and the
service behind the admin email template actions
"""
import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from erp_settings.services.option_store import OptionStore

logger = logging.getLogger(__name__)

CATEGORY_HRM = 'hrm'
CATEGORY_CRM = 'crm'
CATEGORY_ACCOUNTING = 'acct'
CATEGORIES = (CATEGORY_HRM, CATEGORY_CRM, CATEGORY_ACCOUNTING)

# Checked in order, first match wins
TYPE_NAME_MARKERS = [
    (('HRM', 'ERP_Document', 'ERP_Recruitment', 'Training'), CATEGORY_HRM),
    (('CRM',), CATEGORY_CRM),
    (('Accounting',), CATEGORY_ACCOUNTING),
]

# Templates that can not be disabled from the admin panel
FIXED_ENABLED_TEMPLATES = frozenset([
    'erp_email_settings_employee-welcome',
    'erp_email_settings_new-leave-request',
    'erp_email_settings_approved-leave-request',
    'erp_email_settings_rejected-leave-request',
])


class TemplateNotFoundError(LookupError):
    """Raised when no email template is registered under an id"""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Email template not found: {template_id}")


class EmailTemplateError(ValueError):
    """Raised for invalid email template updates"""


def classify_template_type(type_name: str) -> Optional[str]:
    """
    Category of a template from its type name markers

    Returns:
        'hrm', 'crm', 'acct' or None when no marker matches
    """
    for markers, category in TYPE_NAME_MARKERS:
        if any(marker in type_name for marker in markers):
            return category
    return None


@dataclass
class EmailTemplate:
    """A transactional email definition"""
    template_id: str
    option_id: str
    title: str
    description: str = ''
    category: Optional[str] = None
    find: List[str] = field(default_factory=list)
    subject: str = ''
    heading: str = ''
    body: str = ''
    enabled_by_default: bool = True
    type_name: str = ''

    def __post_init__(self):
        if self.category is None and self.type_name:
            self.category = classify_template_type(self.type_name)

    @property
    def disable_allowed(self) -> bool:
        return self.option_id not in FIXED_ENABLED_TEMPLATES

    def default_record(self) -> Dict[str, str]:
        return {'subject': self.subject, 'heading': self.heading, 'body': self.body}


class TemplateRepository:
    """Registered email templates, kept in registration order"""

    def __init__(self):
        self._templates: Dict[str, EmailTemplate] = {}

    def register(self, template: EmailTemplate):
        if template.template_id in self._templates:
            logger.warning(f"[TEMPLATES] Replacing email template {template.template_id}")
        self._templates[template.template_id] = template

    def list(self) -> List[EmailTemplate]:
        return list(self._templates.values())

    def get(self, template_id: str) -> Optional[EmailTemplate]:
        return self._templates.get(template_id)

    def get_by_option_id(self, option_id: str) -> Optional[EmailTemplate]:
        for template in self._templates.values():
            if template.option_id == option_id:
                return template
        return None


class EmailTemplateService:
    """Reads and writes email template option records"""

    def __init__(self, repository: TemplateRepository, option_store: OptionStore):
        self.repository = repository
        self.option_store = option_store

    def install_defaults(self) -> int:
        """
        Store default records for templates that have none yet

        Returns:
            int: Number of records written
        """
        installed = 0
        for template in self.repository.list():
            if self.option_store.get_option(template.option_id) is not None:
                continue
            record = template.default_record()
            if template.enabled_by_default:
                record['is_enable'] = 'yes'
            if self.option_store.update_option(template.option_id, record):
                installed += 1

        if installed:
            logger.info(f"[TEMPLATES] Installed {installed} default email template records")
        return installed

    def list_templates(self) -> Dict[str, List[dict]]:
        """
        Summaries of all templates grouped by category

        Templates without a known category are left out. A category with no
        templates has no key in the result.
        """
        emails: Dict[str, List[dict]] = {}

        for template in self.repository.list():
            if template.category not in CATEGORIES:
                logger.debug(f"[TEMPLATES] Skipping uncategorized template {template.template_id}")
                continue

            record = self.option_store.get_option(template.option_id)
            if not isinstance(record, dict):
                record = {}
            emails.setdefault(template.category, []).append({
                'id': template.template_id,
                'option_id': template.option_id,
                'name': html.escape(template.title),
                'description': html.escape(template.description),
                'is_enabled': 'yes' if 'is_enable' in record else 'no',
                'disable_allowed': template.disable_allowed,
            })

        return emails

    def get_template(self, template_id: str) -> dict:
        """
        Stored record of one template prepared for the admin editor

        Raises:
            TemplateNotFoundError: Unknown template id
        """
        template = self.repository.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        stored = self.option_store.get_option(template.option_id)
        email_data = template.default_record()
        if isinstance(stored, dict):
            email_data.update(stored)

        email_data['id'] = template.option_id
        email_data['tags'] = list(template.find)
        email_data['disable_allowed'] = template.disable_allowed
        if not email_data.get('is_enable'):
            email_data['is_enable'] = 'no'

        # The admin editor shows the body as HTML
        email_data['body'] = (email_data.get('body') or '').replace('\n', '<br>')
        return email_data

    def _require_template_option(self, option_id: str):
        if self.repository.get_by_option_id(option_id) is None:
            logger.warning(f"[TEMPLATES] Rejected write to non-template option {option_id}")
            raise TemplateNotFoundError(option_id)

    def update_template(self, option_id: str, subject: str, heading: str, body: str, is_enable: str = '') -> bool:
        """
        Replace a template's stored record

        The record is written whole: is_enable is only kept when passed as 'yes'.

        Raises:
            EmailTemplateError: Missing option id
            TemplateNotFoundError: No registered template stores its record under option_id
        """
        if not option_id:
            raise EmailTemplateError("Invalid email template ID")
        self._require_template_option(option_id)

        option_data = {'subject': subject, 'heading': heading, 'body': body}
        if is_enable == 'yes':
            option_data['is_enable'] = 'yes'

        saved = self.option_store.update_option(option_id, option_data)
        if saved:
            logger.info(f"[TEMPLATES] Updated email template {option_id} (enabled: {'is_enable' in option_data})")
        return saved

    def update_status(self, option_id: str, option_value: str) -> bool:
        """
        Enable or disable a template keeping the rest of its record

        An empty option id is ignored.

        Raises:
            TemplateNotFoundError: No registered template stores its record under option_id
        """
        if not option_id:
            return True
        self._require_template_option(option_id)

        record = self.option_store.get_option(option_id)
        if not isinstance(record, dict):
            record = {}

        if option_value == 'yes':
            record['is_enable'] = 'yes'
        else:
            record.pop('is_enable', None)

        saved = self.option_store.update_option(option_id, record)
        if saved:
            logger.info(f"[TEMPLATES] Email template {option_id} {'enabled' if option_value == 'yes' else 'disabled'}")
        return saved


HR_EMPLOYEE_TAGS = ['{full_name}', '{first_name}', '{last_name}', '{job_title}', '{dept_title}']


def default_templates() -> List[EmailTemplate]:
    """Built-in email templates of the HR, CRM and Accounting modules"""
    return [
        EmailTemplate(
            'New_Employee_Welcome', 'erp_email_settings_employee-welcome', 'New Employee Welcome',
            'Welcome email to new employees.', CATEGORY_HRM,
            HR_EMPLOYEE_TAGS + ['{status_title}', '{type_title}', '{joined_date}', '{reporting_to}', '{link}'],
            subject='Welcome {full_name} to {company_name}',
            heading='Welcome Onboard {first_name}!',
            body='Dear {full_name},\n\nWelcome aboard as a {job_title} in our {dept_title} team at {company_name}!'
                 '\n\nYour first day is {joined_date} and you will report to {reporting_to}.',
        ),
        EmailTemplate(
            'New_Leave_Request', 'erp_email_settings_new-leave-request', 'New Leave Request',
            'New leave request notification to HR Manager.', CATEGORY_HRM,
            ['{employee_name}', '{employee_url}', '{leave_type}', '{date_from}', '{date_to}', '{no_days}', '{reason}', '{requests_url}'],
            subject='New leave request received from {employee_name}',
            heading='New Leave Request',
            body='Hello,\n\nA new leave request has been received from {employee_name}.'
                 '\n\nLeave type: {leave_type}\nDate: {date_from} to {date_to}\nDays: {no_days}\nReason: {reason}',
        ),
        EmailTemplate(
            'Approved_Leave_Request', 'erp_email_settings_approved-leave-request', 'Approved Leave Request',
            'Approved leave request notification to employee.', CATEGORY_HRM,
            ['{employee_name}', '{leave_type}', '{date_from}', '{date_to}', '{no_days}', '{reason}', '{approve_reason}'],
            subject='Your leave request has been approved',
            heading='Leave Request Approved',
            body='Hello {employee_name},\n\nYour {leave_type} request for {no_days} days from {date_from} to {date_to} has been approved.',
        ),
        EmailTemplate(
            'Rejected_Leave_Request', 'erp_email_settings_rejected-leave-request', 'Rejected Leave Request',
            'Rejected leave request notification to employee.', CATEGORY_HRM,
            ['{employee_name}', '{leave_type}', '{date_from}', '{date_to}', '{no_days}', '{reason}', '{reject_reason}'],
            subject='Your leave request has been rejected',
            heading='Leave Request Rejected',
            body='Hello {employee_name},\n\nYour {leave_type} request for {no_days} days from {date_from} to {date_to} has been rejected.'
                 '\n\nReason: {reject_reason}',
        ),
        EmailTemplate(
            'Birthday_Wish', 'erp_email_settings_birthday-wish', 'Birthday Wish',
            'Birthday wish email to employees.', CATEGORY_HRM,
            HR_EMPLOYEE_TAGS,
            subject='Happy Birthday {first_name}!',
            heading='Happy Birthday!',
            body='Dear {full_name},\n\nEveryone at {company_name} wishes you a very happy birthday!',
        ),
        EmailTemplate(
            'Hiring_Anniversary_Wish', 'erp_email_settings_hiring-anniversary-wish', 'Hiring Anniversary Wish',
            'Hiring anniversary wish email to employees.', CATEGORY_HRM,
            HR_EMPLOYEE_TAGS + ['{total_year}'],
            subject='Happy {total_year} year work anniversary, {first_name}!',
            heading='Happy Work Anniversary!',
            body='Dear {full_name},\n\nCongratulations on completing {total_year} years with us.',
            enabled_by_default=False,
        ),
        EmailTemplate(
            'New_Contact_Assigned', 'erp_email_settings_new-contact-assigned', 'New Contact Assigned',
            'Notification to contact owner when a contact is assigned.', CATEGORY_CRM,
            ['{employee_name}', '{contact_name}', '{created_by}', '{contact_url}'],
            subject='New contact has been assigned to you',
            heading='New Contact Assigned',
            body='Hello {employee_name},\n\n{created_by} assigned you a new contact: {contact_name}.\n\n{contact_url}',
        ),
        EmailTemplate(
            'New_Task_Assigned', 'erp_email_settings_new-task-assigned', 'New Task Assigned',
            'Notification to employee when a CRM task is assigned.', CATEGORY_CRM,
            ['{employee_name}', '{task_title}', '{due_date}', '{created_by}'],
            subject='New task has been assigned to you',
            heading='New Task Assigned',
            body='Hello {employee_name},\n\n{created_by} assigned you a new task: {task_title}, due {due_date}.',
        ),
        EmailTemplate(
            'CRM_Schedule_Reminder', 'erp_email_settings_crm-schedule-reminder', 'Schedule Reminder',
            'Reminder for upcoming CRM schedules.', CATEGORY_CRM,
            ['{employee_name}', '{contact_name}', '{schedule_title}', '{schedule_time}'],
            subject='Reminder: {schedule_title}',
            heading='Schedule Reminder',
            body='Hello {employee_name},\n\nYou have {schedule_title} with {contact_name} at {schedule_time}.',
        ),
        EmailTemplate(
            'Transactional_Email', 'erp_email_settings_transectional-email', 'Transactional Email',
            'Email sent with invoices, payments and other transactions.', CATEGORY_ACCOUNTING,
            ['{customer_name}', '{trans_type}', '{trans_id}', '{amount}', '{company_name}'],
            subject='New {trans_type} from {company_name}',
            heading='{trans_type} #{trans_id}',
            body='Hello {customer_name},\n\nPlease find the attached {trans_type} #{trans_id} of {amount}.',
        ),
        EmailTemplate(
            'Purchase_Order', 'erp_email_settings_purchase-order', 'Purchase Order',
            'Email sent to vendors with purchase orders.', CATEGORY_ACCOUNTING,
            ['{vendor_name}', '{trans_id}', '{amount}', '{company_name}'],
            subject='Purchase order #{trans_id} from {company_name}',
            heading='Purchase Order #{trans_id}',
            body='Hello {vendor_name},\n\nPlease find the attached purchase order #{trans_id} of {amount}.',
            enabled_by_default=False,
        ),
    ]


def build_template_repository(templates: Optional[List[EmailTemplate]] = None) -> TemplateRepository:
    repository = TemplateRepository()
    for template in default_templates() if templates is None else templates:
        repository.register(template)
    return repository
