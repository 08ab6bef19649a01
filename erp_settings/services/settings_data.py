"""
Settings data processing for the admin settings screens
"""
import logging
from typing import Any, Dict, Mapping

from erp_settings.services.sanitize import sanitize_text_field
from erp_settings.services.settings_handlers import SettingsError, masked_values
from erp_settings.services.settings_registry import SettingsRegistry, UnregisteredModuleError

logger = logging.getLogger(__name__)


class SettingsDataError(Exception):
    """Raised when settings data for a section cannot be produced"""


def process_settings_data(form: Mapping[str, Any], registry: SettingsRegistry) -> Dict[str, Any]:
    """
    Build the field list and current values of one settings section

    Args:
        form: Submitted form with module, section and optional sub_section
        registry: Settings registry used to find the module handler

    Returns:
        dict: module, section, sub_section and fields (id, label, type, value, options)

    Raises:
        SettingsDataError: Missing or unknown module/section
    """
    module = sanitize_text_field(form.get('module'))
    section = sanitize_text_field(form.get('section'))
    sub_section = sanitize_text_field(form.get('sub_sub_section') or form.get('sub_section'))

    if not module or not section:
        raise SettingsDataError("module and section are required")

    try:
        handler = registry.resolve(module, form, sub_section)
        fields = handler.get_fields(section)
        values = masked_values(handler, section)
    except (UnregisteredModuleError, SettingsError) as e:
        raise SettingsDataError(str(e)) from e

    return {
        'module': module,
        'section': section,
        'sub_section': sub_section,
        'fields': [f.to_dict(values[f.id]) for f in fields],
    }
