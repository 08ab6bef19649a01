"""
Canned user facing messages shared by the admin AJAX actions
"""
from typing import Optional

MESSAGES = {
    'error_permission': 'You do not have sufficient permissions to do this action',
    'error_process': 'Something went wrong while processing the request. Please try again.',
    'error_nonce': 'Are you cheating? The security token is invalid or has expired.',
    'error_login': 'You must be logged in to do this action',
    'save_success': '{additional} has been saved successfully',
    'update_success': '{additional} has been updated successfully',
    'not_found': '{additional} not found',
}


def get_message(message_type: str, additional: Optional[str] = None) -> str:
    """
    Get a canned message

    Args:
        message_type: Key in MESSAGES
        additional: Subject substituted into messages that name one

    Returns:
        str: The message, or the error_process message for unknown types
    """
    template = MESSAGES.get(message_type, MESSAGES['error_process'])
    return template.format(additional=additional or 'Item')
