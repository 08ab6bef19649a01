"""
Input sanitizers for admin form fields
"""
import re
from typing import Any, Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer
from email_validator import validate_email, EmailNotValidError

# Tags allowed in rich text fields such as email template bodies
POST_ALLOWED_TAGS = frozenset([
    'a', 'abbr', 'b', 'blockquote', 'br', 'code', 'del', 'div', 'em',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'hr', 'i', 'img', 'li', 'ol',
    'p', 'pre', 's', 'span', 'strong', 'sub', 'sup',
    'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'u', 'ul',
])

POST_ALLOWED_ATTRIBUTES = {
    '*': ['class', 'id', 'style', 'title', 'dir', 'lang'],
    'a': ['href', 'title', 'rel', 'target'],
    'img': ['src', 'alt', 'width', 'height', 'border', 'align', 'title'],
    'table': ['border', 'cellpadding', 'cellspacing', 'width', 'align'],
    'td': ['colspan', 'rowspan', 'width', 'align', 'valign'],
    'th': ['colspan', 'rowspan', 'width', 'align', 'valign'],
    'p': ['align'],
    'div': ['align'],
}

POST_ALLOWED_PROTOCOLS = frozenset(['http', 'https', 'mailto'])

_css_sanitizer = CSSSanitizer(
    allowed_css_properties=[
        'color', 'background-color', 'font-family', 'font-size', 'font-weight',
        'font-style', 'text-align', 'text-decoration', 'line-height',
        'margin', 'margin-top', 'margin-bottom', 'margin-left', 'margin-right',
        'padding', 'padding-top', 'padding-bottom', 'padding-left', 'padding-right',
        'border', 'border-color', 'border-style', 'border-width',
        'width', 'height', 'max-width', 'vertical-align',
    ]
)

_post_cleaner = bleach.Cleaner(
    tags=POST_ALLOWED_TAGS,
    attributes=POST_ALLOWED_ATTRIBUTES,
    protocols=POST_ALLOWED_PROTOCOLS,
    css_sanitizer=_css_sanitizer,
    strip=True,
    strip_comments=True,
)

_SCRIPT_STYLE_RE = re.compile(r'<(script|style)[^>]*?>.*?</\1>', re.IGNORECASE | re.DOTALL)
_OCTET_RE = re.compile(r'%[a-fA-F0-9]{2}')
_CONTROL_RE = re.compile(r'[\x00-\x1f\x7f]+')
_WHITESPACE_RE = re.compile(r'\s+')


def sanitize_text_field(value: Any) -> str:
    """
    Sanitize a single line of plain text

    Strips markup (including script/style contents), percent-encoded octets,
    line breaks, tabs and other control characters, then collapses whitespace.
    """
    if value is None:
        return ''

    text = _SCRIPT_STYLE_RE.sub('', str(value))
    text = bleach.clean(text, tags=set(), strip=True, strip_comments=True)
    # bleach escapes bare ampersands, plain text keeps them as typed
    text = text.replace('&amp;', '&')
    text = _OCTET_RE.sub('', text)
    text = _CONTROL_RE.sub(' ', text)
    return _WHITESPACE_RE.sub(' ', text).strip()


def sanitize_textarea_field(value: Any) -> str:
    """Like sanitize_text_field but keeps line breaks"""
    if value is None:
        return ''

    lines = str(value).replace('\r\n', '\n').split('\n')
    return '\n'.join(sanitize_text_field(line) for line in lines).strip()


def kses_post(value: Any) -> str:
    """Sanitize rich text, keeping the safe HTML subset allowed in post content"""
    if value is None:
        return ''
    return _post_cleaner.clean(_SCRIPT_STYLE_RE.sub('', str(value)))


def sanitize_email(value: Any) -> Optional[str]:
    """
    Normalize an email address

    Returns:
        The normalized address, '' for blank input, or None if invalid
    """
    text = sanitize_text_field(value)
    if not text:
        return ''
    try:
        return validate_email(text, check_deliverability=False).normalized
    except EmailNotValidError:
        return None
