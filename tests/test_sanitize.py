"""
Test input sanitizers
"""
from erp_settings.services.sanitize import (
    sanitize_text_field,
    sanitize_textarea_field,
    kses_post,
    sanitize_email,
)


def test_text_field_strips_markup_and_control_characters():
    assert sanitize_text_field('  <b>Hello</b>\n\tworld  ') == 'Hello world'
    assert sanitize_text_field('<script>alert(1)</script>Subject') == 'Subject'
    assert sanitize_text_field('100%20off') == '100off'


def test_text_field_keeps_ampersands_and_placeholders():
    assert sanitize_text_field('Welcome {first_name} & friends') == 'Welcome {first_name} & friends'


def test_text_field_handles_none_and_numbers():
    assert sanitize_text_field(None) == ''
    assert sanitize_text_field(587) == '587'


def test_textarea_keeps_line_breaks():
    assert sanitize_textarea_field('line one\r\n<i>line</i> two') == 'line one\nline two'


def test_kses_post_keeps_safe_html():
    body = '<p>Hello <strong>{full_name}</strong></p><a href="https://example.com">link</a>'
    assert kses_post(body) == body


def test_kses_post_removes_unsafe_html():
    cleaned = kses_post('<p onclick="steal()">Hi</p><script>alert(1)</script><a href="javascript:x()">x</a>')

    assert 'onclick' not in cleaned
    assert 'script' not in cleaned
    assert 'alert' not in cleaned
    assert 'javascript' not in cleaned
    assert cleaned.startswith('<p>Hi</p>')


def test_kses_post_keeps_newlines():
    assert kses_post('Dear {full_name},\n\nWelcome') == 'Dear {full_name},\n\nWelcome'


def test_sanitize_email():
    assert sanitize_email(' hr@example.com ') == 'hr@example.com'
    assert sanitize_email('') == ''
    assert sanitize_email('not-an-email') is None
