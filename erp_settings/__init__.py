"""
ERP admin settings panel: module settings, email templates and SMTP test over AJAX
"""

__version__ = "1.9.0"
