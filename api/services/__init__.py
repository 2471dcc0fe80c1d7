"""
API presentation services.
"""
from .document import DEFAULT_INVOICE_HTML_TEMPLATE, render_invoice_html

__all__ = [
    "render_invoice_html",
    "DEFAULT_INVOICE_HTML_TEMPLATE",
]
