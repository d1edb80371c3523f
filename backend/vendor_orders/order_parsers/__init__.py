"""
Order Parsers - Vendor-Specific Order Document Parsers

This package contains one parser per vendor document format:
- europa.py: Europa customer receipts (table layout)
- marchon.py: Marchon / Altair order confirmations
- receipts.py: Modern Optical, L'amy America and Kenmark receipts (shared template)
- ideal_optics.py: I-Deal Optics web orders
- safilo.py: Safilo order PDFs (text extracted from the attachment)

Usage:
    from vendor_orders.order_parsers import get_vendor_registration

    registration = get_vendor_registration('europaeye.com')
    if registration:
        order = registration.parser(html_body, text_body)
"""

# Import registry and utilities from base
from .base import (
    VENDOR_PARSERS,
    VendorRegistration,
    extract_domain,
    get_vendor_parser,
    get_vendor_registration,
    guess_vendor_name,
)

# Import all vendor modules to trigger @register_vendor decorators
from . import europa
from . import marchon
from . import receipts
from . import ideal_optics
from . import safilo

__all__ = [
    'VENDOR_PARSERS',
    'VendorRegistration',
    'extract_domain',
    'get_vendor_parser',
    'get_vendor_registration',
    'guess_vendor_name',
]
