"""Eyewear vendor order parsing and enrichment.

This package contains:
- Vendor detection and document routing (HTML emails, PDF attachments)
- Vendor-specific order parsers built on a structural table locator
- Vendor catalog enrichment clients (search APIs and product pages)
- Variant cross-referencing with confidence scoring
- Batch orchestration with run statistics
"""
