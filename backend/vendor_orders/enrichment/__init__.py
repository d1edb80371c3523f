"""
Enrichment Clients - Vendor Catalog and Product Page Lookups

One client per vendor with a reachable catalog:
- safilo.py: Safilo (model search) and L'amy America (UPC search), same API
- marchon.py: Marchon style lookup
- europa.py: Europa stock number pages with alternate-bridge fallback
- modern_optical.py: Modern Optical product pages
- ideal_optics.py: Ideal Optics autocomplete search, collection page fallback

Kenmark has no catalog endpoint; its UPCs come from the order email.

Usage:
    from vendor_orders.enrichment import get_enrichment_client

    client = get_enrichment_client('marchon')
    if client:
        outcome = client.enrich(line_item)
"""

from typing import Optional

import requests

from config import PipelineConfig
from vendor_orders.cache import EnrichmentCache

from .base_client import BaseEnrichmentClient
from .europa import EuropaClient
from .ideal_optics import IdealOpticsClient
from .marchon import MarchonClient
from .modern_optical import ModernOpticalClient
from .safilo import LamyAmericaClient, SafiloClient

ENRICHMENT_CLIENTS: dict[str, type[BaseEnrichmentClient]] = {
    client.vendor_code: client
    for client in (
        SafiloClient,
        LamyAmericaClient,
        MarchonClient,
        EuropaClient,
        ModernOpticalClient,
        IdealOpticsClient,
    )
}


def get_enrichment_client(
    vendor_code: str,
    config: Optional[PipelineConfig] = None,
    cache: Optional[EnrichmentCache] = None,
    session: Optional[requests.Session] = None,
) -> Optional[BaseEnrichmentClient]:
    """
    Build the enrichment client for a vendor.

    Returns:
        Client instance, or None when the vendor has no catalog to query
    """
    client_class = ENRICHMENT_CLIENTS.get(vendor_code)
    if client_class is None:
        return None
    return client_class(config=config, cache=cache, session=session)


__all__ = [
    'BaseEnrichmentClient',
    'ENRICHMENT_CLIENTS',
    'EuropaClient',
    'IdealOpticsClient',
    'LamyAmericaClient',
    'MarchonClient',
    'ModernOpticalClient',
    'SafiloClient',
    'get_enrichment_client',
]
