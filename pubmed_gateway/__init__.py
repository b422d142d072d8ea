"""
PubMed Gateway Package
Lightweight asynchronous client for the NCBI E-utilities API: build query
URLs, send them with aiohttp and parse the responses.
"""

from .core.gateway import Gateway, GatewayConfig, GatewayResponse, Method, ResponseFormat, create_gateway, normalize_ids
from .core.gateways import pubmed_search, pubmed_summary, pubmed_record, pubmed_links
from .core.documents import Document, create_parser
from .models.paper import Paper
from .utils.config import GatewaySettings, get_settings
from .utils.errors import GatewayError, NetworkError, ResponseStatusError, DocumentError

__version__ = "1.0.0"

__all__ = [
    'Gateway',
    'GatewayConfig',
    'GatewayResponse',
    'Method',
    'ResponseFormat',
    'create_gateway',
    'normalize_ids',
    'pubmed_search',
    'pubmed_summary',
    'pubmed_record',
    'pubmed_links',
    'Document',
    'create_parser',
    'Paper',
    'GatewaySettings',
    'get_settings',
    'GatewayError',
    'NetworkError',
    'ResponseStatusError',
    'DocumentError',
]
