from .gateway import Gateway, GatewayConfig, GatewayResponse, Method, ResponseFormat, create_gateway, normalize_ids
from .gateways import pubmed_search, pubmed_summary, pubmed_record, pubmed_links
from .documents import Document, create_parser

__all__ = [
    'Gateway', 'GatewayConfig', 'GatewayResponse', 'Method', 'ResponseFormat',
    'create_gateway', 'normalize_ids',
    'pubmed_search', 'pubmed_summary', 'pubmed_record', 'pubmed_links',
    'Document', 'create_parser',
]
