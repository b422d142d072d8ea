from typing import Optional


class GatewayError(Exception):
    """Base class for every error raised by pubmed_gateway"""


class NetworkError(GatewayError):
    """The HTTP exchange with E-utilities could not be completed"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ResponseStatusError(GatewayError):
    """E-utilities answered with a non-2xx status"""

    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"NCBI eUtils returned HTTP {status} for {url}")
        self.status = status
        self.url = url
        self.body = body


class DocumentError(GatewayError):
    """A response body could not be parsed, or lacks the requested capability"""
