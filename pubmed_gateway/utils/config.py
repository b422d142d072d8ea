import os
import logging
from dataclasses import dataclass
from typing import Optional, Dict

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://eutils.ncbi.nlm.nih.gov/entrez/eutils/"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GatewaySettings:
    """Process-wide defaults used when a gateway is created"""

    base_url: str = DEFAULT_BASE_URL
    tool: str = "pubmed_gateway"
    email: Optional[str] = None
    test_mode: bool = False

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        """
        Build settings from environment variables

        Recognised variables:
            PUBMED_GATEWAY_BASE_URL: E-utilities root (must end with '/')
            PUBMED_GATEWAY_TOOL: tool name sent in the User-Agent header
            PUBMED_EMAIL: contact email sent in the User-Agent header
            PUBMED_GATEWAY_TEST: enable test mode for every new gateway
        """
        base_url = os.getenv("PUBMED_GATEWAY_BASE_URL", DEFAULT_BASE_URL)
        if not base_url.endswith("/"):
            base_url += "/"

        return cls(
            base_url=base_url,
            tool=os.getenv("PUBMED_GATEWAY_TOOL", "pubmed_gateway"),
            email=os.getenv("PUBMED_EMAIL"),
            test_mode=os.getenv("PUBMED_GATEWAY_TEST", "").strip().lower() in _TRUTHY,
        )

    @property
    def headers(self) -> Dict[str, str]:
        """HTTP headers identifying this client to NCBI"""
        if self.email:
            return {'User-Agent': f'{self.tool}/1.0 ({self.email})'}
        return {'User-Agent': f'{self.tool}/1.0'}


_settings: Optional[GatewaySettings] = None


def get_settings() -> GatewaySettings:
    """Return the cached settings, reading the environment on first use"""
    global _settings
    if _settings is None:
        _settings = GatewaySettings.from_env()
        logger.debug(f"Loaded gateway settings: base_url={_settings.base_url}, test_mode={_settings.test_mode}")
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment"""
    global _settings
    _settings = None
