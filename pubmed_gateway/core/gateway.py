"""
Gateway: a single-use request builder for the NCBI E-utilities API.

API documentation: https://www.ncbi.nlm.nih.gov/books/NBK25500/
"""

import asyncio
import inspect
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union
from urllib.parse import quote

import aiohttp

from .documents import create_parser
from ..utils.config import GatewaySettings, get_settings
from ..utils.errors import GatewayError, NetworkError, ResponseStatusError

logger = logging.getLogger(__name__)

TEST_CALL_PREFIX = "Test call to NCBI eUtils: "

# Characters encodeURI leaves alone on top of quote()'s always-safe set
_URI_SAFE = ";,/?:@&=+$!*'()#"

Scalar = Union[str, int]
Ids = Union[Scalar, Sequence[Scalar]]
ParamValue = Union[str, int, float]


class Method(str, Enum):
    """E-utilities endpoints"""

    SEARCH = "esearch"
    SUMMARY = "esummary"
    FETCH = "efetch"
    INFO = "einfo"
    LINK = "elink"

    @classmethod
    def coerce(cls, value: Union["Method", str]) -> "Method":
        """Accept a Method, an endpoint name ('esearch') or a short name ('search')"""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        for method in cls:
            if name in (method.value, method.value[1:]):
                return method
        raise GatewayError(f"Unknown E-utilities method: {value!r}")


class ResponseFormat(str, Enum):
    """Values accepted by the retmode parameter"""

    JSON = "json"
    XML = "xml"
    TEXT = "text"

    @classmethod
    def coerce(cls, value: Union["ResponseFormat", str]) -> "ResponseFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise GatewayError(f"Unknown response format: {value!r}") from None


def _mirror_format(retmode: Any) -> Union[ResponseFormat, str]:
    """Response format matching a retmode value; unlisted modes such as 'asn.1' stay as given"""
    try:
        return ResponseFormat.coerce(retmode)
    except GatewayError:
        return format_value(retmode)


@dataclass
class GatewayConfig:
    """Everything needed to build and send one E-utilities request"""

    method: Method = Method.SEARCH
    response_format: Union[ResponseFormat, str] = ResponseFormat.JSON
    params: Dict[str, ParamValue] = field(default_factory=dict)
    test: bool = False


@dataclass
class GatewayResponse:
    """Status and body of a completed request"""

    url: str
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def normalize_ids(ids: Ids) -> str:
    """
    Turn a single id or a sequence of ids into the comma-joined form NCBI expects

    Args:
        ids: e.g. 123, "123", [123, 456] or "123,456"

    Returns:
        Comma-joined id string
    """
    if isinstance(ids, Sequence) and not isinstance(ids, (str, bytes, bytearray)):
        return ",".join(format_value(item) for item in ids)
    return format_value(ids)


def format_value(value: Any) -> str:
    """Render a parameter value the way it appears in the query string"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return value.decode()
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
    return str(value)


class Gateway:
    """
    Wrapper around one E-utilities call.

    Parameters can be added any number of times before the request is sent.
    Once send() has been called the gateway is spent and refuses further
    changes. In test mode no network call is ever made: send() returns a
    string describing the call instead.
    """

    def __init__(self, config: GatewayConfig, settings: Optional[GatewaySettings] = None):
        self.config = config
        self.settings = settings or get_settings()
        self._sent = False

    def __repr__(self):
        return f"Gateway(method='{self.method.value}', params={self.params!r}, test={self.test})"

    @property
    def method(self) -> Method:
        return self.config.method

    @property
    def params(self) -> Dict[str, ParamValue]:
        return self.config.params

    @property
    def test(self) -> bool:
        return self.config.test

    @property
    def base_url(self) -> str:
        """Endpoint URL for this gateway's method, up to and including '?'"""
        return f"{self.settings.base_url}{self.method.value}.fcgi?"

    def add_params(self, params: Dict[str, ParamValue]) -> Dict[str, ParamValue]:
        """
        Merge URL parameters into the gateway, later values win

        Args:
            params: new URL parameters indexed by name

        Returns:
            The full parameter mapping after the merge
        """
        if self._sent:
            raise GatewayError("Gateway has already been sent; create a new one")
        self.config.params.update(params)
        if 'retmode' in params:
            self.config.response_format = _mirror_format(params['retmode'])
        return self.config.params

    def add_ids(self, ids: Ids) -> Dict[str, ParamValue]:
        """Set the 'id' parameter from a single id or a sequence of ids"""
        return self.add_params({'id': normalize_ids(ids)})

    def build_url(self) -> str:
        """
        Create the URL for this call

        Parameters appear in insertion order. The result is percent-encoded
        as a whole URI, so reserved characters such as '&' and '=' inside
        values are kept as they are.
        """
        query = "&".join(f"{key}={format_value(value)}" for key, value in self.config.params.items())
        return quote(self.base_url + query, safe=_URI_SAFE)

    async def send(self, session: Optional[aiohttp.ClientSession] = None) -> Union[GatewayResponse, str]:
        """
        Send off the request

        Args:
            session: optional aiohttp session to reuse; one is opened and
                closed for this call when omitted

        Returns:
            GatewayResponse, or the descriptive test string in test mode

        Raises:
            NetworkError: the HTTP exchange failed
            ResponseStatusError: NCBI answered with a non-2xx status
        """
        url = self.build_url()
        self._sent = True

        if self.test:
            logger.debug(f"Test mode, skipping request to {url}")
            return TEST_CALL_PREFIX + url

        logger.debug(f"GET {url}")
        try:
            if session is not None:
                response = await self._fetch(session, url)
            else:
                async with aiohttp.ClientSession(headers=self.settings.headers) as own_session:
                    response = await self._fetch(own_session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"NCBI request failed for {self.method.value}: {e!r}")
            raise NetworkError(f"Request to {url} failed: {e!r}", url=url) from e

        if not response.ok:
            logger.warning(f"NCBI {self.method.value} returned HTTP {response.status}")
            raise ResponseStatusError(response.status, url, response.body)

        logger.info(f"NCBI {self.method.value} returned {len(response.body)} characters")
        return response

    @staticmethod
    async def _fetch(session: aiohttp.ClientSession, url: str) -> GatewayResponse:
        async with session.get(url) as response:
            body = await response.text()
            return GatewayResponse(url=url, status=response.status, body=body)

    async def get(
        self,
        handler: Callable[[Any], Union[Any, Awaitable[Any]]],
        session: Optional[aiohttp.ClientSession] = None,
    ) -> Any:
        """
        Send off the request, build a document parser and hand it to handler

        Args:
            handler: called with the parsed document (count, ids, summaries,
                abstract). May be a coroutine function. In test mode it
                receives the descriptive test string instead.
            session: optional aiohttp session, see send()

        Returns:
            Whatever handler returns
        """
        response = await self.send(session=session)
        if isinstance(response, str):
            document = response
        else:
            document = create_parser(response.body, self.method.value)

        result = handler(document)
        if inspect.isawaitable(result):
            result = await result
        return result


def create_gateway(
    method: Union[Method, str] = Method.SEARCH,
    response_format: Union[ResponseFormat, str] = ResponseFormat.JSON,
    params: Optional[Dict[str, ParamValue]] = None,
    test: Optional[bool] = None,
    settings: Optional[GatewaySettings] = None,
) -> Gateway:
    """
    Create a fresh, independent Gateway

    Args:
        method: E-utilities endpoint, e.g. 'esearch' or Method.FETCH
        response_format: 'json', 'xml' or 'text'; mirrored into retmode
        params: other URL parameters, e.g. 'term', 'retstart', 'retmax'
        test: enable test mode (defaults to settings.test_mode)
        settings: override the process-wide settings
    """
    settings = settings or get_settings()
    response_format = ResponseFormat.coerce(response_format)
    config = GatewayConfig(
        method=Method.coerce(method),
        response_format=response_format,
        params=dict(params or {}),
        test=settings.test_mode if test is None else test,
    )
    gateway = Gateway(config, settings)
    gateway.add_params({'retmode': response_format.value})
    return gateway
