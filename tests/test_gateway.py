"""
Tests for the Gateway request builder.

Covers:
- Parameter merging and id normalisation
- URL construction and encoding
- Test mode, transport failures and non-2xx responses
- get() dispatch to the document parsers
"""

import asyncio
import json
from unittest.mock import patch

import aiohttp
import pytest

from pubmed_gateway import (
    Gateway,
    GatewayError,
    GatewayResponse,
    GatewaySettings,
    Method,
    NetworkError,
    ResponseFormat,
    ResponseStatusError,
    create_gateway,
    normalize_ids,
)
from pubmed_gateway.core.documents import SearchDocument

BASE = "http://eutils.ncbi.nlm.nih.gov/entrez/eutils/"

SEARCH_BODY = json.dumps({
    "header": {"type": "esearch", "version": "0.3"},
    "esearchresult": {"count": "2", "retmax": "2", "retstart": "0", "idlist": ["111", "222"]},
})


class TestCreateGateway:
    """Tests for the gateway factory."""

    def test_defaults(self):
        """Should default to a JSON esearch outside test mode."""
        gateway = create_gateway()

        assert gateway.method is Method.SEARCH
        assert gateway.config.response_format is ResponseFormat.JSON
        assert gateway.test is False
        assert gateway.params == {"retmode": "json"}

    def test_retmode_mirrors_response_format(self):
        """Should always store the response format as retmode."""
        gateway = create_gateway(method="efetch", response_format="xml", params={"retmode": "json"})

        assert gateway.params["retmode"] == "xml"

    def test_short_method_names(self):
        """Should accept 'summary' as well as 'esummary'."""
        assert create_gateway(method="summary").method is Method.SUMMARY
        assert create_gateway(method="esummary").method is Method.SUMMARY
        assert create_gateway(method=Method.INFO).method is Method.INFO

    def test_unknown_method(self):
        """Should reject methods E-utilities does not have."""
        with pytest.raises(GatewayError):
            create_gateway(method="epost-it")

    def test_unknown_response_format(self):
        with pytest.raises(GatewayError):
            create_gateway(response_format="yaml")

    def test_instances_are_independent(self):
        """Should copy the caller's params instead of sharing them."""
        shared = {"db": "pubmed"}
        first = create_gateway(params=shared)
        second = create_gateway(params=shared)

        first.add_params({"term": "asthma"})

        assert "term" not in second.params
        assert shared == {"db": "pubmed"}

    def test_test_mode_from_settings(self):
        """Should take test mode from settings when not given explicitly."""
        settings = GatewaySettings(test_mode=True)

        assert create_gateway(settings=settings).test is True
        assert create_gateway(settings=settings, test=False).test is False


class TestParams:
    """Tests for add_params and add_ids."""

    def test_add_params_returns_mapping(self):
        gateway = create_gateway(params={"db": "pubmed"})

        result = gateway.add_params({"term": "cancer"})

        assert result == {"db": "pubmed", "retmode": "json", "term": "cancer"}

    def test_later_value_wins(self):
        """Should keep the last value written for a key."""
        gateway = create_gateway()

        gateway.add_params({"term": "first", "retmax": 5})
        gateway.add_params({"term": "second"})

        assert gateway.params["term"] == "second"
        assert gateway.params["retmax"] == 5

    def test_add_ids_sequence_and_string_match(self):
        """Should produce the same id value for a list and a joined string."""
        from_list = create_gateway()
        from_string = create_gateway()

        from_list.add_ids([1, 2, 3])
        from_string.add_ids("1,2,3")

        assert from_list.params["id"] == "1,2,3"
        assert from_string.params["id"] == "1,2,3"

    def test_add_ids_scalar(self):
        gateway = create_gateway()

        assert gateway.add_ids(789)["id"] == "789"

    def test_normalize_ids_tuple(self):
        assert normalize_ids(("10", 20)) == "10,20"

    def test_retmode_param_updates_response_format(self):
        """Should keep response_format in step with a retmode set later."""
        gateway = create_gateway()

        gateway.add_params({"retmode": "xml"})

        assert gateway.config.response_format is ResponseFormat.XML
        assert gateway.config.response_format.value == gateway.params["retmode"]

    def test_unlisted_retmode_is_mirrored_verbatim(self):
        gateway = create_gateway(method="efetch")

        gateway.add_params({"retmode": "asn.1"})

        assert gateway.config.response_format == "asn.1"
        assert "retmode=asn.1" in gateway.build_url()

    def test_normalize_ids_scalars(self):
        """Should treat anything that is not a sequence as a single id."""
        assert normalize_ids(12.0) == "12"
        assert normalize_ids(b"12") == "12"
        assert normalize_ids([b"1", 2]) == "1,2"
        assert normalize_ids([1, 2]) == "1,2"

    def test_no_changes_after_send(self):
        """Should refuse new parameters once the request has been sent."""
        gateway = create_gateway(test=True)
        asyncio.run(gateway.send())

        with pytest.raises(GatewayError):
            gateway.add_params({"term": "late"})
        with pytest.raises(GatewayError):
            gateway.add_ids([1])


class TestBuildUrl:
    """Tests for URL construction."""

    def test_base_path_per_method(self):
        for method in Method:
            gateway = create_gateway(method=method)
            assert gateway.build_url().startswith(f"{BASE}{method.value}.fcgi?")

    def test_insertion_order_and_no_trailing_separator(self):
        gateway = create_gateway(params={"db": "pubmed", "term": "cancer"})
        gateway.add_params({"retstart": 0})

        url = gateway.build_url()

        assert url == f"{BASE}esearch.fcgi?db=pubmed&term=cancer&retmode=json&retstart=0"
        assert not url.endswith("&")

    def test_no_trailing_separator_with_many_params(self):
        gateway = create_gateway()
        for index in range(10):
            gateway.add_params({f"key{index}": index})

        assert not gateway.build_url().endswith("&")

    def test_spaces_and_brackets_are_encoded(self):
        """Should percent-encode like a browser encodeURI call."""
        gateway = create_gateway(params={"term": "breast cancer[MeSH]"})

        url = gateway.build_url()

        assert "term=breast%20cancer%5BMeSH%5D" in url

    def test_reserved_characters_kept(self):
        gateway = create_gateway(params={"term": "a+b,c/d"})

        assert "term=a+b,c/d" in gateway.build_url()

    def test_non_ascii_encoded(self):
        gateway = create_gateway(params={"term": "café"})

        assert "term=caf%C3%A9" in gateway.build_url()

    def test_values_passed_through_unchecked(self):
        """Should not validate offsets; they reach the URL verbatim."""
        gateway = create_gateway(params={"retstart": "abc", "retmax": -5})

        url = gateway.build_url()

        assert "retstart=abc" in url
        assert "retmax=-5" in url

    def test_booleans_lowercased(self):
        gateway = create_gateway(params={"usehistory": True, "sort": False})

        assert "usehistory=true&sort=false" in gateway.build_url()

    def test_integral_floats_drop_fraction(self):
        gateway = create_gateway(params={"retmax": 20.0, "ratio": 0.5})

        assert "retmax=20&ratio=0.5" in gateway.build_url()

    def test_custom_base_url(self):
        settings = GatewaySettings(base_url="https://mirror.example.org/eutils/")

        gateway = create_gateway(method="einfo", settings=settings)

        assert gateway.build_url() == "https://mirror.example.org/eutils/einfo.fcgi?retmode=json"


class TestSend:
    """Tests for send()."""

    def test_test_mode_skips_network(self):
        """Should describe the call without opening a session."""
        gateway = create_gateway(params={"term": "cancer"}, test=True)
        expected_url = gateway.build_url()

        with patch("pubmed_gateway.core.gateway.aiohttp.ClientSession") as session_class:
            result = asyncio.run(gateway.send())

        session_class.assert_not_called()
        assert result == "Test call to NCBI eUtils: " + expected_url

    def test_returns_response(self, fake_session):
        session = fake_session(status=200, body=SEARCH_BODY)
        gateway = create_gateway(params={"term": "cancer"})

        response = asyncio.run(gateway.send(session=session))

        assert isinstance(response, GatewayResponse)
        assert response.status == 200
        assert response.body == SEARCH_BODY
        assert response.url == gateway.build_url()
        assert session.requested == [gateway.build_url()]

    def test_test_url_matches_real_url(self, fake_session):
        """Should request exactly the URL test mode reports."""
        params = {"db": "pubmed", "term": "heart failure"}
        test_result = asyncio.run(create_gateway(params=params, test=True).send())
        session = fake_session(body=SEARCH_BODY)

        asyncio.run(create_gateway(params=params).send(session=session))

        assert test_result == "Test call to NCBI eUtils: " + session.requested[0]

    def test_opens_own_session(self, fake_session):
        """Should open and close a session with the client headers when none is given."""
        session = fake_session(body=SEARCH_BODY)
        settings = GatewaySettings(email="someone@example.org")
        gateway = create_gateway(settings=settings)

        with patch("pubmed_gateway.core.gateway.aiohttp.ClientSession", return_value=session) as session_class:
            response = asyncio.run(gateway.send())

        session_class.assert_called_once_with(headers={"User-Agent": "pubmed_gateway/1.0 (someone@example.org)"})
        assert session.closed is True
        assert response.body == SEARCH_BODY

    def test_transport_failure_raises_network_error(self, fake_session):
        error = aiohttp.ClientConnectionError("connection refused")
        session = fake_session(error=error)
        gateway = create_gateway()

        with pytest.raises(NetworkError) as excinfo:
            asyncio.run(gateway.send(session=session))

        assert excinfo.value.__cause__ is error
        assert excinfo.value.url == gateway.build_url()

    def test_timeout_raises_network_error(self, fake_session):
        session = fake_session(error=asyncio.TimeoutError())

        with pytest.raises(NetworkError):
            asyncio.run(create_gateway().send(session=session))

    def test_non_2xx_raises_status_error(self, fake_session):
        session = fake_session(status=500, body="Internal Server Error")
        gateway = create_gateway()

        with pytest.raises(ResponseStatusError) as excinfo:
            asyncio.run(gateway.send(session=session))

        assert excinfo.value.status == 500
        assert excinfo.value.body == "Internal Server Error"
        assert len(session.requested) == 1


class TestGet:
    """Tests for get()."""

    def test_handler_receives_parser(self, fake_session):
        session = fake_session(body=SEARCH_BODY)
        gateway = create_gateway()

        result = asyncio.run(gateway.get(lambda document: (type(document), document.ids()), session=session))

        assert result == (SearchDocument, ["111", "222"])

    def test_async_handler_is_awaited(self, fake_session):
        session = fake_session(body=SEARCH_BODY)

        async def handler(document):
            return document.count()

        assert asyncio.run(create_gateway().get(handler, session=session)) == 2

    def test_failure_skips_handler(self, fake_session):
        session = fake_session(error=aiohttp.ClientConnectionError("dns failure"))
        calls = []

        with pytest.raises(NetworkError):
            asyncio.run(create_gateway().get(calls.append, session=session))

        assert calls == []

    def test_test_mode_passes_description(self):
        gateway = create_gateway(test=True)

        result = asyncio.run(gateway.get(lambda document: document))

        assert result == "Test call to NCBI eUtils: " + gateway.build_url()

    def test_repr(self):
        gateway = create_gateway(params={"db": "pubmed"})

        assert isinstance(gateway, Gateway)
        assert "esearch" in repr(gateway)
