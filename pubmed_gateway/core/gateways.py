"""
Preset gateways for the common PubMed queries.
"""

from typing import Any, Optional, Union

from .gateway import Gateway, Ids, Method, ResponseFormat, Scalar, create_gateway
from ..utils.config import GatewaySettings

PUBMED_DB = "pubmed"


def _as_number(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    for convert in (int, float):
        try:
            return convert(text)
        except ValueError:
            continue
    return None


def result_count(start: Any, end: Any) -> Union[int, float, str]:
    """
    Number of results between start and end

    Numeric strings count as numbers. Anything else gives 'NaN', which
    NCBI rejects at request time.
    """
    start_value, end_value = _as_number(start), _as_number(end)
    if start_value is None or end_value is None:
        return 'NaN'
    return end_value - start_value


def pubmed_search(
    query: str,
    start: Any,
    end: Any,
    test: Optional[bool] = None,
    settings: Optional[GatewaySettings] = None,
) -> Gateway:
    """
    Gateway for a PubMed search returning results start..end

    The result count is end - start and is not checked: a negative count,
    or 'NaN' for non-numeric bounds, goes to NCBI as is.
    """
    return create_gateway(
        method=Method.SEARCH,
        params={
            'db': PUBMED_DB,
            'term': query,
            'retstart': start,
            'retmax': result_count(start, end),
        },
        test=test,
        settings=settings,
    )


def pubmed_summary(ids: Ids, test: Optional[bool] = None, settings: Optional[GatewaySettings] = None) -> Gateway:
    """Gateway for the document summaries of one or more PMIDs"""
    gateway = create_gateway(
        method=Method.SUMMARY,
        params={'db': PUBMED_DB},
        test=test,
        settings=settings,
    )
    gateway.add_ids(ids)
    return gateway


def pubmed_record(ids: Ids, test: Optional[bool] = None, settings: Optional[GatewaySettings] = None) -> Gateway:
    """
    Gateway for full PubMed records

    efetch only returns PubMed records as XML (or flat text), so the
    response format is always XML.
    """
    gateway = create_gateway(
        method=Method.FETCH,
        response_format=ResponseFormat.XML,
        params={'db': PUBMED_DB},
        test=test,
        settings=settings,
    )
    gateway.add_ids(ids)
    return gateway


def pubmed_links(id: Scalar, test: Optional[bool] = None, settings: Optional[GatewaySettings] = None) -> Gateway:
    """
    Gateway for the elink neighbour set of a single PMID

    The neighbor command returns similar articles, articles citing this
    one and articles it cites.
    """
    gateway = create_gateway(
        method=Method.LINK,
        params={
            'db': PUBMED_DB,
            'dbfrom': PUBMED_DB,
            'cmd': 'neighbor',
        },
        test=test,
        settings=settings,
    )
    gateway.add_ids(id)
    return gateway
