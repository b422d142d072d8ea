import json
import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from ..models.paper import Paper
from ..utils.errors import DocumentError

logger = logging.getLogger(__name__)

MONTH_NAMES = {
    'Jan': 1, 'Feb': 2, 'Mar': 3, 'Apr': 4,
    'May': 5, 'Jun': 6, 'Jul': 7, 'Aug': 8,
    'Sep': 9, 'Oct': 10, 'Nov': 11, 'Dec': 12
}


def _parse_date(year: Optional[str], month: Optional[str] = None, day: Optional[str] = None) -> Optional[datetime]:
    """Build a datetime from PubMed date parts; month may be a number or a name"""
    try:
        year_value = int(year)
    except (TypeError, ValueError):
        return None

    month_value = 1
    if month:
        try:
            month_value = int(month)
        except ValueError:
            month_value = MONTH_NAMES.get(month[:3].title(), 1)

    day_value = 1
    if day:
        try:
            day_value = int(day)
        except ValueError:
            day_value = 1

    try:
        return datetime(year_value, month_value, day_value)
    except ValueError:
        return datetime(year_value, 1, 1)


def _parse_pubdate_string(value: Optional[str]) -> Optional[datetime]:
    """Parse esummary dates such as '2020 Jan 5', '2019 Dec' or '2018 Spring'"""
    if not value:
        return None
    parts = value.split()
    if len(parts) > 1 and parts[1][:3].title() not in MONTH_NAMES and not parts[1].isdigit():
        parts = parts[:1]
    return _parse_date(*parts[:3])


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None:
        return None
    text = "".join(element.itertext()).strip()
    return text or None


class Document:
    """
    Parsed E-utilities response.

    Subclasses implement the capabilities their method provides; asking a
    document for something its method cannot answer raises DocumentError.
    """

    method = ""

    def __init__(self, body: str):
        self.body = body
        self.format = 'xml' if body.lstrip().startswith('<') else 'json'
        self.data: Any = self._load(body)

    def __repr__(self):
        return f"{type(self).__name__}(format='{self.format}')"

    def _load(self, body: str) -> Any:
        if self.format == 'xml':
            try:
                return ET.fromstring(body.strip())
            except ET.ParseError as e:
                raise DocumentError(f"Malformed XML in {self.method} response: {e}") from e

        try:
            data = json.loads(body)
        except ValueError as e:
            raise DocumentError(f"Malformed JSON in {self.method} response: {e}") from e

        if isinstance(data, dict) and data.get('error'):
            raise DocumentError(f"NCBI {self.method} error: {data['error']}")
        return data

    def _unsupported(self, capability: str) -> DocumentError:
        return DocumentError(f"{self.method} documents do not provide {capability}")

    def count(self) -> int:
        raise self._unsupported('count')

    def ids(self) -> List[str]:
        raise self._unsupported('ids')

    def summaries(self) -> List[Paper]:
        raise self._unsupported('summaries')

    def abstract(self, pmid: Optional[str] = None) -> Optional[str]:
        raise self._unsupported('abstract')


class SearchDocument(Document):
    """esearch result: total hit count and the ids of the requested page"""

    method = "esearch"

    def _result(self) -> Dict[str, Any]:
        result = self.data.get('esearchresult', {})
        if 'ERROR' in result:
            raise DocumentError(f"NCBI esearch error: {result['ERROR']}")
        return result

    def count(self) -> int:
        if self.format == 'xml':
            count = self.data.findtext('Count')
        else:
            count = self._result().get('count')
        return int(count or 0)

    def ids(self) -> List[str]:
        if self.format == 'xml':
            return [elem.text for elem in self.data.findall('IdList/Id') if elem.text]
        return [str(pmid) for pmid in self._result().get('idlist', [])]


class SummaryDocument(Document):
    """esummary result: one summary per requested PMID"""

    method = "esummary"

    def ids(self) -> List[str]:
        if self.format == 'xml':
            return [elem.text for elem in self.data.findall('DocSum/Id') if elem.text]
        return [str(uid) for uid in self.data.get('result', {}).get('uids', [])]

    def summaries(self) -> List[Paper]:
        if self.format == 'xml':
            return [self._parse_docsum(docsum) for docsum in self.data.findall('DocSum')]

        result = self.data.get('result', {})
        papers = []
        for uid in result.get('uids', []):
            record = result.get(str(uid))
            if not record:
                logger.debug(f"esummary result has no record for uid {uid}")
                continue
            papers.append(self._parse_json_record(str(uid), record))
        return papers

    @staticmethod
    def _parse_json_record(uid: str, record: Dict[str, Any]) -> Paper:
        doi = None
        for article_id in record.get('articleids', []):
            if article_id.get('idtype') == 'doi':
                doi = article_id.get('value')
                break

        return Paper(
            pmid=uid,
            title=record.get('title') or None,
            authors=[author['name'] for author in record.get('authors', []) if author.get('name')],
            journal=record.get('fulljournalname') or record.get('source') or None,
            pub_date=_parse_pubdate_string(record.get('pubdate')),
            doi=doi,
        )

    @staticmethod
    def _parse_docsum(docsum: ET.Element) -> Paper:
        items = {item.get('Name'): item for item in docsum.findall('Item')}
        author_list = items.get('AuthorList')
        authors = []
        if author_list is not None:
            authors = [item.text for item in author_list.findall('Item') if item.text]

        return Paper(
            pmid=docsum.findtext('Id', default=''),
            title=_text(items.get('Title')),
            authors=authors,
            journal=_text(items.get('FullJournalName')) or _text(items.get('Source')),
            pub_date=_parse_pubdate_string(_text(items.get('PubDate'))),
            doi=_text(items.get('DOI')),
        )


class RecordDocument(Document):
    """efetch result: full PubmedArticle records (XML only)"""

    method = "efetch"

    def _load(self, body: str) -> Any:
        if self.format != 'xml':
            raise DocumentError("efetch documents must be XML")
        return super()._load(body)

    def ids(self) -> List[str]:
        return [pmid for pmid in (article.findtext('.//PMID') for article in self._articles()) if pmid]

    def papers(self) -> List[Paper]:
        return [self._parse_single_article(article) for article in self._articles()]

    def abstract(self, pmid: Optional[str] = None) -> Optional[str]:
        """
        Abstract of the first article, or of the article with the given PMID

        Returns:
            Abstract text, or None when the article has no abstract

        Raises:
            DocumentError: the document holds no article (with that PMID)
        """
        for article in self._articles():
            if pmid is None or article.findtext('.//PMID') == str(pmid):
                return self._parse_abstract(article)
        raise DocumentError(f"No PubmedArticle{' for PMID ' + str(pmid) if pmid else ''} in efetch document")

    def _articles(self) -> List[ET.Element]:
        if self.data.tag == 'PubmedArticle':
            return [self.data]
        return self.data.findall('PubmedArticle')

    @staticmethod
    def _parse_abstract(article: ET.Element) -> Optional[str]:
        """Join AbstractText sections, prefixing structured sections with their label"""
        abstract_parts = []
        for abstract_elem in article.findall('.//Abstract/AbstractText'):
            text = _text(abstract_elem)
            if not text:
                continue
            label = abstract_elem.get('Label', '')
            if label:
                text = f"{label}: {text}"
            abstract_parts.append(text)

        if not abstract_parts:
            for other_abstract in article.findall('.//OtherAbstract'):
                text = _text(other_abstract)
                if text:
                    abstract_parts.append(f"[{other_abstract.get('Type', 'Other')}] {text}")

        if not abstract_parts:
            return None
        return re.sub(r'\s+', ' ', " ".join(abstract_parts)).strip()

    def _parse_single_article(self, article: ET.Element) -> Paper:
        pmid = article.findtext('.//PMID', default='')
        citation = article.find('.//Article')
        if citation is None:
            logger.warning(f"PubmedArticle {pmid} has no Article element")
            return Paper(pmid=pmid)

        authors = []
        for author in citation.findall('AuthorList/Author'):
            last_name = author.findtext('LastName')
            fore_name = author.findtext('ForeName')
            if last_name and fore_name:
                authors.append(f"{fore_name} {last_name}")
            elif last_name:
                authors.append(last_name)
            elif author.findtext('CollectiveName'):
                authors.append(author.findtext('CollectiveName'))

        doi = None
        for article_id in article.findall('.//ArticleId'):
            if article_id.get('IdType') == 'doi':
                doi = article_id.text
                break

        return Paper(
            pmid=pmid,
            title=_text(citation.find('ArticleTitle')),
            abstract=self._parse_abstract(article),
            authors=authors,
            journal=_text(citation.find('Journal/Title')),
            pub_date=self._parse_publication_date(citation),
            doi=doi,
        )

    @staticmethod
    def _parse_publication_date(citation: ET.Element) -> Optional[datetime]:
        for date_elem in (citation.find('.//PubDate'), citation.find('ArticleDate')):
            if date_elem is None:
                continue
            pub_date = _parse_date(
                date_elem.findtext('Year'),
                date_elem.findtext('Month'),
                date_elem.findtext('Day'),
            )
            if pub_date:
                return pub_date
        return None


class LinkDocument(Document):
    """elink neighbor result for a single PMID"""

    method = "elink"

    SIMILAR_ARTICLES = "pubmed_pubmed"

    def links(self) -> Dict[str, List[str]]:
        """Linked ids keyed by link name, e.g. 'pubmed_pubmed_citedin'"""
        links: Dict[str, List[str]] = {}
        if self.format == 'xml':
            for linkset_db in self.data.findall('LinkSet/LinkSetDb'):
                name = linkset_db.findtext('LinkName', default='')
                links.setdefault(name, []).extend(
                    elem.text for elem in linkset_db.findall('Link/Id') if elem.text
                )
            return links

        for linkset in self.data.get('linksets', []):
            for linkset_db in linkset.get('linksetdbs', []):
                name = linkset_db.get('linkname', '')
                links.setdefault(name, []).extend(str(link) for link in linkset_db.get('links', []))
        return links

    def ids(self) -> List[str]:
        """Ids of similar articles"""
        return self.links().get(self.SIMILAR_ARTICLES, [])


class InfoDocument(Document):
    """einfo result: database list, or statistics for one database"""

    method = "einfo"

    def _dbinfo(self) -> Dict[str, Any]:
        dbinfo = self.data.get('einforesult', {}).get('dbinfo')
        if isinstance(dbinfo, list):
            dbinfo = dbinfo[0] if dbinfo else None
        if not dbinfo:
            raise DocumentError("einfo document has no database statistics; pass a db parameter")
        return dbinfo

    def databases(self) -> List[str]:
        if self.format == 'xml':
            names = [elem.text for elem in self.data.findall('DbList/DbName') if elem.text]
            if not names and self.data.findtext('DbInfo/DbName'):
                names = [self.data.findtext('DbInfo/DbName')]
            return names

        result = self.data.get('einforesult', {})
        if 'dblist' in result:
            return list(result['dblist'])
        return [self._dbinfo().get('dbname')]

    def count(self) -> int:
        """Number of records in the database"""
        if self.format == 'xml':
            count = self.data.findtext('DbInfo/Count')
            if count is None:
                raise DocumentError("einfo document has no database statistics; pass a db parameter")
            return int(count)
        return int(self._dbinfo().get('count', 0))


PARSERS: Dict[str, Type[Document]] = {
    cls.method: cls
    for cls in (SearchDocument, SummaryDocument, RecordDocument, LinkDocument, InfoDocument)
}


def create_parser(body: str, method: str) -> Document:
    """
    Build the document parser for an E-utilities response

    Args:
        body: raw response text
        method: endpoint name, e.g. 'esearch' (short names like 'search' work too)

    Returns:
        Document subclass exposing the capabilities of that method
    """
    name = str(getattr(method, 'value', method)).lower()
    parser_class = PARSERS.get(name) or PARSERS.get(f"e{name}")
    if parser_class is None:
        raise DocumentError(f"No document parser for method {method!r}")
    return parser_class(body)
