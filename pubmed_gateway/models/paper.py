from dataclasses import dataclass, field
from typing import Optional, List
from datetime import datetime


@dataclass
class Paper:
    """A PubMed article as described by an esummary or efetch document"""

    pmid: str
    doi: Optional[str] = None

    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    journal: Optional[str] = None
    pub_date: Optional[datetime] = None
    abstract: Optional[str] = None

    def __post_init__(self):
        # ids arrive as ints from some JSON payloads
        self.pmid = str(self.pmid).strip()

    def __repr__(self):
        """Clean representation without verbose fields"""
        return f"Paper(pmid='{self.pmid}', title={self.title!r})"

    @property
    def year(self) -> Optional[int]:
        """Extract year from publication date"""
        if self.pub_date:
            return self.pub_date.year
        return None

    @property
    def has_abstract(self) -> bool:
        return bool(self.abstract and self.abstract.strip())
