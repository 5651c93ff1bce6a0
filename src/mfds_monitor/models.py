"""
Data models for MFDS Regulatory Monitor
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, validator


class UpdateCategory(str, Enum):
    """Announcement categories published on the MFDS laws/data board."""
    LAW_NOTICE = "법령/고시"
    LEGISLATIVE_NOTICE = "입법/행정예고"


# Accepted input renderings; "%Y. %m. %d." is the ko-KR locale form.
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%Y/%m/%d",
    "%Y. %m. %d.",
    "%Y. %m. %d",
    "%Y.%m.%d.",
]


def parse_record_date(value: str) -> Optional[dt.date]:
    """Parse a record date, returning None when it is not a calendar date."""
    text = (value or "").strip()
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return dt.datetime.fromisoformat(text).date()
    except ValueError:
        return None


class UpdateRecord(BaseModel):
    """One regulatory announcement."""
    title: str = Field(..., description="Announcement title")
    date: str = Field(..., description="Publication date, YYYY-MM-DD when parseable")
    category: UpdateCategory = Field(..., description="Announcement category")
    url: str = Field(..., description="Absolute link to the source document")
    summary: str = Field(..., description="One or two sentence summary")

    class Config:
        extra = "ignore"

    @validator("title")
    def validate_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @validator("date")
    def normalize_date(cls, v):
        """Render parseable dates as ISO; keep anything else verbatim."""
        parsed = parse_record_date(v)
        return parsed.isoformat() if parsed else v.strip()

    @validator("url")
    def validate_url(cls, v):
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ["http", "https"] or not parsed.netloc:
            raise ValueError("url must be an absolute http(s) URL")
        return v

    @validator("summary")
    def strip_summary(cls, v):
        return v.strip()

    @property
    def published_on(self) -> Optional[dt.date]:
        return parse_record_date(self.date)


REQUIRED_FIELDS = ["title", "date", "category", "url", "summary"]

# Vendor-neutral output schema handed to backends that support constrained generation.
UPDATE_LIST_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "date": {"type": "string", "description": "YYYY-MM-DD"},
            "category": {"type": "string", "enum": [c.value for c in UpdateCategory]},
            "url": {"type": "string"},
            "summary": {"type": "string"},
        },
        "required": REQUIRED_FIELDS,
    },
}


def sort_records(records: Iterable[UpdateRecord]) -> List[UpdateRecord]:
    """
    Order records newest first.

    Records whose date cannot be parsed go after all dated records and keep
    their original relative order. Equal dates keep their original order.
    """
    records = list(records)
    dated = [r for r in records if r.published_on is not None]
    undated = [r for r in records if r.published_on is None]
    dated.sort(key=lambda r: r.published_on, reverse=True)
    return dated + undated


def filter_by_category(records: Iterable[UpdateRecord],
                       category: Optional[UpdateCategory]) -> List[UpdateRecord]:
    """Keep only records of the given category (all records when None)."""
    if category is None:
        return list(records)
    return [r for r in records if r.category == category]
