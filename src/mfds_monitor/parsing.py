"""
Response parsing strategies.

The backend's text is untrusted. FreeTextParser digs a JSON array out of
prose or markdown; StructuredParser expects the text to already be the
schema-conforming array. Both validate every element against UpdateRecord
and drop elements that fail.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from .errors import ContractViolationError
from .models import REQUIRED_FIELDS, UpdateRecord

logger = logging.getLogger(__name__)


def _bracket_spans(text: str) -> List[Tuple[int, int]]:
    """
    Return (start, end) of every bracket-matched [...] span, outermost first.

    One left-to-right pass with a stack of opener positions. Brackets inside
    JSON string literals are ignored; unbalanced openers never form a span.
    """
    spans = []
    openers: List[int] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                # JSON strings never hold a raw newline, so a stray quote in prose ends here.
                in_string = False
            continue
        if ch == "[":
            openers.append(i)
        elif ch == "]" and openers:
            spans.append((openers.pop(), i))
        elif ch == '"' and openers:
            in_string = True
    spans.sort()
    return spans


def extract_json_array(text: str) -> Optional[List[Any]]:
    """
    Return the first bracket-matched JSON array found in free text.

    Candidates are tried outermost first. One that does not decode (a
    markdown label such as "[참고]", or prose wrapped around the real array)
    is skipped and the spans nested inside it are tried next. A non-empty
    array of objects wins over an earlier array of scalars or an empty array
    ("[2] results: [...]"). Returns None when no candidate decodes.
    """
    fallback = None
    text = text or ""
    for start, end in _bracket_spans(text):
        try:
            value = json.loads(text[start:end + 1])
        except (json.JSONDecodeError, RecursionError):
            continue
        if not isinstance(value, list):
            continue
        if value and all(isinstance(item, dict) for item in value):
            return value
        if fallback is None:
            fallback = value
    return fallback


def validate_items(items: List[Any]) -> List[UpdateRecord]:
    """Validate decoded elements, dropping any that do not form an UpdateRecord."""
    records = []
    for index, item in enumerate(items):
        try:
            records.append(UpdateRecord.model_validate(item))
        except ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'item'}: {err['msg']}" for err in e.errors()
            )
            logger.warning("Dropping invalid update record #%s: %s", index, reasons)
    return records


class ResponseParser(ABC):
    """Turns raw backend text into validated records."""

    structured = False

    @abstractmethod
    def parse(self, raw_text: str) -> List[UpdateRecord]:
        """Parse backend output."""


class FreeTextParser(ResponseParser):
    """Extracts the JSON array from prose or fenced markdown."""

    structured = False

    def parse(self, raw_text: str) -> List[UpdateRecord]:
        items = extract_json_array(raw_text)
        if items is None:
            logger.info("No JSON array found in backend response (%s chars)", len(raw_text or ""))
            return []
        return validate_items(items)


class StructuredParser(ResponseParser):
    """Parses schema-constrained output; structural defects are contract violations."""

    structured = True

    def parse(self, raw_text: str) -> List[UpdateRecord]:
        try:
            items = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise ContractViolationError(
                "Structured response is not valid JSON",
                detail=f"{e.msg} at position {e.pos}: {raw_text[:200]!r}",
            )

        if not isinstance(items, list):
            raise ContractViolationError(
                "Structured response is not a JSON array",
                detail=f"got {type(items).__name__}",
            )

        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise ContractViolationError(
                    f"Structured response element #{index} is not an object",
                    detail=f"got {type(item).__name__}",
                )
            missing = [field for field in REQUIRED_FIELDS if field not in item]
            if missing:
                raise ContractViolationError(
                    f"Structured response element #{index} is missing required fields",
                    detail=", ".join(missing),
                )

        return validate_items(items)


def select_parser(structured_requested: bool, backend) -> ResponseParser:
    """Pick the parsing strategy for a backend."""
    if structured_requested:
        if getattr(backend, "supports_structured_output", False):
            return StructuredParser()
        logger.warning(
            "Structured output requested but provider '%s' model '%s' does not support it; "
            "using free-text extraction",
            getattr(backend, "provider", "unknown"), getattr(backend, "model", "unknown"),
        )
    return FreeTextParser()
