"""
Matchers for the department and date tokens embedded in report header cells.

The reporting system has changed its titles over time, so each report keeps
an ordered list of patterns. The first one that matches wins, and every
pattern is tagged with the template revision it was written for.
"""

import re
from dataclasses import dataclass, field

DATE_TOKEN = r"(\d{2}[-/]\d{2}[-/]\d{4})"


@dataclass(frozen=True)
class HeaderPattern:
    name: str
    source_format: str
    regex: str
    _compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", re.compile(self.regex, re.IGNORECASE))

    def match(self, text: str) -> str | None:
        found = self._compiled.search(text or "")
        return found.group(1) if found else None


def first_match(patterns: list[HeaderPattern], text: str) -> tuple[HeaderPattern, str] | None:
    """Returns the first pattern that matches `text` together with its captured token."""
    for pattern in patterns:
        token = pattern.match(text)
        if token is not None:
            return pattern, token
    return None


BALANCE_DEPARTMENT_PATTERNS = [
    HeaderPattern("srst-location", "stock balance location column", r"SRST-([A-Z]+) PHARMACY"),
]

BALANCE_DATE_PATTERNS = [
    HeaderPattern("from-date-label", "stock balance with 'From Date' label", r"From Date\s*:?\s*" + DATE_TOKEN),
    HeaderPattern("bare-date", "stock balance with date only", DATE_TOKEN),
]

SALES_DEPARTMENT_PATTERNS = [
    HeaderPattern("srst-title", "SRST daily sales title", r"SRST-(IP|OP|OT)\s*PHARMACY"),
    HeaderPattern("srdps-title", "SRDPS daily sales title", r"SRDPS-(IP|OP|OT)\s*PHARMACY"),
    HeaderPattern("bare-title", "untitled daily sales report", r"(IP|OP|OT)\s*PHARMACY"),
]

SALES_DATE_PATTERNS = [
    HeaderPattern("from-date-label", "daily sales 'From Date:' line", r"From Date:\s*" + DATE_TOKEN),
]
