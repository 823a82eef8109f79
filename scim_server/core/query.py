"""List request interpretation: filter parsing and 1-based pagination.

Only the filter shape identity providers send during provisioning is
understood: a single ``userName eq "<value>"`` clause. Anything else is
ignored and the listing is unfiltered.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

DEFAULT_START_INDEX = 1
DEFAULT_COUNT = 100

FILTERABLE_ATTRIBUTE = "username"

# <attribute> eq "<value>", nothing before or after
_EQ_FILTER_PATTERN = re.compile(r'^(?P<attribute>\S+) eq "(?P<value>[^"]*)"$')

T = TypeVar("T")


@dataclass(frozen=True)
class ListQuery:
    """Normalized list request."""

    user_name: Optional[str]
    start_index: int = DEFAULT_START_INDEX
    count: int = DEFAULT_COUNT

    def paginate(self, items: Sequence[T]) -> list[T]:
        """Skip the first ``start_index - 1`` items and take ``count``."""
        offset = self.start_index - 1
        return list(items[offset:offset + self.count])


def parse_filter(filter_expression: Optional[str]) -> Optional[str]:
    """Extract the userName value from a filter expression.

    Args:
        filter_expression: Raw SCIM filter (e.g. 'userName eq "alice@example.com"')

    Returns:
        The userName to match, or None when the filter is absent or not understood
    """
    if not filter_expression or not filter_expression.strip():
        return None

    match = _EQ_FILTER_PATTERN.match(filter_expression.strip())
    if not match:
        return None

    if match.group("attribute").lower() != FILTERABLE_ATTRIBUTE:
        return None

    value = match.group("value")
    if not value.strip():
        return None
    return value


def parse_list_query(
    filter_expression: Optional[str] = None,
    start_index: Optional[int] = None,
    count: Optional[int] = None,
) -> ListQuery:
    """Normalize list parameters.

    Defaults: startIndex 1, count 100. A startIndex below 1 is treated as 1
    and a negative count as 0 (RFC 7644 Section 3.4.2.4).
    """
    if start_index is None:
        start_index = DEFAULT_START_INDEX
    if count is None:
        count = DEFAULT_COUNT

    return ListQuery(
        user_name=parse_filter(filter_expression),
        start_index=max(1, start_index),
        count=max(0, count),
    )
