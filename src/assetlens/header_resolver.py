"""Map vendor column headers onto the canonical inventory schema.

Matching is exact after lowercasing and trimming; there is no token stripping
or fuzzy scoring, so ``"Product ID"`` matches the alias ``"product id"`` but
``"Product-ID"`` does not. Headers without a synonym are kept under a slug so
no column is lost.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_COLUMN_SYNONYMS

_WHITESPACE_RX = re.compile(r"\s+")
_NON_SLUG_RX = re.compile(r"[^a-z0-9_]")


def _header_key(header: object) -> str:
    if header is None:
        return ""
    return str(header).lower().strip()


def slugify_header(header: object) -> str:
    """Lowercase, trim, turn whitespace runs into ``_`` and drop anything outside ``[a-z0-9_]``.

    >>> slugify_header("Serial#")
    'serial'
    >>> slugify_header("  Warranty  End ")
    'warranty_end'
    """
    key = _header_key(header)
    key = _WHITESPACE_RX.sub("_", key)
    return _NON_SLUG_RX.sub("", key)


class HeaderResolver:
    """Resolve raw headers to canonical field names using a synonym table.

    The table maps each canonical field to its accepted spellings. When an
    alias is listed under more than one field the field declared first wins.
    """

    def __init__(self, synonyms: Optional[Mapping[str, Iterable[str]]] = None):
        table = synonyms if synonyms is not None else DEFAULT_COLUMN_SYNONYMS
        self.fields: List[str] = [str(f) for f in table.keys()]
        self._lookup: Dict[str, str] = {}
        for field, aliases in table.items():
            for alias in aliases:
                self._lookup.setdefault(_header_key(alias), str(field))

    def resolve(self, header: object) -> str:
        key = _header_key(header)
        canonical = self._lookup.get(key)
        if canonical is not None:
            return canonical
        return slugify_header(header)

    def is_known(self, header: object) -> bool:
        """True when ``header`` matches a synonym rather than falling back to a slug."""
        return _header_key(header) in self._lookup

    def column_mapping(self, headers: Iterable[object]) -> Dict[object, str]:
        """Return ``{original_header: resolved_name}`` for a header sequence."""
        return {header: self.resolve(header) for header in headers}


_DEFAULT_RESOLVER = HeaderResolver()


def resolve(header: object) -> str:
    """Resolve ``header`` against the default synonym table."""
    return _DEFAULT_RESOLVER.resolve(header)
