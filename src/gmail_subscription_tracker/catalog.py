"""Provider catalog and inference configuration."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from .constants import (
    BILLING_CYCLE_DAYS,
    CATALOG_PATH,
    CURRENCY_MARKERS,
    PLACEHOLDER_PRODUCTS,
    PRODUCT_TOKENS,
    SUBSCRIPTION_KEYWORDS,
)
from .errors import CatalogError
from .models import AmountMatch, ProviderEntry

DEFAULT_TAG = "other"

# A number with optional "," thousands groups and 0 or 2 decimals, not part of a longer number.
_NUMBER = r"(?<![\d.,])((?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{2})?)(?!\d|[.,]\d)"


def _marker_regex(marker: str) -> str:
    if marker.isalpha():
        return rf"(?<![a-z]){re.escape(marker.lower())}(?![a-z])"
    return re.escape(marker)


class CurrencyPattern:
    """Matches an amount adjacent to one currency's markers."""

    def __init__(self, code: str, markers: Iterable[str]) -> None:
        self.code = code
        self.markers = tuple(markers)
        marker = "|".join(_marker_regex(m) for m in self.markers)
        # A marker followed by a number belongs to that number, never to the one before it.
        self.regex = re.compile(
            rf"(?:{marker})\s?{_NUMBER}|{_NUMBER}\s?(?:{marker})(?!\s?\d)",
            re.IGNORECASE,
        )

    def match(self, text: str) -> AmountMatch | None:
        m = self.regex.search(text)
        if m is None:
            return None
        raw = m.group(1) or m.group(2)
        return AmountMatch(amount=float(raw.replace(",", "")), currency=self.code)

    def __repr__(self) -> str:
        return f"CurrencyPattern({self.code!r}, {list(self.markers)!r})"


def default_currency_patterns() -> list[CurrencyPattern]:
    return [CurrencyPattern(code, markers) for code, markers in CURRENCY_MARKERS]


@dataclass(frozen=True)
class InferenceConfig:
    """Tunable data driving the extractors."""

    keywords: tuple[str, ...] = tuple(SUBSCRIPTION_KEYWORDS)
    currency_patterns: tuple[CurrencyPattern, ...] = field(
        default_factory=lambda: tuple(default_currency_patterns())
    )
    product_tokens: tuple[str, ...] = tuple(PRODUCT_TOKENS)
    placeholder_products: tuple[str, ...] = tuple(PLACEHOLDER_PRODUCTS)
    billing_cycle_days: int = BILLING_CYCLE_DAYS
    require_amount: bool = True

    @property
    def currency_codes(self) -> set[str]:
        return {p.code for p in self.currency_patterns}


class ProviderCatalog:
    """Immutable, ordered collection of known providers."""

    def __init__(self, entries: Iterable[ProviderEntry]) -> None:
        self._entries = tuple(entries)
        # Lowercased once; matching is plain substring search.
        self._lookup = tuple((entry.name.lower(), entry) for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter(self._entries)

    def match(self, haystack: str) -> ProviderEntry | None:
        """Return the first entry whose name occurs in *haystack*."""
        if not haystack:
            return None
        haystack = haystack.lower()
        for name, entry in self._lookup:
            if name in haystack:
                return entry
        return None

    def get(self, name: str) -> ProviderEntry | None:
        name = name.lower()
        for lowered, entry in self._lookup:
            if lowered == name:
                return entry
        return None


def load_catalog(path: Path | str | None = None) -> ProviderCatalog:
    """Load the provider catalog from a JSON list of ``{name, tag}`` objects.

    Raises CatalogError when the file is missing, unreadable, or holds no
    usable entries.
    """
    path = Path(path or CATALOG_PATH)
    if not path.exists():
        raise CatalogError(f"Provider catalog not found at {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not read provider catalog {path}: {exc}") from exc

    if not isinstance(data, list):
        raise CatalogError(f"Provider catalog {path} must be a JSON list")

    entries: list[ProviderEntry] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict) or not str(item.get("name", "")).strip():
            raise CatalogError(f"Provider catalog entry #{idx} has no name")
        entries.append(
            ProviderEntry(
                name=str(item["name"]).strip(),
                tag=str(item.get("tag") or DEFAULT_TAG),
            )
        )

    if not entries:
        raise CatalogError(f"Provider catalog {path} is empty")

    return ProviderCatalog(entries)
