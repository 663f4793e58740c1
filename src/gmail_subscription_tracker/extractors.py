"""Heuristic field extractors applied to decoded message text."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Iterable, Sequence

from .catalog import CurrencyPattern, ProviderCatalog
from .constants import BILLING_CYCLE_DAYS
from .models import AmountMatch, MessageHeader, MessagePayload, ProviderEntry

logger = logging.getLogger(__name__)


def get_header(headers: Iterable[MessageHeader], name: str) -> str | None:
    """Return the first header value matching *name* case-insensitively."""
    name = name.lower()
    for header in headers:
        if header.name.lower() == name:
            return header.value
    return None


def find_provider(
    catalog: ProviderCatalog,
    payload: MessagePayload | None,
    text: str,
) -> ProviderEntry | None:
    """Identify the provider from the From header, then from the body text."""
    if payload is not None:
        from_value = get_header(payload.headers, "From") or ""
        entry = catalog.match(from_value)
        if entry is not None:
            return entry
    return catalog.match(text)


@lru_cache(maxsize=32)
def _keyword_regex(keywords: tuple[str, ...]) -> re.Pattern:
    return re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE)


def is_subscription_like(text: str, keywords: Sequence[str]) -> bool:
    if not text or not keywords:
        return False
    return _keyword_regex(tuple(keywords)).search(text) is not None


def extract_amount(text: str, patterns: Sequence[CurrencyPattern]) -> AmountMatch:
    """Find the first amount next to a recognised currency marker.

    Patterns are tried in order; the first one that matches anywhere in the
    text wins.
    """
    for pattern in patterns:
        match = pattern.match(text)
        if match is not None:
            return match
    return AmountMatch()


def parse_date_header(value: str | None) -> datetime | None:
    """Parse an RFC 2822 Date header into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        logger.debug("Unparseable Date header: %r", value)
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def derive_dates(
    headers: Iterable[MessageHeader],
    now: datetime,
    cycle_days: int = BILLING_CYCLE_DAYS,
) -> tuple[datetime, datetime]:
    """Return (start_date, next_billing) for a message.

    The start date is the message's Date header, or *now* when missing.
    Billing is assumed to recur every *cycle_days* days.
    """
    start = parse_date_header(get_header(headers, "Date")) or now
    return start, start + timedelta(days=cycle_days)


@lru_cache(maxsize=32)
def _product_regex(tokens: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(t) for t in tokens)
    return re.compile(rf"\b(?:{alternatives})\b[\s:]*([a-z0-9 -]+)", re.IGNORECASE)


def extract_product(text: str, tokens: Sequence[str]) -> str | None:
    if not text or not tokens:
        return None
    m = _product_regex(tuple(tokens)).search(text)
    if m is None:
        return None
    product = m.group(1).strip().split("\n")[0].strip()
    return product or None
