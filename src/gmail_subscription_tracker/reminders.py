"""Renewal reminders and expiry transitions for stored subscriptions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Sequence

from .constants import EXPIRY_WARNING_DAYS, RENEWAL_HORIZON_DAYS, STATUS_ACTIVE, STATUS_EXPIRED
from .models import Subscription
from .store import SubscriptionStore

logger = logging.getLogger(__name__)


def _utc_date(value: datetime) -> date:
    return value.astimezone(timezone.utc).date()


def find_expiring(
    store: SubscriptionStore,
    now: datetime,
    windows: Sequence[int] = EXPIRY_WARNING_DAYS,
) -> list[tuple[Subscription, int]]:
    """Active subscriptions billing exactly N days from now, for each N in *windows*.

    Returns (subscription, days_until_billing) pairs.
    """
    active = store.list_active()
    due: list[tuple[Subscription, int]] = []

    for days in windows:
        target = _utc_date(now + timedelta(days=days))
        matches = [s for s in active if s.next_billing and _utc_date(s.next_billing) == target]
        logger.info("Found %d subscriptions expiring in %d day(s)", len(matches), days)
        due.extend((s, days) for s in matches)

    return due


def is_past_due(subscription: Subscription, now: datetime) -> bool:
    dates = [d for d in (subscription.expiry_date, subscription.next_billing) if d is not None]
    return any(d <= now for d in dates)


def expire_due(store: SubscriptionStore, now: datetime) -> list[Subscription]:
    """Mark active subscriptions whose expiry or billing date has passed as expired."""
    expired = []
    for subscription in store.list_active():
        if is_past_due(subscription, now):
            expired.append(store.set_status(subscription.id, STATUS_EXPIRED))
    logger.info("Expired %d subscriptions", len(expired))
    return expired


@dataclass
class WeeklySummary:
    active_count: int = 0
    spend_by_currency: dict[str, float] = field(default_factory=dict)
    upcoming_renewals: int = 0


def weekly_summary(
    subscriptions: Iterable[Subscription],
    now: datetime,
    horizon_days: int = RENEWAL_HORIZON_DAYS,
) -> WeeklySummary:
    """Totals over a user's active subscriptions."""
    summary = WeeklySummary()
    horizon = now + timedelta(days=horizon_days)

    for sub in subscriptions:
        if sub.status != STATUS_ACTIVE:
            continue
        summary.active_count += 1
        if sub.amount:
            currency = sub.currency or "?"
            summary.spend_by_currency[currency] = (
                summary.spend_by_currency.get(currency, 0.0) + sub.amount
            )
        if sub.next_billing and sub.next_billing <= horizon:
            summary.upcoming_renewals += 1

    return summary
