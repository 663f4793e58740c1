"""Reconcile inferred candidates with a user's stored subscriptions."""

from __future__ import annotations

import logging
from typing import Iterable

from .constants import STATUS_ACTIVE
from .errors import DuplicateSubscriptionError, StoreError
from .models import ExtractedCandidate, MergeFailure, MergeResult, Subscription
from .store import SubscriptionStore

logger = logging.getLogger(__name__)


def update_fields(candidate: ExtractedCandidate, existing: Subscription) -> dict:
    """Fields a newer scan overwrites on an existing subscription."""
    return {
        "amount": candidate.amount,
        "currency": candidate.currency,
        "product": candidate.product or existing.product,
        "start_date": candidate.start_date,
        "next_billing": candidate.next_billing,
        "tag": candidate.tag,
        "raw_data": candidate.raw_data.to_dict(),
    }


def new_subscription(user_id: str, candidate: ExtractedCandidate) -> Subscription:
    return Subscription(
        user_id=user_id,
        provider=candidate.provider,
        product=candidate.product,
        amount=candidate.amount,
        currency=candidate.currency,
        start_date=candidate.start_date,
        next_billing=candidate.next_billing,
        status=STATUS_ACTIVE,
        tag=candidate.tag,
        raw_data=candidate.raw_data.to_dict(),
    )


def upsert_candidate(
    store: SubscriptionStore,
    user_id: str,
    candidate: ExtractedCandidate,
) -> tuple[Subscription, bool]:
    """Create or update the subscription for one candidate.

    Returns (subscription, created).
    """
    existing = store.find_existing(user_id, candidate.provider)
    if existing is None:
        try:
            return store.create(new_subscription(user_id, candidate)), True
        except DuplicateSubscriptionError:
            # Another scan inserted the row after our lookup.
            existing = store.find_existing(user_id, candidate.provider)
            if existing is None:
                raise

    updated = store.update(existing.id, update_fields(candidate, existing))
    logger.info(
        "Updated %s: %s -> %s (newer data)", candidate.provider, existing.amount, candidate.amount
    )
    return updated, False


def merge_subscriptions(
    store: SubscriptionStore,
    user_id: str,
    candidates: Iterable[ExtractedCandidate],
) -> MergeResult:
    """Upsert every candidate, isolating failures per record."""
    result = MergeResult()

    for candidate in candidates:
        try:
            subscription, created = upsert_candidate(store, user_id, candidate)
        except StoreError as exc:
            logger.error("Could not save %s for %s: %s", candidate.provider, user_id, exc)
            result.failed.append(MergeFailure(provider=candidate.provider, error=str(exc)))
            continue

        if created:
            logger.info(
                "Created new subscription: %s (%s)", subscription.provider, subscription.tag
            )
            result.created.append(subscription)
        else:
            result.updated.append(subscription)

    logger.info(
        "Saved %d subscriptions (%d new, %d updated, %d failed)",
        len(result.saved),
        len(result.created),
        len(result.updated),
        len(result.failed),
    )
    return result
