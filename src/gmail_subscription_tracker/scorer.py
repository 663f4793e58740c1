"""Scoring and selection of subscription candidates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from .constants import (
    PLACEHOLDER_PRODUCTS,
    PLAUSIBLE_AMOUNT_MAX,
    PLAUSIBLE_AMOUNT_MIN,
    RECENCY_DAYS_PER_POINT,
    RECENCY_MAX_BONUS,
    SCORE_AMOUNT_MISSING,
    SCORE_AMOUNT_PRESENT,
    SCORE_CURRENCY,
    SCORE_PLAUSIBLE_AMOUNT,
    SCORE_PRODUCT,
    SCORE_TINY_AMOUNT,
)
from .models import ExtractedCandidate

logger = logging.getLogger(__name__)


def recency_bonus(start_date: datetime | None, now: datetime) -> int:
    if start_date is None:
        return 0
    days = (now - start_date).days
    return min(RECENCY_MAX_BONUS, max(0, RECENCY_MAX_BONUS - days // RECENCY_DAYS_PER_POINT))


def calculate_score(
    candidate: ExtractedCandidate,
    now: datetime,
    placeholders: Sequence[str] = PLACEHOLDER_PRODUCTS,
) -> int:
    """Score how trustworthy a candidate is as its provider's record."""
    total = 0
    amount = candidate.amount

    if amount is not None and amount > 0:
        total += SCORE_AMOUNT_PRESENT
    else:
        total += SCORE_AMOUNT_MISSING

    if amount is not None:
        if PLAUSIBLE_AMOUNT_MIN <= amount <= PLAUSIBLE_AMOUNT_MAX:
            total += SCORE_PLAUSIBLE_AMOUNT
        elif amount < PLAUSIBLE_AMOUNT_MIN:
            total += SCORE_TINY_AMOUNT

    if candidate.product and candidate.product.lower() not in placeholders:
        total += SCORE_PRODUCT

    if candidate.currency:
        total += SCORE_CURRENCY

    total += recency_bonus(candidate.start_date, now)
    return total


def rank_candidates(
    candidates: Sequence[ExtractedCandidate],
    now: datetime,
    placeholders: Sequence[str] = PLACEHOLDER_PRODUCTS,
) -> list[tuple[int, ExtractedCandidate]]:
    """Return (score, candidate) pairs, best first; ties keep input order."""
    scored = [(calculate_score(c, now, placeholders), c) for c in candidates]
    return sorted(scored, key=lambda pair: pair[0], reverse=True)


def select_best(
    candidates: Sequence[ExtractedCandidate],
    now: datetime,
    placeholders: Sequence[str] = PLACEHOLDER_PRODUCTS,
) -> ExtractedCandidate:
    """Pick the single best candidate for one provider."""
    if not candidates:
        raise ValueError("select_best() needs at least one candidate")
    if len(candidates) == 1:
        return candidates[0]

    ranked = rank_candidates(candidates, now, placeholders)
    for idx, (score, candidate) in enumerate(ranked):
        logger.debug(
            "%s %s: score=%d amount=%s date=%s",
            "*" if idx == 0 else " ",
            candidate.provider,
            score,
            candidate.amount,
            candidate.start_date.date() if candidate.start_date else "n/a",
        )
    return ranked[0][1]
