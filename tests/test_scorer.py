"""Tests for the scoring module."""

from datetime import timedelta

import pytest

from gmail_subscription_tracker.scorer import (
    calculate_score,
    rank_candidates,
    recency_bonus,
    select_best,
)


def test_full_candidate_score(make_candidate, now):
    """Amount + plausible range + product + currency + fresh date."""
    candidate = make_candidate(amount=15.99, currency="USD", product="premium", start_date=now)
    assert calculate_score(candidate, now) == 20 + 30 + 5 + 5 + 10


def test_missing_amount_is_penalised(make_candidate, now):
    candidate = make_candidate(amount=None, currency=None, start_date=None)
    assert calculate_score(candidate, now) == -20


def test_tiny_amount_is_penalised(make_candidate, now):
    candidate = make_candidate(amount=2.0, currency=None, start_date=None)
    assert calculate_score(candidate, now) == 20 - 10


def test_huge_amount_gets_no_bonus(make_candidate, now):
    candidate = make_candidate(amount=25000.0, currency=None, start_date=None)
    assert calculate_score(candidate, now) == 20


def test_placeholder_product_gets_no_bonus(make_candidate, now):
    with_placeholder = make_candidate(product="unknown", start_date=None)
    without_product = make_candidate(product=None, start_date=None)
    assert calculate_score(with_placeholder, now) == calculate_score(without_product, now)


@pytest.mark.parametrize(
    "days_ago, bonus",
    [(0, 10), (2, 10), (3, 9), (15, 5), (29, 1), (30, 0), (400, 0), (-5, 10)],
)
def test_recency_bonus(now, days_ago, bonus):
    assert recency_bonus(now - timedelta(days=days_ago), now) == bonus


def test_recency_bonus_without_date(now):
    assert recency_bonus(None, now) == 0


def test_plausible_amount_beats_tiny_amount(make_candidate, now):
    tiny = make_candidate(amount=4.50, message_id="tiny")
    plausible = make_candidate(amount=49.99, message_id="plausible")
    assert select_best([tiny, plausible], now) is plausible
    assert select_best([plausible, tiny], now) is plausible


def test_recent_candidate_wins(make_candidate, now):
    old = make_candidate(start_date=now - timedelta(days=90), message_id="old")
    recent = make_candidate(start_date=now - timedelta(days=1), message_id="recent")
    assert select_best([old, recent], now) is recent


def test_ties_keep_first_seen(make_candidate, now):
    first = make_candidate(message_id="first")
    second = make_candidate(message_id="second")
    assert select_best([first, second], now) is first


def test_rank_candidates_orders_by_score(make_candidate, now):
    low = make_candidate(amount=None, currency=None)
    high = make_candidate(amount=20.0)
    ranked = rank_candidates([low, high], now)
    assert [c for _, c in ranked] == [high, low]
    assert ranked[0][0] > ranked[1][0]


def test_select_best_single_and_empty(make_candidate, now):
    only = make_candidate()
    assert select_best([only], now) is only
    with pytest.raises(ValueError):
        select_best([], now)
