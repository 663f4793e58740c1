"""Shared fixtures for tests."""

from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

import pytest

from gmail_subscription_tracker.catalog import InferenceConfig, ProviderCatalog
from gmail_subscription_tracker.models import (
    ExtractedCandidate,
    MessageHeader,
    MessagePayload,
    ProviderEntry,
    RawData,
    RawMessage,
)
from gmail_subscription_tracker.store import SubscriptionStore

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def b64(text: str) -> str:
    """Encode text the way Gmail does (URL-safe base64, no padding)."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _make_message(
    message_id: str = "m1",
    body: str | None = None,
    mime_type: str = "text/plain",
    sender: str | None = None,
    subject: str = "",
    date: str | None = None,
    snippet: str = "",
    parts: list[MessagePayload] | None = None,
) -> RawMessage:
    headers = []
    if sender is not None:
        headers.append(MessageHeader(name="From", value=sender))
    if subject:
        headers.append(MessageHeader(name="Subject", value=subject))
    if date is not None:
        headers.append(MessageHeader(name="Date", value=date))

    payload = MessagePayload(
        mime_type=mime_type,
        headers=headers,
        body_data=b64(body) if body is not None else None,
        parts=parts or [],
    )
    return RawMessage(id=message_id, snippet=snippet, payload=payload)


def _make_candidate(
    provider: str = "Netflix",
    amount: float | None = 15.99,
    currency: str | None = "USD",
    product: str | None = None,
    start_date: datetime | None = NOW,
    message_id: str = "m1",
    tag: str = "streaming",
) -> ExtractedCandidate:
    return ExtractedCandidate(
        provider=provider,
        tag=tag,
        product=product,
        amount=amount,
        currency=currency,
        start_date=start_date,
        next_billing=start_date + timedelta(days=30) if start_date else None,
        raw_data=RawData(message_id=message_id, sent_date=start_date or NOW),
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def catalog() -> ProviderCatalog:
    return ProviderCatalog(
        [
            ProviderEntry(name="Netflix", tag="streaming"),
            ProviderEntry(name="Spotify", tag="music"),
            ProviderEntry(name="Canva", tag="design"),
        ]
    )


@pytest.fixture
def config() -> InferenceConfig:
    return InferenceConfig()


@pytest.fixture
def store(tmp_path):
    with SubscriptionStore(db_path=tmp_path / "subscriptions.db") as s:
        yield s


@pytest.fixture
def make_message():
    return _make_message


@pytest.fixture
def make_candidate():
    return _make_candidate


@pytest.fixture
def encode():
    return b64
