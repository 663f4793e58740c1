"""Infer subscriptions from a batch of raw Gmail messages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from .catalog import InferenceConfig, ProviderCatalog, load_catalog
from .decoder import decode_body
from .extractors import (
    derive_dates,
    extract_amount,
    extract_product,
    find_provider,
    get_header,
    is_subscription_like,
)
from .models import ExtractedCandidate, RawData, RawMessage, utcnow
from .scorer import select_best

logger = logging.getLogger(__name__)


def message_text(message: RawMessage) -> str:
    """Decoded body of a message, or its snippet when the body is empty."""
    text = decode_body(message.payload)
    if not text.strip():
        text = (message.snippet or "").lower()
    return text


def extract_candidate(
    message: RawMessage,
    catalog: ProviderCatalog,
    config: InferenceConfig,
    now: datetime,
) -> ExtractedCandidate | None:
    """Run the extractors over one message.

    Returns None when the message does not name a known provider, does not
    look like a billing email, or (with ``require_amount``) carries no
    positive amount.
    """
    text = message_text(message)

    provider = find_provider(catalog, message.payload, text)
    if provider is None:
        logger.debug("Skipping %s: no known provider", message.id)
        return None

    if not is_subscription_like(text, config.keywords):
        logger.debug("Skipping %s from %s: no subscription keywords", message.id, provider.name)
        return None

    money = extract_amount(text, config.currency_patterns)
    if config.require_amount and (money.amount is None or money.amount <= 0):
        logger.debug("Skipping %s from %s: no amount", message.id, provider.name)
        return None

    headers = message.headers
    start_date, next_billing = derive_dates(headers, now, config.billing_cycle_days)

    return ExtractedCandidate(
        provider=provider.name,
        tag=provider.tag,
        product=extract_product(text, config.product_tokens),
        amount=money.amount,
        currency=money.currency,
        start_date=start_date,
        next_billing=next_billing,
        raw_data=RawData(
            message_id=message.id,
            subject=get_header(headers, "Subject") or "",
            snippet=message.snippet,
            sent_date=start_date,
        ),
    )


def group_by_provider(
    candidates: Iterable[ExtractedCandidate],
) -> dict[str, list[ExtractedCandidate]]:
    """Bucket candidates by provider, keeping first-seen provider order."""
    buckets: dict[str, list[ExtractedCandidate]] = {}
    for candidate in candidates:
        buckets.setdefault(candidate.provider, []).append(candidate)
    return buckets


def parse_subscriptions_from_emails(
    messages: Iterable[RawMessage],
    catalog: ProviderCatalog | None = None,
    config: InferenceConfig | None = None,
    now: datetime | None = None,
) -> list[ExtractedCandidate]:
    """Turn a batch of one user's messages into at most one record per provider."""
    catalog = catalog if catalog is not None else load_catalog()
    config = config or InferenceConfig()
    now = now or utcnow()

    messages = list(messages)
    logger.info("Scanning %d emails for subscriptions", len(messages))

    candidates = []
    for message in messages:
        candidate = extract_candidate(message, catalog, config, now)
        if candidate is not None:
            logger.debug("Found potential subscription: %s", candidate.provider)
            candidates.append(candidate)

    winners: list[ExtractedCandidate] = []
    for provider, bucket in group_by_provider(candidates).items():
        if len(bucket) > 1:
            logger.debug("%s: comparing %d candidates", provider, len(bucket))
        winners.append(select_best(bucket, now, config.placeholder_products))

    logger.info("Found %d unique subscriptions", len(winners))
    return winners
