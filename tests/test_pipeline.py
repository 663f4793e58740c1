"""Tests for the inference pipeline."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from gmail_subscription_tracker.catalog import InferenceConfig
from gmail_subscription_tracker.models import RawMessage
from gmail_subscription_tracker.pipeline import message_text, parse_subscriptions_from_emails


def _summary(records):
    return [(r.provider, r.amount, r.currency, r.product) for r in records]


def test_snippet_only_netflix_charge(catalog, now):
    messages = [
        RawMessage(id="1", snippet="Your Netflix subscription was charged $15.99 on 2024-03-01")
    ]
    records = parse_subscriptions_from_emails(messages, catalog, now=now)

    assert len(records) == 1
    record = records[0]
    assert record.provider == "Netflix"
    assert record.tag == "streaming"
    assert record.amount == 15.99
    assert record.currency == "USD"
    assert record.start_date == now
    assert record.next_billing == now + timedelta(days=30)
    assert record.raw_data.message_id == "1"


def test_newsletter_is_ignored(catalog, now):
    messages = [RawMessage(id="1", snippet="Welcome to our newsletter")]
    assert parse_subscriptions_from_emails(messages, catalog, now=now) == []


def test_empty_batch(catalog, now):
    assert parse_subscriptions_from_emails([], catalog, now=now) == []


def test_unknown_provider_is_never_invented(catalog, make_message, now):
    message = make_message(
        body="Your subscription renewal: you were charged $9.99",
        sender="billing@some-unknown-app.io",
    )
    assert parse_subscriptions_from_emails([message], catalog, now=now) == []


def test_provider_without_keywords_is_excluded(catalog, make_message, now):
    message = make_message(snippet="Netflix: new arrivals this week, top picks for you $5.00")
    assert parse_subscriptions_from_emails([message], catalog, now=now) == []


def test_candidate_without_amount_is_excluded(catalog, make_message, now):
    message = make_message(body="Your Spotify subscription renews soon", sender="Spotify <no-reply@spotify.com>")
    assert parse_subscriptions_from_emails([message], catalog, now=now) == []


def test_zero_amount_is_excluded(catalog, make_message, now):
    message = make_message(body="Spotify receipt: you were charged $0.00 for your trial")
    assert parse_subscriptions_from_emails([message], catalog, now=now) == []


def test_amount_optional_when_policy_relaxed(catalog, make_message, now):
    message = make_message(body="Your Spotify subscription renews soon")
    config = InferenceConfig(require_amount=False)
    records = parse_subscriptions_from_emails([message], catalog, config, now=now)
    assert _summary(records) == [("Spotify", None, None, "renews soon")]


def test_html_amount_with_thousands_separator(catalog, make_message, now):
    html = "<html><body><p>Canva</p><p><b>$6,600</b> charged to your card</p></body></html>"
    message = make_message(body=html, mime_type="text/html")
    records = parse_subscriptions_from_emails([message], catalog, now=now)
    assert records[0].provider == "Canva"
    assert records[0].amount == 6600


def test_html_table_receipt(catalog, make_message, now):
    html = (
        "<html><body><table>"
        "<tr><th>Item</th><th>Qty</th><th>Price</th></tr>"
        "<tr><td>Netflix Standard</td><td>1</td><td>$15.99</td></tr>"
        "<tr><td>Plan</td><td>Premium</td></tr>"
        "</table><p>Your payment was processed.</p></body></html>"
    )
    message = make_message(body=html, mime_type="text/html", sender="Netflix <info@account.netflix.com>")
    records = parse_subscriptions_from_emails([message], catalog, now=now)
    assert _summary(records) == [("Netflix", 15.99, "USD", "premium")]


def test_date_header_drives_billing_dates(catalog, make_message, now):
    message = make_message(
        body="Payment processed: Netflix $15.99",
        date="Fri, 01 Mar 2024 10:00:00 +0000",
        subject="Your receipt",
    )
    record = parse_subscriptions_from_emails([message], catalog, now=now)[0]
    start = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert record.start_date == start
    assert record.next_billing == start + timedelta(days=30)
    assert record.raw_data.subject == "Your receipt"
    assert record.raw_data.sent_date == start


def test_one_record_per_provider(catalog, make_message, now):
    messages = [
        make_message("a", body="Netflix invoice: $4.50 adjustment"),
        make_message("b", body="Netflix invoice: $49.99 charged"),
        make_message("c", body="Spotify receipt: £9.99"),
        make_message("d", body="Netflix receipt: $49.99"),
    ]
    records = parse_subscriptions_from_emails(messages, catalog, now=now)

    assert [r.provider for r in records] == ["Netflix", "Spotify"]
    netflix = records[0]
    assert netflix.amount == 49.99
    assert netflix.raw_data.message_id == "b"
    assert records[1].currency == "GBP"


def test_header_provider_beats_body(catalog, make_message, now):
    message = make_message(
        body="Receipt: $10.99. Also check out Netflix on your phone.",
        sender="Spotify <no-reply@spotify.com>",
    )
    records = parse_subscriptions_from_emails([message], catalog, now=now)
    assert records[0].provider == "Spotify"


def test_malformed_body_falls_back_to_snippet(catalog, make_message, now):
    message = make_message(body="x", snippet="Netflix payment of $15.99 received")
    message.payload.body_data = "©©©"
    records = parse_subscriptions_from_emails([message], catalog, now=now)
    assert _summary(records) == [("Netflix", 15.99, "USD", None)]


def test_message_text_prefers_body(make_message):
    message = make_message(body="Body Text", snippet="Snippet Text")
    assert message_text(message) == "body text"
    assert message_text(replace(message, payload=None)) == "snippet text"


def test_pipeline_is_deterministic(catalog, make_message, now):
    messages = [
        make_message("a", body="Netflix invoice: $15.99, premium plan"),
        make_message("b", body="Canva Pro subscription renewed €119.99"),
        make_message("c", body="Netflix receipt: $17.99"),
    ]
    first = parse_subscriptions_from_emails(messages, catalog, now=now)
    second = parse_subscriptions_from_emails(messages, catalog, now=now)
    assert _summary(first) == _summary(second)
    assert len({r.provider for r in first}) == len(first)


def test_default_catalog_is_loaded(now):
    messages = [RawMessage(id="1", snippet="Your Netflix subscription was charged $15.99")]
    records = parse_subscriptions_from_emails(messages, now=now)
    assert records[0].provider == "Netflix"
