"""Tests for the body decoder."""

from gmail_subscription_tracker.decoder import decode_body, decode_data, html_to_text
from gmail_subscription_tracker.models import MessagePayload


def test_missing_payload_is_empty():
    assert decode_body(None) == ""


def test_plain_body_is_lowercased(encode):
    payload = MessagePayload(mime_type="text/plain", body_data=encode("Your Netflix RECEIPT"))
    assert decode_body(payload) == "your netflix receipt"


def test_standard_base64_with_padding():
    # "Hi?>" encodes to "SGk/Pg==" in standard base64
    assert decode_data("SGk/Pg==") == "Hi?>"


def test_malformed_base64_yields_empty_text():
    payload = MessagePayload(mime_type="text/plain", body_data="©©©")
    assert decode_body(payload) == ""


def test_html_body_is_converted(encode):
    html = (
        "<html><head><style>b {color: red}</style></head><body>"
        '<p>Your <b>Canva Pro</b> payment</p><img src="https://cdn.example/logo.png">'
        '<a href="https://tracking.example/click">Manage plan</a>'
        "</body></html>"
    )
    payload = MessagePayload(mime_type="text/html", body_data=encode(html))
    text = decode_body(payload)

    assert "your canva pro payment" in text
    assert "manage plan" in text
    assert "tracking.example" not in text
    assert "logo.png" not in text
    assert "color" not in text
    assert "<" not in text


def test_html_marker_overrides_plain_mime_type(encode):
    payload = MessagePayload(
        mime_type="text/plain",
        body_data=encode("<html><body><div>Charged <b>$6,600</b></div></body></html>"),
    )
    assert decode_body(payload) == "charged $6,600"


def test_block_elements_keep_line_structure():
    text = html_to_text("<div>Plan: Premium</div><div>Amount: $9.99</div>line<br>break")
    assert text.splitlines() == ["Plan: Premium", "Amount: $9.99", "line", "break"]


def test_multipart_parts_joined_with_space(encode):
    payload = MessagePayload(
        mime_type="multipart/alternative",
        parts=[
            MessagePayload(mime_type="text/plain", body_data=encode("Hello")),
            MessagePayload(mime_type="text/html", body_data=encode("<html><b>World</b></html>")),
        ],
    )
    assert decode_body(payload) == "hello world"


def test_nested_parts_are_decoded(encode):
    payload = MessagePayload(
        mime_type="multipart/mixed",
        parts=[
            MessagePayload(
                mime_type="multipart/alternative",
                parts=[MessagePayload(mime_type="text/plain", body_data=encode("Inner"))],
            ),
            MessagePayload(mime_type="text/plain", body_data=encode("Outer")),
        ],
    )
    assert decode_body(payload) == "inner outer"


def test_bad_part_does_not_break_others(encode):
    payload = MessagePayload(
        mime_type="multipart/alternative",
        parts=[
            MessagePayload(mime_type="text/plain", body_data="©"),
            MessagePayload(mime_type="text/plain", body_data=encode("Receipt")),
        ],
    )
    assert decode_body(payload).strip() == "receipt"


def test_table_cells_are_separated():
    html = (
        "<table><tr><td>Netflix Premium</td><td>Qty</td><td>1</td><td>$15.99</td></tr>"
        "<tr><th>Total</th><th>$15.99</th></tr></table>"
    )
    assert html_to_text(html).splitlines() == ["Netflix Premium Qty 1 $15.99", "Total $15.99"]
