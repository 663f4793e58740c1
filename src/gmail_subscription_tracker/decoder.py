"""Decode Gmail message payloads into a single lowercase text blob."""

from __future__ import annotations

import base64
import binascii
import logging

from bs4 import BeautifulSoup

from .models import MessagePayload

logger = logging.getLogger(__name__)

_SKIP_TAGS = ["script", "style", "head", "img"]
_BLOCK_TAGS = [
    "p",
    "div",
    "tr",
    "li",
    "ul",
    "ol",
    "table",
    "section",
    "article",
    "header",
    "footer",
    "blockquote",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
]
_CELL_TAGS = ["td", "th"]


def decode_data(data: str) -> str:
    """Decode a base64 (URL-safe or standard) body into text.

    Malformed input yields an empty string.
    """
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError) as exc:
        logger.debug("Could not decode message body: %s", exc)
        return ""
    return raw.decode("utf-8", errors="replace")


def html_to_text(html: str) -> str:
    """Convert an HTML document to plain text.

    Images, scripts and styles are dropped and link targets are ignored.
    Block elements start on their own line; table cells are separated by
    a space so adjacent columns never run together.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(_SKIP_TAGS):
        tag.decompose()

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.append("\n")

    for tag in soup.find_all(_CELL_TAGS):
        tag.insert_before(" ")
        tag.append(" ")

    lines = (" ".join(line.split()) for line in soup.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def _is_html(mime_type: str, text: str) -> bool:
    return "html" in mime_type.lower() or "<html" in text.lower()


def _decode_node(payload: MessagePayload) -> str:
    if payload.body_data:
        text = decode_data(payload.body_data)
        if text and _is_html(payload.mime_type, text):
            return html_to_text(text)
        return text

    if payload.parts:
        return " ".join(_decode_node(part) for part in payload.parts)

    return ""


def decode_body(payload: MessagePayload | None) -> str:
    """Return the lowercased text of a payload tree, or "" when absent."""
    if payload is None:
        return ""
    return _decode_node(payload).lower()
