"""Data models for Gmail Subscription Tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .constants import STATUS_ACTIVE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MessageHeader:
    name: str
    value: str


@dataclass
class MessagePayload:
    """One node of a Gmail message payload tree."""

    mime_type: str = ""
    headers: list[MessageHeader] = field(default_factory=list)
    body_data: str | None = None  # base64 encoded body
    parts: list[MessagePayload] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> MessagePayload:
        """Build a payload tree from a Gmail API ``payload`` dict."""
        return cls(
            mime_type=data.get("mimeType", "") or "",
            headers=[
                MessageHeader(name=h.get("name", ""), value=h.get("value", ""))
                for h in data.get("headers", []) or []
            ],
            body_data=(data.get("body") or {}).get("data"),
            parts=[cls.from_api(p) for p in data.get("parts", []) or []],
        )


@dataclass
class RawMessage:
    """A message as handed over by mail retrieval."""

    id: str
    snippet: str = ""
    payload: MessagePayload | None = None

    @classmethod
    def from_api(cls, data: dict) -> RawMessage:
        payload = data.get("payload")
        return cls(
            id=data["id"],
            snippet=data.get("snippet", "") or "",
            payload=MessagePayload.from_api(payload) if payload else None,
        )

    @property
    def headers(self) -> list[MessageHeader]:
        return self.payload.headers if self.payload else []


@dataclass(frozen=True)
class ProviderEntry:
    """A known vendor: display name plus category tag."""

    name: str
    tag: str


@dataclass(frozen=True)
class AmountMatch:
    amount: float | None = None
    currency: str | None = None


@dataclass
class RawData:
    """Audit trail of the message a candidate came from."""

    message_id: str
    sent_date: datetime
    subject: str = ""
    snippet: str = ""

    def to_dict(self) -> dict:
        return {
            "messageId": self.message_id,
            "subject": self.subject,
            "snippet": self.snippet,
            "sentDate": self.sent_date.isoformat(),
        }


@dataclass
class ExtractedCandidate:
    """Provisional subscription extracted from a single email."""

    provider: str
    tag: str
    raw_data: RawData
    product: str | None = None
    amount: float | None = None
    currency: str | None = None
    start_date: datetime | None = None
    next_billing: datetime | None = None


@dataclass
class Subscription:
    """A persisted subscription, owned by one user."""

    user_id: str
    provider: str
    product: str | None = None
    amount: float | None = None
    currency: str | None = None
    start_date: datetime | None = None
    next_billing: datetime | None = None
    expiry_date: datetime | None = None
    status: str = STATUS_ACTIVE
    tag: str | None = None
    raw_data: dict | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MergeFailure:
    provider: str
    error: str


@dataclass
class MergeResult:
    """Outcome of reconciling candidates with stored subscriptions."""

    created: list[Subscription] = field(default_factory=list)
    updated: list[Subscription] = field(default_factory=list)
    failed: list[MergeFailure] = field(default_factory=list)

    @property
    def saved(self) -> list[Subscription]:
        return self.created + self.updated


@dataclass
class ScanResult:
    """Result of a mailbox scan for one user."""

    user_id: str
    total_messages: int
    candidates: list[ExtractedCandidate] = field(default_factory=list)
    merge: MergeResult = field(default_factory=MergeResult)
    scan_date: datetime = field(default_factory=utcnow)
