"""User notifications built from scan results and reminders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol

from rich.console import Console
from rich.panel import Panel

from .constants import PAYMENT_REMINDER_DAYS
from .models import ScanResult, Subscription
from .reminders import WeeklySummary


class NotificationType(str, Enum):
    SUBSCRIPTION_EXPIRING = "subscription_expiring"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    NEW_SUBSCRIPTION_FOUND = "new_subscription_found"
    PAYMENT_REMINDER = "payment_reminder"
    SCAN_COMPLETED = "scan_completed"
    WEEKLY_SUMMARY = "weekly_summary"


TITLES = {
    NotificationType.SUBSCRIPTION_EXPIRING: "Subscription Expiring Soon!",
    NotificationType.SUBSCRIPTION_EXPIRED: "Subscription Expired",
    NotificationType.NEW_SUBSCRIPTION_FOUND: "New Subscription Found!",
    NotificationType.PAYMENT_REMINDER: "Payment Reminder",
    NotificationType.SCAN_COMPLETED: "Email Scan Completed!",
    NotificationType.WEEKLY_SUMMARY: "Weekly Subscription Summary",
}


@dataclass
class Notification:
    user_id: str
    type: NotificationType
    text: str

    @property
    def title(self) -> str:
        return TITLES[self.type]


class Notifier(Protocol):
    def send(self, notification: Notification) -> None: ...


def _date(value: datetime | None, default: str = "N/A") -> str:
    return value.strftime("%Y-%m-%d") if value else default


def _money(sub: Subscription) -> str | None:
    if sub.amount is None or not sub.currency:
        return None
    return f"{sub.currency} {sub.amount:.2f}"


def _header(sub: Subscription) -> list[str]:
    lines = [f"Provider: {sub.provider}"]
    if sub.product:
        lines.append(f"Product: {sub.product}")
    return lines


def format_notification(
    kind: NotificationType,
    subscription: Subscription | None = None,
    *,
    days_until: int | None = None,
    found_count: int = 0,
    updated_count: int = 0,
) -> str:
    """Render the message text for one notification."""
    if kind == NotificationType.SCAN_COMPLETED:
        return (
            f"Found {found_count} new and {updated_count} updated subscription(s).\n\n"
            "Run 'list' to view details."
        )

    if subscription is None:
        raise ValueError(f"{kind.value} notifications need a subscription")

    lines = _header(subscription)
    money = _money(subscription)

    if kind == NotificationType.SUBSCRIPTION_EXPIRING:
        unit = "day" if days_until == 1 else "days"
        lines.append(f"Expires in: {days_until} {unit}")
        lines.append(f"Next Billing: {_date(subscription.next_billing)}")
        lines.append(f"Amount: {money or 'N/A'}")
        lines += ["", "Don't forget to renew or cancel if not needed!"]
    elif kind == NotificationType.SUBSCRIPTION_EXPIRED:
        expired_on = subscription.expiry_date or subscription.next_billing
        lines.append(f"Expired on: {_date(expired_on, 'Recently')}")
        lines += ["", "Your subscription has expired. Renew to continue using the service."]
    elif kind == NotificationType.NEW_SUBSCRIPTION_FOUND:
        if money:
            lines.append(f"Amount: {money}")
        if subscription.next_billing:
            lines.append(f"Next Billing: {_date(subscription.next_billing)}")
        lines += ["", "We found this subscription in your emails!"]
    elif kind == NotificationType.PAYMENT_REMINDER:
        lines.append(f"Amount: {money or 'N/A'}")
        lines.append(f"Due Date: {_date(subscription.next_billing, 'Soon')}")
        lines += ["", "Make sure you have sufficient funds for the upcoming payment."]
    else:
        raise ValueError(f"Unsupported notification type: {kind.value}")

    return "\n".join(lines)


def format_weekly_summary(summary: WeeklySummary) -> str:
    if summary.spend_by_currency:
        spend = ", ".join(
            f"{currency} {total:.2f}"
            for currency, total in sorted(summary.spend_by_currency.items())
        )
    else:
        spend = "N/A"
    return (
        f"Active Subscriptions: {summary.active_count}\n"
        f"Monthly Spending: {spend}\n"
        f"Renewals in 30 days: {summary.upcoming_renewals}"
    )


def build_scan_notifications(scan_result: ScanResult) -> list[Notification]:
    """Notifications to hand over after a scan: one per new subscription plus a summary."""
    user_id = scan_result.user_id
    notifications = [
        Notification(
            user_id=user_id,
            type=NotificationType.NEW_SUBSCRIPTION_FOUND,
            text=format_notification(NotificationType.NEW_SUBSCRIPTION_FOUND, sub),
        )
        for sub in scan_result.merge.created
    ]
    notifications.append(
        Notification(
            user_id=user_id,
            type=NotificationType.SCAN_COMPLETED,
            text=format_notification(
                NotificationType.SCAN_COMPLETED,
                found_count=len(scan_result.merge.created),
                updated_count=len(scan_result.merge.updated),
            ),
        )
    )
    return notifications


def _reminder(sub: Subscription, days: int) -> Notification:
    if days <= PAYMENT_REMINDER_DAYS:
        kind = NotificationType.PAYMENT_REMINDER
    else:
        kind = NotificationType.SUBSCRIPTION_EXPIRING
    return Notification(
        user_id=sub.user_id,
        type=kind,
        text=format_notification(kind, sub, days_until=days),
    )


def build_reminder_notifications(
    expiring: Iterable[tuple[Subscription, int]],
    expired: Iterable[Subscription],
) -> list[Notification]:
    """Expiry warnings, due-tomorrow payment reminders and expiry notices."""
    notifications = [_reminder(sub, days) for sub, days in expiring]
    notifications += [
        Notification(
            user_id=sub.user_id,
            type=NotificationType.SUBSCRIPTION_EXPIRED,
            text=format_notification(NotificationType.SUBSCRIPTION_EXPIRED, sub),
        )
        for sub in expired
    ]
    return notifications


def build_summary_notification(user_id: str, summary: WeeklySummary) -> Notification:
    return Notification(
        user_id=user_id,
        type=NotificationType.WEEKLY_SUMMARY,
        text=format_weekly_summary(summary),
    )


class ConsoleNotifier:
    """Deliver notifications to a rich console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def send(self, notification: Notification) -> None:
        self.console.print(
            Panel(notification.text, title=notification.title, subtitle=notification.user_id)
        )


def deliver(notifier: Notifier, notifications: Iterable[Notification]) -> int:
    sent = 0
    for notification in notifications:
        notifier.send(notification)
        sent += 1
    return sent
