"""CLI entry point for Gmail Subscription Tracker."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from .auth import check_auth, get_gmail_service
from .catalog import DEFAULT_TAG, load_catalog
from .constants import DEFAULT_USER_ID, MAX_SCAN_MESSAGES, STATUS_ACTIVE, STATUS_EXPIRED
from .display import (
    configure_logging,
    console,
    display_catalog,
    display_scan_summary,
    display_subscriptions,
)
from .errors import CatalogError, DuplicateSubscriptionError, StoreError
from .export import export_subscriptions
from .models import Subscription, utcnow
from .notifier import (
    ConsoleNotifier,
    build_reminder_notifications,
    build_scan_notifications,
    build_summary_notification,
    deliver,
)
from .reminders import expire_due, find_expiring, weekly_summary
from .scanner import scan_mailbox
from .store import SubscriptionStore

user_option = click.option(
    "-u",
    "--user",
    "user_id",
    default=DEFAULT_USER_ID,
    show_default=True,
    help="User the subscriptions belong to.",
)
catalog_option = click.option(
    "--catalog",
    "catalog_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Provider catalog JSON file.",
)


def _open_store(ctx: click.Context) -> SubscriptionStore:
    try:
        return SubscriptionStore(db_path=ctx.obj.get("db_path"))
    except StoreError as e:
        raise click.ClickException(str(e)) from e


def _utc(value: datetime | None) -> datetime | None:
    return value.replace(tzinfo=timezone.utc) if value else None


def _owned(store: SubscriptionStore, subscription_id: int, user_id: str) -> Subscription:
    subscription = store.get(subscription_id)
    if subscription is None or subscription.user_id != user_id:
        raise click.ClickException(f"No subscription #{subscription_id} for {user_id}.")
    return subscription


def _subscription_fields(func):  # noqa: ANN001, ANN201
    """Options shared by 'add' and 'edit' for hand-entered subscription fields."""
    date_type = click.DateTime(formats=["%Y-%m-%d"])
    options = [
        click.option("--product", default=None, help="Plan or product name."),
        click.option(
            "--amount",
            default=None,
            type=click.FloatRange(min=0, min_open=True),
            help="Price per billing cycle.",
        ),
        click.option("--currency", default=None, help="Currency code, e.g. USD."),
        click.option("--tag", default=None, help="Category tag."),
        click.option("--start-date", type=date_type, help="First charge, YYYY-MM-DD."),
        click.option("--next-billing", type=date_type, help="Next charge, YYYY-MM-DD."),
        click.option("--expiry-date", type=date_type, help="Expiry, YYYY-MM-DD."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _field_values(**values) -> dict:
    """Option values that were given, converted to store fields."""
    fields = {name: value for name, value in values.items() if value is not None}
    if "currency" in fields:
        fields["currency"] = fields["currency"].upper()
    for name in ("start_date", "next_billing", "expiry_date"):
        if name in fields:
            fields[name] = _utc(fields[name])
    return fields


@click.group()
@click.version_option(version="0.1.0", prog_name="gmail-subscription-tracker")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.option(
    "--db",
    "db_path",
    default=None,
    type=click.Path(dir_okay=False),
    envvar="GMAIL_SUBSCRIPTION_TRACKER_DB",
    help="Subscription database path.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db_path: str | None) -> None:
    """Gmail Subscription Tracker - find recurring payments in your Gmail."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


@cli.command()
@user_option
@click.option(
    "-m",
    "--max-messages",
    default=MAX_SCAN_MESSAGES,
    type=int,
    show_default=True,
    help="Maximum messages to analyse.",
)
@catalog_option
@click.option("--dry-run", is_flag=True, help="Detect subscriptions without saving them.")
@click.pass_context
def scan(
    ctx: click.Context,
    user_id: str,
    max_messages: int,
    catalog_path: str | None,
    dry_run: bool,
) -> None:
    """Scan your Gmail for subscriptions and save them."""
    try:
        catalog = load_catalog(catalog_path)
    except CatalogError as e:
        raise click.ClickException(str(e)) from e

    try:
        service = get_gmail_service()
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    with _open_store(ctx) as store:
        result = scan_mailbox(
            service,
            store,
            user_id,
            catalog,
            max_results=max_messages,
            dry_run=dry_run,
        )
        display_scan_summary(result)
        if dry_run:
            return
        display_subscriptions(store.list_for_user(user_id), title=f"Subscriptions for {user_id}")

    deliver(ConsoleNotifier(console), build_scan_notifications(result))


@cli.command(name="list")
@user_option
@click.option(
    "--status",
    type=click.Choice([STATUS_ACTIVE, STATUS_EXPIRED]),
    default=None,
    help="Only show this status.",
)
@click.pass_context
def list_cmd(ctx: click.Context, user_id: str, status: str | None) -> None:
    """Show stored subscriptions."""
    with _open_store(ctx) as store:
        subscriptions = store.list_for_user(user_id, status=status)

    if not subscriptions:
        console.print(f"[dim]No subscriptions stored for {user_id}.[/dim]")
        return

    display_subscriptions(subscriptions, title=f"Subscriptions for {user_id}")


@cli.command(name="export")
@user_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "json"]),
    default="csv",
    help="Output format.",
)
@click.option("-o", "--output", required=True, help="Output file path.")
@click.pass_context
def export_cmd(ctx: click.Context, user_id: str, fmt: str, output: str) -> None:
    """Export stored subscriptions to CSV or JSON."""
    with _open_store(ctx) as store:
        subscriptions = store.list_for_user(user_id)

    if not subscriptions:
        raise click.ClickException(f"No subscriptions stored for {user_id}. Run 'scan' first.")

    export_subscriptions(subscriptions, format=fmt, output_path=output)


@cli.command()
@user_option
@click.option("--provider", required=True, help="Provider name, e.g. Netflix.")
@_subscription_fields
@click.pass_context
def add(ctx: click.Context, user_id: str, provider: str, **values) -> None:
    """Add a subscription by hand."""
    fields = _field_values(**values)
    subscription = Subscription(user_id=user_id, provider=provider, **fields)
    subscription.tag = subscription.tag or DEFAULT_TAG

    try:
        with _open_store(ctx) as store:
            created = store.create(subscription)
    except DuplicateSubscriptionError as e:
        raise click.ClickException(f"{e}. Use 'edit' to change it.") from e
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[green]Added[/green] {created.provider} as #{created.id}")


@cli.command()
@user_option
@click.argument("subscription_id", type=int)
@_subscription_fields
@click.option(
    "--status",
    type=click.Choice([STATUS_ACTIVE, STATUS_EXPIRED]),
    default=None,
    help="Set the status.",
)
@click.pass_context
def edit(ctx: click.Context, user_id: str, subscription_id: int, **values) -> None:
    """Correct the fields of a stored subscription."""
    fields = _field_values(**values)
    if not fields:
        raise click.UsageError("Nothing to change; pass at least one field option.")

    try:
        with _open_store(ctx) as store:
            _owned(store, subscription_id, user_id)
            updated = store.update(subscription_id, fields)
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[green]Updated[/green] {updated.provider} (#{updated.id})")


@cli.command()
@user_option
@click.argument("subscription_id", type=int)
@click.confirmation_option(prompt="Delete this subscription?")
@click.pass_context
def delete(ctx: click.Context, user_id: str, subscription_id: int) -> None:
    """Delete a stored subscription."""
    try:
        with _open_store(ctx) as store:
            subscription = _owned(store, subscription_id, user_id)
            store.delete(subscription_id)
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[green]Deleted[/green] {subscription.provider} (#{subscription_id})")


@cli.command()
@click.option(
    "--now",
    "now_value",
    default=None,
    type=click.DateTime(),
    help="Evaluate reminders as of this UTC time.",
)
@click.pass_context
def remind(ctx: click.Context, now_value: datetime | None) -> None:
    """Warn about upcoming renewals and expire lapsed subscriptions."""
    now = _utc(now_value) or utcnow()

    try:
        with _open_store(ctx) as store:
            expiring = find_expiring(store, now)
            expired = expire_due(store, now)
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    notifications = build_reminder_notifications(expiring, expired)
    if not notifications:
        console.print("[dim]No reminders due.[/dim]")
        return

    deliver(ConsoleNotifier(console), notifications)


@cli.command()
@user_option
@click.pass_context
def summary(ctx: click.Context, user_id: str) -> None:
    """Show spending and upcoming renewals."""
    with _open_store(ctx) as store:
        subscriptions = store.list_for_user(user_id, status=STATUS_ACTIVE)

    if not subscriptions:
        console.print(f"[dim]No active subscriptions for {user_id}.[/dim]")
        return

    summary_notification = build_summary_notification(
        user_id, weekly_summary(subscriptions, utcnow())
    )
    deliver(ConsoleNotifier(console), [summary_notification])


@cli.command(name="catalog")
@catalog_option
def catalog_cmd(catalog_path: str | None) -> None:
    """Show the known providers."""
    try:
        catalog = load_catalog(catalog_path)
    except CatalogError as e:
        raise click.ClickException(str(e)) from e
    display_catalog(catalog)


@cli.command()
def auth() -> None:
    """Test Gmail authentication."""
    check_auth()


@cli.group(name="store")
def store_group() -> None:
    """Manage the subscription database."""


@store_group.command(name="info")
@click.pass_context
def store_info(ctx: click.Context) -> None:
    """Show database statistics."""
    try:
        with _open_store(ctx) as store:
            info = store.get_info()
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    if info["subscription_count"] == 0:
        console.print("[dim]Store is empty.[/dim]")
        return

    console.print(f"[bold]Database size:[/bold] {info['db_file_size'] / 1024:.1f} KB")
    console.print(f"[bold]Last update:[/bold] {info['last_update']}")
    console.print(f"[bold]Users:[/bold] {info['user_count']}")
    console.print(f"[bold]Active:[/bold] {info['active_count']}")
    console.print(f"[bold]Expired:[/bold] {info['expired_count']}")


@store_group.command(name="clear")
@click.confirmation_option(prompt="Delete all stored subscriptions?")
@click.pass_context
def store_clear(ctx: click.Context) -> None:
    """Delete all stored subscriptions."""
    try:
        with _open_store(ctx) as store:
            store.clear()
    except StoreError as e:
        raise click.ClickException(str(e)) from e
    console.print("[green]Store cleared.[/green]")
