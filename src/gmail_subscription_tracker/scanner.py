"""Scan orchestration - finds billing emails, infers subscriptions, saves them."""

from __future__ import annotations

from datetime import datetime

from .catalog import InferenceConfig, ProviderCatalog
from .constants import BATCH_SIZE, MAX_SCAN_MESSAGES
from .display import console, create_progress
from .gmail_client import build_search_queries, fetch_messages, list_message_ids
from .merge import merge_subscriptions
from .models import MergeResult, ScanResult, utcnow
from .pipeline import parse_subscriptions_from_emails
from .store import SubscriptionStore


def scan_mailbox(
    service,
    store: SubscriptionStore,
    user_id: str,
    catalog: ProviderCatalog,
    config: InferenceConfig | None = None,
    max_results: int | None = MAX_SCAN_MESSAGES,
    dry_run: bool = False,
    now: datetime | None = None,
) -> ScanResult:
    """Run a full scan for one user: list IDs, fetch messages, infer, merge."""
    now = now or utcnow()

    # Step 1: List message IDs
    console.print("[bold]Step 1/4:[/bold] Searching for billing emails...")
    with create_progress("Listing messages") as progress:
        task = progress.add_task("listing", total=None)
        ids = list_message_ids(service, build_search_queries(now), max_results=max_results)
        progress.update(task, completed=len(ids), total=len(ids))

    console.print(f"  Found [bold]{len(ids)}[/bold] unique emails to analyse")

    if not ids:
        return ScanResult(user_id=user_id, total_messages=0, scan_date=now)

    # Step 2: Fetch messages
    console.print("[bold]Step 2/4:[/bold] Fetching messages...")
    with create_progress("Fetching messages") as progress:
        total_batches = (len(ids) + BATCH_SIZE - 1) // BATCH_SIZE
        task = progress.add_task("fetching", total=total_batches)

        def on_batch(batch_num: int, total: int) -> None:
            progress.update(task, completed=batch_num)

        messages = fetch_messages(service, ids, callback=on_batch)

    console.print(f"  Fetched [bold]{len(messages)}[/bold] messages")

    # Step 3: Infer subscriptions
    console.print("[bold]Step 3/4:[/bold] Detecting subscriptions...")
    candidates = parse_subscriptions_from_emails(messages, catalog, config, now=now)
    console.print(f"  Detected [bold]{len(candidates)}[/bold] subscriptions")

    # Step 4: Save
    if dry_run:
        console.print("[yellow][DRY RUN] Nothing was saved.[/yellow]")
        merge = MergeResult()
    else:
        console.print("[bold]Step 4/4:[/bold] Saving subscriptions...")
        merge = merge_subscriptions(store, user_id, candidates)

    return ScanResult(
        user_id=user_id,
        total_messages=len(messages),
        candidates=candidates,
        merge=merge,
        scan_date=now,
    )
