"""Gmail API calls: search billing mail and fetch full messages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Iterator

from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from gmail_subscription_tracker.constants import (
    BATCH_SIZE,
    DEFAULT_USER_ID,
    MAX_SCAN_MESSAGES,
    PAGE_SIZE,
    SEARCH_QUERY_TEMPLATES,
)
from gmail_subscription_tracker.models import RawMessage

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = (429, 500, 503)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in TRANSIENT_STATUSES


# Rate limits and backend hiccups: back off exponentially, give up after 5 tries.
with_backoff = retry(
    retry=retry_if_exception(_is_transient),
    wait=wait_exponential(multiplier=1, min=1, max=60),
    stop=stop_after_attempt(5),
    reraise=True,
)


@with_backoff
def _execute(request):  # noqa: ANN001, ANN202
    return request.execute()


def build_search_queries(now: datetime) -> list[str]:
    """Gmail search queries covering mail since 1 January of last year."""
    after = f"{now.year - 1}/01/01"
    return [template.format(after=after) for template in SEARCH_QUERY_TEMPLATES]


def _iter_query_ids(service, query: str) -> Iterator[str]:
    page_token: str | None = None
    while True:
        params = {
            "userId": DEFAULT_USER_ID,
            "q": query,
            "maxResults": PAGE_SIZE,
            "fields": "messages/id,nextPageToken",
        }
        if page_token:
            params["pageToken"] = page_token

        page = _execute(service.users().messages().list(**params))
        for item in page.get("messages", []):
            yield item["id"]

        page_token = page.get("nextPageToken")
        if not page_token:
            return


def list_message_ids(
    service,
    queries: Iterable[str],
    max_results: int | None = MAX_SCAN_MESSAGES,
) -> list[str]:
    """List unique message IDs matching any query, in first-seen order.

    A query that still fails after retries is logged and skipped; IDs it
    yielded before failing are kept.
    """
    seen: dict[str, None] = {}

    for query in queries:
        try:
            for msg_id in _iter_query_ids(service, query):
                seen.setdefault(msg_id, None)
                if max_results and len(seen) >= max_results:
                    return list(seen)[:max_results]
        except HttpError as exc:
            logger.warning("Gmail search failed for %r: %s", query, exc)

    logger.debug("Found %d candidate messages", len(seen))
    return list(seen)


def _chunks(items: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def fetch_messages(
    service,
    message_ids: list[str],
    callback: Callable[[int, int], None] | None = None,
) -> list[RawMessage]:
    """Fetch full messages in batched requests.

    Messages that fail to load are logged and skipped. The result keeps the
    order of *message_ids*. *callback* receives ``(batches_done, batches_total)``.
    """
    fetched: dict[str, RawMessage] = {}
    chunks = list(_chunks(message_ids, BATCH_SIZE))

    def on_response(msg_id: str, response, exception) -> None:  # noqa: ANN001
        if exception is not None:
            logger.warning("Skipping message %s: %s", msg_id, exception)
            return
        fetched[msg_id] = RawMessage.from_api({"id": msg_id, **response})

    for done, chunk in enumerate(chunks, start=1):
        batch = service.new_batch_http_request()
        for msg_id in chunk:
            batch.add(
                service.users().messages().get(userId=DEFAULT_USER_ID, id=msg_id, format="full"),
                callback=on_response,
                request_id=msg_id,
            )
        with_backoff(batch.execute)()

        if callback:
            callback(done, len(chunks))

    return [fetched[msg_id] for msg_id in message_ids if msg_id in fetched]
