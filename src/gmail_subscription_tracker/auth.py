"""OAuth for the read-only Gmail API."""

from __future__ import annotations

import logging
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from gmail_subscription_tracker.constants import CONFIG_DIR, CREDENTIALS_PATH, SCOPES, TOKEN_PATH
from gmail_subscription_tracker.display import console

logger = logging.getLogger(__name__)


def _load_token(token_path: Path) -> Credentials | None:
    if not token_path.exists():
        return None
    return Credentials.from_authorized_user_file(str(token_path), SCOPES)


def _authorize(credentials_path: Path) -> Credentials:
    if not credentials_path.exists():
        raise FileNotFoundError(
            f"Credentials file not found at {credentials_path}.\n"
            "Create an OAuth client (Desktop app) with the Gmail API enabled "
            "in the Google Cloud Console and save its JSON as:\n"
            f"  {credentials_path}"
        )
    logger.info("Starting browser authorization for %s", credentials_path)
    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
    return flow.run_local_server(port=0)


def get_gmail_service(
    credentials_path: Path | None = None,
    token_path: Path | None = None,
) -> Resource:
    """Return a read-only Gmail API service object.

    The cached token is reused and refreshed when it has expired. Without a
    usable token the installed-app flow runs against the OAuth client
    secrets, and the resulting token is cached for the next run.
    """
    credentials_path = credentials_path or CREDENTIALS_PATH
    token_path = token_path or TOKEN_PATH
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    creds = _load_token(token_path)
    if creds and creds.valid:
        logger.debug("Using cached Gmail token")
    elif creds and creds.expired and creds.refresh_token:
        logger.debug("Refreshing expired Gmail token")
        creds.refresh(Request())
        token_path.write_text(creds.to_json())
    else:
        creds = _authorize(credentials_path)
        token_path.write_text(creds.to_json())

    return build("gmail", "v1", credentials=creds)


def get_account_email(service: Resource) -> str:
    """Email address of the authenticated account."""
    return service.users().getProfile(userId="me").execute()["emailAddress"]


def check_auth() -> bool:
    """Print whether Gmail authentication works."""
    try:
        email = get_account_email(get_gmail_service())
    except (FileNotFoundError, GoogleAuthError, HttpError) as exc:
        console.print(f"[red]Authentication failed:[/red] {exc}")
        return False

    console.print(f"[green]Authenticated as[/green] {email}")
    return True
