"""Constants for Gmail Subscription Tracker."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".gmail-subscription-tracker"
CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_PATH = CONFIG_DIR / "token.json"
STORE_DB_PATH = CONFIG_DIR / "subscriptions.db"
CATALOG_PATH = Path(__file__).parent / "data" / "providers.json"

DEFAULT_USER_ID = "me"

# --- Gmail API ---
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
BATCH_SIZE = 50  # messages per BatchHttpRequest
PAGE_SIZE = 200  # messages per list page
MAX_SCAN_MESSAGES = 500  # unique messages handed to the parser per scan
SEARCH_QUERY_TEMPLATES = [
    'after:{after} subject:(subscription OR receipt OR invoice OR "payment" OR "renewal")',
    'after:{after} from:billing OR from:receipt OR from:invoice OR "donotreply" OR "no-reply"',
    'after:{after} subject:(welcome OR "your subscription")',
]

# --- Inference ---
SUBSCRIPTION_KEYWORDS = [
    "subscription",
    "renew",
    "renewal",
    "invoice",
    "receipt",
    "charged",
    "payment",
    "processed",
    "billed",
]
# (code, markers) in priority order
CURRENCY_MARKERS = [
    ("USD", ["usd", "$"]),
    ("NGN", ["ngn", "₦"]),
    ("EUR", ["eur", "€"]),
    ("GBP", ["gbp", "£"]),
]
PRODUCT_TOKENS = [
    "plan",
    "subscription",
    "membership",
    "premium",
    "pro",
    "plus",
    "monthly",
    "annual",
]
PLACEHOLDER_PRODUCTS = ["unknown"]
BILLING_CYCLE_DAYS = 30

# --- Scoring weights ---
SCORE_AMOUNT_PRESENT = 20
SCORE_AMOUNT_MISSING = -20
SCORE_PLAUSIBLE_AMOUNT = 30
SCORE_TINY_AMOUNT = -10
SCORE_PRODUCT = 5
SCORE_CURRENCY = 5
RECENCY_MAX_BONUS = 10
RECENCY_DAYS_PER_POINT = 3

# --- Scoring thresholds ---
PLAUSIBLE_AMOUNT_MIN = 5
PLAUSIBLE_AMOUNT_MAX = 10000

# --- Subscription status ---
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"

# --- Reminders ---
EXPIRY_WARNING_DAYS = (7, 3, 1)
# On the last warning day the notice becomes a payment reminder.
PAYMENT_REMINDER_DAYS = 1
RENEWAL_HORIZON_DAYS = 30
