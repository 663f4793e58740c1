"""Exception types for Gmail Subscription Tracker."""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class CatalogError(TrackerError):
    """The provider catalog is missing or malformed."""


class StoreError(TrackerError):
    """A subscription store operation failed."""


class DuplicateSubscriptionError(StoreError):
    """A subscription for the same (user, provider) already exists."""
