"""Exception classes for sync, cost and remote API failures."""

from typing import Any


class ProfitSyncError(Exception):
    """Base exception for all service errors.

    Attributes:
        message: Human readable message, persisted on sync runs as-is
        error_code: Stable identifier, defaults to the class name
        context: Extra structured data for logs and sync run details
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        super().__init__(self.message)


class RemoteApiError(ProfitSyncError):
    """Non-2xx response or transport failure from the remote commerce API.

    ``status`` is ``None`` when the request never produced a response.
    """

    def __init__(self, status: int | None, body: str, url: str | None = None):
        self.status = status
        self.body = body
        if status is None:
            message = f"WooCommerce request failed: {body}"
        else:
            message = f"WooCommerce API error: {status} - {body}"
        super().__init__(message, context={"status": status, "url": url})


class MissingCredentialsError(ProfitSyncError, ValueError):
    """Connection credentials are incomplete."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Missing required fields: " + ", ".join(missing),
            context={"missing": missing},
        )


class InvalidCostError(ProfitSyncError, ValueError):
    """Cost amount is negative or not a number."""


class InvalidStateTransition(ProfitSyncError):
    """A sync run or page state was moved along an edge that does not exist."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition from {current} to {target}",
            context={"current": current, "target": target},
        )


class SyncAlreadyRunningError(ProfitSyncError):
    """Another sync holds the lock for this website."""

    def __init__(self, website_id: int):
        self.website_id = website_id
        super().__init__(
            f"Website {website_id} is already syncing",
            context={"website_id": website_id},
        )


class SyncCancelledError(ProfitSyncError):
    """The caller asked the sync to stop."""


class SyncTimeoutError(ProfitSyncError):
    """The sync exceeded its wall-clock budget."""


class SyncPhaseError(ProfitSyncError):
    """A products or orders phase ended in failure.

    ``kind`` is one of ``failed``, ``cancelled`` or ``timeout``.
    """

    def __init__(
        self, sync_type: str, message: str, kind: str = "failed", processed: int = 0
    ):
        self.sync_type = sync_type
        self.kind = kind
        self.processed = processed
        super().__init__(message, context={"sync_type": sync_type, "kind": kind})
