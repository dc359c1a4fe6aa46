"""Error taxonomy for logging actions."""


class BodyOSError(Exception):
    """Base class for domain errors."""


class ValidationError(BodyOSError):
    """Caller input was rejected before any state was touched."""


class Unauthenticated(BodyOSError):
    """No user session is available."""


class RemoteFailure(BodyOSError):
    """A remote mutation failed; local state has been rolled back."""


class StaleReconciliation(BodyOSError):
    """Server totals arrived after a newer local write and were discarded."""

    def __init__(self, expected_version: int, current_version: int) -> None:
        super().__init__(
            f"Stale reconciliation: expected version {expected_version}, "
            f"store is at {current_version}"
        )
        self.expected_version = expected_version
        self.current_version = current_version
