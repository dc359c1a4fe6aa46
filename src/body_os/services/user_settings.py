"""User settings service."""

from dataclasses import dataclass, field, replace
from typing import Protocol
from uuid import UUID

from body_os.domain.aggregates import DailyTargets
from body_os.domain.days import DayCutoff
from body_os.domain.validation import validate_targets


class UserSettingsRepository(Protocol):
    """Persistence interface for user settings."""

    def get_timezone(self, user_id: UUID) -> str | None:
        """Return the user's timezone if set."""

    def get_day_cutoff(self, user_id: UUID) -> DayCutoff | None:
        """Return the user's day cutoff if set."""

    def set_day_cutoff(self, user_id: UUID, cutoff: DayCutoff) -> None:
        """Create or update the user's day cutoff."""

    def get_targets(self, user_id: UUID) -> DailyTargets | None:
        """Return the user's daily goals if a settings row exists."""

    def set_targets(self, user_id: UUID, targets: DailyTargets) -> None:
        """Create or update the user's daily goals."""


@dataclass
class UserSettingsService:
    """Service for user settings."""

    repository: UserSettingsRepository
    default_timezone: str = "UTC"
    default_cutoff: DayCutoff = field(default_factory=DayCutoff)

    def get_timezone(self, user_id: UUID) -> str:
        """Return the user timezone or the default if unset."""
        return self.repository.get_timezone(user_id) or self.default_timezone

    def get_day_cutoff(self, user_id: UUID) -> DayCutoff:
        """Return the user's day cutoff or the default if unset."""
        return self.repository.get_day_cutoff(user_id) or self.default_cutoff

    def set_day_cutoff(self, user_id: UUID, hour: int, minute: int) -> DayCutoff:
        """Validate and persist a user's day cutoff."""
        cutoff = DayCutoff(hour=hour, minute=minute)
        self.repository.set_day_cutoff(user_id, cutoff)
        return cutoff

    def get_targets(self, user_id: UUID) -> DailyTargets:
        """Return the user's daily goals or the defaults if unset."""
        return self.repository.get_targets(user_id) or DailyTargets()

    def update_targets(self, user_id: UUID, **changes: float | None) -> DailyTargets:
        """Apply the given goals on top of the current ones and persist them."""
        provided = {name: value for name, value in changes.items() if value is not None}
        targets = replace(self.get_targets(user_id), **provided)
        validate_targets(targets)
        self.repository.set_targets(user_id, targets)
        return targets
