"""In-process gateway that calls the daily log service directly."""

from dataclasses import dataclass
from uuid import UUID

from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    NutritionLogResult,
    WaterLogResult,
)
from body_os.domain.days import DayCutoff
from body_os.domain.errors import Unauthenticated
from body_os.services.auth import AuthProvider
from body_os.services.daily_logs import DailyLogService
from body_os.services.sync import RemoteMutationGateway


@dataclass
class ServiceMutationGateway(RemoteMutationGateway):
    """Gateway for running the coordinator against local services."""

    service: DailyLogService
    auth_provider: AuthProvider

    async def log_water(self, amount_ml: int, cutoff: DayCutoff) -> WaterLogResult:
        return self.service.log_water(self._user_id(), amount_ml, cutoff)

    async def log_nutrition(
        self, item_id: UUID, quantity: float, cutoff: DayCutoff
    ) -> NutritionLogResult:
        return self.service.log_nutrition(
            self._user_id(), item_id, quantity, cutoff=cutoff
        )

    async def upsert_check_in(
        self, values: CheckInValues, cutoff: DayCutoff
    ) -> CheckInRecord:
        return self.service.upsert_check_in(self._user_id(), values, cutoff)

    async def fetch_daily_aggregate(self, cutoff: DayCutoff) -> DailyAggregate | None:
        return self.service.get_today(self._user_id(), cutoff)

    def _user_id(self) -> UUID:
        raw = self.auth_provider.current_user_id()
        if not raw:
            raise Unauthenticated("No active session")
        try:
            return UUID(raw)
        except ValueError as exc:
            raise Unauthenticated(f"Invalid user id {raw!r}") from exc
