"""HTTP client for the Body OS API."""

from dataclasses import dataclass
from uuid import UUID

import httpx

from body_os.api.models import (
    CheckInResponse,
    NutritionLogResponse,
    TodayLogResponse,
    WaterLogResponse,
)
from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    NutritionLogResult,
    WaterLogResult,
)
from body_os.domain.days import DayCutoff
from body_os.services.sync import RemoteMutationGateway


@dataclass
class HttpxMutationGateway(RemoteMutationGateway):
    """Remote mutation gateway implemented with httpx."""

    base_url: str
    access_token: str | None
    http_client: httpx.AsyncClient
    timeout: float = 10

    @classmethod
    def create(cls, base_url: str, access_token: str | None) -> "HttpxMutationGateway":
        """Create a gateway with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=access_token,
            http_client=httpx.AsyncClient(),
        )

    async def log_water(self, amount_ml: int, cutoff: DayCutoff) -> WaterLogResult:
        """Append a water entry via POST /water."""
        response = await self.http_client.post(
            f"{self.base_url}/water",
            json={"amount_ml": amount_ml, **_cutoff_fields(cutoff)},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return WaterLogResponse.model_validate(response.json()).to_domain()

    async def log_nutrition(
        self, item_id: UUID, quantity: float, cutoff: DayCutoff
    ) -> NutritionLogResult:
        """Append a nutrition entry via POST /nutrition."""
        response = await self.http_client.post(
            f"{self.base_url}/nutrition",
            json={
                "item_id": str(item_id),
                "quantity": quantity,
                **_cutoff_fields(cutoff),
            },
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return NutritionLogResponse.model_validate(response.json()).to_domain()

    async def upsert_check_in(
        self, values: CheckInValues, cutoff: DayCutoff
    ) -> CheckInRecord:
        """Create or update today's check-in via PUT /check-in."""
        response = await self.http_client.put(
            f"{self.base_url}/check-in",
            json={**values.provided(), **_cutoff_fields(cutoff)},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return CheckInResponse.model_validate(response.json()).to_domain()

    async def fetch_daily_aggregate(self, cutoff: DayCutoff) -> DailyAggregate | None:
        """Fetch today's aggregate via GET /daily-log/today."""
        response = await self.http_client.get(
            f"{self.base_url}/daily-log/today",
            params=_cutoff_fields(cutoff),
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = TodayLogResponse.model_validate(response.json())
        if payload.daily_log is None:
            return None
        return payload.daily_log.to_domain()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


def _cutoff_fields(cutoff: DayCutoff) -> dict[str, int]:
    return {"cutoff_hour": cutoff.hour, "cutoff_minute": cutoff.minute}
