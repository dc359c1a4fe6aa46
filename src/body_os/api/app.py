"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from body_os.api.models import (
    BloatedRequest,
    CheckInRequest,
    CheckInResponse,
    DailyLogModel,
    DailyReviewModel,
    DailyReviewRequest,
    DayCutoffModel,
    InventoryItemModel,
    NutritionLogRequest,
    NutritionLogResponse,
    TargetsModel,
    TargetsUpdateRequest,
    TodayLogResponse,
    WaterLogRequest,
    WaterLogResponse,
)
from body_os.app_logging import configure_logging
from body_os.containers import AppContainer
from body_os.domain.days import DayCutoff
from body_os.domain.errors import Unauthenticated, ValidationError


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID:
    """Resolve the bearer token to a user id."""
    container: AppContainer = request.app.state.container
    token = _parse_bearer(authorization)
    user_id = container.token_registry.resolve(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user_id


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(
        request: Request, exc: Unauthenticated
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/inventory")
    async def list_inventory(
        request: Request, user_id: UUID = Depends(require_user)
    ) -> dict[str, list[InventoryItemModel]]:
        """Return active inventory items."""
        state_container: AppContainer = request.app.state.container
        items = state_container.inventory_service.list_active()
        return {"items": [InventoryItemModel.from_domain(item) for item in items]}

    @app.get("/daily-log/today")
    async def today_log(
        request: Request,
        cutoff_hour: int | None = None,
        cutoff_minute: int | None = None,
        user_id: UUID = Depends(require_user),
    ) -> TodayLogResponse:
        """Return today's daily log, if any."""
        state_container: AppContainer = request.app.state.container
        cutoff = _optional_cutoff(cutoff_hour, cutoff_minute)
        aggregate = state_container.daily_log_service.get_today(user_id, cutoff)
        return TodayLogResponse(
            daily_log=DailyLogModel.from_domain(aggregate) if aggregate else None
        )

    @app.post("/water")
    async def log_water(
        body: WaterLogRequest, request: Request, user_id: UUID = Depends(require_user)
    ) -> WaterLogResponse:
        """Append a water entry."""
        state_container: AppContainer = request.app.state.container
        result = state_container.daily_log_service.log_water(
            user_id, body.amount_ml, body.day_cutoff()
        )
        logger.info("Logged %s ml water for %s", body.amount_ml, user_id)
        return WaterLogResponse.from_domain(result)

    @app.post("/nutrition")
    async def log_nutrition(
        body: NutritionLogRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> NutritionLogResponse:
        """Append a nutrition entry."""
        state_container: AppContainer = request.app.state.container
        result = state_container.daily_log_service.log_nutrition(
            user_id, body.item_id, body.quantity, body.meal_type, body.day_cutoff()
        )
        logger.info("Logged item %s x%s for %s", body.item_id, body.quantity, user_id)
        return NutritionLogResponse.from_domain(result)

    @app.put("/check-in")
    async def upsert_check_in(
        body: CheckInRequest, request: Request, user_id: UUID = Depends(require_user)
    ) -> CheckInResponse:
        """Create or update today's check-in."""
        state_container: AppContainer = request.app.state.container
        record = state_container.daily_log_service.upsert_check_in(
            user_id, body.to_domain(), body.day_cutoff()
        )
        return CheckInResponse.from_domain(record)

    @app.post("/daily-log/bloated")
    async def mark_bloated(
        body: BloatedRequest, request: Request, user_id: UUID = Depends(require_user)
    ) -> DailyLogModel:
        """Flag today as bloated and re-evaluate the soya rule."""
        state_container: AppContainer = request.app.state.container
        aggregate = state_container.daily_log_service.mark_bloated(
            user_id, body.bloated, body.day_cutoff()
        )
        return DailyLogModel.from_domain(aggregate)

    @app.post("/daily-log/review")
    async def submit_daily_review(
        body: DailyReviewRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> DailyReviewModel:
        """Record the end-of-day review."""
        state_container: AppContainer = request.app.state.container
        review = state_container.daily_log_service.submit_daily_review(
            user_id,
            took_soya=body.took_soya,
            elbow_status=body.elbow_status,
            notes=body.notes,
            cutoff=body.day_cutoff(),
        )
        return DailyReviewModel.from_domain(review)

    @app.get("/settings/day-cutoff")
    async def get_day_cutoff(
        request: Request, user_id: UUID = Depends(require_user)
    ) -> DayCutoffModel:
        """Return the user's day cutoff."""
        state_container: AppContainer = request.app.state.container
        cutoff = state_container.user_settings_service.get_day_cutoff(user_id)
        return DayCutoffModel(hour=cutoff.hour, minute=cutoff.minute)

    @app.put("/settings/day-cutoff")
    async def set_day_cutoff(
        body: DayCutoffModel, request: Request, user_id: UUID = Depends(require_user)
    ) -> DayCutoffModel:
        """Update the user's day cutoff."""
        state_container: AppContainer = request.app.state.container
        cutoff = state_container.user_settings_service.set_day_cutoff(
            user_id, body.hour, body.minute
        )
        return DayCutoffModel(hour=cutoff.hour, minute=cutoff.minute)

    @app.get("/settings/targets")
    async def get_targets(
        request: Request, user_id: UUID = Depends(require_user)
    ) -> TargetsModel:
        """Return the user's daily goals."""
        state_container: AppContainer = request.app.state.container
        targets = state_container.user_settings_service.get_targets(user_id)
        return TargetsModel.from_domain(targets)

    @app.put("/settings/targets")
    async def update_targets(
        body: TargetsUpdateRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> TargetsModel:
        """Update some or all of the user's daily goals."""
        state_container: AppContainer = request.app.state.container
        targets = state_container.user_settings_service.update_targets(
            user_id, **body.model_dump()
        )
        return TargetsModel.from_domain(targets)

    return app


def _parse_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _optional_cutoff(hour: int | None, minute: int | None) -> DayCutoff | None:
    if hour is None or minute is None:
        return None
    return DayCutoff(hour=hour, minute=minute)
