"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from good_steward.api.admin import router as admin_router
from good_steward.api.models import (
    ConsumptionPayload,
    ConsumptionRequest,
    DailyTotalsResponse,
    LabelRequest,
    LabelResponse,
    NutritionPayload,
    PeriodStatsResponse,
    ProfilePatch,
    ScanPayload,
    ScanResponse,
    TrendResponse,
    WarningResponse,
    WarningsResponse,
)
from good_steward.app_logging import configure_logging
from good_steward.containers import AppContainer
from good_steward.domain.profile import UserProfile
from good_steward.domain.scans import HistoryFilter
from good_steward.errors import StorageError, ValidationError
from good_steward.services.filters import check_product, has_critical_warnings
from good_steward.services.labels import (
    calculate_confidence,
    has_useful_nutrition,
    parse_nutrition_label,
)


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

    app.include_router(admin_router)

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        logger.error("Storage failure: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Storage is unavailable, please retry."},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        logger.info("Rejected request: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/scans")
    def list_scans(
        request: Request, filter: str = HistoryFilter.ALL.value  # noqa: A002
    ) -> list[ScanResponse]:
        """Return scan history: all, ever consumed, or consumed today."""
        state_container: AppContainer = request.app.state.container
        scans = state_container.scan_service.get_history_filtered(filter)
        return [ScanResponse.from_domain(scan) for scan in scans]

    @app.get("/scans/{barcode}")
    def get_scan(barcode: str, request: Request) -> ScanResponse:
        """Return a cached scan with its consumptions."""
        state_container: AppContainer = request.app.state.container
        scan = state_container.scan_service.get(barcode)
        if scan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return ScanResponse.from_domain(scan)

    @app.put("/scans/{barcode}")
    def save_scan(barcode: str, payload: ScanPayload, request: Request) -> ScanResponse:
        """Insert or update product facts, keeping logged consumptions."""
        state_container: AppContainer = request.app.state.container
        stored = state_container.scan_service.save(payload.to_domain(barcode))
        if stored is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return ScanResponse.from_domain(stored)

    @app.delete("/scans/{barcode}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_scan(barcode: str, request: Request) -> None:
        """Remove a scan; its consumption records stay in the statistics."""
        state_container: AppContainer = request.app.state.container
        state_container.scan_service.delete_scan(barcode)

    @app.patch("/scans/{barcode}/nutrition")
    def update_nutrition(
        barcode: str, payload: NutritionPayload, request: Request
    ) -> ScanResponse:
        """Merge edited nutrition values into a scan."""
        state_container: AppContainer = request.app.state.container
        changes = payload.model_dump(exclude_unset=True)
        changes.pop("is_user_edited", None)
        updated = state_container.scan_service.update_nutrition(barcode, changes)
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return ScanResponse.from_domain(updated)

    @app.post("/scans/{barcode}/nutrition/label")
    def apply_label(
        barcode: str, payload: LabelRequest, request: Request
    ) -> LabelResponse:
        """Parse OCR'd label text and merge what was found into a scan."""
        state_container: AppContainer = request.app.state.container
        if state_container.scan_service.get(barcode) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        parsed = parse_nutrition_label(payload.text)
        updated = (
            state_container.scan_service.update_nutrition(barcode, parsed)
            if parsed
            else None
        )
        return LabelResponse(
            parsed=parsed,
            confidence=calculate_confidence(parsed),
            useful=has_useful_nutrition(parsed),
            scan=ScanResponse.from_domain(updated) if updated else None,
        )

    @app.post(
        "/scans/{barcode}/consumptions", status_code=status.HTTP_201_CREATED
    )
    def add_consumption(
        barcode: str, payload: ConsumptionRequest, request: Request
    ) -> ConsumptionPayload:
        """Log a portion of a cached product."""
        state_container: AppContainer = request.app.state.container
        record = state_container.scan_service.add_consumption(
            barcode, payload.portion_grams, payload.consumed_at
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return ConsumptionPayload.from_domain(record)

    @app.get("/scans/{barcode}/warnings")
    def scan_warnings(barcode: str, request: Request) -> WarningsResponse:
        """Evaluate a cached product against the user's filter profile."""
        state_container: AppContainer = request.app.state.container
        scan = state_container.scan_service.get(barcode)
        if scan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        profile = state_container.profile_service.load()
        warnings = check_product(profile, scan)
        return WarningsResponse(
            barcode=barcode,
            count=len(warnings),
            critical=has_critical_warnings(profile, scan),
            warnings=[WarningResponse.from_domain(warning) for warning in warnings],
        )

    @app.get("/stats/daily")
    def daily_totals(request: Request, day: date | None = None) -> DailyTotalsResponse:
        """Return totals for a local day, today by default."""
        state_container: AppContainer = request.app.state.container
        totals = state_container.stats_service.get_daily_totals(day)
        return DailyTotalsResponse.from_domain(totals)

    @app.get("/stats/period")
    def period_stats(
        request: Request, days: int = 7, offset: int = 0
    ) -> PeriodStatsResponse:
        """Return per-tracked-day averages over a rolling window."""
        state_container: AppContainer = request.app.state.container
        stats = state_container.stats_service.get_period_stats(days, offset)
        return PeriodStatsResponse.from_domain(stats)

    @app.get("/stats/trend")
    def trend(request: Request, days: int = 7) -> TrendResponse:
        """Compare the last window with the one before it."""
        state_container: AppContainer = request.app.state.container
        comparison = state_container.stats_service.compare_periods(days)
        return TrendResponse.from_domain(comparison)

    @app.get("/profile")
    def get_profile(request: Request) -> UserProfile:
        """Return the filter profile."""
        state_container: AppContainer = request.app.state.container
        return state_container.profile_service.load()

    @app.patch("/profile")
    def update_profile(payload: ProfilePatch, request: Request) -> UserProfile:
        """Apply a partial profile update."""
        state_container: AppContainer = request.app.state.container
        changes = payload.model_dump(exclude_unset=True)
        if "allergens" in changes and changes["allergens"] is not None:
            changes["allergens"] = frozenset(changes["allergens"])
        return state_container.profile_service.update(**changes)

    @app.delete("/profile")
    def reset_profile(request: Request) -> UserProfile:
        """Restore the default profile."""
        state_container: AppContainer = request.app.state.container
        return state_container.profile_service.reset()

    return app
