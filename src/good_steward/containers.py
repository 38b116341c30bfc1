"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from good_steward.adapters.sqlite_store import (
    SqliteConsumptionRepository,
    SqliteDatabase,
    SqliteProfileRepository,
    SqliteScanRepository,
)
from good_steward.adapters.supabase_consumption_repository import (
    SupabaseConsumptionRepository,
)
from good_steward.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from good_steward.adapters.supabase_scan_repository import SupabaseScanRepository
from good_steward.config import Settings, resolve_timezone
from good_steward.errors import GoodStewardError
from good_steward.services.cache import InMemoryCache
from good_steward.services.ledger import ConsumptionLedger, ConsumptionRepository
from good_steward.services.profile import ProfileRepository, ProfileService
from good_steward.services.scans import ScanCacheService, ScanRepository
from good_steward.services.stats import StatsService

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    scan_service: ScanCacheService
    ledger: ConsumptionLedger
    stats_service: StatsService
    profile_service: ProfileService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    scan_repository, consumption_repository, profile_repository = (
        _build_repositories(resolved_settings)
    )
    return assemble_container(
        resolved_settings,
        scan_repository=scan_repository,
        consumption_repository=consumption_repository,
        profile_repository=profile_repository,
    )


def assemble_container(
    settings: Settings,
    *,
    scan_repository: ScanRepository,
    consumption_repository: ConsumptionRepository,
    profile_repository: ProfileRepository,
) -> AppContainer:
    """Wire services over the given repositories."""
    timezone = resolve_timezone(settings.timezone)
    ledger = ConsumptionLedger(consumption_repository)
    scan_service = ScanCacheService(
        repository=scan_repository,
        ledger=ledger,
        timezone=timezone,
        cache=InMemoryCache(),
        cache_ttl_seconds=settings.scan_cache_ttl_seconds,
    )
    stats_service = StatsService(ledger=ledger, timezone=timezone)
    profile_service = ProfileService(profile_repository)

    async def close_resources() -> None:
        scan_service.cache.clear()

    return AppContainer(
        settings=settings,
        scan_service=scan_service,
        ledger=ledger,
        stats_service=stats_service,
        profile_service=profile_service,
        close_resources=close_resources,
    )


def _build_repositories(
    settings: Settings,
) -> tuple[ScanRepository, ConsumptionRepository, ProfileRepository]:
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise GoodStewardError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the supabase backend"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        _logger.info("Using Supabase storage: url=%s", settings.supabase_url)
        return (
            SupabaseScanRepository(client),
            SupabaseConsumptionRepository(client),
            SupabaseProfileRepository(client),
        )
    database = SqliteDatabase(settings.sqlite_path)
    database.init_schema()
    return (
        SqliteScanRepository(database),
        SqliteConsumptionRepository(database),
        SqliteProfileRepository(database),
    )
