"""Supabase repository for the consumption ledger."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from good_steward.adapters.rows import (
    consumption_from_row,
    consumption_to_row,
    format_timestamp,
)
from good_steward.adapters.supabase_errors import PAGE_SIZE, execute, fetch_all
from good_steward.domain.scans import ConsumptionRecord
from good_steward.services.ledger import ConsumptionRepository

_COLUMNS = "id, barcode, consumed_at, portion_grams, portion_nutrition"


@dataclass
class SupabaseConsumptionRepository(ConsumptionRepository):
    """Supabase implementation for consumption records."""

    client: Client
    page_size: int = PAGE_SIZE

    def append(self, record: ConsumptionRecord) -> None:
        """Insert a consumption row."""
        execute(
            self.client.table("consumptions").insert(consumption_to_row(record)),
            "append_consumption",
        )

    def exists(self, record_id: str) -> bool:
        """Return True when a row with this id exists."""
        response = execute(
            self.client.table("consumptions")
            .select("id")
            .eq("id", record_id)
            .limit(1),
            "consumption_exists",
        )
        return bool(response.data)

    def list_for_barcode(self, barcode: str) -> list[ConsumptionRecord]:
        """Return a product's rows, most recent first."""
        rows = fetch_all(
            lambda: self.client.table("consumptions")
            .select(_COLUMNS)
            .eq("barcode", barcode)
            .order("consumed_at", desc=True)
            .order("id"),
            "list_consumptions",
            self.page_size,
        )
        return [consumption_from_row(row) for row in rows]

    def list_between(self, start: datetime, end: datetime) -> list[ConsumptionRecord]:
        """Return rows in ``[start, end)``, oldest first."""
        rows = fetch_all(
            lambda: self.client.table("consumptions")
            .select(_COLUMNS)
            .gte("consumed_at", format_timestamp(start))
            .lt("consumed_at", format_timestamp(end))
            .order("consumed_at", desc=False)
            .order("id"),
            "list_consumptions_between",
            self.page_size,
        )
        return [consumption_from_row(row) for row in rows]

    def list_all(self) -> list[ConsumptionRecord]:
        """Return every row, most recent first."""
        rows = fetch_all(
            lambda: self.client.table("consumptions")
            .select(_COLUMNS)
            .order("consumed_at", desc=True)
            .order("id"),
            "list_all_consumptions",
            self.page_size,
        )
        return [consumption_from_row(row) for row in rows]

    def clear(self) -> None:
        """Delete all consumption rows."""
        execute(
            self.client.table("consumptions").delete().neq("id", ""),
            "clear_consumptions",
        )
