"""Supabase repository for cached scans."""

from dataclasses import dataclass

from supabase import Client

from good_steward.adapters.rows import scan_from_row, scan_to_row
from good_steward.adapters.supabase_errors import PAGE_SIZE, execute, fetch_all
from good_steward.domain.scans import ScanResult
from good_steward.services.scans import ScanRepository


@dataclass
class SupabaseScanRepository(ScanRepository):
    """Supabase implementation for product facts."""

    client: Client
    page_size: int = PAGE_SIZE

    def get_scan(self, barcode: str) -> ScanResult | None:
        """Return a scan row by barcode."""
        response = execute(
            self.client.table("scans").select("*").eq("barcode", barcode).limit(1),
            "get_scan",
        )
        if not response.data:
            return None
        return scan_from_row(response.data[0])

    def upsert_scan(self, scan: ScanResult) -> None:
        """Insert or update a scan row keyed by barcode."""
        execute(
            self.client.table("scans").upsert(scan_to_row(scan), on_conflict="barcode"),
            "upsert_scan",
        )

    def list_scans(self) -> list[ScanResult]:
        """Return scans, most recently scanned first."""
        rows = fetch_all(
            lambda: self.client.table("scans")
            .select("*")
            .order("scanned_at", desc=True)
            .order("barcode"),
            "list_scans",
            self.page_size,
        )
        return [scan_from_row(row) for row in rows]

    def delete_scan(self, barcode: str) -> None:
        """Delete a scan row."""
        execute(
            self.client.table("scans").delete().eq("barcode", barcode),
            "delete_scan",
        )

    def clear(self) -> None:
        """Delete all scan rows."""
        execute(self.client.table("scans").delete().neq("barcode", ""), "clear_scans")

    def count(self) -> int:
        """Return the number of scan rows as counted by the server."""
        response = execute(
            self.client.table("scans").select("barcode", count="exact").limit(1),
            "count_scans",
        )
        return response.count or 0
