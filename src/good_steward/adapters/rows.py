"""Row mapping shared by the storage adapters."""

from datetime import UTC, datetime

from good_steward.domain.nutrition import NutritionData, PortionNutrition
from good_steward.domain.scans import CaptureSource, ConsumptionRecord, ScanResult
from good_steward.errors import StorageError


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as fixed-width UTC text that sorts lexically."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def parse_timestamp(value: object) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        raise StorageError(f"Invalid stored timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def scan_to_row(scan: ScanResult) -> dict[str, object]:
    """Map product facts to a row; JSON-like columns stay as Python values."""
    return {
        "barcode": scan.barcode,
        "name": scan.name,
        "brand": scan.brand,
        "ingredients": scan.ingredients,
        "summary": scan.summary,
        "nutrition": scan.nutrition.to_dict() if scan.nutrition else None,
        "allergens": sorted(scan.allergens),
        "traces": sorted(scan.traces),
        "data_source": scan.data_source,
        "source": scan.source.value,
        "photo_uri": scan.photo_uri,
        "scanned_at": format_timestamp(scan.timestamp),
    }


def scan_from_row(row: dict[str, object]) -> ScanResult:
    """Map a row back to a ScanResult without consumptions."""
    nutrition = row.get("nutrition")
    try:
        return ScanResult(
            barcode=str(row["barcode"]),
            name=str(row.get("name") or ""),
            brand=row.get("brand") or None,
            ingredients=str(row.get("ingredients") or ""),
            summary=str(row.get("summary") or ""),
            nutrition=NutritionData.from_dict(
                nutrition if isinstance(nutrition, dict) else None
            ),
            allergens=frozenset(row.get("allergens") or ()),
            traces=frozenset(row.get("traces") or ()),
            data_source=row.get("data_source") or None,
            source=CaptureSource(row.get("source") or CaptureSource.BARCODE),
            photo_uri=row.get("photo_uri") or None,
            timestamp=parse_timestamp(row.get("scanned_at")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Corrupt scan row: {row.get('barcode')}") from exc


def consumption_to_row(record: ConsumptionRecord) -> dict[str, object]:
    """Map a ledger entry to a row."""
    return {
        "id": record.id,
        "barcode": record.barcode,
        "consumed_at": format_timestamp(record.consumed_at),
        "portion_grams": record.portion_grams,
        "portion_nutrition": record.portion_nutrition.to_dict(),
    }


def consumption_from_row(row: dict[str, object]) -> ConsumptionRecord:
    """Map a row back to a ledger entry."""
    snapshot = row.get("portion_nutrition")
    try:
        return ConsumptionRecord(
            id=str(row["id"]),
            barcode=str(row["barcode"]),
            consumed_at=parse_timestamp(row.get("consumed_at")),
            portion_grams=float(row["portion_grams"]),
            portion_nutrition=PortionNutrition.from_dict(
                snapshot if isinstance(snapshot, dict) else None
            ),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Corrupt consumption row: {row.get('id')}") from exc
