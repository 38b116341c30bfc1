"""Supabase repository for the user profile."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from good_steward.adapters.supabase_errors import execute
from good_steward.services.profile import ProfileRepository

_PROFILE_ID = 1


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for the single profile row."""

    client: Client

    def load_profile(self) -> dict[str, object] | None:
        """Return the stored profile payload."""
        response = execute(
            self.client.table("user_profiles")
            .select("payload")
            .eq("id", _PROFILE_ID)
            .limit(1),
            "load_profile",
        )
        if not response.data:
            return None
        payload = response.data[0].get("payload")
        return payload if isinstance(payload, dict) else None

    def save_profile(self, payload: dict[str, object]) -> None:
        """Replace the stored profile payload."""
        execute(
            self.client.table("user_profiles").upsert(
                {
                    "id": _PROFILE_ID,
                    "payload": payload,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="id",
            ),
            "save_profile",
        )

    def delete_profile(self) -> None:
        """Remove the stored profile."""
        execute(
            self.client.table("user_profiles").delete().eq("id", _PROFILE_ID),
            "delete_profile",
        )
