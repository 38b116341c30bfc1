"""User filter profile service."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from good_steward.domain.profile import UserProfile
from good_steward.errors import ValidationError

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for the single user profile."""

    def load_profile(self) -> dict[str, object] | None:
        """Return the stored profile fields, if any were saved."""

    def save_profile(self, payload: dict[str, object]) -> None:
        """Replace the stored profile."""

    def delete_profile(self) -> None:
        """Remove the stored profile."""


def profile_to_payload(profile: UserProfile) -> dict[str, object]:
    """Serialize a profile for storage."""
    payload = profile.model_dump()
    payload["allergens"] = sorted(profile.allergens)
    return payload


@dataclass
class ProfileService:
    """Loads, caches and updates the user's filter profile."""

    repository: ProfileRepository
    _cached: UserProfile | None = field(default=None, init=False, repr=False)

    def load(self) -> UserProfile:
        """Return the profile, falling back to defaults when none is stored."""
        if self._cached is not None:
            return self._cached
        stored = self.repository.load_profile()
        if stored is None:
            self._cached = UserProfile()
            _logger.info("Using default profile")
            return self._cached
        try:
            # Stored fields override defaults; fields added later keep defaults.
            self._cached = UserProfile.model_validate(
                {**UserProfile().model_dump(), **stored}
            )
        except PydanticValidationError:
            _logger.exception("Stored profile is invalid, using defaults")
            self._cached = UserProfile()
        return self._cached

    def save(self, profile: UserProfile) -> UserProfile:
        """Persist a full profile."""
        self.repository.save_profile(profile_to_payload(profile))
        self._cached = profile
        _logger.info("Profile saved")
        return profile

    def update(self, **changes: object) -> UserProfile:
        """Apply a partial update after validating the merged profile."""
        current = self.load()
        unknown = set(changes) - set(UserProfile.model_fields)
        if unknown:
            raise ValidationError(
                f"Unknown profile fields: {', '.join(sorted(unknown))}"
            )
        try:
            updated = UserProfile.model_validate({**current.model_dump(), **changes})
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        return self.save(updated)

    def reset(self) -> UserProfile:
        """Drop the stored profile and return the defaults."""
        self.repository.delete_profile()
        self._cached = UserProfile()
        _logger.info("Profile reset to defaults")
        return self._cached

    def has_active_filters(self) -> bool:
        """Return True when any filter mode is switched on."""
        profile = self.load()
        return profile.diabetes_mode or profile.pregnancy_mode or profile.allergy_mode

    def add_allergen(self, code: str) -> UserProfile:
        """Add an allergen code to the profile."""
        profile = self.load()
        if code in profile.allergens:
            return profile
        return self.update(allergens=profile.allergens | {code})

    def remove_allergen(self, code: str) -> UserProfile:
        """Remove an allergen code from the profile."""
        profile = self.load()
        return self.update(allergens=profile.allergens - {code})

    def toggle_allergen(self, code: str) -> bool:
        """Add the allergen if missing, remove it otherwise.

        Returns True when the allergen was added.
        """
        if code in self.load().allergens:
            self.remove_allergen(code)
            return False
        self.add_allergen(code)
        return True
