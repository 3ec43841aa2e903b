"""Profile repository."""

from __future__ import annotations

from pypgkit import BaseRepository

from foodflow.core.types import ActorRole
from foodflow.models.profile import Profile


class ProfileRepository(BaseRepository[Profile]):
    table_name = "profiles"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> Profile:
        raw_role = row.get("role")
        try:
            role = ActorRole(raw_role.strip().lower()) if raw_role else None
        except ValueError:
            role = None
        return Profile(
            id=row["id"],
            role=role,
            display_name=row.get("full_name"),
            phone=row.get("phone"),
        )

    def _entity_to_row(self, entity: Profile) -> dict:
        return {
            "id": entity.id,
            "role": entity.role.value if entity.role is not None else None,
            "full_name": entity.display_name,
            "phone": entity.phone,
        }

    def find_profile(self, profile_id) -> Profile | None:
        """Return the profile for *profile_id*, or None."""
        return self.find_by_id(profile_id)
