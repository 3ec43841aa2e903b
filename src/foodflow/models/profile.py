"""Profile entity (vendors, deliverers and customers alike)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.core.types import ActorRole


@dataclass(frozen=True)
class Profile:
    id: UUID
    role: ActorRole | None
    display_name: str | None = None
    phone: str | None = None
