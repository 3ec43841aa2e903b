"""Session actor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.core.types import ActorRole


@dataclass(frozen=True)
class Actor:
    id: UUID
    role: ActorRole
