"""Session identity: who is acting, and in which role.

An :class:`IdentityProvider` answers :meth:`~IdentityProvider.current_actor`.
:class:`Session` wraps a provider and resolves the actor exactly once,
so every screen opened in the session shares one identity lookup.
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import TYPE_CHECKING

from foodflow.app.errors import UNAUTHORIZED, OrderProblem
from foodflow.logging import bind_session
from foodflow.models.actor import Actor

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.models.profile import Profile

log = logging.getLogger(__name__)


class ProfileDirectory(abc.ABC):
    """Lookup of user profiles (names and roles)."""

    @abc.abstractmethod
    def find_profile(self, profile_id: UUID) -> Profile | None:
        """Return the profile, or ``None`` if there is none."""


class MemoryProfileDirectory(ProfileDirectory):
    """Dict-backed directory for the in-memory store and tests."""

    def __init__(self, profiles: list[Profile] | None = None) -> None:
        self._profiles = {p.id: p for p in profiles or []}

    def add(self, profile: Profile) -> None:
        self._profiles[profile.id] = profile

    def find_profile(self, profile_id: UUID) -> Profile | None:
        return self._profiles.get(profile_id)


class IdentityProvider(abc.ABC):
    @abc.abstractmethod
    def current_actor(self) -> Actor:
        """Return the signed-in actor.

        Raises :class:`OrderProblem` (``unauthorized``) when nobody is
        signed in or the user has no usable role.
        """


class StaticIdentity(IdentityProvider):
    """A fixed actor (CLI ``--as`` with an explicit role, tests)."""

    def __init__(self, actor: Actor) -> None:
        self._actor = actor

    def current_actor(self) -> Actor:
        return self._actor


class ProfileIdentity(IdentityProvider):
    """Resolve the actor's role from its profile row."""

    def __init__(self, user_id: UUID, profiles: ProfileDirectory) -> None:
        self._user_id = user_id
        self._profiles = profiles

    def current_actor(self) -> Actor:
        profile = self._profiles.find_profile(self._user_id)
        if profile is None:
            raise OrderProblem(UNAUTHORIZED, f"No profile for user {self._user_id}")
        if profile.role is None:
            raise OrderProblem(UNAUTHORIZED, f"Profile {self._user_id} has no usable role")
        return Actor(id=profile.id, role=profile.role)


class Session:
    """Caches the actor resolved from *identity* for the session lifetime."""

    def __init__(self, identity: IdentityProvider) -> None:
        self._identity = identity
        self._actor: Actor | None = None
        self._lock = threading.Lock()

    @property
    def actor(self) -> Actor:
        with self._lock:
            if self._actor is None:
                self._actor = self._identity.current_actor()
                bind_session(self._actor)
                log.info("Session actor resolved: %s (%s)", self._actor.id, self._actor.role.value)
            return self._actor

    def sign_out(self) -> None:
        with self._lock:
            self._actor = None
        bind_session(None)
