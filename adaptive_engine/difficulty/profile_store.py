"""
Difficulty Profile Store

Owns per-(user, subject) DifficultyProfile state. The engine receives a store
instead of reaching for module-level maps; InMemoryProfileStore is the default
and a persistent store is an external collaborator implementing the same
protocol from snapshots.

Concurrency: every user has a re-entrant lock. A cycle for one user holds that
user's lock; no operation ever takes more than one user lock.
"""
from typing import Dict, Iterator, List, Optional, Protocol, Tuple
from contextlib import contextmanager
from datetime import datetime
from threading import Lock, RLock
import logging

from adaptive_engine.core.clock import Clock, clamp, utcnow
from adaptive_engine.core.config import EngineSettings, settings as default_settings
from adaptive_engine.core.exceptions import SnapshotError
from .models import DifficultyAdjustment, DifficultyProfile

logger = logging.getLogger(__name__)


class ProfileStore(Protocol):
    """Storage contract used by the engine"""

    def default_profile(self, user_id: str, subject: str = "general") -> DifficultyProfile: ...

    def get_or_create(self, user_id: str, subject: str = "general") -> DifficultyProfile: ...

    def get(self, user_id: str, subject: str = "general") -> Optional[DifficultyProfile]: ...

    def save(self, profile: DifficultyProfile) -> DifficultyProfile: ...

    def apply_adjustment(
        self,
        profile: DifficultyProfile,
        adjustment: DifficultyAdjustment,
        now: Optional[datetime] = None,
    ) -> DifficultyProfile: ...

    def list_history(self, user_id: str, subject: str = "general") -> List[DifficultyAdjustment]: ...

    def lock(self, user_id: str): ...

    def snapshot(self, user_id: str, subject: str = "general") -> Optional[Dict]: ...

    def restore(self, snapshot: Dict) -> DifficultyProfile: ...


class InMemoryProfileStore:
    """Profile store backed by a dict keyed by (user_id, subject)"""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self._profiles: Dict[Tuple[str, str], DifficultyProfile] = {}
        self._user_locks: Dict[str, RLock] = {}
        self._locks_guard = Lock()

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        """Serialize access to one user's profiles"""
        with self._locks_guard:
            user_lock = self._user_locks.get(user_id)
            if user_lock is None:
                user_lock = RLock()
                self._user_locks[user_id] = user_lock
        with user_lock:
            yield

    def default_profile(self, user_id: str, subject: str = "general") -> DifficultyProfile:
        """Cold-start profile, not stored"""
        return DifficultyProfile(
            user_id=user_id,
            subject=subject,
            current_level=self.settings.DEFAULT_LEVEL,
            optimal_level=self.settings.DEFAULT_LEVEL,
            confidence=self.settings.DEFAULT_CONFIDENCE,
            last_adjustment=self.clock(),
        )

    def get_or_create(self, user_id: str, subject: str = "general") -> DifficultyProfile:
        """Return the profile, creating it with cold-start defaults on first use"""
        with self.lock(user_id):
            profile = self._profiles.get((user_id, subject))
            if profile is None:
                profile = self.default_profile(user_id, subject)
                self._profiles[(user_id, subject)] = profile
                logger.debug(f"Created difficulty profile for user={user_id} subject={subject}")
            return profile

    def get(self, user_id: str, subject: str = "general") -> Optional[DifficultyProfile]:
        return self._profiles.get((user_id, subject))

    def save(self, profile: DifficultyProfile) -> DifficultyProfile:
        with self.lock(profile.user_id):
            self._profiles[profile.key] = profile
        return profile

    def apply_adjustment(
        self,
        profile: DifficultyProfile,
        adjustment: DifficultyAdjustment,
        now: Optional[datetime] = None,
    ) -> DifficultyProfile:
        """Append the adjustment and move the profile to its target level"""
        with self.lock(profile.user_id):
            profile.adjustment_history.append(adjustment)
            profile.current_level = int(
                clamp(adjustment.to_level, self.settings.MIN_LEVEL, self.settings.MAX_LEVEL)
            )
            profile.last_adjustment = now or self.clock()
            return self.save(profile)

    def list_history(self, user_id: str, subject: str = "general") -> List[DifficultyAdjustment]:
        profile = self._profiles.get((user_id, subject))
        return list(profile.adjustment_history) if profile else []

    def list_profiles(self, user_id: str) -> List[DifficultyProfile]:
        return [p for (uid, _), p in self._profiles.items() if uid == user_id]

    def snapshot(self, user_id: str, subject: str = "general") -> Optional[Dict]:
        """Serializable copy of a profile for the persistence collaborator"""
        profile = self._profiles.get((user_id, subject))
        return profile.to_dict() if profile else None

    def restore(self, snapshot: Dict) -> DifficultyProfile:
        """Load a profile from a snapshot, replacing any in-memory copy"""
        try:
            profile = DifficultyProfile.from_dict(snapshot)
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Invalid difficulty profile snapshot: {e}") from e
        return self.save(profile)
