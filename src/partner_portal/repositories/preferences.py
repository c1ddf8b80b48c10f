"""Per-user preference overlay: pin flags, pinned snapshots and interest flags."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

import structlog
from pydantic import ValidationError as PydanticValidationError

from partner_portal.core.identity import shares_identifier
from partner_portal.core.kv_store import KeyValueStore
from partner_portal.schemas.candidate import Candidate

logger = structlog.get_logger(__name__)


@dataclass
class PinOverlay:
    """One user's pin state: flags keyed by candidate key plus pin-time snapshots."""

    flags: Dict[str, bool] = field(default_factory=dict)
    snapshots: List[Candidate] = field(default_factory=list)

    def is_pinned(self, *keys: str) -> bool:
        return any(self.flags.get(key) for key in keys if key)

    def set_flags(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.flags[key] = True

    def clear_flags(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.flags.pop(key, None)

    def find_snapshot(self, candidate: Candidate):
        for snapshot in self.snapshots:
            if shares_identifier(snapshot, candidate):
                return snapshot
        return None

    def upsert_snapshot(self, candidate: Candidate) -> bool:
        """Insert a snapshot unless one already matches either key; existing snapshots are never overwritten."""
        if self.find_snapshot(candidate) is not None:
            return False
        self.snapshots.append(candidate.model_copy(update={"is_pinned": True}))
        return True

    def remove_snapshots(self, candidate: Candidate) -> int:
        before = len(self.snapshots)
        self.snapshots = [s for s in self.snapshots if not shares_identifier(s, candidate)]
        return before - len(self.snapshots)


class PreferenceRepository:
    """Typed repository over a key-value store, namespaced per user."""

    def __init__(self, store: KeyValueStore, prefix: str = "talentflow"):
        """Initialize the repository.

        Args:
            store: Synchronous key-value backend
            prefix: Key namespace prefix
        """
        self.store = store
        self.prefix = prefix

    def _pinned_ids_key(self, user_id: str) -> str:
        return f"{self.prefix}:pinned_ids:{user_id}"

    def _pinned_data_key(self, user_id: str) -> str:
        return f"{self.prefix}:pinned_data:{user_id}"

    def _interests_key(self, user_id: str) -> str:
        return f"{self.prefix}:interests:{user_id}"

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self.store.get(key)
        if not raw:
            return default
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Corrupt preference entry ignored", key=key, error=str(e))
            return default
        if not isinstance(value, type(default)):
            logger.error("Unexpected preference entry type ignored", key=key, type=type(value).__name__)
            return default
        return value

    def _write_json(self, key: str, value: Any) -> None:
        if not self.store.set(key, json.dumps(value)):
            logger.warning("Preference entry not persisted", key=key)

    def load_pins(self, user_id: str) -> PinOverlay:
        """Read a user's pin flags and snapshots.

        Args:
            user_id: Owner of the overlay

        Returns:
            PinOverlay (empty when nothing is stored)
        """
        flags = {
            str(key): bool(value)
            for key, value in self._read_json(self._pinned_ids_key(user_id), {}).items()
            if value
        }

        snapshots = []
        for entry in self._read_json(self._pinned_data_key(user_id), []):
            try:
                snapshots.append(Candidate.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning("Invalid pinned snapshot skipped", user_id=user_id, error=str(e))

        return PinOverlay(flags=flags, snapshots=snapshots)

    def save_pins(self, user_id: str, overlay: PinOverlay) -> None:
        """Write a user's pin flags and snapshots back."""
        self._write_json(self._pinned_ids_key(user_id), overlay.flags)
        self._write_json(
            self._pinned_data_key(user_id),
            [snapshot.model_dump(mode="json") for snapshot in overlay.snapshots],
        )

    def is_pinned(self, user_id: str, key: str) -> bool:
        return self.load_pins(user_id).is_pinned(key)

    def get_interests(self, user_id: str) -> Dict[str, bool]:
        return {
            str(key): True
            for key, value in self._read_json(self._interests_key(user_id), {}).items()
            if value
        }

    def set_interest(self, user_id: str, candidate_id: str, interested: bool) -> None:
        """Record or clear the interest flag of a candidate for a user."""
        interests = self.get_interests(user_id)
        if interested:
            interests[candidate_id] = True
        else:
            interests.pop(candidate_id, None)
        self._write_json(self._interests_key(user_id), interests)
