"""Candidate list reconciliation and the per-user pin toggle."""

from typing import Dict, List, Optional, Set

import structlog

from partner_portal.core.config import settings
from partner_portal.core.error_handling import AuthenticationError, PortalError
from partner_portal.core.identity import (
    find_match,
    merge_key,
    pin_key,
    pin_keys,
    shares_identifier,
    transient_local_id,
)
from partner_portal.core.interfaces import AtsGateway, CanonicalStore
from partner_portal.repositories.preferences import PinOverlay, PreferenceRepository
from partner_portal.schemas.candidate import Candidate, CandidateFilter, CandidateStatus

logger = structlog.get_logger(__name__)


def apply_filter(
    candidates: List[Candidate],
    active_filter: CandidateFilter,
    user_id: Optional[str],
    is_admin: bool,
) -> List[Candidate]:
    """Apply a filter tab to an overlay-joined list, keeping order."""
    if active_filter == CandidateFilter.PINNED:
        return [c for c in candidates if c.is_pinned]

    if active_filter == CandidateFilter.ALL:
        visible = [c for c in candidates if not c.is_pinned]
        if not is_admin:
            visible = [c for c in visible if c.visibility or (user_id and c.created_by == user_id)]
        return visible

    if active_filter == CandidateFilter.HIRED:
        return [c for c in candidates if c.status == CandidateStatus.HIRED]

    if active_filter == CandidateFilter.MINE:
        return [c for c in candidates if user_id and c.created_by == user_id]

    return list(candidates)


class ReconciliationService:
    """Builds the single de-duplicated candidate list shown to a user.

    Canonical records are authoritative: an ATS search hit that matches a
    stored candidate (by ATS id, then by normalized name) is replaced by the
    stored record, and only unmatched hits are shown as transient records.
    """

    def __init__(
        self,
        preferences: PreferenceRepository,
        store: Optional[CanonicalStore] = None,
        ats: Optional[AtsGateway] = None,
        min_search_chars: Optional[int] = None,
    ):
        """Initialize the reconciliation service.

        Args:
            preferences: Per-user pin and interest overlay
            store: Canonical store, needed by :meth:`search`
            ats: ATS gateway, needed by :meth:`search`
            min_search_chars: Shortest query sent to the ATS (defaults to settings)
        """
        self.preferences = preferences
        self.store = store
        self.ats = ats
        self.min_search_chars = min_search_chars or settings.min_search_chars

    @staticmethod
    def _canonical_pool(canonical: List[Candidate], overlay: PinOverlay) -> List[Candidate]:
        # Rows collapse only on a shared ATS id or canonical id, never on name.
        pool: List[Candidate] = []
        for candidate in canonical:
            if any(shares_identifier(candidate, kept) for kept in pool):
                continue
            pool.append(candidate)

        # Pinned snapshots keep a candidate listed after it left the store.
        for snapshot in overlay.snapshots:
            if any(shares_identifier(snapshot, other) for other in canonical):
                continue
            if any(shares_identifier(snapshot, kept) for kept in pool):
                continue
            pool.append(snapshot)
        return pool

    @staticmethod
    def _transient(record: Candidate) -> Candidate:
        return record.model_copy(update={
            "local_id": transient_local_id(record),
            "status": CandidateStatus.AVAILABLE,
            "visibility": True,
            "is_external_only": True,
        })

    def _merge_external(self, pool: List[Candidate], external: List[Candidate]) -> List[Candidate]:
        matched: List[Candidate] = []
        synthesized: List[Candidate] = []
        seen: Set[str] = set()

        for record in external:
            record_key = merge_key(record)
            match = find_match(record, pool)
            if match is not None:
                match_key = merge_key(match)
                if match_key in seen or record_key in seen:
                    continue
                seen.update({match_key, record_key})
                matched.append(match)
            else:
                if record_key in seen:
                    continue
                seen.add(record_key)
                synthesized.append(self._transient(record))

        return matched + synthesized

    @staticmethod
    def _join_overlay(
        candidates: List[Candidate],
        overlay: PinOverlay,
        interests: Dict[str, bool],
    ) -> List[Candidate]:
        joined = []
        for candidate in candidates:
            interested = any(interests.get(key) for key in (candidate.local_id, candidate.external_id) if key)
            joined.append(candidate.model_copy(update={
                "is_pinned": overlay.is_pinned(*pin_keys(candidate)),
                "is_interested": interested,
            }))
        return joined

    def reconcile(
        self,
        canonical: List[Candidate],
        external: Optional[List[Candidate]],
        active_filter: CandidateFilter,
        user_id: Optional[str],
        is_admin: bool = False,
    ) -> List[Candidate]:
        """Merge canonical and external records and apply the filter tab.

        Args:
            canonical: Current canonical store snapshot
            external: ATS search results, or None when no search is active
            active_filter: Filter tab
            user_id: Viewing user (no overlay without one)
            is_admin: Whether hidden records of other users are shown

        Returns:
            Display list: matched canonical records first, then transient
            records, both in the order they were given
        """
        overlay = self.preferences.load_pins(user_id) if user_id else PinOverlay()
        interests = self.preferences.get_interests(user_id) if user_id else {}

        pool = self._canonical_pool(canonical, overlay)
        base = pool if external is None else self._merge_external(pool, external)
        joined = self._join_overlay(base, overlay, interests)
        result = apply_filter(joined, CandidateFilter(active_filter), user_id, is_admin)

        logger.debug(
            "Candidates reconciled",
            canonical=len(canonical),
            external=None if external is None else len(external),
            filter=CandidateFilter(active_filter).value,
            returned=len(result),
        )
        return result

    async def search(
        self,
        query: Optional[str],
        active_filter: CandidateFilter,
        user_id: Optional[str],
        is_admin: bool = False,
    ) -> List[Candidate]:
        """Load the canonical store, run the ATS search, and reconcile.

        Queries shorter than the minimum length skip the ATS. An ATS failure
        is logged and treated as a search with no results.
        """
        if self.store is None:
            raise RuntimeError("ReconciliationService.search requires a canonical store")

        canonical = self.store.list_candidates()
        external = None
        if query and len(query.strip()) >= self.min_search_chars and self.ats is not None:
            try:
                external = await self.ats.search(query.strip())
            except PortalError as e:
                logger.warning("ATS search unavailable, showing no external results", query=query, error=e.message)
                external = []

        return self.reconcile(canonical, external, active_filter, user_id, is_admin)


class PinService:
    """Per-user pin toggle over the preference overlay."""

    def __init__(self, preferences: PreferenceRepository):
        self.preferences = preferences

    def is_pinned(self, key: str, user_id: Optional[str]) -> bool:
        if not user_id or not key:
            return False
        return self.preferences.is_pinned(user_id, key)

    def toggle_pin(self, candidate: Candidate, user_id: Optional[str]) -> bool:
        """Flip a candidate's pin for a user.

        Pinning sets the flag under both the ATS id and the canonical id and
        stores a snapshot unless one already exists; unpinning clears both
        flags and every matching snapshot.

        Args:
            candidate: Candidate as displayed
            user_id: Signed-in user

        Returns:
            The new pinned state

        Raises:
            AuthenticationError: If no user is signed in
        """
        if not user_id:
            raise AuthenticationError("You must be logged in to pin candidates.")

        keys = pin_keys(candidate)
        overlay = self.preferences.load_pins(user_id)

        if overlay.is_pinned(pin_key(candidate)):
            overlay.clear_flags(keys)
            overlay.remove_snapshots(candidate)
            pinned = False
        else:
            overlay.set_flags(keys)
            overlay.upsert_snapshot(candidate)
            pinned = True

        self.preferences.save_pins(user_id, overlay)
        logger.info("Pin toggled", user_id=user_id, candidate_key=pin_key(candidate), pinned=pinned)
        return pinned
