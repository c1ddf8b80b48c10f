"""Candidate identity resolution shared by every component that compares records.

Two keys identify a person: the ATS id when one is known, else the display
name compared case-insensitively after trimming. Pin state is keyed by the
ATS id when present, else by the canonical id, and both keys are checked
because the two can diverge across sessions.
"""

import unicodedata
import uuid
from typing import Iterable, List, Optional

from partner_portal.schemas.candidate import Candidate

_TRANSIENT_NAMESPACE = uuid.UUID("6f1c4a52-8d0e-4b7e-9a43-2f5e0d3c7b19")


def normalize_name(name: Optional[str]) -> str:
    """Normalize a name for comparison (NFKC, trimmed, casefolded)."""
    if not name:
        return ""
    return unicodedata.normalize("NFKC", name).strip().casefold()


def merge_key(candidate: Candidate) -> Optional[str]:
    """Key used to deduplicate a merged list."""
    if candidate.external_id:
        return f"ext:{candidate.external_id}"
    name = normalize_name(candidate.name)
    return f"name:{name}" if name else None


def pin_key(candidate: Candidate) -> Optional[str]:
    """Primary overlay key: ATS id, else canonical id."""
    return candidate.external_id or candidate.local_id


def pin_keys(candidate: Candidate) -> List[str]:
    """Every overlay key under which this candidate's pin may be stored."""
    keys = []
    for key in (pin_key(candidate), candidate.local_id):
        if key and key not in keys:
            keys.append(key)
    return keys


def shares_identifier(a: Candidate, b: Candidate) -> bool:
    """True if the two records carry a common ATS id or canonical id."""
    if a.external_id and a.external_id == b.external_id:
        return True
    return bool(a.local_id) and a.local_id == b.local_id


def find_match(record: Candidate, pool: Iterable[Candidate]) -> Optional[Candidate]:
    """Find the pool record for ``record``: ATS id first, then normalized name."""
    pool = list(pool)
    if record.external_id:
        for candidate in pool:
            if candidate.external_id == record.external_id:
                return candidate

    name = normalize_name(record.name)
    if name:
        for candidate in pool:
            if normalize_name(candidate.name) == name:
                return candidate
    return None


def transient_local_id(record: Candidate) -> str:
    """Stable id for a record synthesized from ATS search results."""
    key = merge_key(record) or f"anon:{record.name}"
    return str(uuid.uuid5(_TRANSIENT_NAMESPACE, key))
