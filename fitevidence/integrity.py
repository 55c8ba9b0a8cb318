"""Integrity stamp: SHA-256 over the canonical serialization of the record sequence."""

from __future__ import annotations

import hashlib
import hmac
import json
import re
from datetime import datetime, timezone
from typing import Iterable

from .models import ExtractionResult, IntegrityDigest, NormalizedRecord
from .normalize import format_instant

ALGORITHM = "sha256"
_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def canonical_bytes(data: ExtractionResult | Iterable[NormalizedRecord]) -> bytes:
    """
    The hashed artifact: compact JSON array of the four-field records, sorted keys, UTF-8.
    Only the record sequence takes part, so the digest does not depend on how the
    result is serialized anywhere else.
    """
    records = data.records if isinstance(data, ExtractionResult) else data
    blob = json.dumps(
        [r.model_dump() for r in records],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return blob.encode("utf-8")


def stamp(artifact: bytes) -> str:
    """Hex digest of the artifact bytes; same bytes always give the same digest."""
    return hashlib.sha256(artifact).hexdigest()


def verify(digest: str, artifact: bytes) -> bool:
    """True iff the recomputed digest matches. Malformed digests never verify."""
    expected = (digest or "").strip().lower()
    if not _HEX_DIGEST.match(expected):
        return False
    return hmac.compare_digest(expected, stamp(artifact))


def capture(result: ExtractionResult, captured_at: datetime | None = None) -> IntegrityDigest:
    """Stamp a result at produce time."""
    when = captured_at or datetime.now(timezone.utc)
    return IntegrityDigest(
        digest=stamp(canonical_bytes(result)),
        algorithm=ALGORITHM,
        captured_at=format_instant(when),
        record_count=len(result.records),
    )
