"""Tool implementations behind the MCP server: ingest an archive, verify a stored result, query records."""

from __future__ import annotations

import logging
from datetime import datetime

from .archive import unpacked
from .errors import FitEvidenceError, ResultNotFound
from .ingest import extract
from .integrity import capture, stamp, verify
from .models import (
    ArchiveLimits,
    ErrorRecord,
    GetRecordsInput,
    GetRecordsOutput,
    IngestArchiveInput,
    IngestArchiveOutput,
    VerifyInput,
    VerifyOutput,
)
from .query import filter_records, summarize
from .storage import Storage, generate_id

logger = logging.getLogger(__name__)


def _error_record(e: FitEvidenceError) -> ErrorRecord:
    return ErrorRecord(code=e.code, message=str(e), remediation=e.remediation or None)


def ingest_archive_impl(
    payload: IngestArchiveInput,
    storage: Storage,
    limits: ArchiveLimits | None = None,
) -> IngestArchiveOutput:
    """
    Unpack, extract, stamp and store. Either a stored, non-empty result or an error;
    nothing is stored when any step fails.
    """
    try:
        with unpacked(payload.archive_path, limits) as root:
            result = extract(root, payload.options)
    except FitEvidenceError as e:
        logger.warning("Ingest of %s failed: %s", payload.archive_path, e.code)
        return IngestArchiveOutput(status="error", error=_error_record(e))

    digest = capture(result)
    result_id = generate_id("res")
    storage.store_result(result_id, result, digest)
    return IngestArchiveOutput(
        status="ok",
        result_id=result_id,
        digest=digest,
        record_count=len(result.records),
        metrics=list(result.metrics),
        devices=list(result.devices),
        stats=result.stats,
    )


def verify_impl(payload: VerifyInput, storage: Storage) -> VerifyOutput:
    """Recompute the digest over the stored artifact and compare with the one captured at ingest."""
    meta = storage.get_metadata(payload.result_id)
    artifact = storage.get_artifact(payload.result_id)
    if meta is None or artifact is None:
        return VerifyOutput(
            status="error",
            result_id=payload.result_id,
            error=_error_record(ResultNotFound()),
        )
    return VerifyOutput(
        status="ok",
        result_id=payload.result_id,
        verified=verify(meta["digest"], artifact),
        original_digest=meta["digest"],
        current_digest=stamp(artifact),
        captured_at=meta["captured_at"],
        devices=meta["devices"],
        metrics=meta["metrics"],
    )


def get_records_impl(
    payload: GetRecordsInput,
    storage: Storage,
    now: datetime | None = None,
) -> GetRecordsOutput:
    result = storage.get_result(payload.result_id)
    if result is None:
        return GetRecordsOutput(
            status="error",
            result_id=payload.result_id,
            error=_error_record(ResultNotFound()),
        )
    matched = filter_records(
        result.records,
        time_range=payload.time_range,
        device=payload.device,
        metric=payload.metric,
        now=now,
    )
    limit = payload.limit if payload.limit is not None else len(matched)
    page = matched[: max(0, limit)]
    return GetRecordsOutput(
        status="ok",
        result_id=payload.result_id,
        total=len(matched),
        count=len(page),
        records=page,
        summaries=summarize(matched),
    )
