"""MCP server: fitevidence.ingest_archive, fitevidence.verify, fitevidence.get_records, and read-only resources."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Mapping

from fastmcp import FastMCP

from .models import (
    ArchiveLimits,
    ExtractOptions,
    GetRecordsInput,
    IngestArchiveInput,
    ServerSettings,
    VerifyInput,
)
from .service import get_records_impl, ingest_archive_impl, verify_impl
from .storage import Storage


def load_settings(environ: Mapping[str, str] | None = None) -> ServerSettings:
    """Settings from FITEVIDENCE_* environment variables; unset ones keep their defaults."""
    env = os.environ if environ is None else environ
    values: dict[str, str] = {
        "db_path": env.get("FITEVIDENCE_DB_PATH", str(Path(__file__).parent.parent / "fitevidence.db")),
    }
    for field, var in (
        ("result_ttl_seconds", "FITEVIDENCE_RESULT_TTL_SECONDS"),
        ("max_workers", "FITEVIDENCE_MAX_WORKERS"),
        ("max_archive_bytes", "FITEVIDENCE_MAX_ARCHIVE_BYTES"),
        ("max_archive_members", "FITEVIDENCE_MAX_ARCHIVE_MEMBERS"),
        ("log_level", "FITEVIDENCE_LOG_LEVEL"),
    ):
        raw = env.get(var, "").strip()
        if raw:
            values[field] = raw
    return ServerSettings.model_validate(values)


_settings = load_settings()
_storage = Storage(_settings.db_path, ttl_seconds=_settings.result_ttl_seconds)
_limits = ArchiveLimits(
    max_archive_bytes=_settings.max_archive_bytes,
    max_members=_settings.max_archive_members,
)

mcp = FastMCP(name="fitevidence")


@mcp.tool(name="fitevidence.ingest_archive")
def fitevidence_ingest_archive(payload: dict) -> dict:
    """
    Ingest a fitness-data export archive (ZIP path on the server). Returns result_id, integrity digest,
    record count, and the distinct metrics and devices. Errors carry a code and remediation text.
    """
    inp = IngestArchiveInput.model_validate(payload)
    if inp.options is None:
        inp.options = ExtractOptions(max_workers=_settings.max_workers)
    _storage.evict_expired()
    result = ingest_archive_impl(inp, storage=_storage, limits=_limits)
    return result.model_dump()


@mcp.tool(name="fitevidence.verify")
def fitevidence_verify(payload: dict) -> dict:
    """
    Recompute the digest of a stored result and compare it with the digest captured at ingest.
    Returns verified, original_digest, current_digest, captured_at, devices, metrics.
    """
    inp = VerifyInput.model_validate(payload)
    return verify_impl(inp, storage=_storage).model_dump()


@mcp.tool(name="fitevidence.get_records")
def fitevidence_get_records(payload: dict) -> dict:
    """
    Records of a stored result, optionally filtered by time_range (1d, 7d, 15d, 1m, 3m, 6m, 1y),
    device and metric, plus per-metric summaries. limit defaults to 1000.
    """
    inp = GetRecordsInput.model_validate(payload)
    return get_records_impl(inp, storage=_storage).model_dump()


@mcp.resource("result://{result_id}/records", mime_type="application/json")
def resource_result_records(result_id: str) -> str:
    """Read-only: all records of a stored result."""
    result = _storage.get_result(result_id)
    if result is None:
        return json.dumps({"error": "result not found", "result_id": result_id})
    return json.dumps([r.model_dump() for r in result.records], indent=2)


@mcp.resource("result://{result_id}/digest", mime_type="application/json")
def resource_result_digest(result_id: str) -> str:
    """Read-only: integrity digest captured for a stored result."""
    digest = _storage.get_digest(result_id)
    if digest is None:
        return json.dumps({"error": "result not found", "result_id": result_id})
    return digest.model_dump_json(indent=2)


def run() -> None:
    """Run the MCP server with stdio transport (default)."""
    logging.basicConfig(
        level=getattr(logging, _settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run()


if __name__ == "__main__":
    run()
