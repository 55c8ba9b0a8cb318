"""Pydantic models for fitevidence: normalized records, extraction results, tool inputs/outputs."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_DEVICE = "Unknown Device"

TimeRange = Literal["1d", "7d", "15d", "1m", "3m", "6m", "12m", "1y"]


# --- Extraction output ---

class NormalizedRecord(BaseModel):
    """One decoded point. The four fields are the whole wire contract."""
    model_config = ConfigDict(frozen=True)

    timestamp: str  # ISO-8601 UTC, millisecond precision, e.g. 2024-01-01T00:00:00.000Z
    metric: str
    value: str
    device: str = UNKNOWN_DEVICE


class ExtractionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate_files: int = 0
    files_decoded: int = 0
    files_skipped: int = 0
    points_seen: int = 0
    points_skipped: int = 0


class ExtractionResult(BaseModel):
    """Records in ascending timestamp order plus the distinct metric/device labels (sorted)."""
    model_config = ConfigDict(frozen=True)

    records: tuple[NormalizedRecord, ...] = ()
    metrics: tuple[str, ...] = ()
    devices: tuple[str, ...] = ()
    stats: ExtractionStats = Field(default_factory=ExtractionStats)


class IntegrityDigest(BaseModel):
    model_config = ConfigDict(frozen=True)

    digest: str
    algorithm: Literal["sha256"] = "sha256"
    captured_at: str  # ISO-8601 UTC
    record_count: int = 0


class ExtractOptions(BaseModel):
    max_workers: int = Field(default=1, ge=1, le=64)
    lenient: bool = True  # descend unconditionally once inside a recognized directory


# --- Archive admission ---

class ArchiveLimits(BaseModel):
    max_archive_bytes: int = 512 * 1024 * 1024
    max_members: int = 20_000
    max_uncompressed_bytes: int = 4 * 1024 * 1024 * 1024


# --- Dashboard queries ---

class MetricSummary(BaseModel):
    metric: str
    count: int = 0
    devices: list[str] = Field(default_factory=list)
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None
    numeric_count: int = 0  # values that parse as numbers; min/max/mean/total cover only these
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    total: Optional[float] = None


# --- MCP tool inputs/outputs ---

class ErrorRecord(BaseModel):
    code: str
    message: str
    remediation: Optional[str] = None


class IngestArchiveInput(BaseModel):
    archive_path: str
    options: Optional[ExtractOptions] = None


class IngestArchiveOutput(BaseModel):
    status: Literal["ok", "error"]
    result_id: Optional[str] = None  # null when nothing was stored
    digest: Optional[IntegrityDigest] = None
    record_count: int = 0
    metrics: list[str] = Field(default_factory=list)
    devices: list[str] = Field(default_factory=list)
    stats: Optional[ExtractionStats] = None
    error: Optional[ErrorRecord] = None


class VerifyInput(BaseModel):
    result_id: str


class VerifyOutput(BaseModel):
    status: Literal["ok", "error"]
    result_id: str
    verified: bool = False
    original_digest: Optional[str] = None
    current_digest: Optional[str] = None
    captured_at: Optional[str] = None
    devices: list[str] = Field(default_factory=list)
    metrics: list[str] = Field(default_factory=list)
    error: Optional[ErrorRecord] = None


class GetRecordsInput(BaseModel):
    result_id: str
    time_range: Optional[TimeRange] = None
    device: Optional[str] = None
    metric: Optional[str] = None
    limit: Optional[int] = 1000


class GetRecordsOutput(BaseModel):
    status: Literal["ok", "error"]
    result_id: str
    total: int = 0  # matches before limit
    count: int = 0
    records: list[NormalizedRecord] = Field(default_factory=list)
    summaries: list[MetricSummary] = Field(default_factory=list)
    error: Optional[ErrorRecord] = None


# --- Server configuration ---

class ServerSettings(BaseModel):
    db_path: str = "fitevidence.db"
    result_ttl_seconds: int = Field(default=86_400, ge=1)
    max_workers: int = Field(default=1, ge=1, le=64)
    max_archive_bytes: int = 512 * 1024 * 1024
    max_archive_members: int = 20_000
    log_level: str = "INFO"
