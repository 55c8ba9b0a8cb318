"""Extraction workflow: walk, decode, merge, sort. Stateless: every call owns its own buffers."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .classify import iter_candidate_files
from .decode import decode_point, iter_points
from .errors import NoFitDataFound, NoValidDataFound
from .models import ExtractionResult, ExtractionStats, ExtractOptions, NormalizedRecord
from .normalize import resolve_metric_name

logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    """Result of decoding one candidate file. skipped is set when the file could not be read or parsed."""
    path: Path
    metric: str
    records: list[NormalizedRecord] = field(default_factory=list)
    points_seen: int = 0
    points_skipped: int = 0
    skipped: str | None = None


def _default_options(opts: ExtractOptions | None) -> ExtractOptions:
    return opts or ExtractOptions()


def read_document(path: Path):
    """Parse a file as JSON; a UTF-8 BOM is tolerated."""
    with open(path, encoding="utf-8-sig") as f:
        return json.load(f)


def decode_file(path: Path) -> FileOutcome:
    """Decode every point of one file. Read/parse failures mark the outcome skipped, never raise."""
    outcome = FileOutcome(path=path, metric=resolve_metric_name(path.name))
    try:
        document = read_document(path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Skipping file %s: %s", path, e)
        outcome.skipped = f"{type(e).__name__}: {e}"
        return outcome
    for point in iter_points(document):
        outcome.points_seen += 1
        record = decode_point(point, outcome.metric)
        if record is None:
            outcome.points_skipped += 1
            continue
        outcome.records.append(record)
    return outcome


def _safe_decode_file(path: Path) -> FileOutcome:
    """Worker entry: one file's unexpected failure must not cancel its siblings."""
    try:
        return decode_file(path)
    except Exception as e:
        logger.warning("Skipping file %s after decoder failure: %s", path, e)
        return FileOutcome(path=path, metric=resolve_metric_name(path.name), skipped=f"{type(e).__name__}: {e}")


def decode_files(paths: list[Path], max_workers: int = 1) -> list[FileOutcome]:
    """Decode files in discovery order; with max_workers > 1 over a thread pool (results keep input order)."""
    if max_workers <= 1 or len(paths) <= 1:
        return [_safe_decode_file(p) for p in paths]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fitevidence-decode") as pool:
        return list(pool.map(_safe_decode_file, paths))


def build_result(outcomes: Iterable[FileOutcome]) -> ExtractionResult:
    """
    Fold file outcomes into one result. Records are sorted by timestamp (stable, so ties keep
    file-then-point order); canonical timestamps are fixed-width UTC so text order is time order.
    Raises NoValidDataFound when nothing decoded.
    """
    records: list[NormalizedRecord] = []
    metrics: set[str] = set()
    devices: set[str] = set()
    candidate_files = files_skipped = points_seen = points_skipped = 0
    for outcome in outcomes:
        candidate_files += 1
        if outcome.skipped:
            files_skipped += 1
            continue
        points_seen += outcome.points_seen
        points_skipped += outcome.points_skipped
        for r in outcome.records:
            records.append(r)
            metrics.add(r.metric)
            devices.add(r.device)

    if not records:
        raise NoValidDataFound()

    records.sort(key=lambda r: r.timestamp)
    stats = ExtractionStats(
        candidate_files=candidate_files,
        files_decoded=candidate_files - files_skipped,
        files_skipped=files_skipped,
        points_seen=points_seen,
        points_skipped=points_skipped,
    )
    return ExtractionResult(
        records=tuple(records),
        metrics=tuple(sorted(metrics)),
        devices=tuple(sorted(devices)),
        stats=stats,
    )


def extract(root: str | Path, options: ExtractOptions | None = None) -> ExtractionResult:
    """
    Extract normalized records from an unpacked export rooted at root.
    Raises NoFitDataFound when no candidate file exists, NoValidDataFound when none decoded.
    """
    opts = _default_options(options)
    paths = list(iter_candidate_files(root, lenient=opts.lenient))
    if not paths:
        logger.info("No candidate files under %s", root)
        raise NoFitDataFound()
    outcomes = decode_files(paths, max_workers=opts.max_workers)
    result = build_result(outcomes)
    logger.info(
        "Extracted %d records (%d metrics, %d devices) from %d files; %d files and %d points skipped",
        len(result.records),
        len(result.metrics),
        len(result.devices),
        result.stats.candidate_files,
        result.stats.files_skipped,
        result.stats.points_skipped,
    )
    return result
