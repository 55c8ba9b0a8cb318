#!/usr/bin/env python3
"""
Run an export archive (ZIP) or an already-unpacked directory through fitevidence and
print what was extracted. Uses the package directly (no MCP server needed).
Usage: python scripts/run_extract.py <archive.zip | directory> [max_workers]
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

# Project root = parent of scripts/
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fitevidence.archive import unpacked
from fitevidence.errors import FitEvidenceError
from fitevidence.ingest import extract
from fitevidence.integrity import canonical_bytes, capture, verify
from fitevidence.models import ExtractionResult, ExtractOptions
from fitevidence.query import summarize


def _run(target: Path, options: ExtractOptions) -> ExtractionResult:
    if target.is_dir():
        return extract(target, options)
    with unpacked(target) as root:
        return extract(root, options)


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    target = Path(sys.argv[1])
    workers = int(sys.argv[2]) if len(sys.argv) > 2 else 1
    options = ExtractOptions(max_workers=workers)

    try:
        result = _run(target, options)
    except FitEvidenceError as e:
        print(f"[{e.code}] {e}")
        sys.exit(2)

    digest = capture(result)
    stats = result.stats
    print(f"\n{'='*60}")
    print(f"SOURCE: {target}")
    print("=" * 60)
    print(f"Records: {len(result.records)}")
    print(f"Files: candidates={stats.candidate_files}  decoded={stats.files_decoded}  skipped={stats.files_skipped}")
    print(f"Points: seen={stats.points_seen}  skipped={stats.points_skipped}")
    print(f"Devices: {', '.join(result.devices)}")
    print(f"Digest: {digest.digest}  (captured {digest.captured_at})")
    print(f"Verified: {'yes' if verify(digest.digest, canonical_bytes(result)) else 'NO'}")
    print("Metrics:")
    for s in summarize(result.records):
        line = f"  {s.metric}: n={s.count}  {s.first_timestamp} .. {s.last_timestamp}"
        if s.mean is not None:
            line += f"  mean={s.mean}  min={s.min}  max={s.max}"
        print(line)
    print("First records:")
    for r in result.records[:5]:
        print(f"  {r.timestamp}  {r.metric:<28} {r.value:>10}  {r.device}")


if __name__ == "__main__":
    main()
