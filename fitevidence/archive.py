"""Archive unpacking with admission control. Failures leave nothing behind."""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import ArchiveTooLarge, CorruptArchive
from .models import ArchiveLimits

logger = logging.getLogger(__name__)


def check_admission(archive_path: str | Path, limits: ArchiveLimits | None = None) -> None:
    """Reject archives over the size / member-count ceilings before anything is extracted."""
    limits = limits or ArchiveLimits()
    path = Path(archive_path)
    try:
        size = path.stat().st_size
    except OSError as e:
        raise CorruptArchive(f"Archive not readable: {path.name}") from e
    if size > limits.max_archive_bytes:
        raise ArchiveTooLarge(f"Archive is {size} bytes; limit is {limits.max_archive_bytes}.")
    try:
        with zipfile.ZipFile(path) as zf:
            infos = zf.infolist()
    except (zipfile.BadZipFile, OSError) as e:
        raise CorruptArchive(f"Not a valid ZIP archive: {path.name}") from e
    if len(infos) > limits.max_members:
        raise ArchiveTooLarge(f"Archive has {len(infos)} entries; limit is {limits.max_members}.")
    total = sum(i.file_size for i in infos)
    if total > limits.max_uncompressed_bytes:
        raise ArchiveTooLarge(f"Archive expands to {total} bytes; limit is {limits.max_uncompressed_bytes}.")


def unpack_archive(archive_path: str | Path, dest: str | Path) -> Path:
    """
    Extract a ZIP archive into dest. Raises CorruptArchive on invalid input or on
    members that would land outside dest; dest is removed again on failure.
    """
    dest_path = Path(dest)
    created = not dest_path.exists()
    dest_path.mkdir(parents=True, exist_ok=True)
    root = dest_path.resolve()
    try:
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                target = (root / info.filename).resolve()
                if target != root and root not in target.parents:
                    raise CorruptArchive(f"Archive member escapes extraction directory: {info.filename}")
            zf.extractall(root)
    except CorruptArchive:
        _cleanup(dest_path, created)
        raise
    except (
        zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError,
        RuntimeError, NotImplementedError,
    ) as e:
        # RuntimeError: encrypted member; NotImplementedError: unsupported compression.
        _cleanup(dest_path, created)
        raise CorruptArchive(f"Could not unpack archive: {e}") from e
    return dest_path


def _cleanup(path: Path, created: bool) -> None:
    if created:
        shutil.rmtree(path, ignore_errors=True)


@contextmanager
def unpacked(archive_path: str | Path, limits: ArchiveLimits | None = None) -> Iterator[Path]:
    """Admission check, unpack into a temp directory, yield it, always remove it afterwards."""
    check_admission(archive_path, limits)
    tmp = Path(tempfile.mkdtemp(prefix="fitevidence_"))
    try:
        unpack_archive(archive_path, tmp / "archive")
        yield tmp / "archive"
    finally:
        shutil.rmtree(tmp, ignore_errors=True)
        logger.debug("Removed temporary extraction directory %s", tmp)
