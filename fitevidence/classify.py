"""Path classification: which directories to walk and which files may hold export data."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

# Outer containers, matched as substrings ("Takeout", "takeout-20240101T000000Z-001").
# They are marker folders but do not make a subtree a data category.
CONTAINER_MARKERS: frozenset[str] = frozenset({"takeout"})

# Data-category folders, compared case-insensitively against a directory's base name.
CATEGORY_MARKERS: frozenset[str] = frozenset({
    "fit",
    "fitness",
    "all data",
    "all sessions",
    "daily activity metrics",
    "activities",
})

# Substring match for localized or renamed category folders ("Google Fit", "Fitness Data", ...).
CATEGORY_PATTERN = re.compile(r"fit(?:ness)?[ _-]?data|fitness|google[ _-]?fit", re.IGNORECASE)

# Vendor-derived file naming: "derived_..." prefix or a reverse-DNS token such as "com.google.".
DERIVED_PREFIX = "derived_"
VENDOR_TOKEN_PATTERN = re.compile(r"(?:^|[_.])com\.[a-z0-9]+\.", re.IGNORECASE)


def is_category(name: str) -> bool:
    """True if a single path segment names a fitness-data category folder."""
    n = (name or "").strip()
    if not n:
        return False
    return n.lower() in CATEGORY_MARKERS or CATEGORY_PATTERN.search(n) is not None


def is_category_root(root: str | Path) -> bool:
    """A walk root counts as a category only when its name is exactly a category marker."""
    return Path(root).name.strip().lower() in CATEGORY_MARKERS


def is_container(name: str) -> bool:
    n = (name or "").strip().lower()
    return any(marker in n for marker in CONTAINER_MARKERS)


def should_descend(name: str, inside_marker: bool = False, lenient: bool = True) -> bool:
    """
    Decide whether a directory is a marker folder worth walking into, given its base name.
    Lenient mode descends unconditionally once an ancestor matched a category.
    """
    if lenient and inside_marker:
        return True
    return is_container(name) or is_category(name)


def is_candidate_file(path: str | Path, root: str | Path | None = None) -> bool:
    """
    True for .json files under a recognized directory, or whose name follows the
    vendor naming convention. With root given, only the segments below root are inspected,
    plus root itself when it is a category folder such as "Fit".
    """
    p = Path(path)
    if p.suffix.lower() != ".json":
        return False
    name = p.name
    if name.lower().startswith(DERIVED_PREFIX) or VENDOR_TOKEN_PATTERN.search(name):
        return True
    parts = p.parent.parts
    if root is not None:
        try:
            parts = p.parent.relative_to(Path(root)).parts
        except ValueError:
            pass
        else:
            if is_category_root(root):
                return True
    return any(is_category(part) for part in parts)


def iter_candidate_files(root: str | Path, lenient: bool = True) -> Iterator[Path]:
    """
    Depth-first walk from root yielding candidate files lazily.
    Entries are visited in name order so discovery order is reproducible.
    Outside a category subtree every directory is searched, so wrapper folders of any name
    above the markers are crossed; inside one, should_descend() decides.
    Unreadable directories are logged and skipped; symlinked directories are not followed.
    """
    root_path = Path(root)
    # (directory, inside_marker)
    stack: list[tuple[Path, bool]] = [(root_path, is_category_root(root_path))]
    while stack:
        directory, inside = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            continue
        subdirs: list[tuple[Path, bool]] = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                logger.warning("Skipping unreadable entry %s: %s", entry.path, e)
                continue
            if is_dir:
                if not inside or should_descend(entry.name, inside_marker=inside, lenient=lenient):
                    subdirs.append((Path(entry.path), inside or is_category(entry.name)))
            elif is_file and is_candidate_file(entry.path, root_path):
                yield Path(entry.path)
        # Reverse so the first subdirectory by name is walked first.
        stack.extend(reversed(subdirs))
