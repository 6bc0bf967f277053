"""Per-source change detection through sidecar build records.

Each compiled source has a small text file next to its object file that
fingerprints the last successful compile:

    line 1: source path (relative to the project directory)
    line 2: absolute object file path
    line 3: flattened compile flags
    line 4: source modification timestamp (nanoseconds)

A source is up to date only if every field of the stored record matches a
freshly computed one. Records are written only after a compile succeeded.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .errors import MalformedRecordError
from .models import BuildRecord

logger = logging.getLogger(__name__)

METAFILE_EXTENSION = ".meta"

_FIELD_NAMES = ("source file", "object file", "compiler flags", "timestamp")


def source_timestamp(source_file: Path) -> int:
    """Get the modification timestamp of a source file.

    Args:
        source_file: Path to the source file

    Returns:
        Modification time in nanoseconds, or 0 if the file does not exist
    """
    try:
        return source_file.stat().st_mtime_ns
    except FileNotFoundError:
        return 0


def record_path(object_file: Path) -> Path:
    """Get the sidecar record path for an object file."""
    return object_file.with_name(object_file.name + METAFILE_EXTENSION)


def read_record(object_file: Path) -> Optional[BuildRecord]:
    """Read the stored build record of an object file.

    Args:
        object_file: Object file the record belongs to

    Returns:
        The stored record, or None if no record exists yet (first build)

    Raises:
        MalformedRecordError: If the record cannot be read or any field fails to parse
    """
    meta_file = record_path(object_file)
    if not meta_file.exists():
        logger.debug(f"No build record: {meta_file}")
        return None

    try:
        lines = meta_file.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise MalformedRecordError(f"Error opening file {meta_file}: {e}") from e

    if len(lines) < len(_FIELD_NAMES):
        missing = _FIELD_NAMES[len(lines)]
        raise MalformedRecordError(f"Could not read {missing} from metafile {meta_file}")

    try:
        timestamp = int(lines[3])
    except ValueError as e:
        raise MalformedRecordError(f"Could not read timestamp from metafile {meta_file}: {lines[3]!r}") from e

    return BuildRecord(
        source_file=Path(lines[0]),
        object_file=Path(lines[1]),
        compile_flags=lines[2],
        source_timestamp=timestamp,
    )


def is_up_to_date(record: BuildRecord) -> bool:
    """Check whether a freshly computed record matches the stored one.

    Args:
        record: Record computed from the current source, flags and object path

    Returns:
        True if a stored record exists and every field is identical

    Raises:
        MalformedRecordError: If the stored record is corrupt
    """
    stored = read_record(record.object_file)
    if stored is None:
        return False

    if stored != record:
        logger.debug(f"Build record changed for {record.source_file}: {stored} -> {record}")
        return False

    logger.debug(f"Up to date: {record.source_file}")
    return True


def record_built(record: BuildRecord) -> None:
    """Persist the record of a successfully compiled source.

    Uses atomic write pattern (temp file + rename) so an interrupted write
    never leaves a half-written record behind.

    Args:
        record: Record of the compile job that just succeeded
    """
    meta_file = record_path(record.object_file)
    meta_file.parent.mkdir(parents=True, exist_ok=True)

    content = "\n".join(
        [
            str(record.source_file),
            str(record.object_file),
            record.compile_flags,
            str(record.source_timestamp),
        ]
    )

    temp_file = meta_file.with_name(meta_file.name + ".tmp")
    temp_file.write_text(content + "\n", encoding="utf-8")
    temp_file.replace(meta_file)

    logger.debug(f"Saved build record: {meta_file}")

