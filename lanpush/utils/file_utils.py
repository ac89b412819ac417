import logging
import os
import re
import tempfile
import uuid
from pathlib import Path

from .constants import (GENERATED_NAME_PREFIX, GENERATED_NAME_SUFFIX,
                        PARTIAL_FILE_PREFIX, PARTIAL_FILE_SUFFIX)

logger = logging.getLogger(__name__)

PATH_SEPARATORS = re.compile(r"[\\/:]")


def generate_file_name() -> str:
    """Name used when the peer did not declare one: received_<uuid>.dat"""
    return f"{GENERATED_NAME_PREFIX}{uuid.uuid4()}{GENERATED_NAME_SUFFIX}"


def sanitize_file_name(file_name: str | None) -> str:
    """
    Reduces a peer-supplied name to its last path component.

    '/', '\\' and the drive separator ':' all count as separators whatever
    the local OS, so '../../evil.txt', '..\\..\\evil.txt' and 'C:evil.txt'
    all become 'evil.txt'. Returns a generated name when nothing usable is left.
    """
    if not file_name or not file_name.strip():
        return generate_file_name()

    base_name = PATH_SEPARATORS.split(file_name)[-1]
    base_name = base_name.replace('\x00', '').strip()
    if base_name in ('', '.', '..'):
        return generate_file_name()
    return base_name


def create_partial_file(directory: Path) -> tuple[int, Path]:
    """Opens a temporary file next to the final destination. Returns (fd, path)."""
    fd, tmp = tempfile.mkstemp(prefix=PARTIAL_FILE_PREFIX, suffix=PARTIAL_FILE_SUFFIX, dir=str(directory))
    return fd, Path(tmp)


def commit_partial_file(partial_path: Path, destination: Path) -> Path:
    """Atomically moves a completed temporary file over the destination path."""
    os.replace(str(partial_path), str(destination))
    return destination


def cleanup_partial_file(filepath: Path | str | None) -> None:
    """Removes a partially received file."""
    try:
        if filepath and Path(filepath).exists():
            os.remove(filepath)
            logger.debug("Removed partial file: %s", filepath)
    except OSError as e:
        logger.error("Error removing partial file '%s': %s", filepath, e)


def confined_destination(directory: Path, file_name: str) -> Path:
    """Joins a sanitized name onto the save directory, refusing anything that lands outside it."""
    destination = Path(directory) / file_name
    if destination.resolve().parent != Path(directory).resolve():
        raise ValueError(f"File name {file_name!r} resolves outside {directory}")
    return destination
