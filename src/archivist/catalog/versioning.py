"""Versioned archive file names.

A versioned name has the fixed shape ``<base>-NNNN.<ext>``: the hyphen sits
nine characters from the end, the dot four from the end, and ``NNNN`` is a
zero-padded 1-based version number. Because the number is fixed width,
lexical order of versioned names is also chronological order.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import NamedTuple

from .errors import VersionRolloverError

LOGGER = logging.getLogger(__name__)

MAX_VERSION_NUMBER = 9999
ROLLOVER_WARNING_THRESHOLD = 9900

NAME_TOO_SHORT = -1
NON_NUMERIC_VERSION = -2
NOT_VERSIONED_SHAPE = -3

ARCHIVE_EXTENSION = "zip"
ENCRYPTED_EXTENSION = "aes"


class NextVersionNames(NamedTuple):
    """Paths for the next generation of an archive.

    Attributes:
        zipped: Path of the compressed archive.
        encrypted: Path of the encrypted archive, when encryption is requested.
    """

    zipped: Path
    encrypted: Path | None


def extract_version_number(file_name: str) -> int:
    """Return the version number of a versioned name, or a negative sentinel.

    Args:
        file_name: File name (or path) to inspect.

    Returns:
        int: The parsed digits, ``NAME_TOO_SHORT`` for empty or short names,
            ``NOT_VERSIONED_SHAPE`` when the hyphen and dot are not at their
            fixed offsets, ``NON_NUMERIC_VERSION`` when the four characters
            between them are not digits.
    """
    if not file_name or len(file_name) <= 9:
        return NAME_TOO_SHORT
    if file_name[-9] != "-" or file_name[-4] != ".":
        return NOT_VERSIONED_SHAPE

    digits = file_name[-8:-4]
    if not (digits.isascii() and digits.isdigit()):
        return NON_NUMERIC_VERSION
    return int(digits)


def is_versioned_file_name(file_name: str) -> bool:
    """Return whether the name follows the ``<base>-NNNN.<ext>`` convention."""
    return extract_version_number(file_name) > 0


def base_file_name(file_path: str | PurePath) -> str:
    """Return the logical archive identity of a file.

    The directory is dropped, then either the ``-NNNN.ext`` suffix (versioned
    names) or the trailing four-character extension (anything else).
    """
    name = PurePath(file_path).name
    if is_versioned_file_name(name):
        return name[:-9]
    return name[:-4]


def make_versioned_name(base_name: str, version: int, extension: str = ARCHIVE_EXTENSION) -> str:
    """Return ``<base>-NNNN.<ext>`` for the given version.

    Raises:
        ValueError: If the base name is empty, the version is outside 1..9999,
            or the extension is not three characters long.
    """
    if not base_name:
        raise ValueError("Versioned file names need a non-empty base name")
    if not 1 <= version <= MAX_VERSION_NUMBER:
        raise ValueError(f"Version number {version} is outside 1..{MAX_VERSION_NUMBER}")
    if len(extension) != 3:
        raise ValueError(f"Versioned file extensions must be three characters, got '{extension}'")
    return f"{base_name}-{version:04d}.{extension}"


def next_versioned_file_names(
    base_name: str,
    directory: Path,
    current_version: int,
    *,
    encrypt: bool = False,
) -> NextVersionNames:
    """Return the paths the next generation of ``base_name`` should be written to.

    Args:
        base_name: Logical archive identity.
        directory: Directory the archive will be written into.
        current_version: Highest version currently present, 0 when there is none.
        encrypt: Whether an encrypted file name is also required.

    Returns:
        NextVersionNames: Zipped and (optionally) encrypted paths.

    Raises:
        ValueError: If ``current_version`` is outside 0..9999.
        VersionRolloverError: If ``current_version`` is already 9999.
    """
    if not 0 <= current_version <= MAX_VERSION_NUMBER:
        raise ValueError(f"Invalid current version {current_version} for '{base_name}'")

    prefix = f"Current version number for '{base_name}' is {current_version}, "
    if current_version == MAX_VERSION_NUMBER:
        raise VersionRolloverError(
            prefix + "not generating the next file name; renumber the existing files "
            "manually, ideally starting again at 0001."
        )
    if current_version > ROLLOVER_WARNING_THRESHOLD:
        LOGGER.warning(
            "%sversioning stops at %d; renumber the existing files before then.",
            prefix,
            MAX_VERSION_NUMBER,
        )

    next_version = current_version + 1
    zipped = directory / make_versioned_name(base_name, next_version, ARCHIVE_EXTENSION)
    encrypted = None
    if encrypt:
        encrypted = directory / make_versioned_name(base_name, next_version, ENCRYPTED_EXTENSION)
    return NextVersionNames(zipped=zipped, encrypted=encrypted)


def base_archive_name(source_path: str | PurePath, output_file_name: str | None = None) -> str:
    """Return the base archive name for a source directory.

    ``/home/me/Photos/2024`` becomes ``home-me-Photos-2024`` unless an explicit
    output file name is configured.

    Raises:
        ValueError: If the path has no components below its anchor.
    """
    if output_file_name:
        return output_file_name

    path = PurePath(source_path)
    parts = [part for part in path.parts if part != path.anchor]
    if not parts:
        raise ValueError(f"Cannot derive an archive name from '{source_path}', path too short")
    return "-".join(parts)


__all__ = [
    "MAX_VERSION_NUMBER",
    "ROLLOVER_WARNING_THRESHOLD",
    "NAME_TOO_SHORT",
    "NON_NUMERIC_VERSION",
    "NOT_VERSIONED_SHAPE",
    "NextVersionNames",
    "extract_version_number",
    "is_versioned_file_name",
    "base_file_name",
    "make_versioned_name",
    "next_versioned_file_names",
    "base_archive_name",
]
