"""
Archive Module - Black Box Interface

Purpose: Package one local file into a tar stream a remote `tar xf -` accepts
Interface: ArchiveBuilder.build(path, arcname) -> bytes
Hidden: Header layout, checksum, block and record padding

Replaceable with any writer that produces byte-identical GNU tar framing.
"""

from .builder import (
    ArchiveBuilder,
    ArchiveEntry,
    FileMetadata,
    FileSystem,
    LocalFileSystem,
    NAME_FIELD_SIZE,
)

__all__ = [
    "ArchiveBuilder",
    "ArchiveEntry",
    "FileMetadata",
    "FileSystem",
    "LocalFileSystem",
    "NAME_FIELD_SIZE",
]
