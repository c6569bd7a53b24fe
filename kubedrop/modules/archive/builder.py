"""
Single-entry tar archives for piping into a remote `tar xf -`.

The remote tar parses header fields positionally, so the stream has to be
a canonical GNU tar: one 512-byte header, the content padded to a block
boundary, two zero blocks, and zero padding out to the record size. The
standard library writer produces exactly that framing; this module adds
the metadata handling and refuses names that would need a GNU long-name
extension record.
"""

import io
import logging
import os
import stat
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from kubedrop.errors import ContentUnreadable, MetadataUnreadable, PathTooLong

# Capacity of the header name field
NAME_FIELD_SIZE = tarfile.LENGTH_NAME
BLOCK_SIZE = tarfile.BLOCKSIZE
RECORD_SIZE = tarfile.RECORDSIZE


@dataclass
class FileMetadata:
    """The parts of a stat result an archive header needs."""
    size: int
    mode: int
    mtime: float
    uid: int = 0
    gid: int = 0


class FileSystem(Protocol):
    """Protocol for reading the local payload."""

    def read_bytes(self, path: str) -> bytes:
        ...

    def read_metadata(self, path: str) -> FileMetadata:
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def read_metadata(self, path: str) -> FileMetadata:
        st = os.stat(path)
        return FileMetadata(
            size=st.st_size,
            mode=stat.S_IMODE(st.st_mode),
            mtime=st.st_mtime,
            uid=st.st_uid,
            gid=st.st_gid,
        )


@dataclass
class ArchiveEntry:
    """
    One regular file inside the archive.

    size is derived from content, so the declared length can never
    disagree with the bytes that follow the header.
    """

    name: str
    content: bytes
    mode: int
    mtime: int
    uid: int = 0
    gid: int = 0
    uname: str = ""
    gname: str = ""
    size: int = field(init=False)

    def __post_init__(self):
        if len(self.name.encode("utf-8")) > NAME_FIELD_SIZE:
            raise PathTooLong(self.name, NAME_FIELD_SIZE)
        self.mode &= 0o7777
        self.size = len(self.content)

    def to_tarinfo(self) -> tarfile.TarInfo:
        info = tarfile.TarInfo(self.name)
        info.type = tarfile.REGTYPE
        info.size = self.size
        info.mode = self.mode
        info.mtime = self.mtime
        info.uid = self.uid
        info.gid = self.gid
        info.uname = self.uname
        info.gname = self.gname
        return info

    def header(self) -> bytes:
        """The 512-byte GNU header, checksum computed after every other field."""
        return self.to_tarinfo().tobuf(format=tarfile.GNU_FORMAT, encoding="utf-8")


class ArchiveBuilder:
    """Packages one local file into a single-entry tar byte stream."""

    def __init__(self, filesystem: Optional[FileSystem] = None, logger: Optional[logging.Logger] = None):
        self.filesystem = filesystem or LocalFileSystem()
        self.logger = logger or logging.getLogger("kubedrop.archive")

    def build_entry(self, path: str, arcname: Optional[str] = None) -> ArchiveEntry:
        """
        Read the payload and its metadata into an ArchiveEntry.

        Args:
            path: Local file to package
            arcname: Name inside the archive (defaults to the basename)

        Raises:
            MetadataUnreadable: stat failed
            ContentUnreadable: reading the bytes failed
            PathTooLong: arcname does not fit the header name field
        """
        name = (arcname or os.path.basename(path)).replace(os.sep, "/").lstrip("/")
        if not name:
            raise ValueError(f"No archive name can be derived from {path!r}")

        try:
            metadata = self.filesystem.read_metadata(path)
        except OSError as e:
            raise MetadataUnreadable(path, e) from e

        try:
            content = self.filesystem.read_bytes(path)
        except OSError as e:
            raise ContentUnreadable(path, e) from e

        self.logger.info(
            f"Metadata for {path}: size={metadata.size} mode={oct(metadata.mode)} "
            f"uid={metadata.uid} gid={metadata.gid}"
        )
        if metadata.size != len(content):
            self.logger.warning(
                f"{path} changed while reading: stat says {metadata.size} bytes, "
                f"read {len(content)}"
            )

        return ArchiveEntry(
            name=name,
            content=content,
            mode=metadata.mode,
            mtime=int(metadata.mtime),
            uid=metadata.uid,
            gid=metadata.gid,
        )

    def serialize(self, entry: ArchiveEntry) -> bytes:
        """Frame a single entry as a complete archive."""
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w", format=tarfile.GNU_FORMAT) as archive:
            archive.addfile(entry.to_tarinfo(), io.BytesIO(entry.content))
        return buffer.getvalue()

    def build(self, path: str, arcname: Optional[str] = None) -> bytes:
        """Package path as a single-entry archive."""
        entry = self.build_entry(path, arcname)
        data = self.serialize(entry)
        self.logger.debug(f"Archive for {entry.name}: {len(data)} bytes")
        return data
