# -*- coding: utf-8 -*-
"""
PAK archive reader.

- header (24B) -> signature check
- index table at header.index_offset, loaded once into an id -> entry map
- entries addressed only by pack_path_hash(path); no names are stored
- payloads: 0 = stored, 1 = UCL/NRV2B, anything else is returned undecoded
"""

import logging
import os
import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

from .config import JxAssetConfig
from .errors import (
    ArchiveFormatError,
    DecompressionError,
    EntryNotFound,
    UnsupportedCompressionType,
)
from .nrv2b import nrv2b_decompress
from .path_hash import pack_path_hash

__all__ = [
    "PACK_SIGNATURE",
    "COMPRESSION_NONE",
    "COMPRESSION_UCL",
    "COMPRESSION_BZIP2",
    "PakHeader",
    "PakEntry",
    "PakPayload",
    "PakArchive",
]

PACK_SIGNATURE = 0x4B434150  # b'PACK'
HEADER_SIZE = 24
ENTRY_SIZE = 16

COMPRESSION_NONE = 0
COMPRESSION_UCL = 1
COMPRESSION_BZIP2 = 2

_COMPRESSION_NAMES = {
    COMPRESSION_NONE: "none",
    COMPRESSION_UCL: "ucl",
    COMPRESSION_BZIP2: "bzip2",
}

_HEADER = struct.Struct("<5I4s")  # HEADER_SIZE bytes
_ENTRY = struct.Struct("<4I")


# ------------------------------------------------------------
# Records
# ------------------------------------------------------------

@dataclass(frozen=True)
class PakHeader:
    signature: int
    count: int
    index_offset: int
    data_offset: int  # not used by the reader
    crc32: int        # not used by the reader
    reserved: bytes = b"\x00" * 4

    @classmethod
    def parse(cls, raw: bytes) -> "PakHeader":
        return cls(*_HEADER.unpack(raw))


@dataclass(frozen=True)
class PakEntry:
    id: int
    offset: int
    original_size: int
    compress_flag: int

    @property
    def stored_size(self) -> int:
        """Low 24 bits of the flag word: bytes on disk."""
        return self.compress_flag & 0x00FFFFFF

    @property
    def compression_type(self) -> int:
        return (self.compress_flag >> 24) & 0xFF

    @property
    def compression_name(self) -> str:
        return _COMPRESSION_NAMES.get(self.compression_type, f"unknown({self.compression_type})")


@dataclass(frozen=True)
class PakPayload:
    """Bytes read for an entry. degraded=True means data is still encoded."""
    entry: PakEntry
    data: bytes
    degraded: bool = False

    @property
    def compression_type(self) -> int:
        return self.entry.compression_type


# ------------------------------------------------------------
# Archive
# ------------------------------------------------------------

class PakArchive:
    """
    An open PAK file.

    The id -> entry index is built once and never modified, so it can be
    shared between threads. The file handle is not: issue one read at a time
    per archive, or open another PakArchive on the same path.
    """

    def __init__(self, path: Union[str, os.PathLike], config: Optional[JxAssetConfig] = None):
        self.path = os.fspath(path)
        self.config = config or JxAssetConfig()
        self._file = open(self.path, "rb")
        try:
            self.header = self._read_header()
            self._index = MappingProxyType(self._read_index())
        except BaseException:
            self._file.close()
            raise
        logging.debug(f"PAK {self.path}: {len(self._index)} entries "
                      f"(header count {self.header.count})")

    @classmethod
    def open(cls, path: Union[str, os.PathLike], config: Optional[JxAssetConfig] = None) -> "PakArchive":
        return cls(path, config)

    # --- loading ---
    def _read_header(self) -> PakHeader:
        raw = self._file.read(HEADER_SIZE)
        if len(raw) < HEADER_SIZE:
            raise ArchiveFormatError(
                f"truncated header ({len(raw)} of {HEADER_SIZE} bytes)", self.path, 0
            )
        try:
            header = PakHeader.parse(raw)
        except struct.error as e:
            raise ArchiveFormatError(f"unreadable header: {e}", self.path, 0) from e
        if header.signature != PACK_SIGNATURE:
            raise ArchiveFormatError(
                f"invalid PAK signature 0x{header.signature:08X}", self.path, 0
            )
        return header

    def _read_index(self) -> Dict[int, PakEntry]:
        index: Dict[int, PakEntry] = {}
        count = self.header.count
        index_offset = self.header.index_offset
        # check against the file size first; count comes straight from the header
        available = max(os.fstat(self._file.fileno()).st_size - index_offset, 0)
        if count * ENTRY_SIZE > available:
            done = available // ENTRY_SIZE
            raise ArchiveFormatError(
                f"truncated index: {done} of {count} entries",
                self.path,
                index_offset + done * ENTRY_SIZE,
            )
        self._file.seek(index_offset)
        raw = self._file.read(count * ENTRY_SIZE)
        if len(raw) < count * ENTRY_SIZE:
            raise ArchiveFormatError(
                f"short read in index ({len(raw)} of {count * ENTRY_SIZE} bytes)",
                self.path,
                index_offset + len(raw),
            )
        for entry_id, offset, original_size, flag in _ENTRY.iter_unpack(raw):
            if entry_id in index:
                # the packer lets the later record win; so do we
                logging.debug(f"PAK {self.path}: duplicate id {entry_id:08X}, keeping later record")
            index[entry_id] = PakEntry(entry_id, offset, original_size, flag)
        return index

    # --- lookup ---
    def hash_path(self, path: Union[str, bytes]) -> int:
        return pack_path_hash(path, encoding=self.config.path_encoding)

    def find(self, path: Union[str, bytes]) -> Optional[PakEntry]:
        """Entry for path, or None. Paths hashing to the same id are indistinguishable."""
        return self._index.get(self.hash_path(path))

    def get(self, entry_id: int) -> Optional[PakEntry]:
        return self._index.get(entry_id)

    @property
    def index(self) -> Mapping[int, PakEntry]:
        return self._index

    def entries(self) -> Iterator[PakEntry]:
        return iter(self._index.values())

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key) -> bool:
        if isinstance(key, int):
            return key in self._index
        return self.find(key) is not None

    # --- payloads ---
    def _read_stored(self, entry: PakEntry) -> bytes:
        size = entry.stored_size
        self._file.seek(entry.offset)
        data = self._file.read(size)
        if len(data) < size:
            raise ArchiveFormatError(
                f"truncated payload for entry {entry.id:08X} ({len(data)} of {size} bytes)",
                self.path,
                entry.offset,
            )
        return data

    def read(self, entry: PakEntry) -> PakPayload:
        """
        Read and, where supported, decompress an entry.

        Raises:
            ArchiveFormatError: payload runs past end of file
            DecompressionError: corrupt UCL stream (entry id / archive attached)
        """
        data = self._read_stored(entry)
        ctype = entry.compression_type

        if ctype == COMPRESSION_NONE:
            if len(data) != entry.original_size:
                message = (f"stored entry {entry.id:08X}: {len(data)} bytes, "
                           f"header says {entry.original_size}")
                if self.config.strict_sizes:
                    raise ArchiveFormatError(message, self.path, entry.offset)
                logging.warning(f"PAK {self.path}: {message}")
            return PakPayload(entry, data)

        if ctype == COMPRESSION_UCL:
            logging.debug(f"PAK {self.path}: UCL {entry.id:08X} "
                          f"{entry.stored_size} -> {entry.original_size} bytes")
            try:
                out = nrv2b_decompress(data, entry.original_size, strict=self.config.strict_sizes)
            except DecompressionError as e:
                raise e.attach(self.path, entry.id)
            return PakPayload(entry, out)

        logging.warning(f"PAK {self.path}: entry {entry.id:08X} uses "
                        f"{entry.compression_name} compression; returning raw bytes")
        return PakPayload(entry, data, degraded=True)

    def read_bytes(self, entry: PakEntry, strict: bool = False) -> bytes:
        """Like read(), but returns bytes. strict=True turns degraded payloads into errors."""
        payload = self.read(entry)
        if payload.degraded and strict:
            raise UnsupportedCompressionType(entry.compression_type, entry.id, payload.data)
        return payload.data

    def read_file(self, path: Union[str, bytes], strict: bool = False) -> bytes:
        """find() + read_bytes(); raises EntryNotFound on a miss."""
        entry = self.find(path)
        if entry is None:
            raise EntryNotFound(
                path if isinstance(path, str) else path.decode(self.config.path_encoding, "replace"),
                self.hash_path(path),
                self.path,
            )
        return self.read_bytes(entry, strict=strict)

    # --- lifecycle ---
    @property
    def closed(self) -> bool:
        return self._file.closed

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "PakArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PakArchive({self.path!r}, entries={len(self._index)})"
