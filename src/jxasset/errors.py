# -*- coding: utf-8 -*-
"""
Error types raised by the archive, decompressor and sprite readers.

All failures are structural (corrupt or incompatible data), so nothing here is
meant to be retried. Callers usually log the error and skip the asset.
"""

from typing import Optional

__all__ = [
    "JxAssetError",
    "ArchiveFormatError",
    "EntryNotFound",
    "DecompressionError",
    "InputOverrun",
    "OutputOverrun",
    "LookbehindOverrun",
    "SpriteFormatError",
    "UnsupportedCompressionType",
]


class JxAssetError(Exception):
    """Base class for every jxasset error."""


class ArchiveFormatError(JxAssetError):
    """Bad signature, truncated header or truncated index table."""

    def __init__(self, message: str, path: Optional[str] = None, offset: Optional[int] = None):
        self.path = path
        self.offset = offset
        if path is not None:
            message = f"{message} [{path}]"
        if offset is not None:
            message = f"{message} @0x{offset:x}"
        super().__init__(message)


class EntryNotFound(JxAssetError, KeyError):
    """Lookup miss. Only raised by the convenience readers; find() returns None."""

    def __init__(self, path: str, entry_id: int, archive: Optional[str] = None):
        self.path = path
        self.entry_id = entry_id
        self.archive = archive
        message = f"{path!r} (id {entry_id:08X}) not found"
        if archive:
            message += f" in {archive}"
        super().__init__(message)

    def __str__(self):
        # KeyError would repr() the message otherwise
        return self.args[0]


class DecompressionError(JxAssetError):
    """NRV2B stream could not be decoded."""

    kind = "DECOMPRESSION_ERROR"

    def __init__(self, message: Optional[str] = None, ilen: int = 0, olen: int = 0):
        self.ilen = ilen
        self.olen = olen
        self.archive: Optional[str] = None
        self.entry_id: Optional[int] = None
        super().__init__(message or f"{self.kind} (in={ilen}, out={olen})")

    def attach(self, archive: str, entry_id: int) -> "DecompressionError":
        """Record where the failing entry lives."""
        self.archive = archive
        self.entry_id = entry_id
        return self

    def __str__(self):
        text = super().__str__()
        if self.entry_id is not None:
            text = f"{text} [entry {self.entry_id:08X} in {self.archive}]"
        return text


class InputOverrun(DecompressionError):
    kind = "INPUT_OVERRUN"


class OutputOverrun(DecompressionError):
    kind = "OUTPUT_OVERRUN"


class LookbehindOverrun(DecompressionError):
    kind = "LOOKBEHIND_OVERRUN"


class SpriteFormatError(JxAssetError):
    """Bad SPR signature or short read anywhere in the sprite stream."""

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} @0x{offset:x}"
        super().__init__(message)


class UnsupportedCompressionType(JxAssetError):
    """Entry uses a compression type this reader cannot decode (e.g. BZIP2)."""

    def __init__(self, compression_type: int, entry_id: int, data: bytes = b""):
        self.compression_type = compression_type
        self.entry_id = entry_id
        self.data = data
        super().__init__(
            f"unsupported compression type {compression_type} for entry {entry_id:08X}"
        )
