# -*- coding: utf-8 -*-
"""
Pack path hash.

Archives store no file names; an entry is addressed only by the 32-bit hash
of its path. The arithmetic below reproduces the client's C routine
``id = (id + (++index) * c) % 0x8000000b * 0xffffffef`` on 32-bit unsigned
longs, where ``c`` is a *signed* char. Bytes >= 0x80 (GBK lead/trail bytes)
therefore contribute negative terms. Do not "fix" this: every shipped archive
was built against it.
"""

from typing import Union

__all__ = [
    "DEFAULT_PATH_ENCODING",
    "normalize_pack_path",
    "pack_path_hash",
]

DEFAULT_PATH_ENCODING = "gbk"

_U32 = 0xFFFFFFFF
_MODULUS = 0x8000000B
_MULTIPLIER = 0xFFFFFFEF
_FINAL_XOR = 0x12345678


def normalize_pack_path(path: str) -> str:
    """'/' -> '\\' and make sure there is exactly one leading backslash prefix."""
    normalized = path.replace("/", "\\")
    if not normalized.startswith("\\"):
        normalized = "\\" + normalized
    return normalized


def _signed_byte(b: int) -> int:
    return b - 0x100 if b & 0x80 else b


def pack_path_hash(path: Union[str, bytes], encoding: str = DEFAULT_PATH_ENCODING) -> int:
    """
    Hash a pack path into its 32-bit entry id.

    Args:
        path: str (transcoded with ``encoding``, unencodable characters
            replaced by '?') or bytes already in the legacy encoding.
            Slashes are normalized either way.
        encoding: legacy code page the archive was built with.

    Returns:
        int: unsigned 32-bit id
    """
    if isinstance(path, str):
        # characters the code page lacks become '?', which no pack path contains
        raw = normalize_pack_path(path).encode(encoding, "replace")
    else:
        raw = bytes(path).replace(b"/", b"\\")
        if not raw.startswith(b"\\"):
            raw = b"\\" + raw

    id_ = 0
    index = 0
    for b in raw:
        index += 1
        if 0x41 <= b <= 0x5A:  # 'A'..'Z'
            b += 0x20
        term = (index * _signed_byte(b)) & _U32
        id_ = ((id_ + term) & _U32) % _MODULUS
        id_ = (id_ * _MULTIPLIER) & _U32

    return id_ ^ _FINAL_XOR
