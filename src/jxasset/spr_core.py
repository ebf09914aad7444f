# -*- coding: utf-8 -*-
"""
SPR sprite parser.

Layout (little endian):
  signature(4, 'SPR' + 1 byte) | 8 x u16 core fields | 6 x u16 reserved
  | colors x RGB palette | frames x (offset u32, length u32)
  | frame data, offsets relative to the end of the directory

Frame: width u16, height u16, offset_x i16, offset_y i16, then a run stream
of (count u8, alpha u8[, count index bytes when alpha > 0]) filling
width*height pixels row by row. alpha == 0 runs are skipped pixels.
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from .errors import SpriteFormatError

__all__ = [
    "SPR_SIGNATURE",
    "SprHeader",
    "SprColor",
    "SprFrame",
    "SprFile",
    "parse_spr",
    "palette_to_array",
    "get_frame_pil",
    "get_frame_rgba",
]

SPR_SIGNATURE = b"SPR"

_CORE = struct.Struct("<8H")
_RESERVED = struct.Struct("<6H")
_DIR_ENTRY = struct.Struct("<II")
_FRAME_HEADER = struct.Struct("<HHhh")


# ------------------------------------------------------------
# Records
# ------------------------------------------------------------

@dataclass(frozen=True)
class SprHeader:
    signature: bytes
    width: int          # nominal bounding box, informational
    height: int
    center_x: int
    center_y: int
    frame_count: int
    color_count: int
    direction_count: int
    interval: int
    reserved: Tuple[int, ...] = (0,) * 6


class SprColor(NamedTuple):
    r: int
    g: int
    b: int


@dataclass(frozen=True)
class SprFrame:
    """One decoded frame: row-major palette indices and per-pixel alpha."""
    width: int
    height: int
    offset_x: int
    offset_y: int
    indices: bytes
    alpha: bytes

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def indices_array(self) -> np.ndarray:
        return np.frombuffer(self.indices, dtype=np.uint8).reshape(self.height, self.width)

    def alpha_array(self) -> np.ndarray:
        return np.frombuffer(self.alpha, dtype=np.uint8).reshape(self.height, self.width)

    def to_rgba(self, palette: Sequence[SprColor], opaque: bool = False) -> np.ndarray:
        """
        (height, width, 4) uint8 RGBA.

        alpha == 0 and indices past the palette end come out as (0, 0, 0, 0).
        opaque=True draws every visible pixel at alpha 255.
        """
        rgba = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        lut = palette_to_array(palette)
        if len(lut) == 0 or self.pixel_count == 0:
            return rgba
        idx = self.indices_array()
        alpha = self.alpha_array()
        visible = (alpha > 0) & (idx < len(lut))
        rgba[visible, :3] = lut[idx[visible]]
        rgba[visible, 3] = 255 if opaque else alpha[visible]
        return rgba

    def to_pil(self, palette: Sequence[SprColor], opaque: bool = False) -> Image.Image:
        if self.pixel_count == 0:
            return Image.new("RGBA", (self.width, self.height))
        return Image.fromarray(self.to_rgba(palette, opaque=opaque))


@dataclass(frozen=True)
class SprFile:
    header: SprHeader
    palette: Tuple[SprColor, ...]
    frames: Tuple[SprFrame, ...]

    @classmethod
    def parse(cls, data: bytes) -> "SprFile":
        return parse_spr(data)

    @classmethod
    def load(cls, path: Union[str, os.PathLike]) -> "SprFile":
        with open(path, "rb") as f:
            data = f.read()
        return parse_spr(data)

    # frames are stored direction-major: all frames of direction 0 first
    @property
    def frames_per_direction(self) -> int:
        directions = self.header.direction_count or 1
        return max(len(self.frames) // directions, 1)

    def direction_of(self, frame_index: int) -> int:
        return frame_index // self.frames_per_direction

    def frame_in_direction(self, frame_index: int) -> int:
        return frame_index % self.frames_per_direction

    def palette_array(self) -> np.ndarray:
        return palette_to_array(self.palette)


def palette_to_array(palette: Sequence[SprColor]) -> np.ndarray:
    """Palette as an (n, 3) uint8 array."""
    if len(palette) == 0:
        return np.zeros((0, 3), dtype=np.uint8)
    return np.asarray(palette, dtype=np.uint8).reshape(-1, 3)


# ------------------------------------------------------------
# Parser
# ------------------------------------------------------------

class _SprReader:
    """Bounds-checked cursor over the sprite buffer."""

    __slots__ = ("data", "pos", "_len")

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0
        self._len = len(data)

    def read(self, n: int, what: str) -> bytes:
        end = self.pos + n
        if end > self._len:
            raise SpriteFormatError(
                f"unexpected end of data reading {what} ({self._len - self.pos} of {n} bytes)",
                self.pos,
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def unpack(self, st: struct.Struct, what: str) -> tuple:
        return st.unpack(self.read(st.size, what))

    def seek(self, pos: int, what: str) -> None:
        if pos > self._len:
            raise SpriteFormatError(f"{what} starts past end of data", pos)
        self.pos = pos


def _decode_frame(reader: _SprReader, index: int) -> SprFrame:
    width, height, offset_x, offset_y = reader.unpack(_FRAME_HEADER, f"frame {index} header")
    total = width * height
    indices = bytearray(total)
    alpha = bytearray(total)
    what = f"frame {index} pixels"

    pos = 0
    while pos < total:
        count, a = reader.read(2, what)
        if a:
            n = min(count, total - pos)
            indices[pos:pos + n] = reader.read(n, what)
            alpha[pos:pos + n] = bytes((a,)) * n
            pos += n
        else:
            pos += count

    return SprFrame(width, height, offset_x, offset_y, bytes(indices), bytes(alpha))


def parse_spr(data: bytes) -> SprFile:
    """
    Decode an SPR buffer.

    Raises:
        SpriteFormatError: bad signature or short read anywhere in the stream
    """
    reader = _SprReader(bytes(data))

    signature = reader.read(4, "signature")
    if signature[:3] != SPR_SIGNATURE:
        raise SpriteFormatError(f"invalid SPR signature {signature!r}", 0)

    (width, height, center_x, center_y,
     frame_count, color_count, direction_count, interval) = reader.unpack(_CORE, "header")
    reserved = reader.unpack(_RESERVED, "header")
    header = SprHeader(signature, width, height, center_x, center_y,
                       frame_count, color_count, direction_count, interval, reserved)
    logging.debug(f"SPR header: {width}x{height} center=({center_x},{center_y}) "
                  f"frames={frame_count} colors={color_count} dirs={direction_count}")

    pal_raw = reader.read(color_count * 3, "palette")
    palette = tuple(SprColor(*pal_raw[i:i + 3]) for i in range(0, len(pal_raw), 3))

    directory: List[Tuple[int, int]] = [
        reader.unpack(_DIR_ENTRY, "frame directory") for _ in range(frame_count)
    ]
    # the length column is not trusted; runs are decoded until the frame is full
    base = reader.pos

    frames = []
    for i, (offset, _length) in enumerate(directory):
        reader.seek(base + offset, f"frame {i}")
        frames.append(_decode_frame(reader, i))

    return SprFile(header, palette, tuple(frames))


# ------------------------------------------------------------
# Image helpers
# ------------------------------------------------------------

def get_frame_pil(spr: SprFile, index: int, *, opaque: bool = False) -> Optional[Image.Image]:
    """RGBA PIL image of frame ``index``, or None if out of range."""
    if not 0 <= index < len(spr.frames):
        return None
    return spr.frames[index].to_pil(spr.palette, opaque=opaque)


def get_frame_rgba(spr: SprFile, index: int, *, opaque: bool = False) -> Optional[bytes]:
    """RGBA bytes (width*height*4) of frame ``index``, or None if out of range."""
    if not 0 <= index < len(spr.frames):
        return None
    return spr.frames[index].to_rgba(spr.palette, opaque=opaque).tobytes()
