# -*- coding: utf-8 -*-
"""
NRV2B (UCL, 8-bit bit buffer) decompressor.

Bit layout:
  - one flag bit per literal: 1 -> copy next input byte
  - 0 -> match: gamma-coded offset high part, one raw low byte
         (offset code 2 reuses the previous offset),
         2-bit length or gamma-coded long length
  - offset code 0x1000002 with low byte 0xFF is the end-of-stream sentinel

Bits are read MSB first out of 8-bit groups interleaved with the literal and
offset bytes, exactly as ucl/n2b_d.c (getbit_8) does.
"""

import logging

from .errors import DecompressionError, InputOverrun, LookbehindOverrun, OutputOverrun

__all__ = ["nrv2b_decompress", "MAX_OFFSET_CODE", "LONG_OFFSET_THRESHOLD"]

MAX_OFFSET_CODE = 0x00FFFFFF + 3
LONG_OFFSET_THRESHOLD = 0x0D00
_SENTINEL = 0xFFFFFFFF


class _BitSource:
    """getbit_8 over a byte buffer; also hands out the interleaved raw bytes."""

    __slots__ = ("src", "ilen", "bb", "_len")

    def __init__(self, src: bytes):
        self.src = src
        self.ilen = 0
        self.bb = 0
        self._len = len(src)

    def getbit(self, olen: int) -> int:
        bb = self.bb
        if bb & 0x7F:
            bb *= 2
        else:
            if self.ilen >= self._len:
                raise InputOverrun(ilen=self.ilen, olen=olen)
            bb = self.src[self.ilen] * 2 + 1
            self.ilen += 1
        self.bb = bb
        return (bb >> 8) & 1

    def getbyte(self, olen: int) -> int:
        if self.ilen >= self._len:
            raise InputOverrun(ilen=self.ilen, olen=olen)
        b = self.src[self.ilen]
        self.ilen += 1
        return b


def nrv2b_decompress(src: bytes, dst_len: int, strict: bool = False) -> bytes:
    """
    Decode an NRV2B stream.

    Args:
        src: compressed bytes
        dst_len: declared decompressed size (hard upper bound on output)
        strict: raise DecompressionError when the sentinel arrives before
            dst_len bytes were produced (otherwise only logged)

    Returns:
        bytes: decoded data

    Raises:
        InputOverrun, OutputOverrun, LookbehindOverrun
    """
    src = bytes(src)
    bits = _BitSource(src)
    getbit = bits.getbit
    getbyte = bits.getbyte
    dst = bytearray()
    olen = 0
    last_m_off = 1

    while True:
        # literal run
        while getbit(olen):
            b = getbyte(olen)
            if olen >= dst_len:
                raise OutputOverrun(ilen=bits.ilen, olen=olen)
            dst.append(b)
            olen += 1

        # offset
        m_off = 1
        while True:
            m_off = m_off * 2 + getbit(olen)
            if m_off > MAX_OFFSET_CODE:
                raise LookbehindOverrun(ilen=bits.ilen, olen=olen)
            if getbit(olen):
                break

        if m_off == 2:
            m_off = last_m_off
        else:
            m_off = ((m_off - 3) * 256 + getbyte(olen)) & 0xFFFFFFFF
            if m_off == _SENTINEL:
                break
            m_off += 1
            last_m_off = m_off

        # length
        m_len = getbit(olen)
        m_len = m_len * 2 + getbit(olen)
        if m_len == 0:
            m_len = 1
            while True:
                m_len = m_len * 2 + getbit(olen)
                # the copy below is at least m_len + 3 bytes and m_len only grows
                if olen + m_len + 3 > dst_len:
                    raise OutputOverrun(ilen=bits.ilen, olen=olen)
                if getbit(olen):
                    break
            m_len += 2
        if m_off > LONG_OFFSET_THRESHOLD:
            m_len += 1

        # copy m_len + 1 bytes; source may overlap what this copy writes
        if olen + m_len + 1 > dst_len:
            raise OutputOverrun(ilen=bits.ilen, olen=olen)
        if m_off > olen:
            raise LookbehindOverrun(ilen=bits.ilen, olen=olen)
        pos = olen - m_off
        for _ in range(m_len + 1):
            dst.append(dst[pos])
            pos += 1
        olen += m_len + 1

    if olen != dst_len:
        if strict:
            raise DecompressionError(
                f"stream ended at {olen} of {dst_len} bytes", ilen=bits.ilen, olen=olen
            )
        logging.warning(f"NRV2B: stream ended at {olen} of {dst_len} bytes")
    if bits.ilen < len(src):
        logging.warning(f"NRV2B: {len(src) - bits.ilen} trailing input bytes not consumed")

    return bytes(dst)
