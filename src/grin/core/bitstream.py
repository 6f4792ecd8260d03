"""Bit stream ports over byte-oriented file objects.

Bits are packed MSB-first: the first bit written lands in bit 7 of byte 0.
The last byte is zero-padded on flush/close; padding is not marked.

A port created with ``open(path)`` owns its file and closes it.
A port wrapping a caller's file object leaves that object open.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, Optional

CHUNK_SIZE_DEFAULT = 64 * 1024


class BitWriter:
    def __init__(self, fp: BinaryIO, *, owns: bool = False):
        self._fp = fp
        self._owns = owns
        self._rack = 0
        self._nbits = 0  # bit pendenti nel rack (0..7)
        self._buf = bytearray()
        self._closed = False
        self.bits_written = 0

    @classmethod
    def open(cls, path: Path) -> "BitWriter":
        return cls(Path(path).open("wb"), owns=True)

    def write_bit(self, bit: int) -> None:
        if self._closed:
            raise ValueError("BitWriter: write su writer chiuso")
        self._rack = (self._rack << 1) | (1 if bit else 0)
        self._nbits += 1
        self.bits_written += 1
        if self._nbits == 8:
            self._buf.append(self._rack)
            self._rack = 0
            self._nbits = 0
            if len(self._buf) >= CHUNK_SIZE_DEFAULT:
                self._drain()

    def write_bits(self, value: int, n: int) -> None:
        """Write the low ``n`` bits of ``value``, most significant first."""
        if n < 0:
            raise ValueError("BitWriter: numero di bit negativo")
        if value < 0 or value >> n:
            raise ValueError(f"BitWriter: valore {value} non sta in {n} bit")
        for shift in range(n - 1, -1, -1):
            self.write_bit((value >> shift) & 1)

    def write_code(self, bits: Iterable[int]) -> None:
        for bit in bits:
            self.write_bit(bit)

    def _drain(self) -> None:
        if self._buf:
            self._fp.write(bytes(self._buf))
            self._buf.clear()

    def flush(self) -> None:
        """Pad the pending byte with zeros and push everything to the file."""
        if self._nbits:
            self._buf.append(self._rack << (8 - self._nbits))
            self._rack = 0
            self._nbits = 0
        self._drain()
        self._fp.flush()

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            if self._owns:
                self._fp.close()

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BitReader:
    def __init__(self, fp: BinaryIO, *, owns: bool = False, chunk_size: int = CHUNK_SIZE_DEFAULT):
        self._fp = fp
        self._owns = owns
        self._chunk_size = int(chunk_size)
        self._buf = b""
        self._pos = 0  # prossimo byte in _buf
        self._rack = 0
        self._nbits = 0  # bit ancora da consumare nel rack
        self._eof = False
        self._closed = False
        self.bits_read = 0

    @classmethod
    def open(cls, path: Path) -> "BitReader":
        return cls(Path(path).open("rb"), owns=True)

    def _load_byte(self) -> bool:
        if self._pos >= len(self._buf):
            if self._eof:
                return False
            self._buf = self._fp.read(self._chunk_size)
            self._pos = 0
            if not self._buf:
                self._eof = True
                return False
        self._rack = self._buf[self._pos]
        self._pos += 1
        self._nbits = 8
        return True

    def has_more_bits(self) -> bool:
        if self._nbits:
            return True
        if self._pos < len(self._buf):
            return True
        if self._eof:
            return False
        self._buf = self._fp.read(self._chunk_size)
        self._pos = 0
        if not self._buf:
            self._eof = True
            return False
        return True

    def read_bit(self) -> Optional[int]:
        """Next bit, or None at end of data."""
        if not self._nbits and not self._load_byte():
            return None
        self._nbits -= 1
        self.bits_read += 1
        return (self._rack >> self._nbits) & 1

    def read_bits(self, n: int) -> Optional[int]:
        """Unsigned n-bit value (MSB first), or None if fewer than n bits remain."""
        if n < 0:
            raise ValueError("BitReader: numero di bit negativo")
        value = 0
        for _ in range(n):
            bit = self.read_bit()
            if bit is None:
                return None
            value = (value << 1) | bit
        return value

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns:
            self._fp.close()

    def __enter__(self) -> "BitReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
