"""Reading big-endian binary data from a seekable stream."""

from __future__ import annotations

import io
import math
import os
import struct
from typing import BinaryIO, Union

__all__ = ["EndOfStreamError", "BigEndianReader"]

_U16 = struct.Struct(">H")
_I16 = struct.Struct(">h")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")
_F32 = struct.Struct(">f")


class EndOfStreamError(EOFError):
    """Raised when a read or skip goes past the end of the stream."""


class BigEndianReader:
    """Reads big-endian integers, floats and strings from a binary stream.

    ``stream`` is a seekable binary file object; ``bytes`` are wrapped
    in an in-memory stream.
    """

    def __init__(self, stream: Union[BinaryIO, bytes, bytearray]) -> None:
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        self.stream = stream

    def tell(self) -> int:
        """Current position from the start of the stream."""
        return self.stream.tell()

    def seek(self, position: int) -> None:
        """Move to an absolute position."""
        if position < 0:
            raise ValueError(f"cannot seek to negative position {position}")
        self.stream.seek(position, os.SEEK_SET)

    def length(self) -> int:
        """Total length of the stream in bytes; the position is kept."""
        here = self.stream.tell()
        end = self.stream.seek(0, os.SEEK_END)
        self.stream.seek(here, os.SEEK_SET)
        return end

    def skip(self, count: int) -> None:
        """Move forward by ``count`` bytes."""
        if count < 0:
            raise ValueError(f"cannot skip a negative byte count {count}")
        target = self.tell() + count
        if target > self.length():
            raise EndOfStreamError(f"skipping {count} bytes runs past the end of the stream")
        self.stream.seek(target, os.SEEK_SET)

    def read_bytes(self, count: int) -> bytes:
        """Read exactly ``count`` bytes."""
        if count < 0:
            raise ValueError(f"cannot read a negative byte count {count}")
        data = self.stream.read(count)
        if len(data) != count:
            raise EndOfStreamError(f"wanted {count} bytes, only {len(data)} left")
        return data

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_i8(self) -> int:
        value = self.read_u8()
        return value - 0x100 if value >= 0x80 else value

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_i16(self) -> int:
        return self._unpack(_I16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_extended(self) -> float:
        """Read an 80-bit IEEE 754 extended-precision float."""
        raw = self.read_bytes(10)
        sign_exponent = int.from_bytes(raw[:2], "big")
        mantissa = int.from_bytes(raw[2:], "big")
        sign = -1.0 if sign_exponent & 0x8000 else 1.0
        exponent = sign_exponent & 0x7FFF

        if exponent == 0 and mantissa == 0:
            return sign * 0.0
        if exponent == 0x7FFF:
            if mantissa & ((1 << 63) - 1):
                return math.nan
            return sign * math.inf
        try:
            return sign * math.ldexp(mantissa, exponent - 16383 - 63)
        except OverflowError:
            return sign * math.inf

    def read_pascal_string(self, align: int = 1) -> str:
        """Read a length-prefixed string, then skip padding so that the
        whole record (length byte included) spans a multiple of ``align``."""
        if align < 1:
            raise ValueError(f"alignment must be at least 1, got {align}")
        length = self.read_u8()
        text = self.read_bytes(length).decode("mac_roman")
        padding = (-(length + 1)) % align
        if padding:
            self.skip(padding)
        return text