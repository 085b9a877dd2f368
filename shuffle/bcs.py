"""
Minimal BCS (Binary Canonical Serialization) reader/writer.

Covers the subset used by this package: ULEB128 lengths and variant
indexes, little-endian fixed-width integers, bools, byte strings, UTF-8
strings and fixed-size byte arrays. Enough to read the compiler's ``.abi``
descriptors and to persist key material in the chain's native format.
"""

from __future__ import annotations

from typing import Callable, List, TypeVar

T = TypeVar("T")

MAX_SEQUENCE_LENGTH = (1 << 31) - 1


class BcsError(ValueError):
    pass


class BcsDeserializer:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, n: int) -> bytes:
        if n > self.remaining:
            raise BcsError(f"unexpected end of input: wanted {n} bytes at offset {self._pos}")
        out = bytes(self._data[self._pos : self._pos + n])
        self._pos += n
        return out

    def uleb128(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self._take(1)[0]
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
            shift += 7
            if shift > 28:
                raise BcsError("ULEB128 value overflows u32")
        return value

    def length(self) -> int:
        n = self.uleb128()
        if n > MAX_SEQUENCE_LENGTH:
            raise BcsError(f"sequence length {n} exceeds maximum")
        return n

    def variant_index(self) -> int:
        return self.uleb128()

    def bool(self) -> bool:
        b = self._take(1)[0]
        if b not in (0, 1):
            raise BcsError(f"invalid bool byte {b:#x}")
        return b == 1

    def u8(self) -> int:
        return self._take(1)[0]

    def u64(self) -> int:
        return int.from_bytes(self._take(8), "little")

    def u128(self) -> int:
        return int.from_bytes(self._take(16), "little")

    def bytes(self) -> bytes:
        return self._take(self.length())

    def fixed_bytes(self, n: int) -> bytes:
        return self._take(n)

    def str(self) -> str:
        raw = self.bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BcsError(f"invalid UTF-8 string: {exc}") from exc

    def seq(self, item: Callable[["BcsDeserializer"], T]) -> List[T]:
        return [item(self) for _ in range(self.length())]

    def finish(self) -> None:
        if self.remaining:
            raise BcsError(f"{self.remaining} trailing bytes after value")


class BcsSerializer:
    def __init__(self) -> None:
        self._out = bytearray()

    def output(self) -> bytes:
        return bytes(self._out)

    def uleb128(self, value: int) -> "BcsSerializer":
        if value < 0:
            raise BcsError("ULEB128 cannot encode negative values")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._out.append(byte | 0x80)
            else:
                self._out.append(byte)
                return self

    def variant_index(self, index: int) -> "BcsSerializer":
        return self.uleb128(index)

    def bool(self, value: bool) -> "BcsSerializer":
        self._out.append(1 if value else 0)
        return self

    def u8(self, value: int) -> "BcsSerializer":
        self._out += value.to_bytes(1, "little")
        return self

    def u64(self, value: int) -> "BcsSerializer":
        self._out += value.to_bytes(8, "little")
        return self

    def u128(self, value: int) -> "BcsSerializer":
        self._out += value.to_bytes(16, "little")
        return self

    def bytes(self, value: bytes) -> "BcsSerializer":
        self.uleb128(len(value))
        self._out += value
        return self

    def fixed_bytes(self, value: bytes) -> "BcsSerializer":
        self._out += value
        return self

    def str(self, value: str) -> "BcsSerializer":
        return self.bytes(value.encode("utf-8"))

    def seq(self, items: List[T], item: Callable[["BcsSerializer", T], object]) -> "BcsSerializer":
        self.uleb128(len(items))
        for it in items:
            item(self, it)
        return self


__all__ = ["BcsError", "BcsSerializer", "BcsDeserializer"]
