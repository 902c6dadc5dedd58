"""Bit-per-slot occupancy maps stored inside page buffers."""

from __future__ import annotations

BITMAP_WIDTH = 8
BITMAP_HIGHEST_BIT = 0x80


class Bitmap:
    """A view of a writable byte buffer as a sequence of bits.

    Bit ``pos`` lives in byte ``pos // 8``; within a byte the most
    significant bit comes first.
    """

    __slots__ = ("buffer",)

    def __init__(self, buffer) -> None:
        self.buffer = buffer

    @staticmethod
    def _locate(pos: int) -> tuple[int, int]:
        if pos < 0:
            raise IndexError(f"bit position out of range: {pos}")
        return pos // BITMAP_WIDTH, BITMAP_HIGHEST_BIT >> (pos % BITMAP_WIDTH)

    def clear(self) -> None:
        """Set every bit of the buffer to 0."""
        self.buffer[:] = bytes(len(self.buffer))

    def set(self, pos: int) -> None:
        """Set bit ``pos`` to 1."""
        bucket, mask = self._locate(pos)
        self.buffer[bucket] |= mask

    def reset(self, pos: int) -> None:
        """Set bit ``pos`` to 0."""
        bucket, mask = self._locate(pos)
        self.buffer[bucket] &= ~mask & 0xFF

    def is_set(self, pos: int) -> bool:
        """True when bit ``pos`` is 1."""
        bucket, mask = self._locate(pos)
        return (self.buffer[bucket] & mask) != 0

    def next_bit(self, bit: bool, max_n: int, curr: int) -> int:
        """Return the first position in ``(curr, max_n)`` whose bit equals
        ``bit``, or ``max_n`` when there is none."""
        return next(
            (pos for pos in range(curr + 1, max_n) if self.is_set(pos) == bit),
            max_n,
        )

    def first_bit(self, bit: bool, max_n: int) -> int:
        """Return the first position below ``max_n`` whose bit equals
        ``bit``, or ``max_n`` when there is none."""
        return self.next_bit(bit, max_n, -1)