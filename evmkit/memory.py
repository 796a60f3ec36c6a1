"""EVM memory and the gas accounting of its growth."""

from __future__ import annotations

WORD_SIZE = 32
MAX_BUFFER_SIZE = (1 << 32) - 1


class OutOfGas(Exception):
    """Raised when an operation needs more gas than is left."""


class Memory:
    """The byte-addressed, zero-initialised memory of one execution frame."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __repr__(self) -> str:
        return f"Memory(size={len(self._data)})"

    def grow(self, new_size: int) -> None:
        """Extend the memory with zeros to ``new_size`` bytes; never shrinks."""
        if new_size > len(self._data):
            self._data.extend(bytes(new_size - len(self._data)))

    def _check_range(self, offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > len(self._data):
            raise IndexError(
                f"memory access [{offset}, {offset + size}) outside {len(self._data)} bytes"
            )

    def read(self, offset: int, size: int) -> bytes:
        """Return ``size`` bytes starting at ``offset``."""
        self._check_range(offset, size)
        return bytes(self._data[offset : offset + size])

    def write(self, offset: int, data: bytes) -> None:
        """Store ``data`` at ``offset``; the range must already be allocated."""
        self._check_range(offset, len(data))
        self._data[offset : offset + len(data)] = data


def num_words(size: int) -> int:
    """Return the number of 32-byte words needed to hold ``size`` bytes."""
    return (size + WORD_SIZE - 1) // WORD_SIZE


def memory_cost(words: int) -> int:
    """Return the total gas cost of a memory of ``words`` words."""
    return 3 * words + words * words // 512


def check_memory(memory: Memory, gas_left: int, offset: int, size: int) -> int:
    """Make sure ``[offset, offset + size)`` is addressable, growing memory if needed.

    Returns the gas left after paying for the growth and raises
    :class:`OutOfGas` when the range is too large or cannot be paid for.
    A zero-sized range is always valid, whatever its offset.
    """
    if size == 0:
        return gas_left
    if size > MAX_BUFFER_SIZE or offset > MAX_BUFFER_SIZE:
        raise OutOfGas(f"memory range offset={offset:#x} size={size:#x} is too large")

    new_size = offset + size
    if new_size <= len(memory):
        return gas_left

    new_words = num_words(new_size)
    current_words = len(memory) // WORD_SIZE
    gas_left -= memory_cost(new_words) - memory_cost(current_words)
    if gas_left < 0:
        raise OutOfGas(f"cannot pay for growing memory to {new_words} words")
    memory.grow(new_words * WORD_SIZE)
    return gas_left


def padded_slice(data: bytes, offset: int, size: int) -> bytes:
    """Return ``size`` bytes of ``data`` from ``offset``, zero-filled past its end."""
    chunk = data[offset : offset + size] if offset < len(data) else b""
    return bytes(chunk) + bytes(size - len(chunk))