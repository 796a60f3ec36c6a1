"""The execution context that instruction implementations work on."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Protocol, Sequence

from evmkit.memory import Memory, OutOfGas, check_memory, padded_slice
from evmkit.revision import Revision
from evmkit.words import MAX_WORD

STACK_LIMIT = 1024
ADDRESS_SIZE = 20
MAX_CALL_DEPTH = 1024
COLD_ACCOUNT_ACCESS_COST = 2600
WARM_STORAGE_READ_COST = 100
ADDITIONAL_COLD_ACCOUNT_ACCESS_COST = COLD_ACCOUNT_ACCESS_COST - WARM_STORAGE_READ_COST

ZERO_ADDRESS = bytes(ADDRESS_SIZE)


class StatusCode(enum.IntEnum):
    """The outcome of an execution."""

    SUCCESS = 0
    FAILURE = 1
    REVERT = 2
    OUT_OF_GAS = 3
    INVALID_INSTRUCTION = 4
    UNDEFINED_INSTRUCTION = 5
    STACK_OVERFLOW = 6
    STACK_UNDERFLOW = 7
    BAD_JUMP_DESTINATION = 8
    INVALID_MEMORY_ACCESS = 9
    CALL_DEPTH_EXCEEDED = 10
    STATIC_MODE_VIOLATION = 11


class AccessStatus(enum.IntEnum):
    """Whether an account or storage slot was already accessed (EIP-2929)."""

    COLD = 0
    WARM = 1


class CallKind(enum.IntEnum):
    """The kind of a message call."""

    CALL = 0
    DELEGATECALL = 1
    CALLCODE = 2
    CREATE = 3
    CREATE2 = 4


class EVMError(Exception):
    """An execution failure other than running out of gas."""

    def __init__(self, status: StatusCode, message: Optional[str] = None) -> None:
        super().__init__(message or status.name.lower())
        self.status = status


@dataclass
class Message:
    """A message call: who calls whom, with what input, value and gas.

    Addresses are 20-byte strings; ``value`` and ``create2_salt`` are words.
    """

    kind: CallKind = CallKind.CALL
    is_static: bool = False
    depth: int = 0
    gas: int = 0
    recipient: bytes = ZERO_ADDRESS
    sender: bytes = ZERO_ADDRESS
    input_data: bytes = b""
    value: int = 0
    create2_salt: int = 0
    code_address: bytes = ZERO_ADDRESS


@dataclass(frozen=True)
class TxContext:
    """Transaction and block information visible to the executing code."""

    gas_price: int = 0
    origin: bytes = ZERO_ADDRESS
    coinbase: bytes = ZERO_ADDRESS
    number: int = 0
    timestamp: int = 0
    gas_limit: int = 0
    prev_randao: int = 0
    chain_id: int = 0
    base_fee: int = 0


@dataclass
class CallResult:
    """What a nested call or creation returned."""

    status: StatusCode
    gas_left: int = 0
    gas_refund: int = 0
    output: bytes = b""
    create_address: bytes = ZERO_ADDRESS


class Host(Protocol):
    """The world state and chain as seen by the executing code."""

    def account_exists(self, address: bytes) -> bool:
        """Tell whether the account exists."""

    def get_balance(self, address: bytes) -> int:
        """Return the account balance."""

    def get_code_size(self, address: bytes) -> int:
        """Return the size of the account code."""

    def get_code_hash(self, address: bytes) -> bytes:
        """Return the 32-byte hash of the account code."""

    def copy_code(self, address: bytes, offset: int, size: int) -> bytes:
        """Return at most ``size`` bytes of the account code from ``offset``."""

    def selfdestruct(self, address: bytes, beneficiary: bytes) -> bool:
        """Destroy the account; tell whether it was the first destruction."""

    def call(self, msg: Message) -> CallResult:
        """Execute a nested message call."""

    def get_tx_context(self) -> TxContext:
        """Return the transaction context."""

    def get_block_hash(self, number: int) -> bytes:
        """Return the 32-byte hash of the given block."""

    def emit_log(self, address: bytes, data: bytes, topics: Sequence[bytes]) -> None:
        """Record a log entry."""

    def access_account(self, address: bytes) -> AccessStatus:
        """Mark the account accessed and return its previous access status."""

    def access_storage(self, address: bytes, key: bytes) -> AccessStatus:
        """Mark the storage slot accessed and return its previous access status."""


class Stack:
    """The EVM word stack. Index 0 is the top item."""

    def __init__(self, items: Iterable[int] = ()) -> None:
        self._items: list[int] = []
        for item in items:
            self.push(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        """Yield the items from the bottom to the top."""
        return iter(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"

    def _position(self, index: int) -> int:
        if index < 0 or index >= len(self._items):
            raise EVMError(StatusCode.STACK_UNDERFLOW)
        return len(self._items) - 1 - index

    def push(self, value: int) -> None:
        """Put a word on top of the stack."""
        if len(self._items) >= STACK_LIMIT:
            raise EVMError(StatusCode.STACK_OVERFLOW)
        self._items.append(value & MAX_WORD)

    def pop(self) -> int:
        """Remove and return the top word."""
        if not self._items:
            raise EVMError(StatusCode.STACK_UNDERFLOW)
        return self._items.pop()

    def peek(self, index: int = 0) -> int:
        """Return the word ``index`` items below the top."""
        return self._items[self._position(index)]

    def set(self, index: int, value: int) -> None:
        """Replace the word ``index`` items below the top."""
        self._items[self._position(index)] = value & MAX_WORD

    def dup(self, n: int) -> None:
        """Push a copy of the ``n``-th item (DUPn, 1 is the top)."""
        if n < 1:
            raise ValueError("dup depth must be at least 1")
        self.push(self.peek(n - 1))

    def swap(self, n: int) -> None:
        """Exchange the top item with the item ``n`` places below it (SWAPn)."""
        if n < 1:
            raise ValueError("swap depth must be at least 1")
        top = self._position(0)
        other = self._position(n)
        self._items[top], self._items[other] = self._items[other], self._items[top]


@dataclass
class ExecutionState:
    """The state of one execution frame."""

    host: Host
    msg: Message
    rev: Revision
    code: bytes = b""
    gas_left: Optional[int] = None
    gas_refund: int = 0
    memory: Memory = field(default_factory=Memory)
    return_data: bytes = b""
    output_offset: int = 0
    output_size: int = 0
    _tx_context: Optional[TxContext] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.gas_left is None:
            self.gas_left = self.msg.gas

    @property
    def tx_context(self) -> TxContext:
        """The transaction context, fetched from the host once."""
        if self._tx_context is None:
            self._tx_context = self.host.get_tx_context()
        return self._tx_context

    def charge(self, cost: int) -> None:
        """Take ``cost`` gas; raise :class:`OutOfGas` if it goes below zero."""
        self.gas_left -= cost
        if self.gas_left < 0:
            raise OutOfGas(f"needed {cost} gas, only {self.gas_left + cost} left")

    def in_static_mode(self) -> bool:
        """Tell whether state modifications are forbidden."""
        return self.msg.is_static

    def check_memory(self, offset: int, size: int) -> None:
        """Make ``[offset, offset + size)`` addressable, paying for memory growth."""
        self.gas_left = check_memory(self.memory, self.gas_left, offset, size)


def push_data(code: bytes, pos: int, length: int) -> int:
    """Return the word a PUSH of ``length`` bytes at ``pos`` pushes.

    Data missing past the end of the code reads as zero bytes.
    """
    return int.from_bytes(padded_slice(code, pos + 1, length), "big")