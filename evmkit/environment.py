"""Instructions reading the environment, the chain and memory.

Each takes the frame's :class:`~evmkit.execution.Stack` and
:class:`~evmkit.execution.ExecutionState`. The base gas cost and the
stack height are assumed to be checked by the caller. Failures are raised:
:class:`~evmkit.memory.OutOfGas` or :class:`~evmkit.execution.EVMError`.
"""

from __future__ import annotations

from Crypto.Hash import keccak

from evmkit.execution import (
    ADDITIONAL_COLD_ACCOUNT_ACCESS_COST,
    ADDRESS_SIZE,
    AccessStatus,
    EVMError,
    ExecutionState,
    Stack,
    StatusCode,
)
from evmkit.memory import MAX_BUFFER_SIZE, num_words, padded_slice
from evmkit.revision import Revision

_ADDRESS_MASK = (1 << (8 * ADDRESS_SIZE)) - 1
_UINT64_MASK = (1 << 64) - 1
_BLOCKHASH_WINDOW = 256


def _to_address(word: int) -> bytes:
    return (word & _ADDRESS_MASK).to_bytes(ADDRESS_SIZE, "big")


def _word(data: bytes) -> int:
    return int.from_bytes(data, "big")


def _copy_cost(size: int) -> int:
    return num_words(size) * 3


def _charge_account_access(state: ExecutionState, addr: bytes) -> None:
    if state.rev >= Revision.BERLIN and state.host.access_account(addr) == AccessStatus.COLD:
        state.charge(ADDITIONAL_COLD_ACCOUNT_ACCESS_COST)


def keccak256(stack: Stack, state: ExecutionState) -> None:
    """KECCAK256: hash a memory range."""
    index = stack.pop()
    size = stack.peek(0)
    state.check_memory(index, size)
    state.charge(num_words(size) * 6)
    data = state.memory.read(index, size) if size else b""
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    stack.set(0, _word(digest.digest()))


def address(stack: Stack, state: ExecutionState) -> None:
    """ADDRESS: push the executing account's address."""
    stack.push(_word(state.msg.recipient))


def balance(stack: Stack, state: ExecutionState) -> None:
    """BALANCE: replace an address with its balance."""
    addr = _to_address(stack.peek(0))
    _charge_account_access(state, addr)
    stack.set(0, state.host.get_balance(addr))


def origin(stack: Stack, state: ExecutionState) -> None:
    """ORIGIN: push the transaction sender."""
    stack.push(_word(state.tx_context.origin))


def caller(stack: Stack, state: ExecutionState) -> None:
    """CALLER: push the message sender."""
    stack.push(_word(state.msg.sender))


def callvalue(stack: Stack, state: ExecutionState) -> None:
    """CALLVALUE: push the value sent with the message."""
    stack.push(state.msg.value)


def calldataload(stack: Stack, state: ExecutionState) -> None:
    """CALLDATALOAD: replace an index with 32 bytes of input, zero-padded."""
    index = stack.peek(0)
    data = state.msg.input_data
    stack.set(0, 0 if index > len(data) else _word(padded_slice(data, index, 32)))


def calldatasize(stack: Stack, state: ExecutionState) -> None:
    """CALLDATASIZE: push the input size."""
    stack.push(len(state.msg.input_data))


def _copy_to_memory(stack: Stack, state: ExecutionState, source: bytes) -> None:
    mem_index = stack.pop()
    input_index = stack.pop()
    size = stack.pop()
    state.check_memory(mem_index, size)
    src = min(input_index, len(source))
    state.charge(_copy_cost(size))
    if size:
        state.memory.write(mem_index, padded_slice(source, src, size))


def calldatacopy(stack: Stack, state: ExecutionState) -> None:
    """CALLDATACOPY: copy input to memory, zero-filling past its end."""
    _copy_to_memory(stack, state, state.msg.input_data)


def codesize(stack: Stack, state: ExecutionState) -> None:
    """CODESIZE: push the size of the executing code."""
    stack.push(len(state.code))


def codecopy(stack: Stack, state: ExecutionState) -> None:
    """CODECOPY: copy the executing code to memory, zero-filling past its end."""
    _copy_to_memory(stack, state, state.code)


def gasprice(stack: Stack, state: ExecutionState) -> None:
    """GASPRICE: push the transaction gas price."""
    stack.push(state.tx_context.gas_price)


def basefee(stack: Stack, state: ExecutionState) -> None:
    """BASEFEE: push the block base fee."""
    stack.push(state.tx_context.base_fee)


def extcodesize(stack: Stack, state: ExecutionState) -> None:
    """EXTCODESIZE: replace an address with its code size."""
    addr = _to_address(stack.peek(0))
    _charge_account_access(state, addr)
    stack.set(0, state.host.get_code_size(addr))


def extcodecopy(stack: Stack, state: ExecutionState) -> None:
    """EXTCODECOPY: copy another account's code to memory."""
    addr = _to_address(stack.pop())
    mem_index = stack.pop()
    input_index = stack.pop()
    size = stack.pop()

    state.check_memory(mem_index, size)
    state.charge(_copy_cost(size))
    _charge_account_access(state, addr)

    if size:
        src = min(input_index, MAX_BUFFER_SIZE)
        copied = bytes(state.host.copy_code(addr, src, size))[:size]
        state.memory.write(mem_index, copied + bytes(size - len(copied)))


def returndatasize(stack: Stack, state: ExecutionState) -> None:
    """RETURNDATASIZE: push the size of the last call's output."""
    stack.push(len(state.return_data))


def returndatacopy(stack: Stack, state: ExecutionState) -> None:
    """RETURNDATACOPY: copy the last call's output; reading past it is an error."""
    mem_index = stack.pop()
    input_index = stack.pop()
    size = stack.pop()

    state.check_memory(mem_index, size)

    if input_index > len(state.return_data) or input_index + size > len(state.return_data):
        raise EVMError(StatusCode.INVALID_MEMORY_ACCESS, "return data read out of bounds")

    state.charge(_copy_cost(size))
    if size:
        state.memory.write(mem_index, state.return_data[input_index : input_index + size])


def extcodehash(stack: Stack, state: ExecutionState) -> None:
    """EXTCODEHASH: replace an address with its code hash."""
    addr = _to_address(stack.peek(0))
    _charge_account_access(state, addr)
    stack.set(0, _word(state.host.get_code_hash(addr)))


def blockhash(stack: Stack, state: ExecutionState) -> None:
    """BLOCKHASH: replace a block number with its hash, 0 outside the last 256 blocks."""
    number = stack.peek(0)
    upper_bound = state.tx_context.number
    lower_bound = max(upper_bound - _BLOCKHASH_WINDOW, 0)
    if lower_bound <= number < upper_bound:
        stack.set(0, _word(state.host.get_block_hash(number)))
    else:
        stack.set(0, 0)


def coinbase(stack: Stack, state: ExecutionState) -> None:
    """COINBASE: push the block beneficiary."""
    stack.push(_word(state.tx_context.coinbase))


def timestamp(stack: Stack, state: ExecutionState) -> None:
    """TIMESTAMP: push the block timestamp as a 64-bit value."""
    stack.push(state.tx_context.timestamp & _UINT64_MASK)


def number(stack: Stack, state: ExecutionState) -> None:
    """NUMBER: push the block number as a 64-bit value."""
    stack.push(state.tx_context.number & _UINT64_MASK)


def prevrandao(stack: Stack, state: ExecutionState) -> None:
    """PREVRANDAO: push the previous block's randomness value."""
    stack.push(state.tx_context.prev_randao)


def gaslimit(stack: Stack, state: ExecutionState) -> None:
    """GASLIMIT: push the block gas limit as a 64-bit value."""
    stack.push(state.tx_context.gas_limit & _UINT64_MASK)


def chainid(stack: Stack, state: ExecutionState) -> None:
    """CHAINID: push the chain id."""
    stack.push(state.tx_context.chain_id)


def selfbalance(stack: Stack, state: ExecutionState) -> None:
    """SELFBALANCE: push the executing account's balance."""
    stack.push(state.host.get_balance(state.msg.recipient))


def mload(stack: Stack, state: ExecutionState) -> None:
    """MLOAD: replace an offset with the word stored there."""
    index = stack.peek(0)
    state.check_memory(index, 32)
    stack.set(0, _word(state.memory.read(index, 32)))


def mstore(stack: Stack, state: ExecutionState) -> None:
    """MSTORE: store a word at an offset."""
    index = stack.pop()
    value = stack.pop()
    state.check_memory(index, 32)
    state.memory.write(index, value.to_bytes(32, "big"))


def mstore8(stack: Stack, state: ExecutionState) -> None:
    """MSTORE8: store the lowest byte of a word at an offset."""
    index = stack.pop()
    value = stack.pop()
    state.check_memory(index, 1)
    state.memory.write(index, bytes([value & 0xFF]))


def msize(stack: Stack, state: ExecutionState) -> None:
    """MSIZE: push the memory size in bytes."""
    stack.push(len(state.memory))


def gas(stack: Stack, state: ExecutionState) -> None:
    """GAS: push the gas left."""
    stack.push(state.gas_left)