"""Message-call and contract-creation instructions.

Each takes the frame's :class:`~evmkit.execution.Stack` and
:class:`~evmkit.execution.ExecutionState`. A failure of the nested call is
not an error: it leaves 0 on the stack. Failures of the calling frame are
raised as :class:`~evmkit.memory.OutOfGas` or
:class:`~evmkit.execution.EVMError`.
"""

from __future__ import annotations

import enum

from evmkit.execution import (
    ADDITIONAL_COLD_ACCOUNT_ACCESS_COST,
    ADDRESS_SIZE,
    MAX_CALL_DEPTH,
    AccessStatus,
    CallKind,
    EVMError,
    ExecutionState,
    Message,
    Stack,
    StatusCode,
)
from evmkit.memory import OutOfGas, num_words
from evmkit.revision import Revision

_INT64_MAX = (1 << 63) - 1
_ADDRESS_MASK = (1 << (8 * ADDRESS_SIZE)) - 1
_CALL_VALUE_COST = 9000
_NEW_ACCOUNT_COST = 25000
_CALL_STIPEND = 2300
_MAX_INITCODE_SIZE = 0xC000


class _CallOp(enum.Enum):
    CALL = enum.auto()
    CALLCODE = enum.auto()
    DELEGATECALL = enum.auto()
    STATICCALL = enum.auto()


def _to_address(word: int) -> bytes:
    return (word & _ADDRESS_MASK).to_bytes(ADDRESS_SIZE, "big")


def _call(stack: Stack, state: ExecutionState, op: _CallOp) -> None:
    gas = stack.pop()
    dst = _to_address(stack.pop())
    takes_value = op in (_CallOp.CALL, _CallOp.CALLCODE)
    value = stack.pop() if takes_value else 0
    has_value = value != 0
    input_offset = stack.pop()
    input_size = stack.pop()
    output_offset = stack.pop()
    output_size = stack.pop()

    stack.push(0)  # Assume failure.
    state.return_data = b""

    if state.rev >= Revision.BERLIN and state.host.access_account(dst) == AccessStatus.COLD:
        state.charge(ADDITIONAL_COLD_ACCOUNT_ACCESS_COST)

    state.check_memory(input_offset, input_size)
    state.check_memory(output_offset, output_size)

    if op is _CallOp.DELEGATECALL:
        kind = CallKind.DELEGATECALL
    elif op is _CallOp.CALLCODE:
        kind = CallKind.CALLCODE
    else:
        kind = CallKind.CALL

    msg = Message(
        kind=kind,
        is_static=True if op is _CallOp.STATICCALL else state.msg.is_static,
        depth=state.msg.depth + 1,
        recipient=dst if op in (_CallOp.CALL, _CallOp.STATICCALL) else state.msg.recipient,
        code_address=dst,
        sender=state.msg.sender if op is _CallOp.DELEGATECALL else state.msg.recipient,
        value=state.msg.value if op is _CallOp.DELEGATECALL else value,
    )
    if input_size > 0:
        msg.input_data = state.memory.read(input_offset, input_size)

    cost = _CALL_VALUE_COST if has_value else 0
    if op is _CallOp.CALL:
        if has_value and state.in_static_mode():
            raise EVMError(StatusCode.STATIC_MODE_VIOLATION, "value transfer in static mode")
        if (has_value or state.rev < Revision.SPURIOUS_DRAGON) and not state.host.account_exists(
            dst
        ):
            cost += _NEW_ACCOUNT_COST
    state.charge(cost)

    msg.gas = min(gas, _INT64_MAX)
    if state.rev >= Revision.TANGERINE_WHISTLE:
        msg.gas = min(msg.gas, state.gas_left - state.gas_left // 64)
    elif msg.gas > state.gas_left:
        raise OutOfGas(f"call needs {msg.gas} gas, only {state.gas_left} left")

    if has_value:
        msg.gas += _CALL_STIPEND
        state.gas_left += _CALL_STIPEND

    if state.msg.depth >= MAX_CALL_DEPTH:
        return  # Light failure.
    if has_value and state.host.get_balance(state.msg.recipient) < value:
        return  # Light failure.

    result = state.host.call(msg)
    state.return_data = bytes(result.output)
    stack.set(0, int(result.status == StatusCode.SUCCESS))

    copy_size = min(output_size, len(result.output))
    if copy_size > 0:
        state.memory.write(output_offset, result.output[:copy_size])

    state.gas_left -= msg.gas - result.gas_left
    state.gas_refund += result.gas_refund


def call(stack: Stack, state: ExecutionState) -> None:
    """CALL: call another account, optionally transferring value."""
    _call(stack, state, _CallOp.CALL)


def callcode(stack: Stack, state: ExecutionState) -> None:
    """CALLCODE: run another account's code in this account's context."""
    _call(stack, state, _CallOp.CALLCODE)


def delegatecall(stack: Stack, state: ExecutionState) -> None:
    """DELEGATECALL: run another account's code keeping sender and value."""
    _call(stack, state, _CallOp.DELEGATECALL)


def staticcall(stack: Stack, state: ExecutionState) -> None:
    """STATICCALL: call another account with state changes forbidden."""
    _call(stack, state, _CallOp.STATICCALL)


def _create(stack: Stack, state: ExecutionState, kind: CallKind) -> None:
    if state.in_static_mode():
        raise EVMError(StatusCode.STATIC_MODE_VIOLATION, "contract creation in static mode")

    endowment = stack.pop()
    init_code_offset = stack.pop()
    init_code_size = stack.pop()
    salt = stack.pop() if kind is CallKind.CREATE2 else 0

    stack.push(0)  # Assume failure.
    state.return_data = b""

    state.check_memory(init_code_offset, init_code_size)

    shanghai = state.rev >= Revision.SHANGHAI
    if shanghai and init_code_size > _MAX_INITCODE_SIZE:
        raise OutOfGas(f"init code of {init_code_size} bytes exceeds the limit")

    word_cost = (6 if kind is CallKind.CREATE2 else 0) + (2 if shanghai else 0)
    state.charge(num_words(init_code_size) * word_cost)

    if state.msg.depth >= MAX_CALL_DEPTH:
        return  # Light failure.
    if endowment != 0 and state.host.get_balance(state.msg.recipient) < endowment:
        return  # Light failure.

    msg_gas = state.gas_left
    if state.rev >= Revision.TANGERINE_WHISTLE:
        msg_gas -= msg_gas // 64

    msg = Message(
        kind=kind,
        gas=msg_gas,
        sender=state.msg.recipient,
        depth=state.msg.depth + 1,
        create2_salt=salt,
        value=endowment,
    )
    if init_code_size > 0:
        msg.input_data = state.memory.read(init_code_offset, init_code_size)

    result = state.host.call(msg)
    state.gas_left -= msg.gas - result.gas_left
    state.gas_refund += result.gas_refund

    state.return_data = bytes(result.output)
    if result.status == StatusCode.SUCCESS:
        stack.set(0, int.from_bytes(result.create_address, "big"))


def create(stack: Stack, state: ExecutionState) -> None:
    """CREATE: create a contract from init code in memory."""
    _create(stack, state, CallKind.CREATE)


def create2(stack: Stack, state: ExecutionState) -> None:
    """CREATE2: create a contract at a salt-derived address."""
    _create(stack, state, CallKind.CREATE2)