"""Instructions that emit logs or end execution."""

from __future__ import annotations

from evmkit.execution import (
    ADDRESS_SIZE,
    COLD_ACCOUNT_ACCESS_COST,
    AccessStatus,
    EVMError,
    ExecutionState,
    Stack,
    StatusCode,
)
from evmkit.revision import Revision

_ADDRESS_MASK = (1 << (8 * ADDRESS_SIZE)) - 1
_MAX_TOPICS = 4
_LOG_DATA_BYTE_COST = 8
_NEW_ACCOUNT_COST = 25000
_SELFDESTRUCT_REFUND = 24000


def log(stack: Stack, state: ExecutionState, num_topics: int) -> None:
    """LOGn: emit a log of a memory range with ``num_topics`` topics."""
    if not 0 <= num_topics <= _MAX_TOPICS:
        raise ValueError(f"a log has 0 to {_MAX_TOPICS} topics, not {num_topics}")
    if state.in_static_mode():
        raise EVMError(StatusCode.STATIC_MODE_VIOLATION, "log in static mode")

    offset = stack.pop()
    size = stack.pop()
    state.check_memory(offset, size)
    state.charge(size * _LOG_DATA_BYTE_COST)

    topics = [stack.pop().to_bytes(32, "big") for _ in range(num_topics)]
    data = state.memory.read(offset, size) if size else b""
    state.host.emit_log(state.msg.recipient, data, topics)


def _finish(stack: Stack, state: ExecutionState, status: StatusCode) -> StatusCode:
    offset = stack.peek(0)
    size = stack.peek(1)
    state.check_memory(offset, size)
    state.output_size = size
    if size != 0:
        state.output_offset = offset
    return status


def return_(stack: Stack, state: ExecutionState) -> StatusCode:
    """RETURN: set the output range and stop successfully."""
    return _finish(stack, state, StatusCode.SUCCESS)


def revert(stack: Stack, state: ExecutionState) -> StatusCode:
    """REVERT: set the output range and stop, reverting state changes."""
    return _finish(stack, state, StatusCode.REVERT)


def selfdestruct(stack: Stack, state: ExecutionState) -> StatusCode:
    """SELFDESTRUCT: destroy the executing account, sending its balance away."""
    if state.in_static_mode():
        raise EVMError(StatusCode.STATIC_MODE_VIOLATION, "selfdestruct in static mode")

    beneficiary = (stack.peek(0) & _ADDRESS_MASK).to_bytes(ADDRESS_SIZE, "big")

    if (
        state.rev >= Revision.BERLIN
        and state.host.access_account(beneficiary) == AccessStatus.COLD
    ):
        state.charge(COLD_ACCOUNT_ACCESS_COST)

    if state.rev >= Revision.TANGERINE_WHISTLE:
        if state.rev == Revision.TANGERINE_WHISTLE or state.host.get_balance(
            state.msg.recipient
        ):
            if not state.host.account_exists(beneficiary):
                state.charge(_NEW_ACCOUNT_COST)

    if state.host.selfdestruct(state.msg.recipient, beneficiary):
        if state.rev < Revision.LONDON:
            state.gas_refund += _SELFDESTRUCT_REFUND
    return StatusCode.SUCCESS