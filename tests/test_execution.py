import pytest

from evmkit.execution import (
    ADDITIONAL_COLD_ACCOUNT_ACCESS_COST,
    COLD_ACCOUNT_ACCESS_COST,
    STACK_LIMIT,
    AccessStatus,
    CallResult,
    EVMError,
    ExecutionState,
    Message,
    Stack,
    StatusCode,
    TxContext,
    push_data,
)
from evmkit.memory import OutOfGas, memory_cost
from evmkit.revision import Revision
from evmkit.words import MAX_WORD


class FakeHost:
    def __init__(self, tx_context=None):
        self.tx_context = tx_context or TxContext()
        self.context_requests = 0

    def get_tx_context(self):
        self.context_requests += 1
        return self.tx_context

    def access_account(self, address):
        return AccessStatus.COLD

    def call(self, msg):
        return CallResult(StatusCode.SUCCESS, msg.gas)


def make_state(gas=1000, **msg_fields):
    return ExecutionState(FakeHost(), Message(gas=gas, **msg_fields), Revision.BERLIN)


def test_push_pop_is_lifo():
    stack = Stack()
    for v in (10, 20, 30):
        stack.push(v)
    assert [stack.pop(), stack.pop(), stack.pop()] == [30, 20, 10]
    assert len(stack) == 0


def test_pop_empty_underflows():
    with pytest.raises(EVMError) as info:
        Stack().pop()
    assert info.value.status == StatusCode.STACK_UNDERFLOW


def test_push_beyond_limit_overflows():
    stack = Stack(range(STACK_LIMIT))
    with pytest.raises(EVMError) as info:
        stack.push(1)
    assert info.value.status == StatusCode.STACK_OVERFLOW
    assert len(stack) == STACK_LIMIT


def test_push_wraps_to_word():
    stack = Stack()
    stack.push((1 << 256) | 5)
    stack.push(-1)
    assert stack.pop() == MAX_WORD
    assert stack.pop() == 5


def test_peek_and_set():
    stack = Stack([1, 2, 3])
    assert stack.peek(0) == 3
    assert stack.peek(2) == 1
    stack.set(1, 9)
    assert list(stack) == [1, 9, 3]
    with pytest.raises(EVMError):
        stack.peek(3)


def test_dup_copies_item():
    stack = Stack([7, 8, 9])
    stack.dup(3)
    assert list(stack) == [7, 8, 9, 7]


@pytest.mark.parametrize("depth", range(16))
def test_dup_underflow(depth):
    stack = Stack([0] * depth)
    with pytest.raises(EVMError) as info:
        stack.dup(depth + 1)
    assert info.value.status == StatusCode.STACK_UNDERFLOW


def test_reverse_16_stack_items():
    stack = Stack(range(1, 17))
    stack.push(0)
    for a, b in ((16, 1), (15, 2), (14, 3), (13, 4), (12, 5), (11, 6), (10, 7), (9, 8)):
        stack.swap(a)
        stack.swap(b)
        stack.swap(a)
    stack.pop()
    assert [stack.peek(i) for i in range(16)] == list(range(1, 17))


def test_swap_underflow():
    with pytest.raises(EVMError) as info:
        Stack([1]).swap(1)
    assert info.value.status == StatusCode.STACK_UNDERFLOW


def test_push_data_reads_big_endian():
    assert push_data(b"\x61\x01\x02\x00", 0, 2) == 0x0102


def test_push_data_pads_missing_bytes_with_zeros():
    assert push_data(b"\x00\x61\x01", 1, 2) == 0x0100
    assert push_data(b"\x7f", 0, 32) == 0


def test_gas_left_defaults_to_message_gas():
    assert make_state(gas=1234).gas_left == 1234


def test_charge_exact_and_over():
    state = make_state(gas=50)
    state.charge(50)
    assert state.gas_left == 0
    with pytest.raises(OutOfGas):
        state.charge(1)


def test_in_static_mode_follows_message():
    assert make_state(is_static=True).in_static_mode() is True
    assert make_state().in_static_mode() is False


def test_check_memory_grows_and_charges():
    state = make_state(gas=1000)
    state.check_memory(0, 1)
    assert len(state.memory) == 32
    assert state.gas_left == 1000 - memory_cost(1)


def test_check_memory_zero_size_at_huge_offset_is_free():
    state = make_state(gas=10)
    state.check_memory(1 << 200, 0)
    assert state.gas_left == 10
    assert len(state.memory) == 0


def test_check_memory_too_large_runs_out_of_gas():
    state = make_state(gas=10**12)
    with pytest.raises(OutOfGas):
        state.check_memory(0, 1 << 32)


def test_tx_context_is_fetched_once():
    state = make_state()
    first = state.tx_context
    second = state.tx_context
    assert first is second
    assert state.host.context_requests == 1


def test_evm_error_carries_status():
    err = EVMError(StatusCode.STATIC_MODE_VIOLATION)
    assert err.status == StatusCode.STATIC_MODE_VIOLATION
    assert str(err) == "static_mode_violation"


def test_cold_access_charge_leaves_warm_cost():
    state = make_state(gas=COLD_ACCOUNT_ACCESS_COST)
    state.charge(ADDITIONAL_COLD_ACCOUNT_ACCESS_COST)
    assert state.gas_left == 100
    assert COLD_ACCOUNT_ACCESS_COST == 2600
    with pytest.raises(OutOfGas):
        state.charge(ADDITIONAL_COLD_ACCOUNT_ACCESS_COST)