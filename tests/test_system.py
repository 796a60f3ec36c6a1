import pytest

from evmkit.execution import (
    COLD_ACCOUNT_ACCESS_COST,
    AccessStatus,
    EVMError,
    ExecutionState,
    Message,
    Stack,
    StatusCode,
    TxContext,
)
from evmkit.memory import Memory, OutOfGas
from evmkit.revision import Revision
from evmkit.system import log, return_, revert, selfdestruct

SELF = b"\x11" * 20
BENEFICIARY = b"\xbe" * 20


def word(addr):
    return int.from_bytes(addr, "big")


class FakeHost:
    def __init__(self, balances=None, existing=()):
        self.balances = dict(balances or {})
        self.existing = set(existing) | set(self.balances)
        self.accessed = set()
        self.logs = []
        self.destructed = []

    def account_exists(self, address):
        return address in self.existing

    def get_balance(self, address):
        return self.balances.get(address, 0)

    def access_account(self, address):
        if address in self.accessed:
            return AccessStatus.WARM
        self.accessed.add(address)
        return AccessStatus.COLD

    def selfdestruct(self, address, beneficiary):
        first = address not in {a for a, _ in self.destructed}
        self.destructed.append((address, beneficiary))
        return first

    def emit_log(self, address, data, topics):
        self.logs.append((address, data, list(topics)))

    def get_tx_context(self):
        return TxContext()


def make_state(host, gas=100_000, rev=Revision.LONDON, memory=b"", **msg_fields):
    msg = Message(recipient=SELF, gas=gas, **msg_fields)
    return ExecutionState(host, msg, rev, memory=Memory(memory))


def test_log_emits_data_and_topics_in_order():
    host = FakeHost()
    state = make_state(host, memory=b"data" + bytes(28))
    start = state.gas_left
    stack = Stack([2, 1, 4, 0])  # topic2, topic1, size, offset
    log(stack, state, 2)
    address, data, topics = host.logs[0]
    assert address == SELF
    assert data == b"data"
    assert topics == [(1).to_bytes(32, "big"), (2).to_bytes(32, "big")]
    assert len(stack) == 0
    assert state.gas_left == start - 8 * len(data)


def test_log_empty_data():
    host = FakeHost()
    state = make_state(host)
    log(Stack([0, 0]), state, 0)
    assert host.logs == [(SELF, b"", [])]


def test_log_in_static_mode_is_violation():
    state = make_state(FakeHost(), is_static=True)
    with pytest.raises(EVMError) as info:
        log(Stack([0, 0]), state, 0)
    assert info.value.status == StatusCode.STATIC_MODE_VIOLATION


def test_log_rejects_too_many_topics():
    with pytest.raises(ValueError):
        log(Stack([0] * 7), make_state(FakeHost()), 5)


def test_return_sets_output_range():
    state = make_state(FakeHost(), memory=bytes(64))
    stack = Stack([3, 10])  # size, offset
    assert return_(stack, state) == StatusCode.SUCCESS
    assert (state.output_offset, state.output_size) == (10, 3)
    assert list(stack) == [3, 10]


def test_return_empty_at_huge_offset():
    state = make_state(FakeHost())
    assert return_(Stack([0, (1 << 256) - 1]), state) == StatusCode.SUCCESS
    assert (state.output_offset, state.output_size) == (0, 0)


def test_revert_status():
    state = make_state(FakeHost(), memory=bytes(32))
    assert revert(Stack([1, 0]), state) == StatusCode.REVERT
    assert state.output_size == 1


def test_return_huge_size_is_out_of_gas():
    with pytest.raises(OutOfGas):
        return_(Stack([1 << 32, 0]), make_state(FakeHost()))


def test_selfdestruct_in_static_mode_is_violation():
    state = make_state(FakeHost(), is_static=True)
    with pytest.raises(EVMError) as info:
        selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert info.value.status == StatusCode.STATIC_MODE_VIOLATION


def test_selfdestruct_berlin_cold_beneficiary():
    host = FakeHost()
    state = make_state(host, rev=Revision.BERLIN)
    start = state.gas_left
    assert selfdestruct(Stack([word(BENEFICIARY)]), state) == StatusCode.SUCCESS
    assert state.gas_left == start - COLD_ACCOUNT_ACCESS_COST
    assert host.destructed == [(SELF, BENEFICIARY)]


def test_selfdestruct_berlin_warm_beneficiary():
    host = FakeHost()
    host.access_account(BENEFICIARY)
    state = make_state(host, rev=Revision.BERLIN)
    start = state.gas_left
    selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert state.gas_left == start


def test_selfdestruct_tangerine_whistle_new_beneficiary():
    host = FakeHost()
    state = make_state(host, rev=Revision.TANGERINE_WHISTLE)
    start = state.gas_left
    selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert state.gas_left == start - 25000
    assert state.gas_refund == 24000


def test_selfdestruct_with_balance_to_new_account_out_of_gas():
    host = FakeHost(balances={SELF: 1})
    state = make_state(host, gas=24999, rev=Revision.ISTANBUL)
    with pytest.raises(OutOfGas):
        selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert host.destructed == []


def test_selfdestruct_no_refund_from_london():
    host = FakeHost(existing={BENEFICIARY})
    state = make_state(host, rev=Revision.LONDON)
    host.access_account(BENEFICIARY)
    selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert state.gas_refund == 0


def test_selfdestruct_frontier_free_and_refund_once():
    host = FakeHost()
    state = make_state(host, rev=Revision.FRONTIER)
    start = state.gas_left
    selfdestruct(Stack([word(BENEFICIARY)]), state)
    selfdestruct(Stack([word(BENEFICIARY)]), state)
    assert state.gas_left == start
    assert state.gas_refund == 24000