# evmkit

Building blocks for an Ethereum Virtual Machine. The package covers four
things: EOF container validation, 256-bit word arithmetic, the accounting of
memory growth, and what individual instructions do, including calls, contract
creation, logs and `SELFDESTRUCT`.

## Modules

| Module | What it holds |
| --- | --- |
| `evmkit.revision` | `Revision`, the protocol revisions ordered from `FRONTIER` to `PRAGUE` |
| `evmkit.eof` | `is_eof_container`, `get_eof_version`, `read_valid_eof1_header`, `validate_eof`, `get_error_message` |
| `evmkit.words` | 256-bit arithmetic, comparison, bitwise and shift operations |
| `evmkit.memory` | `Memory`, `num_words`, `memory_cost`, `check_memory`, `padded_slice`, `OutOfGas` |
| `evmkit.execution` | `Stack`, `ExecutionState`, `Message`, `TxContext`, `CallResult`, `Host`, `StatusCode`, `EVMError`, `push_data` |
| `evmkit.environment` | instructions that read the environment, the chain and memory |
| `evmkit.calls` | `call`, `callcode`, `delegatecall`, `staticcall`, `create`, `create2` |
| `evmkit.system` | `log`, `return_`, `revert`, `selfdestruct` |

## Revisions

`Revision` is an `IntEnum`, so the members compare by age:
`Revision.BERLIN < Revision.LONDON`. The `str()` of a member gives a readable
name, for example `"Tangerine Whistle"`.

## Word arithmetic

Every value is a plain Python `int` in the range `0 .. 2**256 - 1`. Results
wrap around as they do in the EVM. Signed operations treat their arguments as
two's complement numbers.

```python
from evmkit import words

words.sub(0, 1)                       # 2**256 - 1
words.sdiv(words.from_signed(-6), 3)  # words.from_signed(-2)
words.div(5, 0)                       # 0
words.byte(31, 0xAABBCCDD)            # 0xDD
words.sar(2, words.from_signed(-1))   # 2**256 - 1
```

`exp_gas_cost(exponent, rev)` returns the extra gas that EXP charges: 10 per
significant byte of the exponent, or 50 from `SPURIOUS_DRAGON` onwards.

## Memory

`Memory` is zero-initialised and grows only. `check_memory(memory, gas_left,
offset, size)` grows it to cover a range and charges for the new words. It
returns the gas left, and raises `OutOfGas` when the range is out of bounds or
costs more than is left. A range of size 0 is always accepted, whatever its
offset.

## Validating EOF containers

```python
from evmkit.eof import is_eof_container, get_eof_version

is_eof_container(bytes.fromhex("ef0001"))  # True
get_eof_version(bytes.fromhex("ef0001"))   # 1
get_eof_version(bytes.fromhex("6000"))     # 0, legacy code
```

`validate_eof(rev, container, traits)` checks a version 1 container under a
revision, which must be `CANCUN` or later. `traits` maps opcodes to
`InstructionTraits` records, each holding `since`, `immediate_size` and
`is_terminating`. Opcodes missing from `traits` count as undefined. A valid
container gives back its `EOF1Header`, with `code_size`, `data_size` and
`code_begin()`. An invalid one raises `InvalidEOFError`. The error's `code`
attribute is an `EOFErrorCode`, and `get_error_message` turns such a code into
its text, for example `"zero_section_size"`.

## Running instructions

Each instruction function takes a `Stack` and an `ExecutionState`. The state
holds the current `Message`, the `Host` (any object that provides the methods of
that protocol), the revision, the gas left and the `Memory`.

The instruction functions do not charge the base cost of the instruction and
do not check the stack height beforehand; the caller does both. An empty or
full `Stack` does raise `EVMError` with `STACK_UNDERFLOW` or `STACK_OVERFLOW`.

When an instruction fails, it raises an exception:

- `OutOfGas` when gas runs out or a memory range is too large;
- `EVMError` for other failures, carrying a `StatusCode` such as
  `STATIC_MODE_VIOLATION` or `INVALID_MEMORY_ACCESS`.

A nested call that fails does not raise. It leaves 0 on the stack.

```python
from evmkit import environment
from evmkit.execution import ExecutionState, Message, Stack
from evmkit.revision import Revision

state = ExecutionState(host=my_host, msg=Message(gas=100), rev=Revision.LONDON)
stack = Stack([0x2A, 0])          # value, then offset on top
environment.mstore(stack, state)
state.gas_left                    # 97: one word of memory cost 3
bytes(state.memory)[31]           # 0x2A
```

`return_`, `revert` and `selfdestruct` return the `StatusCode` that execution
ends with. `return_` and `revert` record the output range in `output_offset`
and `output_size`.

## What is not included

The package has no interpreter loop and no opcode table. Nothing decodes
bytecode and dispatches to the instruction functions. No base gas costs are
charged, and there are no jump, storage (`SLOAD`/`SSTORE`) or `PUSH`/`DUP`/`SWAP`
instruction functions; `push_data`, `Stack.dup` and `Stack.swap` are the
pieces provided for those. There is no `Host` implementation, no world state
and no command-line tool.

## Tests

The tests use pytest and live in `tests/`. The `test` extra installs pytest.