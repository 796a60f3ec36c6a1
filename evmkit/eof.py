"""Validation of EVM Object Format (EOF) containers, version 1."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union

from evmkit.revision import Revision

MAGIC = b"\xef\x00"
_TERMINATOR = 0x00
_CODE_SECTION = 0x01
_DATA_SECTION = 0x02


class EOFErrorCode(enum.Enum):
    """Outcome of EOF container validation."""

    SUCCESS = enum.auto()
    STARTS_WITH_FORMAT = enum.auto()
    INVALID_PREFIX = enum.auto()
    EOF_VERSION_MISMATCH = enum.auto()
    EOF_VERSION_UNKNOWN = enum.auto()
    INCOMPLETE_SECTION_SIZE = enum.auto()
    CODE_SECTION_MISSING = enum.auto()
    MULTIPLE_CODE_SECTIONS = enum.auto()
    MULTIPLE_DATA_SECTIONS = enum.auto()
    UNKNOWN_SECTION_ID = enum.auto()
    ZERO_SECTION_SIZE = enum.auto()
    SECTION_HEADERS_NOT_TERMINATED = enum.auto()
    INVALID_SECTION_BODIES_SIZE = enum.auto()
    UNDEFINED_INSTRUCTION = enum.auto()
    MISSING_TERMINATING_INSTRUCTION = enum.auto()
    IMPOSSIBLE = enum.auto()


def get_error_message(err: EOFErrorCode) -> str:
    """Return the message naming the given error code."""
    if isinstance(err, EOFErrorCode):
        return err.name.lower()
    return "<unknown>"


class InvalidEOFError(ValueError):
    """Raised when a container fails EOF validation."""

    def __init__(self, code: EOFErrorCode) -> None:
        super().__init__(get_error_message(code))
        self.code = code


@dataclass(frozen=True)
class InstructionTraits:
    """The properties of an opcode that EOF validation depends on."""

    since: Optional[Revision] = None
    immediate_size: int = 0
    is_terminating: bool = False


TraitsTable = Union[Mapping[int, InstructionTraits], Sequence[InstructionTraits]]

_UNDEFINED = InstructionTraits()


@dataclass(frozen=True)
class EOF1Header:
    """Section sizes of an EOF version 1 container."""

    code_size: int = 0
    data_size: int = 0

    def code_begin(self) -> int:
        """Return the offset where the code section body starts."""
        if self.code_size == 0:
            raise ValueError("EOF1 header has no code section")
        # MAGIC + VERSION + SECTION_ID + SIZE (+ SECTION_ID + SIZE) + TERMINATOR
        return 7 if self.data_size == 0 else 10


def is_eof_container(container: bytes) -> bool:
    """Tell whether the bytes start with the EOF magic; the format is not checked."""
    return container[:2] == MAGIC


def get_eof_version(container: bytes) -> int:
    """Return the EOF version of the container, or 0 for legacy code."""
    if len(container) >= 3 and container[:2] == MAGIC:
        return container[2]
    return 0


def read_valid_eof1_header(container: bytes) -> EOF1Header:
    """Read section sizes from a container already known to be valid EOF1."""
    code_size_offset = 4  # MAGIC + VERSION + CODE_SECTION_ID
    code_size = int.from_bytes(container[code_size_offset : code_size_offset + 2], "big")
    data_size = 0
    if container[code_size_offset + 2] == _DATA_SECTION:
        data_size_offset = code_size_offset + 3
        data_size = int.from_bytes(container[data_size_offset : data_size_offset + 2], "big")
    return EOF1Header(code_size, data_size)


def _validate_headers(container: bytes) -> EOF1Header:
    sizes = {_CODE_SECTION: 0, _DATA_SECTION: 0}
    end = len(container)
    pos = len(MAGIC) + 1  # MAGIC + VERSION
    terminated = False

    while pos < end and not terminated:
        section_id = container[pos]
        pos += 1
        if section_id == _TERMINATOR:
            if sizes[_CODE_SECTION] == 0:
                raise InvalidEOFError(EOFErrorCode.CODE_SECTION_MISSING)
            terminated = True
            continue
        if section_id == _DATA_SECTION:
            if sizes[_CODE_SECTION] == 0:
                raise InvalidEOFError(EOFErrorCode.CODE_SECTION_MISSING)
            if sizes[_DATA_SECTION] != 0:
                raise InvalidEOFError(EOFErrorCode.MULTIPLE_DATA_SECTIONS)
        elif section_id == _CODE_SECTION:
            if sizes[_CODE_SECTION] != 0:
                raise InvalidEOFError(EOFErrorCode.MULTIPLE_CODE_SECTIONS)
        else:
            raise InvalidEOFError(EOFErrorCode.UNKNOWN_SECTION_ID)

        if pos == end:
            break
        pos += 1
        if pos == end:
            raise InvalidEOFError(EOFErrorCode.INCOMPLETE_SECTION_SIZE)
        section_size = int.from_bytes(container[pos - 1 : pos + 1], "big")
        pos += 1
        if section_size == 0:
            raise InvalidEOFError(EOFErrorCode.ZERO_SECTION_SIZE)
        sizes[section_id] = section_size

    if not terminated:
        raise InvalidEOFError(EOFErrorCode.SECTION_HEADERS_NOT_TERMINATED)

    if sizes[_CODE_SECTION] + sizes[_DATA_SECTION] != end - pos:
        raise InvalidEOFError(EOFErrorCode.INVALID_SECTION_BODIES_SIZE)

    return EOF1Header(sizes[_CODE_SECTION], sizes[_DATA_SECTION])


def _lookup(traits: TraitsTable, op: int) -> InstructionTraits:
    try:
        return traits[op]
    except (KeyError, IndexError):
        return _UNDEFINED


def _validate_instructions(rev: Revision, code: bytes, traits: TraitsTable) -> None:
    pos = 0
    op = code[0]
    while pos < len(code):
        op = code[pos]
        trait = _lookup(traits, op)
        if trait.since is None or trait.since > rev:
            raise InvalidEOFError(EOFErrorCode.UNDEFINED_INSTRUCTION)
        pos += trait.immediate_size + 1

    if not _lookup(traits, op).is_terminating:
        raise InvalidEOFError(EOFErrorCode.MISSING_TERMINATING_INSTRUCTION)


def validate_eof(rev: Revision, container: bytes, traits: TraitsTable) -> EOF1Header:
    """Validate an EOF container under the given revision.

    ``traits`` maps opcodes to their :class:`InstructionTraits`; opcodes
    absent from it are undefined. Returns the container's header and raises
    :class:`InvalidEOFError` when the container is not valid.
    """
    container = bytes(container)
    if not is_eof_container(container):
        raise InvalidEOFError(EOFErrorCode.INVALID_PREFIX)

    if get_eof_version(container) != 1 or rev < Revision.CANCUN:
        raise InvalidEOFError(EOFErrorCode.EOF_VERSION_UNKNOWN)

    header = _validate_headers(container)
    begin = header.code_begin()
    _validate_instructions(rev, container[begin : begin + header.code_size], traits)
    return header