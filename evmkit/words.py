"""Arithmetic, comparison and bitwise operations on 256-bit EVM words.

Words are plain non-negative Python integers below ``2**256``. Signed
operations read them as two's complement numbers.
"""

from __future__ import annotations

from evmkit.revision import Revision

WORD_BITS = 256
WORD_BYTES = 32
MODULUS = 1 << WORD_BITS
MAX_WORD = MODULUS - 1
SIGN_BIT = 1 << (WORD_BITS - 1)


def to_signed(x: int) -> int:
    """Read a 256-bit word as a two's complement signed integer."""
    x &= MAX_WORD
    return x - MODULUS if x & SIGN_BIT else x


def from_signed(x: int) -> int:
    """Turn a signed integer into the 256-bit word holding it."""
    return x & MAX_WORD


def add(a: int, b: int) -> int:
    """Return ``a + b`` modulo 2**256."""
    return (a + b) & MAX_WORD


def mul(a: int, b: int) -> int:
    """Return ``a * b`` modulo 2**256."""
    return (a * b) & MAX_WORD


def sub(a: int, b: int) -> int:
    """Return ``a - b`` modulo 2**256."""
    return (a - b) & MAX_WORD


def div(a: int, b: int) -> int:
    """Return the unsigned quotient ``a / b``, or 0 when ``b`` is 0."""
    return a // b if b != 0 else 0


def _signed_divmod(a: int, b: int) -> tuple[int, int]:
    sa, sb = to_signed(a), to_signed(b)
    quot = abs(sa) // abs(sb)
    rem = abs(sa) % abs(sb)
    if (sa < 0) != (sb < 0):
        quot = -quot
    if sa < 0:
        rem = -rem
    return from_signed(quot), from_signed(rem)


def sdiv(a: int, b: int) -> int:
    """Return the signed quotient truncated toward zero, or 0 when ``b`` is 0."""
    return _signed_divmod(a, b)[0] if b != 0 else 0


def mod(a: int, b: int) -> int:
    """Return the unsigned remainder ``a % b``, or 0 when ``b`` is 0."""
    return a % b if b != 0 else 0


def smod(a: int, b: int) -> int:
    """Return the signed remainder taking the sign of ``a``, or 0 when ``b`` is 0."""
    return _signed_divmod(a, b)[1] if b != 0 else 0


def addmod(x: int, y: int, m: int) -> int:
    """Return ``(x + y) % m`` computed without overflow, or 0 when ``m`` is 0."""
    return (x + y) % m if m != 0 else 0


def mulmod(x: int, y: int, m: int) -> int:
    """Return ``(x * y) % m`` computed without overflow, or 0 when ``m`` is 0."""
    return (x * y) % m if m != 0 else 0


def exp(base: int, exponent: int) -> int:
    """Return ``base ** exponent`` modulo 2**256."""
    return pow(base, exponent, MODULUS)


def exp_gas_cost(exponent: int, rev: Revision) -> int:
    """Return the gas EXP charges on top of its base cost for this exponent."""
    significant_bytes = (exponent.bit_length() + 7) // 8
    per_byte = 50 if rev >= Revision.SPURIOUS_DRAGON else 10
    return significant_bytes * per_byte


def signextend(ext: int, x: int) -> int:
    """Sign-extend ``x`` from its byte number ``ext`` (counted from the lowest)."""
    if ext >= 31:
        return x
    sign_bit = 1 << (ext * 8 + 7)
    value_mask = sign_bit - 1
    if x & sign_bit:
        return (x | ~value_mask) & MAX_WORD
    return x & value_mask


def lt(a: int, b: int) -> int:
    """Return 1 if ``a < b`` as unsigned words, else 0."""
    return int(a < b)


def gt(a: int, b: int) -> int:
    """Return 1 if ``a > b`` as unsigned words, else 0."""
    return int(a > b)


def slt(a: int, b: int) -> int:
    """Return 1 if ``a < b`` as signed words, else 0."""
    return int(to_signed(a) < to_signed(b))


def sgt(a: int, b: int) -> int:
    """Return 1 if ``a > b`` as signed words, else 0."""
    return int(to_signed(a) > to_signed(b))


def eq(a: int, b: int) -> int:
    """Return 1 if the words are equal, else 0."""
    return int(a == b)


def iszero(a: int) -> int:
    """Return 1 if the word is zero, else 0."""
    return int(a == 0)


def and_(a: int, b: int) -> int:
    """Return the bitwise AND."""
    return a & b


def or_(a: int, b: int) -> int:
    """Return the bitwise OR."""
    return a | b


def xor(a: int, b: int) -> int:
    """Return the bitwise XOR."""
    return a ^ b


def not_(a: int) -> int:
    """Return the bitwise complement within 256 bits."""
    return ~a & MAX_WORD


def byte(n: int, x: int) -> int:
    """Return byte ``n`` of ``x`` counted from the most significant, or 0 past 31."""
    if n >= WORD_BYTES:
        return 0
    return (x >> (8 * (WORD_BYTES - 1 - n))) & 0xFF


def shl(shift: int, x: int) -> int:
    """Shift ``x`` left by ``shift`` bits within 256 bits."""
    if shift >= WORD_BITS:
        return 0
    return (x << shift) & MAX_WORD


def shr(shift: int, x: int) -> int:
    """Shift ``x`` right logically by ``shift`` bits."""
    if shift >= WORD_BITS:
        return 0
    return x >> shift


def sar(shift: int, x: int) -> int:
    """Shift ``x`` right arithmetically, filling with its sign bit."""
    return from_signed(to_signed(x) >> min(shift, WORD_BITS))