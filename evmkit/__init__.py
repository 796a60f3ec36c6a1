"""Ethereum Virtual Machine building blocks: EOF validation, word arithmetic, memory and instruction semantics."""

__version__ = "0.1.0"

__all__ = [
    "calls",
    "environment",
    "eof",
    "execution",
    "memory",
    "revision",
    "system",
    "words",
]