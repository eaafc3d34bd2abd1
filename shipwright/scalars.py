"""
Scalar annotation types understood by the signature analyzer.

Python has a single unbounded int, so fixed-width integers are spelled with the
NewType aliases below. They are plain ints at run time; the compiler reads the
annotation name and records matching value bounds (u8 → 0..=255), which the
generated wrapper enforces when converting raw values.

Count marks a repeat counter (-vvv): the argument counts occurrences of its
switch instead of taking a value, bounded like an unsigned 8-bit integer.

IPAddress accepts either address family.
"""
from ipaddress import IPv4Address, IPv6Address
from typing import NewType

# Unsigned integers
u8 = NewType("u8", int)
u16 = NewType("u16", int)
u32 = NewType("u32", int)
u64 = NewType("u64", int)
usize = NewType("usize", int)

# Signed integers
i8 = NewType("i8", int)
i16 = NewType("i16", int)
i32 = NewType("i32", int)
i64 = NewType("i64", int)
isize = NewType("isize", int)

# Floating point
f32 = NewType("f32", float)
f64 = NewType("f64", float)

# Conventions
Count = NewType("Count", int)

type IPAddress = IPv4Address | IPv6Address

BOUNDS = {
    "u8": (0, 2 ** 8 - 1),
    "u16": (0, 2 ** 16 - 1),
    "u32": (0, 2 ** 32 - 1),
    "u64": (0, 2 ** 64 - 1),
    "usize": (0, 2 ** 64 - 1),
    "i8": (-2 ** 7, 2 ** 7 - 1),
    "i16": (-2 ** 15, 2 ** 15 - 1),
    "i32": (-2 ** 31, 2 ** 31 - 1),
    "i64": (-2 ** 63, 2 ** 63 - 1),
    "isize": (-2 ** 63, 2 ** 63 - 1),
    "Count": (0, 2 ** 8 - 1),
}
"""inclusive (minimum, maximum) per scalar name; usize/isize assume a 64-bit target."""


__all__ = (
    # Unsigned integers
    "u8",
    "u16",
    "u32",
    "u64",
    "usize",

    # Signed integers
    "i8",
    "i16",
    "i32",
    "i64",
    "isize",

    # Floating point
    "f32",
    "f64",

    # Conventions
    "Count",
    "IPAddress",

    # Constants
    "BOUNDS",
)
