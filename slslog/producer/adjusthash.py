"""Shard hash adjustment so that keys spread over a number of buckets."""

from __future__ import annotations

import hashlib
import re

_HEX_DIGITS = "0123456789abcdef"
_HEX_PREFIX = re.compile(r"(?:[0-9a-fA-F]{2})*")
_PARSE_LIMIT = 511


def _bit_value(value: int, bits: int) -> int:
    if bits >= 16:
        return value
    if bits >= 8:
        return value & 0xE
    if bits >= 4:
        return value & 0xC
    if bits >= 2:
        return value & 0x8
    return 0


def adjust_hash(shard_hash: str, buckets: int) -> str:
    """Return the 32-digit hex hash key that routes ``shard_hash`` to one of ``buckets``."""
    digest = hashlib.md5(shard_hash.encode("utf-8")).digest()
    nibbles = [nibble for byte in digest[:8] for nibble in (byte >> 4, byte & 0xF)]
    prefix = []
    for nibble in nibbles:
        if buckets <= 0:
            break
        prefix.append(_HEX_DIGITS[_bit_value(nibble, buckets)])
        buckets >>= 4
    return "".join(prefix).ljust(32, "0")


def adjust_hash_old(shard_hash: str, buckets: int) -> str:
    """Older bit-string implementation of :func:`adjust_hash`."""
    bits = md5_to_bin(to_md5(shard_hash))
    width = bit_count(buckets)
    prefix = fill_zero(bits[:width], 8)
    base = min(int(prefix, 2), _PARSE_LIMIT)
    return fill_zero(format(base, "x"), 32)


def bit_count(buckets: int) -> int:
    """Return log2 of ``buckets``, which must be a positive power of two."""
    binary = format(buckets, "b")
    if buckets <= 0 or "1" in binary[1:]:
        raise ValueError(
            f"buckets must be a power of 2, got {buckets},and The parameter buckets must be "
            "greater than or equal to 1 and less than or equal to 256."
        )
    return binary.count("0")


def to_md5(name: str) -> str:
    return hashlib.md5(name.encode("utf-8")).hexdigest()


def md5_to_bin(md5: str) -> str:
    """Turn a hex string into its bits; decoding stops at the first bad pair."""
    data = bytes.fromhex(_HEX_PREFIX.match(md5).group())
    return "".join(f"{byte:08b}" for byte in data)


def fill_zero(x: str, n: int) -> str:
    """Pad ``x`` on the right with zeros to ``n`` characters."""
    return x + "0" * max(0, n - len(x))