"""Log records, their wire size, and small helpers for the producer."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _key(number: int, wire_type: int) -> bytes:
    return _varint(number << 3 | wire_type)


def _delimited(number: int, payload: bytes) -> bytes:
    return _key(number, 2) + _varint(len(payload)) + payload


def _text(number: int, value: str) -> bytes:
    return _delimited(number, value.encode("utf-8"))


@dataclass
class LogContent:
    key: str = ""
    value: str = ""

    def _encode(self) -> bytes:
        return _text(1, self.key) + _text(2, self.value)


@dataclass
class LogTag:
    key: str = ""
    value: str = ""

    def _encode(self) -> bytes:
        return _text(1, self.key) + _text(2, self.value)


@dataclass
class Log:
    time: int = 0
    contents: list[LogContent] = field(default_factory=list)
    time_ns: Optional[int] = None

    def _encode(self) -> bytes:
        parts = [_key(1, 0) + _varint(self.time)]
        parts.extend(_delimited(2, content._encode()) for content in self.contents)
        if self.time_ns is not None:
            parts.append(_key(4, 5) + struct.pack("<I", self.time_ns))
        return b"".join(parts)


@dataclass
class LogGroup:
    logs: list[Log] = field(default_factory=list)
    topic: Optional[str] = None
    source: Optional[str] = None
    log_tags: list[LogTag] = field(default_factory=list)

    def _encode(self) -> bytes:
        parts = [_delimited(1, log._encode()) for log in self.logs]
        if self.topic is not None:
            parts.append(_text(3, self.topic))
        if self.source is not None:
            parts.append(_text(4, self.source))
        parts.extend(_delimited(6, tag._encode()) for tag in self.log_tags)
        return b"".join(parts)

    def size(self) -> int:
        """Size in bytes of the group's protocol-buffer encoding."""
        return len(self._encode())


def generate_log(log_time: int, contents: Mapping[str, str]) -> Log:
    return Log(
        time=log_time,
        contents=[LogContent(key=key, value=value) for key, value in contents.items()],
    )


def get_time_ms(t: int) -> int:
    """Convert nanoseconds to milliseconds, truncating toward zero."""
    millis = abs(t) // 1_000_000
    return millis if t >= 0 else -millis


def get_log_size_calculate(log: Log) -> int:
    """Rough size of a log: four bytes plus the bytes of every key and value."""
    return 4 + sum(
        len(content.value.encode("utf-8")) + len(content.key.encode("utf-8"))
        for content in log.contents
    )


def get_log_list_size(log_list: Iterable[Log]) -> int:
    return sum(get_log_size_calculate(log) for log in log_list)