"""Conversions between wall-clock time and the RFC868 wire value.

The protocol counts whole seconds since 00:00 1 January 1900 GMT and ships the
count as a 4-byte big-endian unsigned integer. Internally the count is a plain
``int`` so dates before 1900 (negative counts) survive the arithmetic; only the
wire form is limited to 32 bits.
"""
from __future__ import annotations

import calendar
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from .constants import DATE_FORMAT, WIRE_FORMAT, WIRE_SIZE

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
RFC868_EPOCH = datetime(1900, 1, 1, tzinfo=timezone.utc)

# seconds from 1900-01-01 to the Unix epoch, negative
EPOCH_REFERENCE = calendar.timegm(RFC868_EPOCH.utctimetuple())

_WIRE = struct.Struct(WIRE_FORMAT)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_since_epoch(when: datetime) -> int:
    """Whole seconds between the RFC868 epoch and ``when``.

    Sub-second precision is dropped. Naive datetimes are taken to be UTC.
    """
    absolute = calendar.timegm(when.replace(microsecond=0).utctimetuple())
    return absolute - EPOCH_REFERENCE


def epoch_to_datetime(value: int) -> datetime:
    return UNIX_EPOCH + timedelta(seconds=value + EPOCH_REFERENCE)


def encode(value: int) -> bytes:
    # low 32 bits only; values past 2036 (or before 1900) wrap
    return _WIRE.pack(value & 0xFFFFFFFF)


def decode(raw: bytes) -> int:
    """Read a wire value.

    A short read keeps the received bytes in the high-order positions and
    zero-fills the missing low-order bytes.
    """
    if not raw:
        raise ValueError("empty time value")
    if len(raw) > WIRE_SIZE:
        raise ValueError(f"time value too long: expected at most {WIRE_SIZE} bytes, got {len(raw)}")
    return _WIRE.unpack(bytes(raw).ljust(WIRE_SIZE, b"\x00"))[0]


def format_time(value: int) -> str:
    return epoch_to_datetime(value).strftime(DATE_FORMAT)


@dataclass(frozen=True, slots=True)
class TimeValue:
    seconds: int

    @property
    def when(self) -> datetime:
        return epoch_to_datetime(self.seconds)

    def to_bytes(self) -> bytes:
        return encode(self.seconds)

    def __str__(self) -> str:
        return f"{self.seconds} ( {format_time(self.seconds)} )"

    @staticmethod
    def from_bytes(raw: bytes) -> "TimeValue":
        return TimeValue(decode(raw))

    @staticmethod
    def from_datetime(when: datetime) -> "TimeValue":
        return TimeValue(seconds_since_epoch(when))

    @staticmethod
    def now(clock: Callable[[], datetime] = utc_now) -> "TimeValue":
        return TimeValue.from_datetime(clock())
