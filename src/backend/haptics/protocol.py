# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Binary command frames understood by the fingertip haptic firmware.

Every frame ends with an additive checksum: the sum of all preceding bytes
truncated to 8 bits. Multi-byte integers are little-endian.

    VIBRATION   (8 bytes)  opcode | intensity u8 | frequency u16 | duration u16 | pattern u8 | checksum
    TEMPERATURE (8 bytes)  opcode | target s8 | ramp u16 | hold u16 | reserved 0 | checksum
    STOP_ALL, GET_STATUS, CALIBRATE (2 bytes)  opcode | checksum
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from haptics.errors import FrameDecodeError, FrameEncodeError

HAPTIC_SERVICE_UUID = "12345678-1234-1234-1234-123456789abc"
VIBRATION_CHARACTERISTIC_UUID = "12345678-1234-1234-1234-123456789abd"
TEMPERATURE_CHARACTERISTIC_UUID = "12345678-1234-1234-1234-123456789abe"
BATTERY_CHARACTERISTIC_UUID = "12345678-1234-1234-1234-123456789abf"
STATUS_CHARACTERISTIC_UUID = "12345678-1234-1234-1234-123456789ac0"

U16_MAX = 0xFFFF
S8_MIN, S8_MAX = -128, 127

_VIBRATION_BODY = struct.Struct("<BBHHB")
_TEMPERATURE_BODY = struct.Struct("<BbHHB")
LONG_FRAME_SIZE = 8
SHORT_FRAME_SIZE = 2


class CommandType(IntEnum):
    VIBRATION = 0x01
    TEMPERATURE = 0x02
    STOP_ALL = 0x03
    GET_STATUS = 0x04
    CALIBRATE = 0x05


class VibrationPattern(IntEnum):
    SHARP = 1
    SOFT = 2
    MEDIUM = 3
    PULSE = 4

    @classmethod
    def parse(cls, value: Union[str, int, "VibrationPattern"]) -> "VibrationPattern":
        """Accept a pattern, its wire code, or its name ("sharp", "soft", ...)."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown vibration pattern '{value}'") from None
        return cls(value)


@dataclass(frozen=True)
class VibrationConfig:
    intensity: float  # 0-1
    frequency: int  # Hz
    duration: int  # ms
    pattern: VibrationPattern = VibrationPattern.SHARP

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", VibrationPattern.parse(self.pattern))


@dataclass(frozen=True)
class TemperatureConfig:
    target: int  # degrees Celsius
    ramp_time: int  # ms
    hold_time: int  # ms


@dataclass(frozen=True)
class HapticProfile:
    """Vibration and/or temperature feedback sent together for one contact."""

    vibration: Optional[VibrationConfig] = None
    temperature: Optional[TemperatureConfig] = None
    duration: int = 0
    intensity: float = 0.0


@dataclass(frozen=True)
class DecodedFrame:
    command: CommandType
    vibration: Optional[VibrationConfig] = None
    temperature: Optional[TemperatureConfig] = None


def checksum(data: bytes) -> int:
    """Additive checksum of ``data`` modulo 256."""
    return sum(data) & 0xFF


def _seal(body: bytes) -> bytes:
    return body + bytes((checksum(body),))


def _require_int(name: str, value: float, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FrameEncodeError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or not low <= value <= high:
        raise FrameEncodeError(f"{name}={value} is outside [{low}, {high}]")
    if value != int(value):
        raise FrameEncodeError(f"{name}={value} must be a whole number")
    return int(value)


def encode_vibration(cfg: VibrationConfig) -> bytes:
    """Build the 8-byte VIBRATION frame.

    Raises:
        FrameEncodeError: If intensity is outside [0, 1] or frequency/duration
            do not fit an unsigned 16-bit field.
    """
    intensity = cfg.intensity
    if isinstance(intensity, bool) or not isinstance(intensity, (int, float)):
        raise FrameEncodeError(f"intensity must be a number, got {intensity!r}")
    if not 0.0 <= intensity <= 1.0:
        raise FrameEncodeError(f"intensity={intensity} is outside [0, 1]")
    body = _VIBRATION_BODY.pack(
        CommandType.VIBRATION,
        math.floor(intensity * 255),
        _require_int("frequency", cfg.frequency, 0, U16_MAX),
        _require_int("duration", cfg.duration, 0, U16_MAX),
        VibrationPattern.parse(cfg.pattern).value,
    )
    return _seal(body)


def encode_temperature(cfg: TemperatureConfig) -> bytes:
    """Build the 8-byte TEMPERATURE frame.

    Raises:
        FrameEncodeError: If the target does not fit a signed byte or the
            ramp/hold times do not fit an unsigned 16-bit field.
    """
    body = _TEMPERATURE_BODY.pack(
        CommandType.TEMPERATURE,
        _require_int("target", cfg.target, S8_MIN, S8_MAX),
        _require_int("ramp_time", cfg.ramp_time, 0, U16_MAX),
        _require_int("hold_time", cfg.hold_time, 0, U16_MAX),
        0,
    )
    return _seal(body)


def encode_stop_all() -> bytes:
    return _seal(bytes((CommandType.STOP_ALL,)))


def encode_get_status() -> bytes:
    return _seal(bytes((CommandType.GET_STATUS,)))


def encode_calibrate() -> bytes:
    return _seal(bytes((CommandType.CALIBRATE,)))


def verify_checksum(frame: bytes) -> bool:
    return len(frame) >= 2 and checksum(frame[:-1]) == frame[-1]


def decode_frame(frame: bytes) -> DecodedFrame:
    """Parse a command frame the way the device firmware does.

    Raises:
        FrameDecodeError: On an unknown opcode, a length that does not match
            the opcode, or a checksum mismatch.
    """
    frame = bytes(frame)
    if not frame:
        raise FrameDecodeError("Empty frame")
    try:
        command = CommandType(frame[0])
    except ValueError:
        raise FrameDecodeError(f"Unknown opcode 0x{frame[0]:02x}") from None

    expected = (
        LONG_FRAME_SIZE
        if command in (CommandType.VIBRATION, CommandType.TEMPERATURE)
        else SHORT_FRAME_SIZE
    )
    if len(frame) != expected:
        raise FrameDecodeError(
            f"{command.name} frame must be {expected} bytes, got {len(frame)}"
        )
    if not verify_checksum(frame):
        raise FrameDecodeError(
            f"Checksum mismatch: expected 0x{checksum(frame[:-1]):02x}, got 0x{frame[-1]:02x}"
        )

    if command is CommandType.VIBRATION:
        _, intensity, frequency, duration, pattern = _VIBRATION_BODY.unpack(frame[:-1])
        try:
            parsed_pattern = VibrationPattern(pattern)
        except ValueError:
            raise FrameDecodeError(f"Unknown vibration pattern code {pattern}") from None
        return DecodedFrame(
            command,
            vibration=VibrationConfig(
                intensity=intensity / 255,
                frequency=frequency,
                duration=duration,
                pattern=parsed_pattern,
            ),
        )
    if command is CommandType.TEMPERATURE:
        _, target, ramp, hold, _reserved = _TEMPERATURE_BODY.unpack(frame[:-1])
        return DecodedFrame(
            command,
            temperature=TemperatureConfig(target=target, ramp_time=ramp, hold_time=hold),
        )
    return DecodedFrame(command)
