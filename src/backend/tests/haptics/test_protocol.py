# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import pytest

from haptics.errors import FrameDecodeError, FrameEncodeError
from haptics.protocol import (
    CommandType,
    TemperatureConfig,
    VibrationConfig,
    VibrationPattern,
    checksum,
    decode_frame,
    encode_calibrate,
    encode_get_status,
    encode_stop_all,
    encode_temperature,
    encode_vibration,
    verify_checksum,
)


def _sealed(body_hex: str) -> bytes:
    body = bytes.fromhex(body_hex)
    return body + bytes((checksum(body),))


def test_vibration_frame_layout() -> None:
    frame = encode_vibration(
        VibrationConfig(intensity=1.0, frequency=200, duration=100, pattern="sharp")
    )

    assert frame == bytes.fromhex("01ffc8006400012d")
    assert frame[-1] == sum(frame[:7]) & 0xFF


def test_vibration_little_endian_fields() -> None:
    frame = encode_vibration(
        VibrationConfig(intensity=0.5, frequency=0x1234, duration=0xABCD, pattern=VibrationPattern.PULSE)
    )

    assert frame[0] == CommandType.VIBRATION
    assert frame[1] == 127  # floor(0.5 * 255)
    assert frame[2:4] == b"\x34\x12"
    assert frame[4:6] == b"\xcd\xab"
    assert frame[6] == 4
    assert verify_checksum(frame)


def test_temperature_frame_layout() -> None:
    frame = encode_temperature(TemperatureConfig(target=-5, ramp_time=300, hold_time=1000))

    assert len(frame) == 8
    assert frame[0] == CommandType.TEMPERATURE
    assert frame[1] == 0xFB  # two's complement of -5
    assert frame[2:4] == (300).to_bytes(2, "little")
    assert frame[4:6] == (1000).to_bytes(2, "little")
    assert frame[6] == 0
    assert frame[7] == checksum(frame[:7])


@pytest.mark.parametrize(
    "encode, opcode",
    [
        (encode_stop_all, CommandType.STOP_ALL),
        (encode_get_status, CommandType.GET_STATUS),
        (encode_calibrate, CommandType.CALIBRATE),
    ],
    ids=["stop_all", "get_status", "calibrate"],
)
def test_short_frames(encode, opcode: CommandType) -> None:
    assert encode() == bytes((opcode, opcode))
    assert decode_frame(encode()).command is opcode


@pytest.mark.parametrize(
    "cfg",
    [
        VibrationConfig(intensity=1.2, frequency=100, duration=100),
        VibrationConfig(intensity=-0.1, frequency=100, duration=100),
        VibrationConfig(intensity=0.5, frequency=70000, duration=100),
        VibrationConfig(intensity=0.5, frequency=100, duration=-1),
        VibrationConfig(intensity=float("nan"), frequency=100, duration=100),
        VibrationConfig(intensity=0.5, frequency=200.7, duration=100),
        VibrationConfig(intensity=0.5, frequency=200, duration=99.5),
    ],
    ids=[
        "intensity_high",
        "intensity_negative",
        "frequency_u16",
        "duration_negative",
        "nan",
        "fractional_frequency",
        "fractional_duration",
    ],
)
def test_vibration_range_errors(cfg: VibrationConfig) -> None:
    with pytest.raises(FrameEncodeError):
        encode_vibration(cfg)


@pytest.mark.parametrize(
    "cfg",
    [
        TemperatureConfig(target=128, ramp_time=0, hold_time=0),
        TemperatureConfig(target=-129, ramp_time=0, hold_time=0),
        TemperatureConfig(target=20, ramp_time=65536, hold_time=0),
        TemperatureConfig(target=20, ramp_time=0, hold_time=-1),
        TemperatureConfig(target=20.5, ramp_time=0, hold_time=0),
    ],
    ids=["target_high", "target_low", "ramp_u16", "hold_negative", "fractional_target"],
)
def test_temperature_range_errors(cfg: TemperatureConfig) -> None:
    with pytest.raises(FrameEncodeError):
        encode_temperature(cfg)


def test_whole_number_floats_are_accepted() -> None:
    assert encode_vibration(
        VibrationConfig(intensity=1.0, frequency=200.0, duration=100.0, pattern="sharp")
    ) == bytes.fromhex("01ffc8006400012d")
    assert encode_temperature(
        TemperatureConfig(target=-5.0, ramp_time=300, hold_time=1000)
    )[1] == 0xFB


def test_encode_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        encode_vibration(VibrationConfig(intensity=2.0, frequency=1, duration=1))


def test_pattern_parsing() -> None:
    assert VibrationPattern.parse("Soft") is VibrationPattern.SOFT
    assert VibrationPattern.parse(3) is VibrationPattern.MEDIUM
    assert VibrationConfig(0.5, 10, 10, "pulse").pattern is VibrationPattern.PULSE
    with pytest.raises(ValueError):
        VibrationPattern.parse("buzz")


def test_decode_vibration() -> None:
    decoded = decode_frame(bytes.fromhex("01ffc8006400012d"))

    assert decoded.command is CommandType.VIBRATION
    assert decoded.vibration == VibrationConfig(
        intensity=1.0, frequency=200, duration=100, pattern=VibrationPattern.SHARP
    )


def test_decode_temperature() -> None:
    frame = encode_temperature(TemperatureConfig(target=-20, ramp_time=50, hold_time=60))
    decoded = decode_frame(frame)
    assert decoded.temperature == TemperatureConfig(target=-20, ramp_time=50, hold_time=60)


@pytest.mark.parametrize(
    "frame",
    [
        b"",
        bytes.fromhex("01ffc8006400012e"),
        bytes.fromhex("01ffc80064002d"),
        bytes((0x09, 0x09)),
        bytes((0x03, 0x00, 0x03)),
        _sealed("01ffc800640009"),
    ],
    ids=["empty", "bad_checksum", "short", "unknown_opcode", "long_short_frame", "bad_pattern"],
)
def test_decode_rejects_malformed(frame: bytes) -> None:
    with pytest.raises(FrameDecodeError):
        decode_frame(frame)
