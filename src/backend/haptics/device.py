# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass, field

from haptics.errors import FrameDecodeError

STATUS_PAYLOAD_SIZE = 5

# Capability bits in byte 4 of the status payload
VIBRATION_BIT = 0x01
TEMPERATURE_BIT = 0x02
PRESSURE_BIT = 0x04
FLEX_BIT = 0x08

DEFAULT_BATTERY_LEVEL = 100
MAX_BATTERY_LEVEL = 100
DEFAULT_FIRMWARE_VERSION = "1.0.0"


@dataclass(frozen=True)
class DeviceCapabilities:
    vibration: bool = False
    temperature: bool = False
    pressure: bool = False
    flex: bool = False

    @classmethod
    def from_bitmask(cls, mask: int) -> DeviceCapabilities:
        return cls(
            vibration=bool(mask & VIBRATION_BIT),
            temperature=bool(mask & TEMPERATURE_BIT),
            pressure=bool(mask & PRESSURE_BIT),
            flex=bool(mask & FLEX_BIT),
        )

    def to_bitmask(self) -> int:
        return (
            (VIBRATION_BIT if self.vibration else 0)
            | (TEMPERATURE_BIT if self.temperature else 0)
            | (PRESSURE_BIT if self.pressure else 0)
            | (FLEX_BIT if self.flex else 0)
        )


# Assumed when the device does not expose a readable status characteristic
DEFAULT_CAPABILITIES = DeviceCapabilities(vibration=True, temperature=True)


@dataclass(frozen=True)
class DeviceStatus:
    battery_level: int
    firmware_version: str
    capabilities: DeviceCapabilities


def decode_status(payload: bytes) -> DeviceStatus:
    """Decode the status characteristic.

    Layout: battery %, firmware major, minor, patch, capability bitmask.
    Trailing bytes are ignored and the battery level is capped at 100.

    Raises:
        FrameDecodeError: If the payload is shorter than five bytes.
    """
    if len(payload) < STATUS_PAYLOAD_SIZE:
        raise FrameDecodeError(
            f"Status payload must be at least {STATUS_PAYLOAD_SIZE} bytes, got {len(payload)}"
        )
    battery, major, minor, patch, mask = payload[:STATUS_PAYLOAD_SIZE]
    return DeviceStatus(
        battery_level=min(battery, MAX_BATTERY_LEVEL),
        firmware_version=f"{major}.{minor}.{patch}",
        capabilities=DeviceCapabilities.from_bitmask(mask),
    )


def encode_status(status: DeviceStatus) -> bytes:
    """Inverse of ``decode_status``, used by simulated peripherals."""
    major, minor, patch = (int(part) for part in status.firmware_version.split("."))
    return bytes(
        (
            status.battery_level,
            major,
            minor,
            patch,
            status.capabilities.to_bitmask(),
        )
    )


@dataclass
class FingerDevice:
    """A connected haptic peripheral. Battery and ``connected`` change over time."""

    id: str
    name: str
    connected: bool = True
    battery_level: int = DEFAULT_BATTERY_LEVEL
    firmware_version: str = DEFAULT_FIRMWARE_VERSION
    capabilities: DeviceCapabilities = field(default_factory=lambda: DEFAULT_CAPABILITIES)

    @classmethod
    def from_status(cls, device_id: str, name: str, status: DeviceStatus) -> FingerDevice:
        return cls(
            id=device_id,
            name=name,
            battery_level=status.battery_level,
            firmware_version=status.firmware_version,
            capabilities=status.capabilities,
        )
