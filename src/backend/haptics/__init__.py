# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Fingertip haptic device: wire protocol, BLE transport and controller."""

from haptics.controller import ConnectionState, Feature, HapticController
from haptics.device import DeviceCapabilities, DeviceStatus, FingerDevice
from haptics.errors import (
    FrameDecodeError,
    FrameEncodeError,
    HapticError,
    HapticErrorKind,
    TransportUnavailableError,
)
from haptics.events import (
    BatteryUpdate,
    Connected,
    Disconnected,
    EventDispatcher,
    HapticErrorEvent,
    HapticEvent,
)
from haptics.profiles import MATERIAL_PROFILES, get_profile
from haptics.protocol import (
    CommandType,
    HapticProfile,
    TemperatureConfig,
    VibrationConfig,
    VibrationPattern,
)

__all__ = [
    "ConnectionState",
    "Feature",
    "HapticController",
    "DeviceCapabilities",
    "DeviceStatus",
    "FingerDevice",
    "FrameDecodeError",
    "FrameEncodeError",
    "HapticError",
    "HapticErrorKind",
    "TransportUnavailableError",
    "BatteryUpdate",
    "Connected",
    "Disconnected",
    "EventDispatcher",
    "HapticErrorEvent",
    "HapticEvent",
    "MATERIAL_PROFILES",
    "get_profile",
    "CommandType",
    "HapticProfile",
    "TemperatureConfig",
    "VibrationConfig",
    "VibrationPattern",
]
