# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Error taxonomy for the haptic device controller and its wire protocol."""

from __future__ import annotations

from enum import Enum


class HapticErrorKind(str, Enum):
    CONNECTION_FAILED = "CONNECTION_FAILED"
    VIBRATION_FAILED = "VIBRATION_FAILED"
    TEMPERATURE_FAILED = "TEMPERATURE_FAILED"
    STOP_FAILED = "STOP_FAILED"
    CALIBRATION_FAILED = "CALIBRATION_FAILED"
    STATUS_FAILED = "STATUS_FAILED"


class HapticError(Exception):
    """Failure inside the controller, tagged with the kind reported to listeners."""

    def __init__(self, kind: HapticErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class TransportUnavailableError(Exception):
    """The host has no usable wireless adapter or BLE stack."""


class FrameEncodeError(ValueError):
    """A command field is outside the range its wire encoding can represent."""


class FrameDecodeError(ValueError):
    """A received frame or status payload is malformed."""
