# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Error taxonomy for the detector pipeline."""

from __future__ import annotations

from enum import Enum


class DetectorErrorKind(str, Enum):
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    MODEL_LOAD_FAILED = "MODEL_LOAD_FAILED"
    RUNTIME_UNAVAILABLE = "RUNTIME_UNAVAILABLE"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    INFERENCE_FAILED = "INFERENCE_FAILED"


class DetectorError(Exception):
    """Base error carrying a closed ``DetectorErrorKind``."""

    def __init__(self, kind: DetectorErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ModelUnavailableError(DetectorError):
    """The model artifact could not be found or retrieved."""

    def __init__(self, message: str) -> None:
        super().__init__(DetectorErrorKind.MODEL_UNAVAILABLE, message)


class DetectorNotReadyError(DetectorError):
    """A detection was requested before the detector reached READY."""

    def __init__(self, message: str = "Detector is not initialized") -> None:
        super().__init__(DetectorErrorKind.NOT_INITIALIZED, message)
