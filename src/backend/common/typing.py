# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from typing_extensions import TypedDict


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in source-frame pixels, top-left origin."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float


@dataclass(frozen=True)
class DetectionResult:
    """One recognized object instance in a single frame."""

    id: str
    class_name: str
    confidence: float
    bbox: BoundingBox
    center: Point2D
    timestamp: int
    """Capture time of the source frame in milliseconds since epoch."""

    def to_payload(self) -> DetectionPayload:
        return {
            "id": self.id,
            "class": self.class_name,
            "confidence": self.confidence,
            "bbox": {
                "x": self.bbox.x,
                "y": self.bbox.y,
                "width": self.bbox.width,
                "height": self.bbox.height,
            },
            "center": {"x": self.center.x, "y": self.center.y},
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CameraFrame:
    """A captured RGBA (or RGB) frame and its capture timestamp."""

    pixels: np.ndarray
    timestamp: int

    @classmethod
    def from_rgba_bytes(
        cls, buffer: bytes, width: int, height: int, timestamp: int
    ) -> CameraFrame:
        """Wrap a raw RGBA8 pixel buffer without copying it."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame dimensions {width}x{height}")
        expected = width * height * 4
        if len(buffer) != expected:
            raise ValueError(
                f"RGBA buffer has {len(buffer)} bytes, expected {expected} for {width}x{height}"
            )
        pixels = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, 4)
        return cls(pixels=pixels, timestamp=timestamp)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


# Strict typing for the JSON payload consumed by the overlay frontend
Box = TypedDict("Box", {"x": float, "y": float, "width": float, "height": float})
Pos2D = TypedDict("Pos2D", {"x": float, "y": float})
DetectionPayload = TypedDict(
    "DetectionPayload",
    {
        "id": str,
        "class": str,
        "confidence": float,
        "bbox": Box,
        "center": Pos2D,
        "timestamp": int,
    },
)
