# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import os
from dataclasses import dataclass, field, replace
from typing import Any, Optional
from pathlib import Path


def _split_env_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Application configuration."""

    # Model settings
    MODEL_PATH: str = os.getenv("MODEL_PATH", "models/yolo11n.onnx")
    MODEL_CACHE_DIR: Path = Path(os.getenv("MODEL_CACHE_DIR", "models")).resolve()
    MODEL_DOWNLOAD_TIMEOUT: float = float(os.getenv("MODEL_DOWNLOAD_TIMEOUT", "30.0"))
    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "onnx").lower()
    DETECTOR_IMAGE_SIZE: int = int(os.getenv("DETECTOR_IMAGE_SIZE", "640"))
    DETECTOR_CONF_THRESHOLD: float = float(os.getenv("DETECTOR_CONF_THRESHOLD", "0.5"))
    DETECTOR_IOU_THRESHOLD: float = float(os.getenv("DETECTOR_IOU_THRESHOLD", "0.4"))
    DETECTOR_TARGET_CLASSES: list[str] = _split_env_list(
        os.getenv(
            "DETECTOR_TARGET_CLASSES", "person,cup,bottle,book,cell phone,laptop"
        )
    )
    ONNX_PROVIDERS: list[str] = _split_env_list(os.getenv("ONNX_PROVIDERS", ""))

    # Haptic device settings
    HAPTIC_DEVICE_NAME: str = os.getenv("HAPTIC_DEVICE_NAME", "FingerSuit")
    HAPTIC_SCAN_TIMEOUT: float = float(
        os.getenv("HAPTIC_SCAN_TIMEOUT", "10.0")
    )  # seconds to wait for an advertisement
    HAPTIC_CONNECT_TIMEOUT: float = float(os.getenv("HAPTIC_CONNECT_TIMEOUT", "10.0"))

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a configuration value."""
        return os.getenv(key, default)


config = Config()


@dataclass(frozen=True)
class YOLOConfig:
    """Per-session detector tuning.

    ``model_path`` may be a local file path or an http(s) URL. Detections whose
    label is not in ``target_classes`` are discarded.
    """

    model_path: str
    confidence_threshold: float = 0.5
    nms_threshold: float = 0.4
    target_classes: tuple[str, ...] = field(default_factory=tuple)
    input_size: int = 640

    def __post_init__(self) -> None:
        if not str(self.model_path).strip():
            raise ValueError("model_path cannot be empty")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}"
            )
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ValueError(
                f"nms_threshold must be within [0, 1], got {self.nms_threshold}"
            )
        if self.input_size <= 0:
            raise ValueError(f"input_size must be positive, got {self.input_size}")
        # Accept any iterable of names, store an immutable tuple
        object.__setattr__(self, "target_classes", tuple(self.target_classes))

    @classmethod
    def from_env(cls) -> "YOLOConfig":
        """Build a detector configuration from the environment-driven defaults."""
        return cls(
            model_path=config.MODEL_PATH,
            confidence_threshold=config.DETECTOR_CONF_THRESHOLD,
            nms_threshold=config.DETECTOR_IOU_THRESHOLD,
            target_classes=tuple(config.DETECTOR_TARGET_CLASSES),
            input_size=config.DETECTOR_IMAGE_SIZE,
        )

    def replace(self, **changes: Any) -> "YOLOConfig":
        """Return a copy with ``changes`` merged in (validated like a new config)."""
        return replace(self, **changes)
