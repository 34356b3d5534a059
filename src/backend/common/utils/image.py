# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass

import numpy as np
import cv2


@dataclass(frozen=True)
class PreprocessedFrame:
    """Network input tensor plus the factors mapping model space back to the frame."""

    tensor: np.ndarray
    scale_x: float
    scale_y: float


def preprocess_frame(image: np.ndarray, input_size: int) -> PreprocessedFrame:
    """Resize an RGBA/RGB frame to ``input_size`` squared and build a planar tensor.

    The tensor has shape (1, 3, S, S) with the R, G and B planes scaled to
    [0, 1]. ``scale_x``/``scale_y`` are ``width / S`` and ``height / S``.

    Raises:
        ValueError: If the frame or the target size has a non-positive dimension,
            or the frame is not H x W x 3/4.
    """
    if input_size <= 0:
        raise ValueError(f"input_size must be positive, got {input_size}")
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(
            f"Expected an HxWx4 RGBA or HxWx3 RGB frame, got shape {image.shape}"
        )
    h, w = image.shape[:2]
    if h <= 0 or w <= 0:
        raise ValueError(f"Invalid frame dimensions {w}x{h}")

    rgb = np.ascontiguousarray(image[:, :, :3])
    resized = cv2.resize(rgb, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    img = resized.astype(np.float32) / 255.0
    img = np.transpose(img, (2, 0, 1))
    img = np.expand_dims(img, axis=0)
    return PreprocessedFrame(
        tensor=np.ascontiguousarray(img),
        scale_x=w / input_size,
        scale_y=h / input_size,
    )


def rgba_from_bgr(frame_bgr: np.ndarray) -> np.ndarray:
    """Convert an OpenCV BGR image to RGBA."""
    return cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGBA)
