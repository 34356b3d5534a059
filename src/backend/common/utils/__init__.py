# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from common.utils.image import (
    PreprocessedFrame,
    preprocess_frame,
    rgba_from_bgr,
)

from common.utils.math import (
    calculate_iou,
    non_maximum_supression,
    xywh_to_xyxy,
)

__all__ = [
    "PreprocessedFrame",
    "preprocess_frame",
    "rgba_from_bgr",
    "calculate_iou",
    "non_maximum_supression",
    "xywh_to_xyxy",
]
