# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Decode raw YOLO output into filtered, NMS-deduplicated detections."""

from __future__ import annotations

import uuid
from typing import Callable, Optional, Sequence

import numpy as np

from common.config import YOLOConfig
from common.data.coco_labels import COCO_LABELS, NUM_CLASSES
from common.typing import BoundingBox, DetectionResult, Point2D
from common.utils.math import non_maximum_supression, xywh_to_xyxy

# [cx, cy, w, h, objectness, 80 class scores]
BOX_PARAMS = 4
RECORD_SIZE = BOX_PARAMS + 1 + NUM_CLASSES

IdFactory = Callable[[], str]


def _uuid_id() -> str:
    return uuid.uuid4().hex


def postprocess_detections(
    output: np.ndarray | Sequence[float],
    scale_x: float,
    scale_y: float,
    cfg: YOLOConfig,
    timestamp: int,
    labels: Sequence[str] = COCO_LABELS,
    id_factory: Optional[IdFactory] = None,
) -> list[DetectionResult]:
    """Convert a flat candidate array into detections in source-frame pixels.

    Args:
        output: Flat model output, one 85-value record per candidate.
        scale_x: Frame width divided by the network input size.
        scale_y: Frame height divided by the network input size.
        cfg: Thresholds and target classes to apply.
        timestamp: Capture time of the frame in ms.
        labels: Class names indexed by class score position.
        id_factory: Produces detection ids; defaults to random UUIDs.

    Returns:
        Detections surviving the confidence/class filter and class-agnostic NMS,
        ordered by descending confidence.

    Raises:
        ValueError: If the output length is not a multiple of the record size.
    """
    record_size = BOX_PARAMS + 1 + len(labels)
    flat = np.asarray(output, dtype=np.float64).reshape(-1)
    if flat.size % record_size != 0:
        raise ValueError(
            f"Output length {flat.size} is not a multiple of {record_size}"
        )
    if flat.size == 0:
        return []

    preds = flat.reshape(-1, record_size)
    centers_x = preds[:, 0] * scale_x
    centers_y = preds[:, 1] * scale_y
    widths = preds[:, 2] * scale_x
    heights = preds[:, 3] * scale_y

    class_scores = preds[:, BOX_PARAMS + 1 :]
    # argmax returns the first maximum, so ties go to the lowest class index
    class_ids = np.argmax(class_scores, axis=1)
    confidences = preds[:, BOX_PARAMS] * class_scores[np.arange(len(preds)), class_ids]

    targets = set(cfg.target_classes)
    is_target = np.array([labels[int(c)] in targets for c in class_ids], dtype=bool)
    mask = (confidences >= cfg.confidence_threshold) & is_target
    candidates = np.flatnonzero(mask)
    if candidates.size == 0:
        return []

    xywh = np.stack([centers_x, centers_y, widths, heights], axis=1)[candidates]
    xyxy = xywh_to_xyxy(xywh)
    keep = non_maximum_supression(xyxy, confidences[candidates], cfg.nms_threshold)

    make_id = id_factory or _uuid_id
    detections: list[DetectionResult] = []
    for k in keep:
        idx = int(candidates[k])
        left, top, right, bottom = (float(v) for v in xyxy[k])
        detections.append(
            DetectionResult(
                id=make_id(),
                class_name=labels[int(class_ids[idx])],
                confidence=float(confidences[idx]),
                bbox=BoundingBox(x=left, y=top, width=right - left, height=bottom - top),
                center=Point2D(x=float(centers_x[idx]), y=float(centers_y[idx])),
                timestamp=int(timestamp),
            )
        )
    return detections
