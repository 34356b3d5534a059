# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

import numpy as np

from common.typing import BoundingBox


def xywh_to_xyxy(xywh: np.ndarray) -> np.ndarray:
    """Convert bounding boxes from center-size format to corner format."""
    xyxy = np.zeros_like(xywh)
    xyxy[:, 0] = xywh[:, 0] - xywh[:, 2] / 2
    xyxy[:, 1] = xywh[:, 1] - xywh[:, 3] / 2
    xyxy[:, 2] = xywh[:, 0] + xywh[:, 2] / 2
    xyxy[:, 3] = xywh[:, 1] + xywh[:, 3] / 2
    return xyxy


def calculate_iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """Intersection-over-union of two top-left-origin rectangles.

    Returns 0.0 when the boxes do not overlap or either area is non-positive.
    """
    if box1.width <= 0 or box1.height <= 0 or box2.width <= 0 or box2.height <= 0:
        return 0.0
    x1 = max(box1.x, box2.x)
    y1 = max(box1.y, box2.y)
    x2 = min(box1.x + box1.width, box2.x + box2.width)
    y2 = min(box1.y + box1.height, box2.y + box2.height)

    if x2 <= x1 or y2 <= y1:
        return 0.0

    intersection = (x2 - x1) * (y2 - y1)
    union = box1.area + box2.area - intersection
    return float(intersection / union)


def non_maximum_supression(
    boxes: np.ndarray, scores: np.ndarray, iou_thres: float
) -> list[int]:
    """Class-agnostic greedy NMS over corner-format boxes.

    Candidates are visited by descending score; equal scores keep their input
    order. A candidate is dropped when its IoU with an already kept box is
    strictly greater than ``iou_thres``. Returns kept indices in visit order.
    """
    if boxes.size == 0:
        return []
    # Stable sort on the negated scores keeps earliest index first on ties
    idxs = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep: list[int] = []
    while len(idxs) > 0:
        i = int(idxs[0])
        keep.append(i)
        if len(idxs) == 1:
            break
        ious = _intersection_over_union(boxes[i], boxes[idxs[1:]])
        idxs = idxs[1:][ious <= iou_thres]
    return keep


def _intersection_over_union(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """Compute the intersection-over-union between one box and multiple boxes."""
    if boxes.size == 0:
        return np.empty(0, dtype=np.float64)
    inter_x1 = np.maximum(box[0], boxes[:, 0])
    inter_y1 = np.maximum(box[1], boxes[:, 1])
    inter_x2 = np.minimum(box[2], boxes[:, 2])
    inter_y2 = np.minimum(box[3], boxes[:, 3])

    inter_w = np.clip(inter_x2 - inter_x1, a_min=0.0, a_max=None)
    inter_h = np.clip(inter_y2 - inter_y1, a_min=0.0, a_max=None)
    inter_area = inter_w * inter_h

    box_area = (box[2] - box[0]) * (box[3] - box[1])
    boxes_area = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = box_area + boxes_area - inter_area

    box_valid = (box[2] > box[0]) and (box[3] > box[1])
    boxes_valid = (boxes[:, 2] > boxes[:, 0]) & (boxes[:, 3] > boxes[:, 1])
    valid = box_valid & boxes_valid & (inter_area > 0) & (union > 0)
    ious = np.zeros(len(boxes), dtype=np.float64)
    np.divide(inter_area, union, out=ious, where=valid)
    return ious
