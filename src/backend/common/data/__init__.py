# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Data utilities and lookup tables shared across backend services."""

from .coco_labels import COCO_LABELS, NUM_CLASSES  # noqa: F401
