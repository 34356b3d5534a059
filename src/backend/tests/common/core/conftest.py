# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from pathlib import Path

import pytest

import common.core.detector as det
from common.config import YOLOConfig
from tests.test_utils import DummyEngine


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    weights = tmp_path / "yolo.onnx"
    weights.write_bytes(b"fake")
    return weights


@pytest.fixture
def yolo_config(model_file: Path) -> YOLOConfig:
    return YOLOConfig(
        model_path=str(model_file),
        confidence_threshold=0.5,
        nms_threshold=0.4,
        target_classes=("person", "motorcycle"),
        input_size=64,
    )


@pytest.fixture
def dummy_engine(monkeypatch: pytest.MonkeyPatch) -> DummyEngine:
    """Register a ``dummy`` backend that hands out one shared engine."""
    engine = DummyEngine()
    monkeypatch.setitem(det._backend_registry, "dummy", lambda _path: engine)
    return engine
