# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import itertools
import types
from pathlib import Path

import numpy as np
import pytest

import common.core.detector as det
from common.config import YOLOConfig
from common.errors import DetectorErrorKind, DetectorNotReadyError, ModelUnavailableError
from common.typing import CameraFrame
from tests.test_utils import (
    DummyEngine,
    DummySession,
    DummySessionOptions,
    make_candidate,
)


def _frame(width: int = 128, height: int = 64, timestamp: int = 42) -> CameraFrame:
    return CameraFrame(
        pixels=np.zeros((height, width, 4), dtype=np.uint8), timestamp=timestamp
    )


def _ids():
    counter = itertools.count()
    return lambda: f"id-{next(counter)}"


@pytest.mark.asyncio
async def test_initialize_and_detect(yolo_config: YOLOConfig, dummy_engine: DummyEngine):
    a = make_candidate(32, 32, 16, 16, 0.9, 3, 0.9)
    b = make_candidate(33, 32, 16, 16, 0.8, 3, 0.9)
    dummy_engine.output = np.array([a, b], dtype=np.float32).reshape(1, -1, 85)

    detector = det.YoloDetector(yolo_config, backend="dummy", id_factory=_ids())
    assert detector.state is det.DetectorState.UNINITIALIZED

    assert await detector.initialize() is True
    assert detector.initialized
    assert detector.state is det.DetectorState.READY

    detections = await detector.detect(_frame())

    assert len(detections) == 1
    result = detections[0]
    assert result.id == "id-0"
    assert result.class_name == "motorcycle"
    assert result.confidence == pytest.approx(0.81)
    # 128x64 frame through a 64x64 network: scale_x=2, scale_y=1
    assert result.center.x == pytest.approx(64)
    assert result.center.y == pytest.approx(32)
    assert result.bbox.width == pytest.approx(32)
    assert result.timestamp == 42

    (feeds,) = dummy_engine.calls
    assert feeds["images"].shape == (1, 3, 64, 64)


@pytest.mark.asyncio
async def test_initialize_is_idempotent(yolo_config: YOLOConfig, dummy_engine: DummyEngine):
    detector = det.YoloDetector(yolo_config, backend="dummy")
    assert await detector.initialize()
    assert await detector.initialize()
    assert detector.state is det.DetectorState.READY


@pytest.mark.asyncio
async def test_detect_before_initialize_raises(yolo_config: YOLOConfig):
    detector = det.YoloDetector(yolo_config, backend="dummy")
    with pytest.raises(DetectorNotReadyError) as exc_info:
        await detector.detect(_frame())
    assert exc_info.value.kind is DetectorErrorKind.NOT_INITIALIZED


@pytest.mark.asyncio
async def test_missing_model_marks_failed(tmp_path: Path, dummy_engine: DummyEngine):
    cfg = YOLOConfig(model_path=str(tmp_path / "missing.onnx"))
    detector = det.YoloDetector(cfg, backend="dummy")

    assert await detector.initialize() is False

    assert detector.state is det.DetectorState.FAILED
    assert detector.last_error is not None
    assert detector.last_error.kind is DetectorErrorKind.MODEL_UNAVAILABLE
    with pytest.raises(DetectorNotReadyError):
        await detector.detect(_frame())


@pytest.mark.asyncio
async def test_unknown_backend_is_runtime_unavailable(yolo_config: YOLOConfig):
    detector = det.YoloDetector(yolo_config, backend="does-not-exist")

    assert await detector.initialize() is False
    assert detector.last_error.kind is DetectorErrorKind.RUNTIME_UNAVAILABLE


@pytest.mark.asyncio
async def test_engine_load_error_is_model_load_failed(
    monkeypatch: pytest.MonkeyPatch, yolo_config: YOLOConfig
):
    def broken(_path):
        raise RuntimeError("corrupt graph")

    monkeypatch.setitem(det._backend_registry, "broken", broken)
    detector = det.YoloDetector(yolo_config, backend="broken")

    assert await detector.initialize() is False
    assert detector.last_error.kind is DetectorErrorKind.MODEL_LOAD_FAILED
    assert isinstance(detector.last_error.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_remote_model_resolved_through_downloader(
    monkeypatch: pytest.MonkeyPatch, model_file: Path, dummy_engine: DummyEngine
):
    requested: list[str] = []

    async def fake_ensure(location: str) -> Path:
        requested.append(location)
        return model_file

    monkeypatch.setattr(det, "ensure_model_available", fake_ensure)
    cfg = YOLOConfig(model_path="https://example.com/yolo.onnx")

    assert await det.YoloDetector(cfg, backend="dummy").initialize()
    assert requested == ["https://example.com/yolo.onnx"]


@pytest.mark.asyncio
async def test_download_failure_marks_failed(
    monkeypatch: pytest.MonkeyPatch, dummy_engine: DummyEngine
):
    async def fake_ensure(location: str) -> Path:
        raise ModelUnavailableError("offline")

    monkeypatch.setattr(det, "ensure_model_available", fake_ensure)
    detector = det.YoloDetector(
        YOLOConfig(model_path="https://example.com/yolo.onnx"), backend="dummy"
    )

    assert await detector.initialize() is False
    assert detector.last_error.kind is DetectorErrorKind.MODEL_UNAVAILABLE


@pytest.mark.asyncio
async def test_inference_fault_returns_empty(
    yolo_config: YOLOConfig, dummy_engine: DummyEngine
):
    detector = det.YoloDetector(yolo_config, backend="dummy")
    await detector.initialize()
    dummy_engine.error = RuntimeError("device lost")

    assert await detector.detect(_frame()) == []
    assert detector.state is det.DetectorState.READY


@pytest.mark.asyncio
async def test_malformed_output_returns_empty(
    yolo_config: YOLOConfig, dummy_engine: DummyEngine
):
    dummy_engine.output = np.zeros(7, dtype=np.float32)
    detector = det.YoloDetector(yolo_config, backend="dummy")
    await detector.initialize()

    assert await detector.detect(_frame()) == []


@pytest.mark.asyncio
async def test_invalid_frame_raises(yolo_config: YOLOConfig, dummy_engine: DummyEngine):
    detector = det.YoloDetector(yolo_config, backend="dummy")
    await detector.initialize()

    with pytest.raises(ValueError):
        await detector.detect(
            CameraFrame(pixels=np.zeros((0, 10, 4), dtype=np.uint8), timestamp=0)
        )


@pytest.mark.asyncio
async def test_update_config_applies_to_next_detect(
    yolo_config: YOLOConfig, dummy_engine: DummyEngine
):
    dummy_engine.output = np.array(make_candidate(32, 32, 8, 8, 1.0, 0, 0.6), dtype=np.float32)
    detector = det.YoloDetector(yolo_config, backend="dummy")
    await detector.initialize()
    assert len(await detector.detect(_frame())) == 1

    updated = detector.update_config(confidence_threshold=0.7)

    assert updated.confidence_threshold == 0.7
    assert detector.config is updated
    assert await detector.detect(_frame()) == []

    with pytest.raises(ValueError):
        detector.update_config(nms_threshold=3.0)
    assert detector.config is updated


@pytest.mark.asyncio
async def test_dispose_is_idempotent(yolo_config: YOLOConfig, dummy_engine: DummyEngine):
    detector = det.YoloDetector(yolo_config, backend="dummy")
    await detector.initialize()

    detector.dispose()
    detector.dispose()

    assert dummy_engine.released == 1
    assert detector.state is det.DetectorState.UNINITIALIZED
    with pytest.raises(DetectorNotReadyError):
        await detector.detect(_frame())

    assert await detector.initialize()


@pytest.mark.asyncio
async def test_context_manager_disposes(yolo_config: YOLOConfig, dummy_engine: DummyEngine):
    async with det.YoloDetector(yolo_config, backend="dummy") as detector:
        assert detector.initialized

    assert dummy_engine.released == 1
    assert not detector.initialized


def test_supported_classes(yolo_config: YOLOConfig):
    detector = det.YoloDetector(yolo_config, labels=("a", "b"))
    assert detector.supported_classes() == ["a", "b"]
    assert len(det.YoloDetector(yolo_config).supported_classes()) == 80


def test_register_backend_rejects_blank_name():
    with pytest.raises(ValueError):
        det.register_inference_backend("  ", lambda _path: DummyEngine())


def test_onnx_backend_registered():
    assert "onnx" in det.available_inference_backends()


def test_onnx_engine_runs_session(monkeypatch: pytest.MonkeyPatch, model_file: Path):
    output = np.ones((1, 2, 85), dtype=np.float32)
    session = DummySession(output)
    fake_ort = types.SimpleNamespace(
        SessionOptions=DummySessionOptions,
        GraphOptimizationLevel=types.SimpleNamespace(ORT_ENABLE_ALL="all"),
        InferenceSession=lambda *_args, **_kwargs: session,
        get_available_providers=lambda: ["CPUExecutionProvider"],
    )
    monkeypatch.setattr(det, "ort", fake_ort)
    monkeypatch.setattr(det.config, "ONNX_PROVIDERS", [])

    engine = det._OnnxRuntimeEngine(model_file)
    tensor = np.zeros((1, 3, 64, 64), dtype=np.float32)
    (result,) = engine.run({engine.input_name: tensor})

    assert engine.input_name == "images"
    assert result is output
    assert session.runs[0][0] == ["output0"]

    engine.release()
    with pytest.raises(RuntimeError):
        engine.run({engine.input_name: tensor})


def test_onnx_engine_without_runtime(monkeypatch: pytest.MonkeyPatch, model_file: Path):
    monkeypatch.setattr(det, "ort", None)
    with pytest.raises(det.RuntimeUnavailableError):
        det._OnnxRuntimeEngine(model_file)


def test_onnx_provider_preference(monkeypatch: pytest.MonkeyPatch):
    fake_ort = types.SimpleNamespace(
        get_available_providers=lambda: ["CPUExecutionProvider", "CUDAExecutionProvider"]
    )
    monkeypatch.setattr(det, "ort", fake_ort)
    monkeypatch.setattr(det.config, "ONNX_PROVIDERS", [])
    assert det._OnnxRuntimeEngine._resolve_providers() == [
        "CUDAExecutionProvider",
        "CPUExecutionProvider",
    ]

    monkeypatch.setattr(det.config, "ONNX_PROVIDERS", ["CPUExecutionProvider"])
    assert det._OnnxRuntimeEngine._resolve_providers() == ["CPUExecutionProvider"]
