# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np

from common.config import YOLOConfig, config
from common.core.model_downloader import ensure_model_available
from common.core.postprocess import IdFactory, postprocess_detections
from common.data.coco_labels import COCO_LABELS
from common.errors import (
    DetectorError,
    DetectorErrorKind,
    DetectorNotReadyError,
    ModelUnavailableError,
)
from common.metrics import get_detection_duration, get_detections_count
from common.protocols import InferenceEngine
from common.typing import CameraFrame, DetectionResult
from common.utils.image import preprocess_frame

try:  # pragma: no cover - optional dependency import
    import onnxruntime as ort  # type: ignore[import-not-found,import-untyped]
except Exception:  # pragma: no cover - reported as RUNTIME_UNAVAILABLE
    ort = None

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Path], InferenceEngine]
_backend_registry: dict[str, EngineFactory] = {}


class RuntimeUnavailableError(DetectorError):
    """The inference runtime for the selected backend cannot be used."""

    def __init__(self, message: str) -> None:
        super().__init__(DetectorErrorKind.RUNTIME_UNAVAILABLE, message)


def register_inference_backend(name: str, factory: EngineFactory) -> None:
    """Register an inference engine factory by name."""
    normalized = name.strip().lower()
    if not normalized:
        raise ValueError("Inference backend name cannot be empty")
    _backend_registry[normalized] = factory


def available_inference_backends() -> list[str]:
    """Return the list of known inference backends."""
    return sorted(_backend_registry)


def _resolve_factory(backend: Optional[str]) -> EngineFactory:
    backend_name = (backend or config.DETECTOR_BACKEND).lower()
    try:
        return _backend_registry[backend_name]
    except KeyError:
        known = ", ".join(available_inference_backends())
        raise RuntimeUnavailableError(
            f"Unsupported DETECTOR_BACKEND '{backend_name}'. Known backends: {known or 'none'}."
        ) from None


class DetectorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class YoloDetector:
    """Owns the model lifecycle and turns camera frames into detections.

    Only a READY detector serves ``detect``. Callers must not overlap
    ``detect`` calls on the same instance; the engine is not re-entrant.
    """

    def __init__(
        self,
        cfg: YOLOConfig,
        backend: Optional[str] = None,
        labels: Sequence[str] = COCO_LABELS,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        """Create an uninitialized detector.

        Args:
            cfg: Detector configuration for this session.
            backend: Registered backend name; defaults to config.DETECTOR_BACKEND.
            labels: Class names in model output order.
            id_factory: Optional detection id generator, random UUIDs otherwise.
        """
        self._config = cfg
        self._backend = backend
        self._labels = tuple(labels)
        self._id_factory = id_factory
        self._engine: Optional[InferenceEngine] = None
        self._state = DetectorState.UNINITIALIZED
        self._last_error: Optional[DetectorError] = None
        self._detection_duration = get_detection_duration()
        self._detections_count = get_detections_count()

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is DetectorState.READY

    @property
    def config(self) -> YOLOConfig:
        return self._config

    @property
    def last_error(self) -> Optional[DetectorError]:
        """Cause of the most recent failed ``initialize``, if any."""
        return self._last_error

    def supported_classes(self) -> list[str]:
        return list(self._labels)

    async def initialize(self) -> bool:
        """Resolve the model artifact and load it into the inference engine.

        Never raises: on failure the detector moves to FAILED, ``last_error``
        describes the cause and False is returned so the caller can keep
        running without detection.
        """
        if self._state is DetectorState.READY:
            return True
        if self._state is DetectorState.LOADING:
            logger.warning("Detector initialization already in progress")
            return False

        self._state = DetectorState.LOADING
        self._last_error = None
        cfg = self._config
        logger.info(
            "Initializing detector",
            extra={
                "model_path": cfg.model_path,
                "input_size": cfg.input_size,
                "confidence_threshold": cfg.confidence_threshold,
                "nms_threshold": cfg.nms_threshold,
            },
        )
        started = time.perf_counter()
        try:
            factory = _resolve_factory(self._backend)
            model_path = await ensure_model_available(cfg.model_path)
            loop = asyncio.get_running_loop()
            self._engine = await loop.run_in_executor(None, factory, model_path)
        except DetectorError as exc:
            return self._fail(exc)
        except Exception as exc:
            error = DetectorError(
                DetectorErrorKind.MODEL_LOAD_FAILED, f"Failed to load model: {exc}"
            )
            error.__cause__ = exc
            return self._fail(error)

        self._state = DetectorState.READY
        logger.info(
            "Detector ready",
            extra={"load_ms": round((time.perf_counter() - started) * 1000, 2)},
        )
        return True

    def _fail(self, error: DetectorError) -> bool:
        self._release_engine()
        self._state = DetectorState.FAILED
        self._last_error = error
        logger.error(
            "Detector initialization failed; continuing without detection",
            extra={"kind": error.kind.value, "error": error.message},
        )
        return False

    async def detect(self, frame: CameraFrame) -> list[DetectionResult]:
        """Run detection on a single frame.

        Raises:
            DetectorNotReadyError: If the detector is not READY.
            ValueError: If the frame has invalid dimensions.
        """
        if self._state is not DetectorState.READY or self._engine is None:
            raise DetectorNotReadyError(
                f"Detector is not ready (state={self._state.value})"
            )

        cfg = self._config
        engine = self._engine
        started = time.perf_counter()
        prepared = preprocess_frame(frame.pixels, cfg.input_size)

        try:
            loop = asyncio.get_running_loop()
            outputs = await loop.run_in_executor(
                None, engine.run, {engine.input_name: prepared.tensor}
            )
            detections = postprocess_detections(
                outputs[0],
                prepared.scale_x,
                prepared.scale_y,
                cfg,
                frame.timestamp,
                labels=self._labels,
                id_factory=self._id_factory,
            )
        except Exception as exc:
            logger.warning(
                "Detection failed; returning no detections",
                extra={
                    "kind": DetectorErrorKind.INFERENCE_FAILED.value,
                    "error": str(exc),
                },
            )
            return []

        self._detection_duration.record((time.perf_counter() - started) * 1000)
        self._detections_count.add(len(detections))
        return detections

    def update_config(self, **changes: Any) -> YOLOConfig:
        """Merge ``changes`` into the live configuration.

        Threshold and class changes apply from the next ``detect`` call. A new
        ``model_path`` only takes effect after ``dispose`` and ``initialize``.
        """
        self._config = self._config.replace(**changes)
        logger.debug("Detector config updated", extra={"changes": changes})
        return self._config

    def dispose(self) -> None:
        """Release the inference engine and return to UNINITIALIZED."""
        self._release_engine()
        self._state = DetectorState.UNINITIALIZED

    def _release_engine(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.release()

    async def __aenter__(self) -> YoloDetector:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.dispose()


class _OnnxRuntimeEngine:
    """ONNX Runtime session wrapper implementing ``InferenceEngine``."""

    def __init__(self, model_path: Path, providers: Optional[list[str]] = None) -> None:
        if ort is None:
            raise RuntimeUnavailableError(
                "onnxruntime is required for DETECTOR_BACKEND='onnx'. Install "
                "`onnxruntime` (CPU) or the appropriate GPU package such as "
                "`onnxruntime-gpu`."
            )
        if not model_path.exists():
            raise ModelUnavailableError(f"ONNX model not found at '{model_path}'")

        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = (
            ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        )
        resolved = providers if providers is not None else self._resolve_providers()
        self._session = ort.InferenceSession(
            str(model_path),
            providers=resolved or None,
            sess_options=sess_options,
        )
        self.input_name: str = self._session.get_inputs()[0].name
        self._output_names = [node.name for node in self._session.get_outputs()]

    def run(self, feeds: Mapping[str, np.ndarray]) -> list[np.ndarray]:
        if self._session is None:
            raise RuntimeError("ONNX session has been released")
        return self._session.run(self._output_names, dict(feeds))

    def release(self) -> None:
        # onnxruntime frees the native session when the last reference drops
        self._session = None

    @staticmethod
    def _resolve_providers() -> list[str]:
        """Choose ONNX Runtime execution providers, preferring GPU-capable ones."""
        configured = config.ONNX_PROVIDERS
        if configured:
            return configured
        available = ort.get_available_providers()
        preferred = [
            "CUDAExecutionProvider",
            "ROCMExecutionProvider",
            "CoreMLExecutionProvider",
            "DmlExecutionProvider",
            "CPUExecutionProvider",
        ]
        providers = [p for p in preferred if p in available]
        return providers or available


register_inference_backend("onnx", _OnnxRuntimeEngine)
