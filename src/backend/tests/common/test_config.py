# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import pytest

from common.config import YOLOConfig, config


def test_defaults() -> None:
    cfg = YOLOConfig(model_path="yolo.onnx")
    assert cfg.confidence_threshold == 0.5
    assert cfg.nms_threshold == 0.4
    assert cfg.target_classes == ()
    assert cfg.input_size == 640


def test_target_classes_become_tuple() -> None:
    cfg = YOLOConfig(model_path="yolo.onnx", target_classes=["person", "cup"])
    assert cfg.target_classes == ("person", "cup")


@pytest.mark.parametrize(
    "overrides",
    [
        {"model_path": " "},
        {"confidence_threshold": 1.5},
        {"confidence_threshold": -0.1},
        {"nms_threshold": 2.0},
        {"input_size": 0},
    ],
    ids=["blank_model", "conf_high", "conf_negative", "nms_high", "zero_size"],
)
def test_invalid_values_rejected(overrides: dict) -> None:
    values = {"model_path": "yolo.onnx", **overrides}
    with pytest.raises(ValueError):
        YOLOConfig(**values)


def test_replace_validates() -> None:
    cfg = YOLOConfig(model_path="yolo.onnx")
    updated = cfg.replace(confidence_threshold=0.7)
    assert updated.confidence_threshold == 0.7
    assert cfg.confidence_threshold == 0.5
    with pytest.raises(ValueError):
        cfg.replace(nms_threshold=-1.0)


def test_from_env_uses_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MODEL_PATH", "custom.onnx")
    monkeypatch.setattr(config, "DETECTOR_CONF_THRESHOLD", 0.25)
    monkeypatch.setattr(config, "DETECTOR_TARGET_CLASSES", ["cup"])

    cfg = YOLOConfig.from_env()

    assert cfg.model_path == "custom.onnx"
    assert cfg.confidence_threshold == 0.25
    assert cfg.target_classes == ("cup",)
