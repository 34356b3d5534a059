# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

import cv2
from pydantic import BaseModel

from common import __version__
from common.config import YOLOConfig, config
from common.core.detector import YoloDetector
from common.logging_config import configure_logging
from common.metrics import configure_metrics
from common.typing import CameraFrame, DetectionPayload
from common.utils.image import rgba_from_bgr
from haptics.controller import HapticController
from haptics.events import BatteryUpdate, HapticErrorEvent
from haptics.profiles import MATERIAL_PROFILES, get_profile
from haptics.transport import BleakGattTransport

logger = logging.getLogger(__name__)

SERVICE_NAME = "fingertip-overlay"


class DetectionsMessage(BaseModel):
    """JSON document printed by the ``detect`` command."""

    source: str
    timestamp: int
    width: int
    height: int
    detections: list[DetectionPayload]


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the overlay tools.

    Returns:
        Parsed arguments namespace with the selected ``command``.
    """
    parser = argparse.ArgumentParser(
        description="Object detection and fingertip haptic feedback tools"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Run object detection on an image")
    detect.add_argument("image", type=Path, help="Path to an image file")
    detect.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model path or URL. If not provided, uses MODEL_PATH.",
    )
    detect.add_argument(
        "--conf",
        type=float,
        default=None,
        help="Confidence threshold (default: DETECTOR_CONF_THRESHOLD)",
    )
    detect.add_argument(
        "--nms",
        type=float,
        default=None,
        help="NMS IoU threshold (default: DETECTOR_IOU_THRESHOLD)",
    )
    detect.add_argument(
        "--classes",
        type=str,
        default=None,
        help="Comma separated target classes (default: DETECTOR_TARGET_CLASSES)",
    )

    haptic = subparsers.add_parser(
        "haptic", help="Play a material profile on the fingertip device"
    )
    haptic.add_argument("material", choices=sorted(MATERIAL_PROFILES))
    haptic.add_argument(
        "--device",
        type=str,
        default=None,
        help=f"Advertised device name (default: {config.HAPTIC_DEVICE_NAME})",
    )
    haptic.add_argument(
        "--hold",
        type=float,
        default=None,
        help="Seconds to wait before stopping feedback (default: profile duration)",
    )

    calibrate = subparsers.add_parser("calibrate", help="Send a CALIBRATE command")
    calibrate.add_argument("--device", type=str, default=None)

    return parser.parse_args(argv)


def _detector_config(args: argparse.Namespace) -> YOLOConfig:
    cfg = YOLOConfig.from_env()
    changes: dict[str, object] = {}
    if args.model:
        changes["model_path"] = args.model
    if args.conf is not None:
        changes["confidence_threshold"] = args.conf
    if args.nms is not None:
        changes["nms_threshold"] = args.nms
    if args.classes:
        changes["target_classes"] = tuple(
            name.strip() for name in args.classes.split(",") if name.strip()
        )
    return cfg.replace(**changes) if changes else cfg


async def run_detect(args: argparse.Namespace) -> int:
    image = cv2.imread(str(args.image), cv2.IMREAD_COLOR)
    if image is None:
        logger.error("Could not read image", extra={"path": str(args.image)})
        return 1

    frame = CameraFrame(pixels=rgba_from_bgr(image), timestamp=int(time.time() * 1000))
    async with YoloDetector(_detector_config(args)) as detector:
        if not detector.initialized:
            error = detector.last_error
            logger.error(
                "Detector unavailable",
                extra={"kind": error.kind.value if error else None},
            )
            return 1
        detections = await detector.detect(frame)

    message = DetectionsMessage(
        source=str(args.image),
        timestamp=frame.timestamp,
        width=frame.width,
        height=frame.height,
        detections=[det.to_payload() for det in detections],
    )
    print(message.model_dump_json(indent=2, by_alias=True))
    return 0


async def run_haptic(args: argparse.Namespace) -> int:
    profile = get_profile(args.material)
    async with HapticController(BleakGattTransport()) as controller:
        controller.subscribe(
            HapticErrorEvent,
            lambda event: logger.error(
                "Device error", extra={"kind": event.kind.value, "error": event.message}
            ),
        )
        controller.subscribe(
            BatteryUpdate,
            lambda event: logger.info("Battery update", extra={"battery_level": event.level}),
        )
        if not await controller.connect(args.device):
            return 1

        ok = await controller.send_haptic_feedback(profile)
        hold = args.hold if args.hold is not None else profile.duration / 1000
        await asyncio.sleep(hold)
        await controller.stop_all_feedback()
    return 0 if ok else 1


async def run_calibrate(args: argparse.Namespace) -> int:
    async with HapticController(BleakGattTransport()) as controller:
        if not await controller.connect(args.device):
            return 1
        ok = await controller.calibrate()
    return 0 if ok else 1


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the overlay CLI."""
    args = parse_arguments(argv)
    configure_logging(service_name=SERVICE_NAME, service_version=__version__)
    configure_metrics(SERVICE_NAME, __version__)

    commands = {
        "detect": run_detect,
        "haptic": run_haptic,
        "calibrate": run_calibrate,
    }
    sys.exit(asyncio.run(commands[args.command](args)))


if __name__ == "__main__":
    main()
