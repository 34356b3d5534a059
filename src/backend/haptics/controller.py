# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from types import TracebackType
from typing import Callable, Optional

from common.config import config
from common.metrics import get_haptic_commands_count, get_haptic_failures_count
from common.protocols import GattLink, GattTransport
from haptics.device import (
    DEFAULT_CAPABILITIES,
    MAX_BATTERY_LEVEL,
    DeviceStatus,
    FingerDevice,
    decode_status,
)
from haptics.errors import HapticError, HapticErrorKind, TransportUnavailableError
from haptics.events import (
    BatteryUpdate,
    Connected,
    Disconnected,
    E,
    EventDispatcher,
    HapticErrorEvent,
    Listener,
    Unsubscribe,
)
from haptics.protocol import (
    BATTERY_CHARACTERISTIC_UUID,
    HAPTIC_SERVICE_UUID,
    STATUS_CHARACTERISTIC_UUID,
    TEMPERATURE_CHARACTERISTIC_UUID,
    VIBRATION_CHARACTERISTIC_UUID,
    CommandType,
    HapticProfile,
    TemperatureConfig,
    VibrationConfig,
    encode_calibrate,
    encode_stop_all,
    encode_temperature,
    encode_vibration,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Feature(str, Enum):
    """Device features, each backed by one characteristic."""

    VIBRATION = VIBRATION_CHARACTERISTIC_UUID
    TEMPERATURE = TEMPERATURE_CHARACTERISTIC_UUID
    BATTERY = BATTERY_CHARACTERISTIC_UUID
    STATUS = STATUS_CHARACTERISTIC_UUID


class HapticController:
    """Connection lifecycle and command dispatch for one fingertip device.

    The controller does not serialize concurrent sends: await each ``send_*``
    before issuing the next one against the same device.
    """

    def __init__(
        self,
        transport: GattTransport,
        events: Optional[EventDispatcher] = None,
    ) -> None:
        self._transport = transport
        self._events = events or EventDispatcher()
        self._link: Optional[GattLink] = None
        self._features: frozenset[Feature] = frozenset()
        self._device: Optional[FingerDevice] = None
        self._state = ConnectionState.DISCONNECTED
        self._commands_count = get_haptic_commands_count()
        self._failures_count = get_haptic_failures_count()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def device(self) -> Optional[FingerDevice]:
        return self._device

    @property
    def features(self) -> frozenset[Feature]:
        """Features whose characteristic was discovered on connect."""
        return self._features

    @property
    def events(self) -> EventDispatcher:
        return self._events

    def subscribe(self, event_type: type[E], listener: Callable[[E], None]) -> Unsubscribe:
        return self._events.subscribe(event_type, listener)

    def subscribe_all(self, listener: Listener) -> Unsubscribe:
        return self._events.subscribe_all(listener)

    def has_capability(self, capability: str) -> bool:
        if self._device is None:
            return False
        return bool(getattr(self._device.capabilities, capability, False))

    async def connect(self, device_name: Optional[str] = None) -> bool:
        """Find, connect and handshake with the named device.

        Returns False and emits a CONNECTION_FAILED error event when the
        transport is unavailable, no device matches, or the haptic service
        cannot be discovered. The link is always released on failure.
        """
        if self._state is ConnectionState.CONNECTED:
            return True
        if self._state is ConnectionState.CONNECTING:
            logger.warning("Connection attempt already in progress")
            return False

        name = device_name or config.HAPTIC_DEVICE_NAME
        self._state = ConnectionState.CONNECTING
        link: Optional[GattLink] = None
        try:
            try:
                link = await self._transport.request_device(name)
            except TransportUnavailableError as exc:
                raise HapticError(HapticErrorKind.CONNECTION_FAILED, str(exc)) from exc
            if link is None:
                raise HapticError(
                    HapticErrorKind.CONNECTION_FAILED, f"No device named '{name}' found"
                )

            self._link = link
            link.set_disconnect_handler(lambda: self._handle_disconnection(link))
            await link.connect()
            self._ensure_handshake(link)
            logger.info("Connected to GATT server", extra={"device_id": link.device_id})

            await link.discover_service(HAPTIC_SERVICE_UUID)
            self._ensure_handshake(link)
            self._features = await self._discover_features(link)
            self._ensure_handshake(link)
            self._device = await self._fetch_device_info(link, name)
            self._ensure_handshake(link)
            await self._start_battery_monitoring(link)
            self._ensure_handshake(link)
        except asyncio.CancelledError:
            await self._abort_connect(link)
            raise
        except Exception as exc:
            await self._abort_connect(link)
            message = exc.message if isinstance(exc, HapticError) else str(exc)
            logger.error(
                "Device connection failed", extra={"device_name": name, "error": message}
            )
            self._events.emit(
                HapticErrorEvent(HapticErrorKind.CONNECTION_FAILED, message)
            )
            return False

        self._state = ConnectionState.CONNECTED
        logger.info(
            "Haptic device connected",
            extra={
                "device_id": self._device.id,
                "firmware": self._device.firmware_version,
                "features": sorted(f.name for f in self._features),
            },
        )
        self._events.emit(Connected(self._device))
        return True

    def _ensure_handshake(self, link: GattLink) -> None:
        # A disconnect notification during the handshake resets the controller
        if self._link is not link or self._state is not ConnectionState.CONNECTING:
            raise HapticError(
                HapticErrorKind.CONNECTION_FAILED, "link dropped during handshake"
            )

    async def _discover_features(self, link: GattLink) -> frozenset[Feature]:
        found: set[Feature] = set()
        for feature in Feature:
            try:
                await link.discover_characteristic(HAPTIC_SERVICE_UUID, feature.value)
            except Exception as exc:
                logger.warning(
                    "Characteristic unavailable; feature disabled",
                    extra={"feature": feature.name, "error": str(exc)},
                )
                continue
            found.add(feature)
        return frozenset(found)

    async def _fetch_device_info(self, link: GattLink, fallback_name: str) -> FingerDevice:
        device_name = link.name or fallback_name
        if Feature.STATUS in self._features:
            try:
                status = decode_status(await link.read(STATUS_CHARACTERISTIC_UUID))
                return FingerDevice.from_status(link.device_id, device_name, status)
            except Exception as exc:
                logger.warning(
                    "Could not read device status; using defaults",
                    extra={"error": str(exc)},
                )
        return FingerDevice(
            id=link.device_id, name=device_name, capabilities=DEFAULT_CAPABILITIES
        )

    async def _start_battery_monitoring(self, link: GattLink) -> None:
        if Feature.BATTERY not in self._features:
            return
        try:
            await link.start_notify(BATTERY_CHARACTERISTIC_UUID, self._on_battery_notification)
        except Exception as exc:
            logger.warning(
                "Could not enable battery notifications", extra={"error": str(exc)}
            )

    async def _abort_connect(self, link: Optional[GattLink]) -> None:
        # Detach first so the transport's disconnect notification is ignored
        self._reset()
        if link is not None and link.is_connected:
            with contextlib.suppress(Exception):
                await link.disconnect()

    def _on_battery_notification(self, data: bytes) -> None:
        if not data or self._device is None:
            return
        level = data[0]
        if level > MAX_BATTERY_LEVEL:
            logger.warning("Battery level out of range", extra={"battery_level": level})
            level = MAX_BATTERY_LEVEL
        self._device.battery_level = level
        logger.debug("Battery level updated", extra={"battery_level": level})
        self._events.emit(BatteryUpdate(level))

    def _handle_disconnection(self, link: GattLink) -> None:
        if link is not self._link:
            return
        was_connected = self._state is ConnectionState.CONNECTED
        self._reset()
        if was_connected:
            logger.info("Haptic device disconnected", extra={"device_id": link.device_id})
            self._events.emit(Disconnected())

    def _reset(self) -> None:
        if self._device is not None:
            self._device.connected = False
        self._link = None
        self._device = None
        self._features = frozenset()
        self._state = ConnectionState.DISCONNECTED

    async def disconnect(self) -> None:
        """Ask the transport to disconnect.

        State is cleared once the transport reports the link as dropped.
        """
        link = self._link
        if link is None or self._state is not ConnectionState.CONNECTED:
            return
        if link.is_connected:
            await link.disconnect()
        else:
            # Link already gone without a notification reaching us
            self._handle_disconnection(link)

    async def send_vibration(self, cfg: VibrationConfig) -> bool:
        """Send a VIBRATION frame.

        Returns False without writing when disconnected or the device lacks
        vibration support. Raises ``FrameEncodeError`` for out-of-range values.
        """
        if not self.connected or not self.has_capability("vibration"):
            logger.warning("Device not connected or vibration unsupported")
            return False
        frame = encode_vibration(cfg)
        return await self._transmit(
            Feature.VIBRATION, frame, CommandType.VIBRATION, HapticErrorKind.VIBRATION_FAILED
        )

    async def send_temperature(self, cfg: TemperatureConfig) -> bool:
        """Send a TEMPERATURE frame; same gating and errors as ``send_vibration``."""
        if not self.connected or not self.has_capability("temperature"):
            logger.warning("Device not connected or temperature unsupported")
            return False
        frame = encode_temperature(cfg)
        return await self._transmit(
            Feature.TEMPERATURE,
            frame,
            CommandType.TEMPERATURE,
            HapticErrorKind.TEMPERATURE_FAILED,
        )

    async def send_haptic_feedback(self, profile: HapticProfile) -> bool:
        results: list[bool] = []
        if profile.vibration is not None:
            results.append(await self.send_vibration(profile.vibration))
        if profile.temperature is not None:
            results.append(await self.send_temperature(profile.temperature))
        return all(results)

    async def stop_all_feedback(self) -> bool:
        if not self.connected:
            return False
        return await self._transmit(
            Feature.VIBRATION, encode_stop_all(), CommandType.STOP_ALL, HapticErrorKind.STOP_FAILED
        )

    async def calibrate(self) -> bool:
        if not self.connected:
            return False
        return await self._transmit(
            Feature.VIBRATION,
            encode_calibrate(),
            CommandType.CALIBRATE,
            HapticErrorKind.CALIBRATION_FAILED,
        )

    async def refresh_status(self) -> Optional[DeviceStatus]:
        """Re-read the status characteristic and update battery and capabilities."""
        link = self._link
        if not self.connected or link is None or Feature.STATUS not in self._features:
            return None
        try:
            status = decode_status(await link.read(STATUS_CHARACTERISTIC_UUID))
        except Exception as exc:
            logger.warning("Status refresh failed", extra={"error": str(exc)})
            self._events.emit(HapticErrorEvent(HapticErrorKind.STATUS_FAILED, str(exc)))
            return None

        if self._device is not None:
            previous = self._device.battery_level
            self._device.battery_level = status.battery_level
            self._device.firmware_version = status.firmware_version
            self._device.capabilities = status.capabilities
            if previous != status.battery_level:
                self._events.emit(BatteryUpdate(status.battery_level))
        return status

    async def _transmit(
        self,
        feature: Feature,
        frame: bytes,
        command: CommandType,
        error_kind: HapticErrorKind,
    ) -> bool:
        link = self._link
        labels = {"command": command.name}
        if link is None or feature not in self._features:
            message = f"{feature.name.lower()} characteristic unavailable"
            logger.warning(message, extra={"command": command.name})
            self._failures_count.add(1, labels)
            self._events.emit(HapticErrorEvent(error_kind, message))
            return False
        try:
            await link.write(feature.value, frame)
        except Exception as exc:
            logger.error(
                "Failed to send haptic command",
                extra={"command": command.name, "error": str(exc)},
            )
            self._failures_count.add(1, labels)
            self._events.emit(HapticErrorEvent(error_kind, str(exc)))
            return False
        self._commands_count.add(1, labels)
        logger.debug("Haptic command sent", extra={"command": command.name, "frame": frame.hex()})
        return True

    async def __aenter__(self) -> HapticController:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        with contextlib.suppress(Exception):
            await self.disconnect()
