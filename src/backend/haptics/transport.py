# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Bluetooth Low Energy transport built on bleak."""

from __future__ import annotations

import logging
from typing import Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from common.config import config
from common.protocols import DisconnectCallback, NotificationCallback
from haptics.errors import TransportUnavailableError

logger = logging.getLogger(__name__)


class BleakGattLink:
    """``GattLink`` over a single ``BleakClient`` connection."""

    def __init__(self, device: BLEDevice, connect_timeout: Optional[float] = None) -> None:
        self._device = device
        self._on_disconnect: Optional[DisconnectCallback] = None
        self._client = BleakClient(
            device,
            disconnected_callback=self._handle_disconnect,
            timeout=connect_timeout or config.HAPTIC_CONNECT_TIMEOUT,
        )

    @property
    def device_id(self) -> str:
        return self._device.address

    @property
    def name(self) -> Optional[str]:
        return self._device.name

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    def set_disconnect_handler(self, handler: DisconnectCallback) -> None:
        self._on_disconnect = handler

    def _handle_disconnect(self, _client: BleakClient) -> None:
        logger.info("BLE link dropped", extra={"device_id": self.device_id})
        if self._on_disconnect is not None:
            self._on_disconnect()

    async def connect(self) -> None:
        await self._client.connect()

    async def disconnect(self) -> None:
        await self._client.disconnect()

    async def discover_service(self, service_uuid: str) -> None:
        if self._client.services.get_service(service_uuid) is None:
            raise LookupError(f"Service {service_uuid} not found on {self.device_id}")

    async def discover_characteristic(self, service_uuid: str, char_uuid: str) -> None:
        service = self._client.services.get_service(service_uuid)
        if service is None or service.get_characteristic(char_uuid) is None:
            raise LookupError(
                f"Characteristic {char_uuid} not found in service {service_uuid}"
            )

    async def write(self, char_uuid: str, data: bytes) -> None:
        await self._client.write_gatt_char(char_uuid, data, response=True)

    async def read(self, char_uuid: str) -> bytes:
        return bytes(await self._client.read_gatt_char(char_uuid))

    async def start_notify(self, char_uuid: str, callback: NotificationCallback) -> None:
        def forward(_char: BleakGATTCharacteristic, data: bytearray) -> None:
            callback(bytes(data))

        await self._client.start_notify(char_uuid, forward)


class BleakGattTransport:
    """``GattTransport`` scanning for peripherals by advertised name."""

    def __init__(
        self,
        scan_timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
    ) -> None:
        self._scan_timeout = scan_timeout or config.HAPTIC_SCAN_TIMEOUT
        self._connect_timeout = connect_timeout

    async def request_device(self, name: str) -> Optional[BleakGattLink]:
        logger.info(
            "Scanning for haptic device",
            extra={"device_name": name, "timeout": self._scan_timeout},
        )
        try:
            device = await BleakScanner.find_device_by_name(
                name, timeout=self._scan_timeout
            )
        except (BleakError, OSError) as exc:
            raise TransportUnavailableError(f"Bluetooth is unavailable: {exc}") from exc

        if device is None:
            return None
        return BleakGattLink(device, connect_timeout=self._connect_timeout)
