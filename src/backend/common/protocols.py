# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Callable, Mapping, Optional, Protocol, runtime_checkable

import numpy as np

NotificationCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[], None]


@runtime_checkable
class InferenceEngine(Protocol):
    """Synchronous interface implemented by model runtime adapters."""

    input_name: str

    def run(self, feeds: Mapping[str, np.ndarray]) -> list[np.ndarray]:
        """Run the network on named input tensors and return its outputs."""
        ...

    def release(self) -> None:
        """Free the runtime session. Safe to call more than once."""
        ...


@runtime_checkable
class GattLink(Protocol):
    """A single peripheral reachable over a characteristic-based wireless link."""

    @property
    def device_id(self) -> str: ...

    @property
    def name(self) -> Optional[str]: ...

    @property
    def is_connected(self) -> bool: ...

    def set_disconnect_handler(self, handler: DisconnectCallback) -> None:
        """Register the callback fired when the link drops, for any reason."""
        ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None:
        """Request a disconnect; completion is reported via the disconnect handler."""
        ...

    async def discover_service(self, service_uuid: str) -> None:
        """Raise ``LookupError`` if the service is not exposed by the peripheral."""
        ...

    async def discover_characteristic(self, service_uuid: str, char_uuid: str) -> None:
        """Raise ``LookupError`` if the characteristic is not part of the service."""
        ...

    async def write(self, char_uuid: str, data: bytes) -> None: ...

    async def read(self, char_uuid: str) -> bytes: ...

    async def start_notify(self, char_uuid: str, callback: NotificationCallback) -> None:
        ...


@runtime_checkable
class GattTransport(Protocol):
    """Entry point of the wireless stack: finds peripherals by name."""

    async def request_device(self, name: str) -> Optional[GattLink]:
        """Return a link for the first device advertising ``name``, or None.

        Raises:
            TransportUnavailableError: If the host has no usable wireless adapter.
        """
        ...
