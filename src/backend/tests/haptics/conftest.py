# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import pytest

from haptics.controller import HapticController
from haptics.events import HapticEvent
from tests.test_utils import FakeGattLink, FakeGattTransport


@pytest.fixture
def link() -> FakeGattLink:
    return FakeGattLink()


@pytest.fixture
def transport(link: FakeGattLink) -> FakeGattTransport:
    return FakeGattTransport(link)


@pytest.fixture
def controller(transport: FakeGattTransport) -> HapticController:
    return HapticController(transport)


@pytest.fixture
def events(controller: HapticController) -> list[HapticEvent]:
    received: list[HapticEvent] = []
    controller.subscribe_all(received.append)
    return received
