# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Predefined haptic profiles for the virtual materials in the AR scene."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from haptics.protocol import (
    HapticProfile,
    TemperatureConfig,
    VibrationConfig,
    VibrationPattern,
)

MATERIAL_PROFILES: Mapping[str, HapticProfile] = MappingProxyType(
    {
        # hard material
        "stone": HapticProfile(
            vibration=VibrationConfig(
                intensity=0.9, frequency=200, duration=100, pattern=VibrationPattern.SHARP
            ),
            temperature=TemperatureConfig(target=18, ramp_time=200, hold_time=300),
            duration=400,
            intensity=0.9,
        ),
        # soft material
        "sponge": HapticProfile(
            vibration=VibrationConfig(
                intensity=0.3, frequency=50, duration=300, pattern=VibrationPattern.SOFT
            ),
            temperature=TemperatureConfig(target=28, ramp_time=800, hold_time=500),
            duration=800,
            intensity=0.3,
        ),
        "wood": HapticProfile(
            vibration=VibrationConfig(
                intensity=0.6, frequency=120, duration=200, pattern=VibrationPattern.MEDIUM
            ),
            temperature=TemperatureConfig(target=22, ramp_time=400, hold_time=400),
            duration=600,
            intensity=0.6,
        ),
        # cold and hard
        "metal": HapticProfile(
            vibration=VibrationConfig(
                intensity=0.8, frequency=180, duration=150, pattern=VibrationPattern.SHARP
            ),
            temperature=TemperatureConfig(target=15, ramp_time=300, hold_time=400),
            duration=550,
            intensity=0.8,
        ),
    }
)


def get_profile(material: str) -> HapticProfile:
    """Return the profile for ``material`` (case-insensitive).

    Raises:
        KeyError: If no profile exists for the material.
    """
    key = material.strip().lower()
    try:
        return MATERIAL_PROFILES[key]
    except KeyError:
        known = ", ".join(sorted(MATERIAL_PROFILES))
        raise KeyError(f"Unknown material '{material}'. Known materials: {known}") from None
