"""Ephemeral step session between a start/resume and a save/reset."""

from __future__ import annotations

import math
from dataclasses import dataclass

from kilometree.core.state import STEP_LENGTH_KM


@dataclass
class TrackingSession:
    current_steps: int = 0

    def add(self, steps: int) -> int:
        if steps > 0:
            self.current_steps += steps
        return self.current_steps

    def reset(self) -> None:
        self.current_steps = 0

    @property
    def distance_km(self) -> float:
        return self.current_steps * STEP_LENGTH_KM

    @property
    def saplings(self) -> int:
        return math.floor(self.distance_km)
