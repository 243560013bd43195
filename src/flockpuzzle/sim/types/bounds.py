from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.errors import InvalidInput


@dataclass(frozen=True, slots=True)
class WorldBounds:
    width: float
    height: float

    def __post_init__(self) -> None:
        for name, value in (("width", self.width), ("height", self.height)):
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise InvalidInput(f"world {name} must be a positive finite number, got {value!r}")

    @property
    def half_width(self) -> float:
        return self.width * 0.5

    @property
    def half_height(self) -> float:
        return self.height * 0.5
