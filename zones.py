"""
Zone table + classifier.

Layout along x (default board):
  [0, 308)     five negative zones, harshest on the left
  [308, 740)   improvement zone (multiplier 1.25 left of 572, 0.95 beyond)
  [740, 880]   target zone
"""

import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple

from herd_config import HerdConfig


class ZoneKind(enum.Enum):
    NEGATIVE = 0
    IMPROVEMENT = 1
    TARGET = 2


@dataclass(frozen=True)
class Zone:
    """Contiguous x-interval [x0, x1) with a label and force multiplier."""
    label: str
    kind: ZoneKind
    x0: float
    x1: float
    mult: float

    def contains(self, x: float) -> bool:
        return self.x0 <= x < self.x1


@dataclass(frozen=True)
class ZoneClassification:
    kind: ZoneKind
    zone: Optional[Zone]            # the negative zone, None elsewhere
    multiplier: float
    in_improvement_band: bool

    @property
    def negative_label(self) -> Optional[str]:
        return self.zone.label if self.zone is not None else None


IMPROVEMENT_LABEL = "Improvement"
TARGET_LABEL = "Target"


class ZoneTable:
    """Static zone layout derived from a HerdConfig."""

    def __init__(self, config: HerdConfig):
        self.config = config
        self.negative_zones: List[Zone] = self._build_negative(config)
        self.improvement = Zone(IMPROVEMENT_LABEL, ZoneKind.IMPROVEMENT,
                                config.negative_end_x, config.target_x,
                                config.improvement_mult)
        self.target = Zone(TARGET_LABEL, ZoneKind.TARGET,
                           config.target_x, config.board_width,
                           config.beyond_improvement_mult)

    @staticmethod
    def _build_negative(config: HerdConfig) -> List[Zone]:
        n = len(config.negative_zones)
        seg = config.negative_end_x / n
        zones = []
        for i, (label, mult) in enumerate(config.negative_zones):
            x0 = i * seg
            # last segment ends exactly on the boundary (no float gap)
            x1 = config.negative_end_x if i == n - 1 else (i + 1) * seg
            zones.append(Zone(label, ZoneKind.NEGATIVE, x0, x1, mult))
        return zones

    @property
    def zones(self) -> List[Zone]:
        """All zones in left-to-right order."""
        return [*self.negative_zones, self.improvement, self.target]

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(z.label for z in self.negative_zones)

    def negative_zone_at(self, x: float) -> Optional[Zone]:
        if x < self.negative_zones[0].x0:
            return self.negative_zones[0]
        for zone in self.negative_zones:
            if zone.contains(x):
                return zone
        return None

    def classify(self, x: float) -> ZoneClassification:
        """Total, idempotent classification of a board x-coordinate."""
        cfg = self.config
        neg = self.negative_zone_at(x)
        in_band = x < cfg.improve_x
        if neg is not None:
            return ZoneClassification(ZoneKind.NEGATIVE, neg, neg.mult, in_band)

        mult = cfg.improvement_mult if in_band else cfg.beyond_improvement_mult
        kind = ZoneKind.TARGET if x >= cfg.target_x else ZoneKind.IMPROVEMENT
        return ZoneClassification(kind, None, mult, in_band)
