"""
Puck Herding Board — configuration

Every tunable lives on HerdConfig. Defaults describe the standard board
(880 x 460, eight pucks, five negative zones).
"""

from dataclasses import dataclass, replace
from typing import Tuple

# ──────────────────────────────────────────────
# Default negative-zone table (left → right, harshest first)
# ──────────────────────────────────────────────
DEFAULT_NEGATIVE_ZONES: Tuple[Tuple[str, float], ...] = (
    ("Low morale", 2.2),
    ("Damages", 2.1),
    ("Samsara events", 2.0),
    ("Time theft", 1.9),
    ("Low production", 1.8),
)

# Numerical floor for every normalization / divisor
EPSILON: float = 1e-4


@dataclass(frozen=True)
class HerdConfig:
    """Tunable constants for one herding session (board units = px, time = s)."""

    # Board
    puck_count: int = 8
    puck_radius: float = 16.0
    board_width: float = 880.0
    board_height: float = 460.0
    target_zone_width: float = 140.0

    # Movement
    max_speed: float = 140.0            # px/sec
    damping: float = 0.992              # per tick, unconditional
    wander_strength: float = 18.0       # accel px/sec^2
    wander_drift: float = 0.12          # max wander-vector perturbation per sec
    jitter_strength: float = 34.0       # px/sec kick
    jitter_chance_per_sec: float = 0.42

    # Goal-zone leak
    goal_leak_strength: float = 26.0
    goal_leak_floor: float = 0.35       # fraction of strength at the zone's inner edge

    # Stick
    stick_radius: float = 22.0
    stick_push_strength: float = 520.0
    stick_friction: float = 0.92
    stick_reach_margin: float = 6.0
    stick_drag_transfer: float = 0.08   # fraction of stick velocity added per tick
    stick_speed_multiple: float = 3.0   # stick |v| per axis <= multiple * max_speed

    # Collisions
    wall_bounce: float = 0.92
    puck_restitution: float = 0.9

    # Zones
    negative_zones: Tuple[Tuple[str, float], ...] = DEFAULT_NEGATIVE_ZONES
    negative_end_frac: float = 0.35
    improve_frac: float = 0.65
    improvement_mult: float = 1.25
    beyond_improvement_mult: float = 0.95

    # Alerts / hold
    alert_flash_ms: float = 450.0
    hold_inset_frac: float = 0.4

    # Frame pacing
    max_dt: float = 0.04

    # Spawning
    spawn_padding: float = 28.0
    spawn_velocity: float = 25.0
    wander_mult_range: Tuple[float, float] = (0.6, 1.6)
    jitter_mult_range: Tuple[float, float] = (0.6, 1.4)
    speed_mult_range: Tuple[float, float] = (0.7, 1.3)
    stubbornness_range: Tuple[float, float] = (0.8, 1.3)
    leak_mult_range: Tuple[float, float] = (0.7, 1.4)

    def __post_init__(self):
        # Normalise list input (e.g. from JSON) into hashable tuples
        object.__setattr__(
            self, "negative_zones",
            tuple((str(label), float(mult)) for label, mult in self.negative_zones),
        )
        self._validate()

    # ── Derived geometry ─────────────────────────────────────────────
    @property
    def target_x(self) -> float:
        """Inner (left) boundary of the target zone."""
        return self.board_width - self.target_zone_width

    @property
    def improve_x(self) -> float:
        return self.board_width * self.improve_frac

    @property
    def negative_end_x(self) -> float:
        return self.board_width * self.negative_end_frac

    @property
    def hold_threshold_x(self) -> float:
        """x a puck must reach to count as held inside the target zone."""
        return self.target_x + self.hold_inset_frac * self.puck_radius

    @property
    def stick_reach(self) -> float:
        return self.puck_radius + self.stick_radius + self.stick_reach_margin

    @property
    def alert_flash_seconds(self) -> float:
        return self.alert_flash_ms / 1000.0

    def replace(self, **changes) -> "HerdConfig":
        """Validated copy with the given fields changed."""
        return replace(self, **changes)

    # ── Validation ───────────────────────────────────────────────────
    def _validate(self) -> None:
        if self.puck_count < 0:
            raise ValueError(f"puck_count must be >= 0, got {self.puck_count}")
        for name in ("puck_radius", "board_width", "board_height",
                     "target_zone_width", "max_speed", "stick_radius", "max_dt"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if 2 * self.puck_radius > min(self.board_width, self.board_height):
            raise ValueError("board is smaller than one puck")
        if self.target_zone_width >= self.board_width:
            raise ValueError("target_zone_width must be narrower than the board")
        if not 0.0 < self.negative_end_frac <= self.improve_frac <= 1.0:
            raise ValueError("expected 0 < negative_end_frac <= improve_frac <= 1")
        if self.negative_end_x > self.target_x:
            raise ValueError("negative zones overlap the target zone")
        for name in ("damping", "wall_bounce", "stick_friction"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")
        if not 0.0 <= self.puck_restitution <= 1.0:
            raise ValueError(f"puck_restitution must be in [0, 1], got {self.puck_restitution}")
        if self.alert_flash_ms < 0:
            raise ValueError("alert_flash_ms must be >= 0")

        if not self.negative_zones:
            raise ValueError("negative_zones must not be empty")
        mults = [m for _, m in self.negative_zones]
        if any(b >= a for a, b in zip(mults, mults[1:])):
            raise ValueError(
                f"negative zone multipliers must strictly decrease left to right: {mults}")
        labels = [label for label, _ in self.negative_zones]
        if len(set(labels)) != len(labels):
            raise ValueError(f"negative zone labels must be unique: {labels}")

        for name in ("wander_mult_range", "jitter_mult_range", "speed_mult_range",
                     "stubbornness_range", "leak_mult_range"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ValueError(f"{name} has lo > hi: {(lo, hi)}")
        if self.stubbornness_range[0] <= 0:
            raise ValueError("stubbornness must stay positive (it divides the stick impulse)")

        spawn_hi = self.board_width - self.target_zone_width - self.spawn_padding * 1.2
        if self.puck_count and (spawn_hi < self.spawn_padding
                                or self.board_height - self.spawn_padding < self.spawn_padding):
            raise ValueError("spawn_padding leaves no room to place pucks")
