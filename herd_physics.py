"""
Puck Herding Board — Physics Engine
Wander / goal-leak / jitter / stick forces, Euler integration, wall
containment and pairwise puck collision.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from herd_config import EPSILON, HerdConfig
from randomness import RandomSource
from zones import ZoneClassification


@dataclass
class Puck:
    """Autonomous puck. Personality coefficients are fixed at creation."""
    id: str
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    wander: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    wander_mult: float = 1.0
    jitter_mult: float = 1.0
    speed_mult: float = 1.0
    stubbornness: float = 1.0
    leak_mult: float = 1.0

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)
        self.wander = np.array(self.wander, dtype=float)

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))


@dataclass
class Stick:
    """User-controlled actuator in board coordinates."""
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    active: bool = False
    last_move_t: float = 0.0


def _normalize(v: np.ndarray) -> np.ndarray:
    return v / max(float(np.linalg.norm(v)), EPSILON)


# ──────────────────────────────────────────────
# Entity Factory
# ──────────────────────────────────────────────
def make_pucks(config: HerdConfig, rng: RandomSource) -> List[Puck]:
    """Spawn ``config.puck_count`` pucks in the safe region left of the target zone."""
    pad = config.spawn_padding
    x_hi = config.board_width - config.target_zone_width - pad * 1.2
    v0 = config.spawn_velocity
    pucks = []
    for i in range(config.puck_count):
        pucks.append(Puck(
            id=f"p{i}",
            position=[rng.uniform(pad, x_hi), rng.uniform(pad, config.board_height - pad)],
            velocity=[rng.uniform(-v0, v0), rng.uniform(-v0, v0)],
            wander=[rng.uniform(-1.0, 1.0), rng.uniform(-1.0, 1.0)],
            wander_mult=rng.uniform(*config.wander_mult_range),
            jitter_mult=rng.uniform(*config.jitter_mult_range),
            speed_mult=rng.uniform(*config.speed_mult_range),
            stubbornness=rng.uniform(*config.stubbornness_range),
            leak_mult=rng.uniform(*config.leak_mult_range),
        ))
    return pucks


class HerdPhysics:
    """Per-tick puck physics. Stateless apart from config, rng and the event list."""

    def __init__(self, config: HerdConfig, rng: RandomSource):
        self.config = config
        self.rng = rng
        self.events: list = []

    # ──────────────────────────────────────────
    # Force Model
    # ──────────────────────────────────────────
    def apply_wander(self, puck: Puck, zone_mult: float, dt: float) -> None:
        """Drift the wander vector, then accelerate along it."""
        cfg = self.config
        drift = cfg.wander_drift
        puck.wander[0] = min(1.0, max(-1.0, puck.wander[0] + self.rng.uniform(-drift, drift) * dt))
        puck.wander[1] = min(1.0, max(-1.0, puck.wander[1] + self.rng.uniform(-drift, drift) * dt))
        direction = _normalize(puck.wander)
        force = cfg.wander_strength * puck.wander_mult * zone_mult
        puck.velocity = puck.velocity + direction * force * dt

    def apply_goal_leak(self, puck: Puck, dt: float) -> None:
        """Pull pucks back out of the target zone; deeper pulls harder."""
        cfg = self.config
        if puck.position[0] <= cfg.target_x:
            return
        depth = min(1.0, max(0.0, (puck.position[0] - cfg.target_x) / cfg.target_zone_width))
        scale = cfg.goal_leak_floor + (1.0 - cfg.goal_leak_floor) * depth
        puck.velocity[0] -= cfg.goal_leak_strength * puck.leak_mult * scale * dt

    def apply_jitter(self, puck: Puck, zone_mult: float, dt: float) -> bool:
        """Bernoulli trial for a discrete velocity kick. Returns True if it fired."""
        cfg = self.config
        chance = cfg.jitter_chance_per_sec * puck.jitter_mult * zone_mult * dt
        if self.rng.uniform(0.0, 1.0) >= chance:
            return False
        kick = _normalize(np.array([self.rng.uniform(-1.0, 1.0), self.rng.uniform(-1.0, 1.0)]))
        # not scaled by dt: jitter is an impulse
        puck.velocity = puck.velocity + kick * cfg.jitter_strength * puck.jitter_mult
        return True

    def apply_stick(self, puck: Puck, stick: Stick, dt: float) -> bool:
        """Repel a puck within reach of an active stick. Returns True on contact."""
        if not stick.active:
            return False
        cfg = self.config
        offset = puck.position - np.array([stick.x, stick.y])
        dist = float(np.linalg.norm(offset))
        reach = cfg.stick_reach
        if dist >= reach:
            return False
        normal = _normalize(offset)
        impulse = cfg.stick_push_strength * (1.0 - dist / reach) / puck.stubbornness
        # drag transfer is per tick, deliberately not scaled by dt
        drag = np.array([stick.vx, stick.vy]) * cfg.stick_drag_transfer
        puck.velocity = puck.velocity + normal * impulse * dt + drag
        return True

    def cap_speed(self, puck: Puck) -> None:
        max_sp = self.config.max_speed * puck.speed_mult
        sp = puck.speed
        if sp > max_sp:
            puck.velocity = puck.velocity / sp * max_sp

    # ──────────────────────────────────────────
    # Integrator & Containment
    # ──────────────────────────────────────────
    def integrate(self, puck: Puck, dt: float) -> None:
        """Explicit Euler step followed by unconditional damping."""
        puck.position = puck.position + puck.velocity * dt
        puck.velocity = puck.velocity * self.config.damping

    def contain(self, puck: Puck) -> None:
        """Clamp to [r, dim - r] per axis with a lossy bounce."""
        cfg = self.config
        r = cfg.puck_radius
        bounce = cfg.wall_bounce
        for axis, dim in ((0, cfg.board_width), (1, cfg.board_height)):
            if puck.position[axis] < r:
                puck.position[axis] = r
                impact = abs(puck.velocity[axis])
                puck.velocity[axis] = impact * bounce
                self.events.append({"type": "wall", "puck": puck.id, "speed": float(impact)})
            elif puck.position[axis] > dim - r:
                puck.position[axis] = dim - r
                impact = abs(puck.velocity[axis])
                puck.velocity[axis] = -impact * bounce
                self.events.append({"type": "wall", "puck": puck.id, "speed": float(impact)})

    # ──────────────────────────────────────────
    # Collision Resolver
    # ──────────────────────────────────────────
    def resolve_pair(self, a: Puck, b: Puck) -> bool:
        """Positional correction plus equal-mass restitution impulse.

        Returns True if the pair overlapped.
        """
        min_dist = 2 * self.config.puck_radius
        diff = b.position - a.position
        dist = float(np.linalg.norm(diff))
        if dist >= min_dist:
            return False

        if dist < EPSILON:
            # coincident centres: separate along +x
            normal = np.array([1.0, 0.0])
        else:
            normal = diff / dist
        overlap = min_dist - dist
        a.position = a.position - normal * (overlap * 0.5)
        b.position = b.position + normal * (overlap * 0.5)

        vel_along_normal = float(np.dot(b.velocity - a.velocity, normal))
        if vel_along_normal >= 0:
            return True

        e = self.config.puck_restitution
        j = -(1 + e) * vel_along_normal / 2
        impulse = j * normal
        a.velocity = a.velocity - impulse
        b.velocity = b.velocity + impulse
        self.events.append({
            "type": "puck_puck", "puck1": a.id, "puck2": b.id,
            "speed": abs(vel_along_normal),
        })
        return True

    def resolve_collisions(self, pucks: List[Puck]) -> int:
        """Sequential pass over ascending index pairs. Returns the overlap count."""
        hits = 0
        for i in range(len(pucks)):
            for j in range(i + 1, len(pucks)):
                if self.resolve_pair(pucks[i], pucks[j]):
                    hits += 1
        return hits

    # ──────────────────────────────────────────
    # Main Update
    # ──────────────────────────────────────────
    def advance_puck(self, puck: Puck, zone: ZoneClassification,
                     stick: Stick, dt: float) -> None:
        """Forces → speed cap → integrate → contain, for one puck."""
        self.apply_wander(puck, zone.multiplier, dt)
        self.apply_goal_leak(puck, dt)
        self.apply_jitter(puck, zone.multiplier, dt)
        self.apply_stick(puck, stick, dt)
        self.cap_speed(puck)
        self.integrate(puck, dt)
        self.contain(puck)

    def update(self, pucks: List[Puck], zones: List[ZoneClassification],
               stick: Optional[Stick], dt: float) -> None:
        """Advance all pucks by dt, then resolve collisions once."""
        self.events.clear()
        stick = stick if stick is not None else Stick()
        for puck, zone in zip(pucks, zones):
            self.advance_puck(puck, zone, stick, dt)
        self.resolve_collisions(pucks)
        # positional correction can push a puck through a wall
        for puck in pucks:
            self.contain(puck)
