"""
HerdController — Layer 2 (Frame Orchestrator)

Owns all per-tick state: pucks, stick, alert/hold trackers, session clock.
Outer layers (server.py, tests, presets) talk to it through:
  ctrl.step(dt, stick=None)  — advance one frame → (FrameSnapshot, events)
  ctrl.submit(cmd)           — "pause" | "resume" | "toggle_pause" | "reset",
                               applied at the next tick boundary
  ctrl.press_stick / move_stick / release_stick / set_stick
  ctrl.snapshot              — immutable view of the last published frame
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from herd_config import HerdConfig
from herd_physics import HerdPhysics, Puck, Stick, make_pucks
from randomness import NumpyRandomSource, RandomSource
from trackers import AlertTracker, HoldTracker
from zones import ZoneTable

logger = logging.getLogger(__name__)

COMMANDS = ("pause", "resume", "toggle_pause", "reset")


@dataclass(frozen=True)
class PuckView:
    id: str
    x: float
    y: float
    vx: float
    vy: float


@dataclass(frozen=True)
class StickView:
    x: float
    y: float
    vx: float
    vy: float
    active: bool


@dataclass(frozen=True)
class FrameSnapshot:
    """Published once per tick; presentation reads, never mutates."""
    time: float
    pucks: Tuple[PuckView, ...]
    alerts: FrozenSet[str]
    hold_seconds: float
    best_hold_seconds: float
    all_held: bool
    in_target_count: int
    paused: bool
    stick: StickView
    frame: int


class HerdController:
    """Layer 2: command channel + per-frame orchestration."""

    def __init__(self, config: Optional[HerdConfig] = None,
                 rng: Optional[RandomSource] = None,
                 pucks: Optional[List[Puck]] = None):
        self.config = config or HerdConfig()
        # config restored by reset(); scenarios only override self.config
        self.session_config = self.config
        self.rng = rng if rng is not None else NumpyRandomSource()
        self.zones = ZoneTable(self.config)
        self.engine = HerdPhysics(self.config, self.rng)

        self.clock = 0.0
        self.paused = False
        self.frame = 0
        self._commands: List[str] = []

        self.alerts = AlertTracker(self.config.alert_flash_seconds)
        self.hold = HoldTracker()
        self.stick = self._home_stick()
        self.pucks: List[Puck] = pucks if pucks is not None else make_pucks(self.config, self.rng)

        self.events: List[dict] = []            # last tick's events
        self.physics_events: List[dict] = []    # last tick's wall / puck impacts
        self.snapshot = self._publish()

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step(self, dt: float, stick: Optional[Stick] = None) -> Tuple[FrameSnapshot, List[dict]]:
        """Advance one frame by ``dt`` seconds of real time.

        ``stick``, if given, replaces the stick state before the tick reads it.
        """
        events: List[dict] = []
        self._drain_commands(events)

        if stick is not None:
            self.set_stick(stick.x, stick.y, stick.vx, stick.vy, stick.active)

        if self.paused:
            self.events = events
            self.physics_events = []
            self.snapshot = self._publish()
            return self.snapshot, events

        cfg = self.config
        self.clock += max(0.0, dt)
        now = self.clock
        sim_dt = min(max(dt, 0.0), cfg.max_dt)
        self.frame += 1

        stick_now = replace(self.stick)
        classifications = [self.zones.classify(p.position[0]) for p in self.pucks]
        self.engine.update(self.pucks, classifications, stick_now, sim_dt)
        self.physics_events = list(self.engine.events)

        self.stick.vx *= cfg.stick_friction
        self.stick.vy *= cfg.stick_friction

        entries, alerts_changed = self.alerts.update(
            ((p.id, c.negative_label) for p, c in zip(self.pucks, classifications)), now)
        for puck_id, label in entries:
            logger.debug("zone entered: %s -> %s", puck_id, label)
            events.append({"type": "zone_entered", "puck": puck_id, "zone": label})
        if alerts_changed:
            events.append({"type": "zone_alerts", "zones": sorted(self.alerts.active)})

        transition = self.hold.update(self._all_in_target(), now)
        if transition == "started":
            events.append({"type": "hold_started", "time": now})
        elif transition == "broken":
            events.append({"type": "hold_broken", "seconds": self.hold.last_seconds})
            logger.info("hold broken after %.2fs (best %.2fs)",
                        self.hold.last_seconds, self.hold.best_seconds)

        self.events = events
        self.snapshot = self._publish()
        return self.snapshot, events

    def _all_in_target(self) -> bool:
        threshold = self.config.hold_threshold_x
        return all(p.position[0] >= threshold for p in self.pucks)

    def in_target_count(self) -> int:
        threshold = self.config.hold_threshold_x
        return sum(1 for p in self.pucks if p.position[0] >= threshold)

    def _publish(self) -> FrameSnapshot:
        s = self.stick
        return FrameSnapshot(
            time=self.clock,
            pucks=tuple(PuckView(p.id, p.x, p.y, float(p.velocity[0]), float(p.velocity[1]))
                        for p in self.pucks),
            alerts=self.alerts.active,
            hold_seconds=self.hold.seconds,
            best_hold_seconds=self.hold.best_seconds,
            all_held=self.hold.holding,
            in_target_count=self.in_target_count(),
            paused=self.paused,
            stick=StickView(s.x, s.y, s.vx, s.vy, s.active),
            frame=self.frame,
        )

    # ──────────────────────────────────────────────────────────────────────────
    # Commands (applied at the next tick boundary)
    # ──────────────────────────────────────────────────────────────────────────

    def submit(self, cmd: str) -> None:
        if cmd not in COMMANDS:
            raise ValueError(f"unknown command {cmd!r}; expected one of {COMMANDS}")
        self._commands.append(cmd)

    def pause(self) -> None:
        self.submit("pause")

    def resume(self) -> None:
        self.submit("resume")

    def toggle_pause(self) -> None:
        self.submit("toggle_pause")

    def request_reset(self) -> None:
        self.submit("reset")

    def _drain_commands(self, events: List[dict]) -> None:
        commands, self._commands = self._commands, []
        for cmd in commands:
            if cmd == "reset":
                self.reset()
                events.append({"type": "reset"})
                continue
            paused = {"pause": True, "resume": False,
                      "toggle_pause": not self.paused}[cmd]
            if paused != self.paused:
                self.paused = paused
                logger.info("simulation %s at t=%.3f", "paused" if paused else "resumed",
                            self.clock)
                events.append({"type": "paused" if paused else "resumed"})

    # ──────────────────────────────────────────────────────────────────────────
    # Reset / configuration
    # ──────────────────────────────────────────────────────────────────────────

    def _home_stick(self) -> Stick:
        return Stick(x=self.config.board_width * 0.15, y=self.config.board_height * 0.5,
                     last_move_t=self.clock)

    def reset(self, seed: Optional[int] = None) -> np.ndarray:
        """Replace pucks, stick and trackers immediately. Returns the obs vector.

        Restores the session config if a scenario overrode it. ``seed`` swaps
        in a fresh NumpyRandomSource before spawning.
        """
        if seed is not None:
            self.rng = NumpyRandomSource(seed)
        self._apply_config(self.session_config)
        self.pucks = make_pucks(self.config, self.rng)
        self.stick = self._home_stick()
        self.alerts = AlertTracker(self.config.alert_flash_seconds)
        self.hold = HoldTracker()
        self.events = []
        self.physics_events = []
        self.snapshot = self._publish()
        logger.info("reset: %d pucks (seed=%s)", len(self.pucks), seed)
        return self.get_obs()

    def _apply_config(self, config: HerdConfig) -> None:
        self.config = config
        self.zones = ZoneTable(config)
        self.engine = HerdPhysics(config, self.rng)
        self.alerts.flash_seconds = config.alert_flash_seconds

    def update_config(self, **changes) -> HerdConfig:
        """Swap in a validated config copy and rebuild derived state.

        Raises ValueError (from HerdConfig) and leaves the old config in place
        when the change is invalid.
        """
        config = self.config.replace(**changes)
        if self.config is self.session_config:
            self.session_config = config
        self._apply_config(config)
        logger.info("config updated: %s", changes)
        return config

    # ──────────────────────────────────────────────────────────────────────────
    # Stick input (board-local coordinates)
    # ──────────────────────────────────────────────────────────────────────────

    def _clamp_stick_speed(self, v: float) -> float:
        limit = self.config.max_speed * self.config.stick_speed_multiple
        return max(-limit, min(limit, v))

    def press_stick(self, x: float, y: float, t: float) -> None:
        s = self.stick
        s.active = True
        s.x, s.y = float(x), float(y)
        s.vx = s.vy = 0.0
        s.last_move_t = t

    def move_stick(self, x: float, y: float, t: float) -> None:
        """Move the stick; velocity comes from the motion since the last move."""
        s = self.stick
        dt = max(0.001, t - s.last_move_t)
        s.vx = self._clamp_stick_speed((x - s.x) / dt)
        s.vy = self._clamp_stick_speed((y - s.y) / dt)
        s.x, s.y = float(x), float(y)
        s.last_move_t = t

    def release_stick(self) -> None:
        self.stick.active = False

    def set_stick(self, x: float, y: float, vx: float = 0.0, vy: float = 0.0,
                  active: bool = False) -> None:
        s = self.stick
        s.x, s.y = float(x), float(y)
        s.vx = self._clamp_stick_speed(vx)
        s.vy = self._clamp_stick_speed(vy)
        s.active = bool(active)

    # ──────────────────────────────────────────────────────────────────────────
    # Headless helpers
    # ──────────────────────────────────────────────────────────────────────────

    def get_obs(self) -> np.ndarray:
        """Flat float64 vector, 4 values per puck: [x, y, vx, vy]."""
        values = []
        for p in self.pucks:
            values.extend([float(p.position[0]), float(p.position[1]),
                           float(p.velocity[0]), float(p.velocity[1])])
        return np.array(values, dtype=np.float64)

    def get_state_json(self) -> str:
        snap = self.snapshot
        return json.dumps({
            "time": round(snap.time, 4),
            "pucks": {p.id: {"pos": [round(p.x, 3), round(p.y, 3)],
                             "vel": [round(p.vx, 3), round(p.vy, 3)]}
                      for p in snap.pucks},
            "alerts": sorted(snap.alerts),
            "hold": round(snap.hold_seconds, 3),
            "best": round(snap.best_hold_seconds, 3),
            "all_held": snap.all_held,
            "paused": snap.paused,
        }, separators=(',', ':'))

    def set_pucks(self, pucks_info: dict) -> "HerdController":
        """Place pucks by id: ``{"p0": {"pos": [x, y], "vel": [vx, vy]}}``.

        Unknown ids are created with neutral personality. Returns ``self``.
        """
        existing = {p.id: p for p in self.pucks}
        for puck_id, info in pucks_info.items():
            pos = info.get("pos")
            if pos is None:
                continue
            puck = existing.get(puck_id)
            if puck is None:
                puck = Puck(puck_id)
                self.pucks.append(puck)
                existing[puck_id] = puck
            puck.position = np.array([float(pos[0]), float(pos[1])])
            vel = info.get("vel", [0.0, 0.0])
            puck.velocity = np.array([float(vel[0]), float(vel[1])])
        self.snapshot = self._publish()
        return self

    def load_scenario(self, scenario_fn, label: str) -> None:
        """Adopt a preset's pucks, stick and config (``scenario_fn(run=False)``).

        The live random source is kept, and the next reset() returns to the
        session config.
        """
        result = scenario_fn(run=False)
        preset: "HerdController" = result["controller"]
        self.alerts = AlertTracker(preset.config.alert_flash_seconds)
        self._apply_config(preset.config)
        self.pucks = preset.pucks
        self.stick = preset.stick
        self.hold = HoldTracker()
        self.snapshot = self._publish()
        logger.info("scenario loaded: %s", label)

    def simulate(self, dts: Sequence[float],
                 sticks: Optional[Sequence[Optional[Stick]]] = None) -> np.ndarray:
        """Run a fixed sequence of ticks; returns obs history, shape (len(dts), 4N)."""
        history = []
        for i, dt in enumerate(dts):
            stick = sticks[i] if sticks is not None else None
            self.step(dt, stick)
            history.append(self.get_obs())
        return np.array(history)
