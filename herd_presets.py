"""
Herding presets — scripted starting positions.

Each preset builds a controller with a deterministic random source, places
pucks, optionally runs a fixed tick sequence (run=True), and returns a
result dict. server.py maps them to number keys.
"""

import numpy as np

from herd_config import HerdConfig
from herd_controller import HerdController
from herd_physics import Puck
from randomness import SequenceRandomSource

# 60 fps-ish frame
_DT = 0.016

# Wander and jitter switched off; only goal leak, stick and collisions act
QUIET = dict(wander_strength=0.0, jitter_chance_per_sec=0.0)


def _quiet_controller(pucks, **overrides) -> HerdController:
    config = HerdConfig(puck_count=len(pucks), **{**QUIET, **overrides})
    return HerdController(config, rng=SequenceRandomSource([0.5]), pucks=pucks)


class HerdPreset:
    """Presets return {"controller", "pucks", "elapsed", "events", ...}."""

    @staticmethod
    def scenario_goal_leak(run=True) -> dict:
        """One puck just inside the target zone; the leak drags it left."""
        puck = Puck("p0", position=[750.0, 230.0])
        ctrl = _quiet_controller([puck])
        xs = [puck.x]
        held = []
        events = []
        elapsed = 0.0
        if run:
            for _ in range(10):
                snap, evs = ctrl.step(_DT)
                events.extend(evs)
                xs.append(puck.x)
                held.append((snap.all_held, snap.hold_seconds))
                elapsed += _DT
        return {"controller": ctrl, "pucks": ctrl.pucks, "puck": puck,
                "xs": xs, "held": held, "events": events, "elapsed": elapsed}

    @staticmethod
    def scenario_head_on(run=True) -> dict:
        """Two pucks touching (2r apart) and closing at 60 px/s each."""
        r = HerdConfig().puck_radius
        a = Puck("p0", position=[400.0, 230.0], velocity=[60.0, 0.0])
        b = Puck("p1", position=[400.0 + 2 * r, 230.0], velocity=[-60.0, 0.0])
        ctrl = _quiet_controller([a, b])
        elapsed = 0.0
        if run:
            ctrl.step(_DT)
            elapsed = _DT
        return {"controller": ctrl, "pucks": ctrl.pucks, "a": a, "b": b,
                "events": list(ctrl.physics_events), "elapsed": elapsed}

    @staticmethod
    def scenario_corral(run=True, seconds: float = 1.0) -> dict:
        """Full herd parked deep in the target zone, fighting the leak."""
        cfg = HerdConfig()
        x = cfg.board_width - cfg.puck_radius - 4.0
        rows = np.linspace(cfg.puck_radius * 2, cfg.board_height - cfg.puck_radius * 2,
                           cfg.puck_count)
        pucks = [Puck(f"p{i}", position=[x, float(y)]) for i, y in enumerate(rows)]
        ctrl = _quiet_controller(pucks)
        events = []
        elapsed = 0.0
        if run:
            while elapsed < seconds:
                _, evs = ctrl.step(_DT)
                events.extend(evs)
                elapsed += _DT
        return {"controller": ctrl, "pucks": ctrl.pucks, "events": events,
                "elapsed": elapsed, "hold_seconds": ctrl.hold.seconds,
                "best_hold_seconds": ctrl.hold.best_seconds}

    @staticmethod
    def scenario_sweep(run=True, seconds: float = 3.0) -> dict:
        """One puck sliding left → right across every negative zone."""
        cfg = HerdConfig()
        puck = Puck("p0", position=[cfg.puck_radius + 1.0, 230.0], velocity=[130.0, 0.0])
        # no damping so the puck keeps crossing zones
        ctrl = _quiet_controller([puck], damping=1.0)
        events = []
        elapsed = 0.0
        if run:
            while elapsed < seconds:
                _, evs = ctrl.step(_DT)
                events.extend(evs)
                elapsed += _DT
        entered = [ev["zone"] for ev in events if ev["type"] == "zone_entered"]
        return {"controller": ctrl, "pucks": ctrl.pucks, "puck": puck,
                "events": events, "entered": entered, "elapsed": elapsed}


SCENARIOS = {
    "1": (HerdPreset.scenario_goal_leak, "1: Goal leak"),
    "2": (HerdPreset.scenario_head_on,   "2: Head-on"),
    "3": (HerdPreset.scenario_corral,    "3: Corral"),
    "4": (HerdPreset.scenario_sweep,     "4: Sweep"),
}
