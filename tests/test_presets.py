"""
Herding Preset Tests — every scenario builds, runs and behaves as described.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from herd_controller import HerdController
from herd_presets import HerdPreset, SCENARIOS
from randomness import NumpyRandomSource


class TestScenarioSetup:
    """run=False only places pucks; nothing advances."""

    @pytest.mark.parametrize("key", sorted(SCENARIOS))
    def test_setup_only(self, key):
        """run=False only places pucks."""
        fn, label = SCENARIOS[key]
        result = fn(run=False)
        assert result["elapsed"] == 0.0
        ctrl = result["controller"]
        assert ctrl.clock == 0.0
        assert len(result["pucks"]) == len(ctrl.pucks) > 0
        assert label.startswith(key)

    def test_load_scenario_into_live_controller(self):
        """A live controller adopts the preset's pucks and config."""
        ctrl = HerdController(rng=NumpyRandomSource(0))
        ctrl.load_scenario(HerdPreset.scenario_corral, "3: Corral")
        assert len(ctrl.pucks) == ctrl.config.puck_count
        assert all(p.x > ctrl.config.target_x for p in ctrl.pucks)
        assert ctrl.snapshot.in_target_count == ctrl.config.puck_count
        assert ctrl.config.wander_strength == 0.0

    def test_reset_after_scenario_respawns_randomly(self):
        """Resetting after a scenario spawns a random herd under the session config."""
        ctrl = HerdController(rng=NumpyRandomSource(0))
        rng = ctrl.rng
        session = ctrl.config
        ctrl.load_scenario(HerdPreset.scenario_corral, "3: Corral")
        assert ctrl.rng is rng

        ctrl.reset()
        spawn = {(p.x, p.y) for p in ctrl.pucks}
        assert len(spawn) == session.puck_count
        assert len({p.wander_mult for p in ctrl.pucks}) == session.puck_count
        assert ctrl.config is session
        assert ctrl.config.wander_strength == 18.0

    def test_params_tuned_during_scenario_do_not_leak_into_session(self):
        """Config changes made during a scenario are dropped on reset."""
        ctrl = HerdController(rng=NumpyRandomSource(0))
        ctrl.load_scenario(HerdPreset.scenario_sweep, "4: Sweep")
        ctrl.update_config(max_speed=300.0)
        ctrl.request_reset()
        ctrl.step(0.016)
        assert ctrl.config.max_speed == 140.0
        assert ctrl.config.damping == 0.992


class TestGoalLeak:

    def test_leak_pulls_left_but_stays_held(self):
        """Goal-leak puck drifts left but stays held for ten ticks."""
        result = HerdPreset.scenario_goal_leak(run=True)
        xs = result["xs"]
        cfg = result["controller"].config
        assert len(xs) == 11
        assert all(b < a for a, b in zip(xs, xs[1:]))
        assert min(xs) >= cfg.hold_threshold_x
        assert all(held for held, _ in result["held"])
        assert [e["type"] for e in result["events"]] == ["hold_started"]


class TestHeadOn:

    def test_velocities_exchanged_with_restitution(self):
        """Head-on pucks bounce apart at damped speed times restitution."""
        result = HerdPreset.scenario_head_on(run=True)
        a, b = result["a"], result["b"]
        cfg = result["controller"].config
        # damped approach speed, then (1 + e) / 2 of the relative speed transferred
        approach = 60.0 * cfg.damping
        expected = approach * cfg.puck_restitution
        assert a.velocity[0] == pytest.approx(-expected)
        assert b.velocity[0] == pytest.approx(expected)
        assert b.x - a.x == pytest.approx(2 * cfg.puck_radius)

        hits = [e for e in result["events"] if e["type"] == "puck_puck"]
        assert len(hits) == 1
        assert hits[0]["speed"] == pytest.approx(2 * approach)


class TestCorral:

    def test_herd_holds_for_the_whole_run(self):
        """Corralled herd holds for the whole run."""
        result = HerdPreset.scenario_corral(run=True, seconds=1.0)
        assert result["hold_seconds"] > 0.9
        assert result["best_hold_seconds"] == pytest.approx(result["hold_seconds"])
        types = [e["type"] for e in result["events"]]
        assert types.count("hold_started") == 1
        assert "hold_broken" not in types

    def test_no_puck_escapes_the_board(self):
        """Corralled pucks stay on the board."""
        result = HerdPreset.scenario_corral(run=True, seconds=2.0)
        cfg = result["controller"].config
        for p in result["pucks"]:
            assert cfg.puck_radius <= p.x <= cfg.board_width - cfg.puck_radius


class TestSweep:

    def test_enters_every_negative_zone_once_in_order(self):
        """Sweep enters each negative zone once, left to right."""
        result = HerdPreset.scenario_sweep(run=True)
        ctrl = result["controller"]
        assert result["entered"] == list(ctrl.zones.labels)
        assert result["puck"].x > ctrl.config.negative_end_x
