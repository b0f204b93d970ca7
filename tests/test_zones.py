"""
Zone table / classifier tests + HerdConfig validation.
"""

import sys
import os
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from herd_config import DEFAULT_NEGATIVE_ZONES, HerdConfig
from zones import ZoneKind, ZoneTable


@pytest.fixture
def table():
    return ZoneTable(HerdConfig())


class TestZoneTable:

    def test_negative_multipliers_strictly_decrease(self, table):
        """Negative multipliers strictly decrease left to right."""
        mults = [z.mult for z in table.negative_zones]
        assert all(a > b for a, b in zip(mults, mults[1:]))

    def test_negative_partition_is_equal_and_contiguous(self, table):
        """Negative zones are equal, contiguous and the table covers the board."""
        cfg = table.config
        seg = cfg.negative_end_x / len(cfg.negative_zones)
        assert table.negative_zones[0].x0 == 0.0
        for z in table.negative_zones:
            assert z.x1 - z.x0 == pytest.approx(seg)
        for a, b in zip(table.zones, table.zones[1:]):
            assert a.x1 == pytest.approx(b.x0)
        assert table.zones[-1].x1 == cfg.board_width

    def test_labels_in_order(self, table):
        """Labels follow the configured table order."""
        assert table.labels == tuple(label for label, _ in DEFAULT_NEGATIVE_ZONES)

    def test_improvement_abuts_negative_and_target(self, table):
        """Improvement zone sits between the negative and target zones."""
        cfg = table.config
        assert table.improvement.x0 == cfg.negative_end_x
        assert table.improvement.x1 == cfg.target_x
        assert table.target.x0 == cfg.board_width - cfg.target_zone_width


class TestClassify:

    def test_total_and_exclusive(self, table):
        """Every x maps to exactly one zone kind."""
        cfg = table.config
        for x in np.linspace(0.0, cfg.board_width, 2001):
            c = table.classify(float(x))
            assert c.kind in (ZoneKind.NEGATIVE, ZoneKind.IMPROVEMENT, ZoneKind.TARGET)
            assert c.multiplier > 0
            if c.kind is ZoneKind.NEGATIVE:
                assert c.zone is not None and c.zone.contains(x)
                assert x < cfg.negative_end_x
            elif c.kind is ZoneKind.TARGET:
                assert c.zone is None and x >= cfg.target_x
            else:
                assert c.zone is None and cfg.negative_end_x <= x < cfg.target_x

    def test_idempotent(self, table):
        """Classification is a pure function of x."""
        for x in (0.0, 61.5, 307.9, 308.0, 571.9, 572.0, 739.9, 740.0, 880.0):
            assert table.classify(x) == table.classify(x)

    def test_negative_zone_uses_own_multiplier(self, table):
        """Negative zones use their own multiplier."""
        first = table.classify(10.0)
        last = table.classify(300.0)
        assert first.negative_label == "Low morale" and first.multiplier == 2.2
        assert last.negative_label == "Low production" and last.multiplier == 1.8

    def test_improvement_band_multipliers(self, table):
        """Band multiplier is 1.25 left of improve_x and 0.95 beyond."""
        cfg = table.config
        inside = table.classify(cfg.improve_x - 1.0)
        beyond = table.classify(cfg.improve_x + 1.0)
        assert inside.in_improvement_band and inside.multiplier == 1.25
        assert not beyond.in_improvement_band and beyond.multiplier == 0.95
        assert beyond.kind is ZoneKind.IMPROVEMENT

    def test_negative_zones_sit_inside_improvement_band(self, table):
        """Negative-zone positions lie left of improve_x, so the band flag is set."""
        for x in (0.0, 61.6, 200.0, table.config.negative_end_x - 1e-6):
            c = table.classify(x)
            assert c.kind is ZoneKind.NEGATIVE
            assert c.in_improvement_band

    def test_target_boundary(self, table):
        """target_x itself belongs to the target zone."""
        cfg = table.config
        assert table.classify(cfg.target_x - 0.01).kind is ZoneKind.IMPROVEMENT
        c = table.classify(cfg.target_x)
        assert c.kind is ZoneKind.TARGET and c.multiplier == 0.95

    def test_segment_edges(self, table):
        """Segment boundaries belong to the zone on their right."""
        seg = table.negative_zones[1].x0
        assert table.classify(seg - 1e-9).negative_label == "Low morale"
        assert table.classify(seg).negative_label == "Damages"
        assert table.classify(table.config.negative_end_x).negative_label is None

    def test_out_of_board_still_classified(self, table):
        """Positions off the board still classify."""
        assert table.classify(-5.0).negative_label == "Low morale"
        assert table.classify(1e6).kind is ZoneKind.TARGET


class TestConfigValidation:

    def test_defaults_valid(self):
        """Default config validates and derives the expected geometry."""
        cfg = HerdConfig()
        assert cfg.target_x == 740.0
        assert cfg.hold_threshold_x == pytest.approx(746.4)
        assert cfg.stick_reach == 44.0
        assert cfg.alert_flash_seconds == pytest.approx(0.45)

    @pytest.mark.parametrize("changes", [
        {"puck_count": -1},
        {"board_width": 0},
        {"board_height": -10},
        {"puck_radius": 0},
        {"target_zone_width": 900},
        {"damping": 1.2},
        {"wall_bounce": 0.0},
        {"puck_restitution": 1.5},
        {"negative_zones": ()},
        {"negative_zones": (("a", 2.0), ("b", 2.0))},
        {"negative_zones": (("a", 1.0), ("b", 2.0))},
        {"negative_zones": (("a", 2.0), ("a", 1.0))},
        {"improve_frac": 0.2},
        {"stubbornness_range": (0.0, 1.0)},
        {"speed_mult_range": (1.3, 0.7)},
        {"max_dt": 0},
    ])
    def test_rejects_degenerate_config(self, changes):
        """Degenerate configs raise ValueError."""
        with pytest.raises(ValueError):
            HerdConfig(**changes)

    def test_replace_validates(self):
        """replace() validates the new copy."""
        cfg = HerdConfig()
        assert cfg.replace(max_speed=200.0).max_speed == 200.0
        with pytest.raises(ValueError):
            cfg.replace(max_speed=-1.0)

    def test_list_zone_table_normalised(self):
        """List zone tables are normalised to tuples."""
        cfg = HerdConfig(negative_zones=[["Left", 3.0], ["Right", 1.5]])
        assert cfg.negative_zones == (("Left", 3.0), ("Right", 1.5))
        assert ZoneTable(cfg).labels == ("Left", "Right")
