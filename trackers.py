"""
Alert + hold trackers.

AlertTracker is edge-triggered: a zone flashes when a puck ENTERS it, not
while the puck stays inside. HoldTracker is level-triggered on the
all-pucks-in-target condition and measures wall-clock seconds.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple


class AlertTracker:
    def __init__(self, flash_seconds: float):
        self.flash_seconds = flash_seconds
        self.last_zone_by_puck: Dict[str, Optional[str]] = {}
        self.alert_until: Dict[str, float] = {}
        self.active: FrozenSet[str] = frozenset()

    def observe(self, puck_id: str, label: Optional[str], now: float) -> bool:
        """Record a puck's current negative-zone label. True if it just entered."""
        prev = self.last_zone_by_puck.get(puck_id)
        self.last_zone_by_puck[puck_id] = label
        if label is None or label == prev:
            return False
        self.alert_until[label] = now + self.flash_seconds
        return True

    def update(self, observations: Iterable[Tuple[str, Optional[str]]],
               now: float) -> Tuple[List[Tuple[str, str]], bool]:
        """Observe every puck, refresh the active set.

        Returns (entries, changed): the (puck_id, label) entries detected this
        tick, and whether the active set differs from the previous frame.
        """
        entries = []
        for puck_id, label in observations:
            if self.observe(puck_id, label, now):
                entries.append((puck_id, label))
        return entries, self.refresh(now)

    def refresh(self, now: float) -> bool:
        active = frozenset(k for k, until in self.alert_until.items() if until > now)
        for k in [k for k, until in self.alert_until.items() if until <= now]:
            del self.alert_until[k]
        if active == self.active:
            return False
        self.active = active
        return True

    def reset(self) -> None:
        self.last_zone_by_puck.clear()
        self.alert_until.clear()
        self.active = frozenset()


class HoldTracker:
    def __init__(self):
        self.start: Optional[float] = None
        self.seconds = 0.0
        self.best_seconds = 0.0
        self.last_seconds = 0.0     # length of the most recently broken hold

    @property
    def holding(self) -> bool:
        return self.start is not None

    def update(self, all_in_target: bool, now: float) -> Optional[str]:
        """Advance the hold timer.

        Returns "started" / "broken" on a transition, else None.
        """
        if all_in_target:
            transition = None
            if self.start is None:
                self.start = now
                transition = "started"
            self.seconds = now - self.start
            if self.seconds > self.best_seconds:
                self.best_seconds = self.seconds
            return transition

        was_holding = self.start is not None
        if was_holding:
            self.last_seconds = self.seconds
        self.start = None
        self.seconds = 0.0
        return "broken" if was_holding else None

    def reset(self) -> None:
        self.start = None
        self.seconds = 0.0
        self.best_seconds = 0.0
        self.last_seconds = 0.0
