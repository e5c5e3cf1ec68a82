"""
Named section timers for shrub generation.

`Shrubbery.grow` times its index rebuild, pull and spawn phases and
`voxelize` times every x slab, so a slow shrub shows which phase dominates.
Nothing is recorded unless `timings.enabled` is set; `grow_shrub` turns it on
for one run with `report_timings=True`.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List


@dataclass
class SectionStats:
    count: int = 0
    total: float = 0.0
    longest: float = 0.0

    def add(self, elapsed: float):
        self.count += 1
        self.total += elapsed
        self.longest = max(self.longest, elapsed)

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class SectionTimer:

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self.sections: Dict[str, SectionStats] = {}

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            self.sections.setdefault(name, SectionStats()).add(time.perf_counter() - start)

    def clear(self):
        self.sections.clear()

    def summary_lines(self) -> List[str]:
        """One line per section, slowest total first."""
        lines = [f"{'Section':<20} {'Count':>7} {'Total(s)':>9} {'Mean(ms)':>9} {'Max(ms)':>9}"]
        ordered = sorted(self.sections.items(), key=lambda item: item[1].total, reverse=True)
        for name, stats in ordered:
            lines.append(
                f"{name:<20} {stats.count:>7} {stats.total:>9.3f} "
                f"{stats.mean * 1000:>9.2f} {stats.longest * 1000:>9.2f}"
            )
        return lines

    def print_summary(self, title: str = "Shrub timings"):
        if not self.sections:
            return
        print(f"\n{title}")
        for line in self.summary_lines():
            print(f"  {line}")


timings = SectionTimer()
