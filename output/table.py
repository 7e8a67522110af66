from __future__ import annotations
from typing import List, Sequence

from collectors.softnet_stat import SoftnetStat

DEFAULT_WIDTH = 15

HEADERS = (
    "Cpu",
    "Processed",
    "Dropped",
    "Time Squeezed",
    "Cpu Collision",
    "Received RPS",
    "Flow Limit Cnt",
    "Backlog Length",
    "CPU Id",
)

class TableRenderer:
    """
    Fixed-width, left-justified text table. The Cpu column is the line
    position; counters the kernel did not report show as 0.
    """

    def __init__(self, width: int = DEFAULT_WIDTH) -> None:
        if width < 1:
            raise ValueError(f"column width must be positive, got {width}")
        self.width = width

    def _row(self, cells: Sequence[object]) -> str:
        return "".join(f"{cell!s:<{self.width}}" for cell in cells)

    def render(self, stats: Sequence[SoftnetStat]) -> str:
        lines: List[str] = [self._row(HEADERS)]
        for i, s in enumerate(stats):
            lines.append(self._row((
                i,
                s.processed,
                s.dropped,
                s.time_squeeze,
                s.cpu_collision,
                s.received_rps or 0,
                s.flow_limit_count or 0,
                s.backlog_len or 0,
                s.cpu_id or 0,
            )))
        return "\n".join(lines) + "\n"
