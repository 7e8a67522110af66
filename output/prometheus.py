from __future__ import annotations
from typing import List, Sequence, Tuple

from collectors.softnet_stat import SoftnetStat

# (metric name, record attribute); missing optional values export as 0
METRICS: Tuple[Tuple[str, str], ...] = (
    ("softnet_frames_processed", "processed"),
    ("softnet_frames_dropped", "dropped"),
    ("softnet_time_squeeze", "time_squeeze"),
    ("softnet_cpu_collisions", "cpu_collision"),
    ("softnet_received_rps", "received_rps"),
    ("softnet_flow_limit_count", "flow_limit_count"),
    ("softnet_backlog_len", "backlog_len"),
)

class PrometheusRenderer:
    """
    Prometheus text exposition of softnet records.

    Every sample carries a cpu label. Before kernel v5.10 the line position
    is the only CPU hint; offline CPUs are skipped in the file, so cpu_id is
    used whenever the kernel reports it.
    """

    def render(self, stats: Sequence[SoftnetStat]) -> str:
        lines: List[str] = []
        for i, s in enumerate(stats):
            label = f'cpu="cpu{s.cpu(i)}"'
            for name, attr in METRICS:
                value = getattr(s, attr)
                lines.append(f"{name}{{{label}}} {value if value is not None else 0}")
        return "".join(line + "\n" for line in lines)
