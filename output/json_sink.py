from __future__ import annotations
import json
from typing import List, Sequence

from collectors.softnet_stat import SoftnetStat

class JsonRenderer:
    """
    JSON output for softnet records.

    Emits a single-line array of objects, one per CPU, in file order. Absent
    optional counters are written as null so decode() restores exactly which
    columns the kernel reported.
    """

    def render(self, stats: Sequence[SoftnetStat]) -> str:
        """
        Serialize records to JSON text, newline-terminated.

        Args:
            stats: Parsed records

        Raises:
            RuntimeError: If a record cannot be serialized (should never happen).
        """
        try:
            data = json.dumps([s.to_dict() for s in stats], separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Failed to encode stats into json format: {e}") from e
        return data + "\n"

    def decode(self, text: str) -> List[SoftnetStat]:
        """
        Rebuild records from render() output.

        Args:
            text: JSON array as produced by render()

        Returns:
            Records equal to the ones that were rendered
        """
        items = json.loads(text)
        if not isinstance(items, list):
            raise ValueError("expected a JSON array of softnet records")
        return [SoftnetStat.from_dict(item) for item in items]
