from __future__ import annotations
import enum
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.log import logger
from core.util import read_source

SOURCE = "/proc/net/softnet_stat"
STDIN_NAME = "<stdin>"

# processed, dropped, time_squeeze, 6 legacy columns, cpu_collision
MANDATORY_FIELDS = 9
OPTIONAL_FIELDS = ("received_rps", "flow_limit_count", "backlog_len", "cpu_id")
U32_MAX = 0xffffffff

_HEX = re.compile(rb"[0-9a-fA-F]{1,8}")
_HEX_DIGIT = re.compile(rb"[0-9a-fA-F]")
_LINE_END = re.compile(rb"\r?\n")


@dataclass(frozen=True)
class SoftnetStat:
    """
    Network data processing statistics of one CPU (one line of softnet_stat).

    Attributes:
        processed: Network frames processed. Can exceed the frames received
            when bonding re-processes a frame.
        dropped: Frames dropped because the processing queue was full.
        time_squeeze: Times net_rx_action stopped with work left because the
            budget or the time limit ran out.
        cpu_collision: Collisions while taking the device lock on transmit
            (always 0 since kernel v4.7).
        received_rps: Times this CPU was woken by an IPI to process packets
            (kernel v2.6.36+).
        flow_limit_count: Times the RPS flow limit was hit (kernel v3.11+).
        backlog_len: Length of the per-CPU backlog queue (kernel v5.10+).
        cpu_id: CPU owning this line (kernel v5.10+). Offline CPUs are not
            dumped, so the line number is not the CPU number on its own.
    """
    processed: int
    dropped: int
    time_squeeze: int
    cpu_collision: int
    received_rps: Optional[int] = None
    flow_limit_count: Optional[int] = None
    backlog_len: Optional[int] = None
    cpu_id: Optional[int] = None

    def cpu(self, index: int) -> int:
        """CPU number of this record given its 0-based position in the file."""
        return self.cpu_id if self.cpu_id is not None else index

    def to_dict(self) -> Dict[str, Optional[int]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SoftnetStat":
        """
        Build a record from a mapping produced by to_dict().

        Missing or null optional keys stay absent; a missing mandatory key
        raises KeyError. Values must be unsigned 32-bit integers, otherwise
        ValueError is raised.
        """
        return cls(
            processed=_u32("processed", data["processed"]),
            dropped=_u32("dropped", data["dropped"]),
            time_squeeze=_u32("time_squeeze", data["time_squeeze"]),
            cpu_collision=_u32("cpu_collision", data["cpu_collision"]),
            **{k: (None if data.get(k) is None else _u32(k, data[k])) for k in OPTIONAL_FIELDS},
        )


def _u32(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U32_MAX:
        raise ValueError(f"{name} must be an unsigned 32-bit integer, got {value!r}")
    return value


class ParseErrorKind(enum.Enum):
    EMPTY_INPUT = "empty input"
    UNEXPECTED_EOF = "unexpected end of input"
    MALFORMED_TOKEN = "malformed hex token"
    MISSING_SEPARATOR = "expected a single space"
    MISSING_LINE_ENDING = "expected line terminator"
    TRAILING_DATA = "trailing unparsed data"


class SoftnetParseError(ValueError):
    """
    Raised when softnet_stat content does not match the expected layout.

    Attributes:
        offset: Byte offset into the parsed buffer where the mismatch starts.
        kind: What was expected at that offset.
        line: 1-based line number of the offending record.
    """

    def __init__(self, kind: ParseErrorKind, offset: int, line: int, detail: str = "") -> None:
        self.kind = kind
        self.offset = offset
        self.line = line
        self.detail = detail
        msg = f"{kind.value} at line {line}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


def _hex_at(data: bytes, pos: int) -> Optional[Tuple[int, int]]:
    """Match a hex token at pos. Returns (value, end) or None."""
    m = _HEX.match(data, pos)
    if m is None:
        return None
    return int(m.group(), 16), m.end()


def _mandatory_field(data: bytes, pos: int, line: int, first: bool) -> Tuple[int, int]:
    if not first:
        if pos >= len(data):
            raise SoftnetParseError(ParseErrorKind.UNEXPECTED_EOF, pos, line)
        if data[pos:pos + 1] != b" ":
            raise SoftnetParseError(ParseErrorKind.MISSING_SEPARATOR, pos, line,
                                    f"found {data[pos:pos + 1]!r}")
        pos += 1
    if pos >= len(data):
        raise SoftnetParseError(ParseErrorKind.UNEXPECTED_EOF, pos, line)
    hit = _hex_at(data, pos)
    if hit is None:
        raise SoftnetParseError(ParseErrorKind.MALFORMED_TOKEN, pos, line,
                                f"found {data[pos:pos + 1]!r}")
    value, end = hit
    if _HEX_DIGIT.match(data, end):
        raise SoftnetParseError(ParseErrorKind.MALFORMED_TOKEN, pos, line,
                                "token wider than 32 bits")
    return value, end


def parse_line(data: bytes, pos: int = 0, line: int = 1) -> Tuple[SoftnetStat, int]:
    """
    Parse one softnet_stat record starting at byte offset pos.

    The nine mandatory columns must all be present. Up to four trailing
    columns are then taken in order, stopping at the first one missing.

    Args:
        data: Raw file content
        pos: Offset of the first byte of the record
        line: Line number, used in error messages

    Returns:
        Tuple of the parsed record and the offset just past its line terminator.

    Raises:
        SoftnetParseError: If the record is malformed.
    """
    if pos >= len(data):
        raise SoftnetParseError(ParseErrorKind.UNEXPECTED_EOF, pos, line)

    fields: List[int] = []
    for i in range(MANDATORY_FIELDS):
        value, pos = _mandatory_field(data, pos, line, first=(i == 0))
        fields.append(value)

    optional: List[int] = []
    while len(optional) < len(OPTIONAL_FIELDS) and data[pos:pos + 1] == b" ":
        hit = _hex_at(data, pos + 1)
        if hit is None:
            break
        value, end = hit
        if _HEX_DIGIT.match(data, end):
            raise SoftnetParseError(ParseErrorKind.MALFORMED_TOKEN, pos + 1, line,
                                    "token wider than 32 bits")
        optional.append(value)
        pos = end

    m = _LINE_END.match(data, pos)
    if m is None:
        found = "end of input" if pos >= len(data) else repr(data[pos:pos + 1])
        raise SoftnetParseError(ParseErrorKind.MISSING_LINE_ENDING, pos, line, f"found {found}")

    stat = SoftnetStat(
        processed=fields[0],
        dropped=fields[1],
        time_squeeze=fields[2],
        cpu_collision=fields[8],
        **dict(zip(OPTIONAL_FIELDS, optional)),
    )
    return stat, m.end()


def parse(data: bytes) -> List[SoftnetStat]:
    """
    Parse the full content of /proc/net/softnet_stat.

    Args:
        data: Raw bytes of the file

    Returns:
        One record per line, in file order.

    Raises:
        SoftnetParseError: If the input is empty, any line is malformed, or
            bytes are left over after the last record.
    """
    if not data:
        raise SoftnetParseError(ParseErrorKind.EMPTY_INPUT, 0, 1)

    stats: List[SoftnetStat] = []
    pos = 0
    while pos < len(data):
        line = len(stats) + 1
        if stats and _HEX.match(data, pos) is None:
            raise SoftnetParseError(ParseErrorKind.TRAILING_DATA, pos, line,
                                    f"{len(data) - pos} byte(s) left after {len(stats)} record(s)")
        stat, pos = parse_line(data, pos, line)
        stats.append(stat)

    logger.debug("parsed %d softnet records (%d optional columns on first line)",
                 len(stats), _optional_count(stats[0]))
    return stats


def _optional_count(stat: SoftnetStat) -> int:
    return sum(getattr(stat, k) is not None for k in OPTIONAL_FIELDS)


class ProcNetSoftnetStat:
    """
    Collector for per-CPU packet processing statistics from /proc/net/softnet_stat.

    Reads the whole source at once and parses it; nothing is returned unless
    every line is valid.
    """

    def __init__(self, path: str = SOURCE, use_stdin: bool = False) -> None:
        """
        Args:
            path: File to read when not reading standard input
            use_stdin: Read the same content from standard input instead
        """
        self.path = path
        self.use_stdin = use_stdin

    @property
    def source_name(self) -> str:
        return STDIN_NAME if self.use_stdin else self.path

    def read(self) -> List[SoftnetStat]:
        """
        Read and parse the source.

        Raises:
            OSError: If the source cannot be read.
            SoftnetParseError: If the content is not in softnet_stat format.
        """
        raw = read_source(None if self.use_stdin else self.path)
        logger.debug("read %d bytes from %s", len(raw), self.source_name)
        return parse(raw)
