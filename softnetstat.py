from __future__ import annotations
import argparse
import os
import sys
from typing import Any, Callable, Dict, List, Optional
import yaml  # from pyyaml

from core.log import logger, setup_logging
from collectors.softnet_stat import SOURCE, ProcNetSoftnetStat, SoftnetParseError
from output.json_sink import JsonRenderer
from output.prometheus import PrometheusRenderer
from output.table import DEFAULT_WIDTH, TableRenderer

DEFAULT_CONFIG = "config.yml"

RENDERERS: Dict[str, Callable[[int], Any]] = {
    "table": lambda width: TableRenderer(width),
    "json": lambda width: JsonRenderer(),
    "prometheus": lambda width: PrometheusRenderer(),
}

class ConfigError(Exception):
    """Raised when the configuration file or environment holds invalid values."""

def load_config(path: str = DEFAULT_CONFIG) -> Dict[str, Any]:
    """
    Load configuration from YAML file and override with environment variables.

    Environment variables override YAML values:
    - SOFTNET_STAT_PATH: Input file (e.g., /proc/net/softnet_stat)
    - SOFTNET_FORMAT: Output format (table, json or prometheus)
    - SOFTNET_COLUMN_WIDTH: Table column width (e.g., 15)

    Args:
        path: Path to the YAML configuration file

    Returns:
        Dictionary containing merged configuration from file and environment variables

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug("Config file %s not found, using defaults", path)
        config = {}
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(config).__name__}")

    if "SOFTNET_STAT_PATH" in os.environ:
        config["source"] = os.environ["SOFTNET_STAT_PATH"]

    if "SOFTNET_FORMAT" in os.environ:
        config["format"] = os.environ["SOFTNET_FORMAT"]

    if "SOFTNET_COLUMN_WIDTH" in os.environ:
        try:
            width = int(os.environ["SOFTNET_COLUMN_WIDTH"])
        except ValueError:
            logger.warning("Invalid SOFTNET_COLUMN_WIDTH value: %s", os.environ["SOFTNET_COLUMN_WIDTH"])
        else:
            if not isinstance(config.get("table"), dict):
                config["table"] = {}
            config["table"]["column_width"] = width

    return config

def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {n}")
    return n

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="softnet-stat",
        description="Show per-CPU network receive statistics from %s." % SOURCE,
    )
    fmt = parser.add_mutually_exclusive_group()
    fmt.add_argument("-j", "--json", action="store_true", help="use json output")
    fmt.add_argument("-p", "--prometheus", action="store_true", help="use prometheus output")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("-s", "--stdin", action="store_true", help="read from stdin")
    src.add_argument("-f", "--file", metavar="PATH", help="read PATH instead of %s" % SOURCE)
    parser.add_argument("-w", "--width", type=positive_int, metavar="N", help="table column width")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG, metavar="PATH",
                        help="YAML config file (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    return parser

def resolve_format(args: argparse.Namespace, cfg: Dict[str, Any]) -> str:
    if args.json:
        return "json"
    if args.prometheus:
        return "prometheus"
    fmt = cfg.get("format", "table")
    if not isinstance(fmt, str) or fmt not in RENDERERS:
        raise ConfigError(f"unknown output format {fmt!r}, expected one of {', '.join(RENDERERS)}")
    return fmt

def resolve_width(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    if args.width is not None:
        width = args.width
    else:
        table = cfg.get("table") or {}
        width = table.get("column_width", DEFAULT_WIDTH) if isinstance(table, dict) else DEFAULT_WIDTH
    if not isinstance(width, int) or isinstance(width, bool) or width < 1:
        raise ConfigError(f"column width must be a positive integer, got {width!r}")
    return width

def main(argv: Optional[List[str]] = None) -> int:
    """
    Read softnet_stat once, parse it and print it in the selected format.

    Nothing is printed to stdout unless the whole input parsed. Option errors
    exit through argparse with status 2; every other failure logs a diagnostic
    and returns 1.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        cfg = load_config(args.config)
        fmt = resolve_format(args, cfg)
        width = resolve_width(args, cfg)
    except ConfigError as e:
        logger.error("configuration error: %s", e)
        return 1

    collector = ProcNetSoftnetStat(args.file or cfg.get("source", SOURCE), use_stdin=args.stdin)

    try:
        stats = collector.read()
    except OSError as e:
        logger.error("cannot read %s: %s", collector.source_name, e.strerror or e)
        return 1
    except SoftnetParseError as e:
        logger.error("%s is in an unsupported format: %s (offset %d)", collector.source_name, e, e.offset)
        return 1

    try:
        text = RENDERERS[fmt](width).render(stats)
    except RuntimeError as e:
        logger.error("internal error: %s", e)
        return 1

    sys.stdout.write(text)
    return 0

if __name__ == "__main__":
    sys.exit(main())
