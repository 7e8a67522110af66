import os, logging, sys

logger = logging.getLogger("softnet")

def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr StreamHandler if none present.

    Called from the command line entry point only, so importing the parser
    never touches the host application's logging setup. Stdout is left to
    the rendered output. DEBUG is enabled by verbose or SOFTNET_DEBUG=1.
    """
    debug = verbose or os.environ.get("SOFTNET_DEBUG") == "1"
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not logger.handlers:
        h = logging.StreamHandler(stream=sys.stderr)
        h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(h)
    return logger
