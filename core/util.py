from __future__ import annotations
import errno, os, sys
from typing import BinaryIO, IO, Optional, Union

def read_stream(handle: Union[BinaryIO, IO[str]]) -> bytes:
    """
    Read a stream to exhaustion and return its raw bytes.

    Text streams (like sys.stdin) are read through their underlying binary
    buffer so no decoding takes place.

    Args:
        handle: Open stream to consume

    Returns:
        Everything left in the stream
    """
    buf = getattr(handle, "buffer", handle)
    return buf.read()

def read_source(path: Optional[Union[str, os.PathLike]] = None, stdin: Optional[IO] = None) -> bytes:
    """
    Read a whole file, or standard input when no path is given.

    Args:
        path: File path to read; None selects standard input
        stdin: Stream to use instead of sys.stdin

    Returns:
        Raw content as bytes

    Raises:
        OSError: If the file cannot be opened or read
    """
    if path is None:
        stream = stdin if stdin is not None else sys.stdin
        # sys.stdin is None when the process starts with fd 0 closed
        if stream is None:
            raise OSError(errno.EBADF, "standard input is closed")
        return read_stream(stream)
    with open(path, "rb") as f:
        return read_stream(f)
