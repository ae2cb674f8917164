"""
some useful stream functions.
"""

import io
import select


def wait_for_input(stream, timeout):
    """
    Waits until the stream has data to read, or the timeout elapses.
    Streams without a file descriptor are always considered readable.
    :return: True if a read will not block
    """
    try:
        fd = stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return True
    if fd < 0:
        return True     # closed, let the read report it
    readable, _, _ = select.select([fd], [], [], timeout)
    return bool(readable)


def read_available(stream, size):
    """
    Reads what is available from the stream, at most size bytes, with at most one call to the
    underlying raw stream. An empty result signals the end of the stream.
    The size should be at least the stream's buffer size so that no data is left buffered
    where select() cannot see it.
    """
    read1 = getattr(stream, 'read1', None)
    return read1(size) if read1 is not None else stream.read(size)
