"""
Conduits carry the raw INDI byte stream. A conduit has an input stream the connection reads
messages from and an output stream it writes commands to. The streams are file-like and
binary: read1() and read() for input, write() and flush() for output.
"""

from abc import abstractmethod
from io import IOBase

from indi.support.proxy import make_exception_notify_proxy


class Conduit:
    """ The two streams of one INDI endpoint. Closing the conduit closes both. """

    @property
    @abstractmethod
    def input(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError


class StreamConduit(Conduit):
    """
    A conduit over streams that are already open: a pipe, the stdin and stdout of a driver,
    or a single stream used in both directions.
    """

    def __init__(self, read=None, write=None):
        self._read = self._write = None
        self._closed = False
        self.attach(read, write)

    def attach(self, read, write=None):
        self._read = read
        self._write = write if write is not None else read

    @property
    def input(self) -> IOBase:
        return self._read

    @property
    def output(self) -> IOBase:
        return self._write

    @property
    def open(self):
        return not self._closed and self._read is not None

    def close(self):
        if self._closed:
            return
        self._closed = True
        for stream in (self._write, self._read):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass    # already closed by the peer


class ErrorReportingConduit(Conduit):
    """
    Wraps the streams of another conduit so that handler(exception) is called each time reading,
    writing or flushing fails. The exception is re-raised to the caller afterwards.
    """

    def __init__(self, conduit: Conduit, handler):
        self.conduit = conduit
        self.handler = handler
        self._input = self._output = None

    @property
    def input(self):
        if self._input is None:
            self._input = make_exception_notify_proxy(self.conduit.input, self.handler)
        return self._input

    @property
    def output(self):
        if self._output is None:
            self._output = make_exception_notify_proxy(self.conduit.output, self.handler)
        return self._output

    @property
    def open(self):
        return self.conduit.open

    def close(self):
        self._input = self._output = None
        self.conduit.close()
