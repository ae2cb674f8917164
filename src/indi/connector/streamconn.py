from indi.conduit.base import Conduit, StreamConduit
from indi.connector.base import Connector


class StreamConnector(Connector):
    """
    A connector over an already open pair of byte streams, such as a driver's own stdin and
    stdout, or a pipe in tests. The streams are handed over once; after a disconnect the
    connector is no longer available.
    """

    def __init__(self, read, write=None, name='stream'):
        super().__init__()
        self._read = read
        self._write = write
        self._name = name
        self._used = False

    @property
    def endpoint(self):
        return self._name

    def _open(self) -> Conduit:
        self._used = True
        return StreamConduit(self._read, self._write)

    def _available(self):
        return not self._used
