"""
Connectors open the conduit to an INDI endpoint: a server's TCP port, a driver process, or a
pair of streams handed over by the caller. A connection asks its connector for a conduit on
connect() and gives it back with disconnect().
"""

import logging
from abc import abstractmethod

from indi.conduit.base import Conduit, ErrorReportingConduit

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """ The endpoint could not be reached. """


class ConnectionNotConnectedError(ConnectorError):
    """ The conduit was requested while disconnected. """


class ConnectionNotAvailableError(ConnectorError):
    """ The endpoint cannot be connected to, such as a driver program that is not executable. """


class Connector:
    """
    Opens and closes the conduit to one endpoint.
    Subclasses implement _open(), and _available() when the endpoint can be checked before
    trying it.
    """

    def __init__(self):
        self._conduit = None

    @property
    @abstractmethod
    def endpoint(self):
        """ what this connector reaches, for naming and logging """
        raise NotImplementedError

    @abstractmethod
    def _open(self) -> Conduit:
        """ opens the conduit. raises ConnectorError when the endpoint cannot be reached """
        raise NotImplementedError

    def _available(self):
        return True

    @property
    def available(self):
        """ True when disconnected and the endpoint looks reachable """
        return not self.connected and self._available()

    @property
    def connected(self):
        conduit = self._conduit
        return conduit is not None and conduit.open

    @property
    def conduit(self) -> Conduit:
        if not self.connected:
            raise ConnectionNotConnectedError("%s is not connected" % (self.endpoint,))
        return self._conduit

    def connect(self):
        """
        Opens the conduit. Does nothing when already connected.
        raises ConnectorError when the endpoint is not available or cannot be reached
        """
        if self.connected:
            return
        self.disconnect()
        if not self.available:
            raise ConnectionNotAvailableError("%s is not available" % (self.endpoint,))
        self._conduit = self._open()

    def disconnect(self):
        conduit, self._conduit = self._conduit, None
        if conduit is not None:
            conduit.close()


class CloseOnErrorConnector(Connector):
    """
    Wraps another connector so that the first failure reading or writing its streams disconnects
    it. The connection then finds the conduit gone on its next read or write.
    """

    def __init__(self, delegate: Connector):
        super().__init__()
        self.delegate = delegate

    @property
    def endpoint(self):
        return self.delegate.endpoint

    def _available(self):
        return self.delegate.available

    def _open(self):
        self.delegate.connect()
        return ErrorReportingConduit(self.delegate.conduit, self._stream_failed)

    def disconnect(self):
        self._conduit = None
        self.delegate.disconnect()

    def _stream_failed(self, e):
        logger.info("closing %s after stream error: %s" % (self.endpoint, e))
        self.disconnect()
