import logging
import socket

from indi.conduit.base import Conduit
from indi.conduit.socket_conduit import SocketConduit
from indi.connector.base import Connector, ConnectorError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7624
CONNECT_TIMEOUT = 5


class TCPServerEndpoint:
    """
    Describes a TCP server endpoint.
    At least one of hostname or ip_address should be given. If both are given, the ip_address is used
    to connect.
    """
    def __init__(self, hostname, ip_address, port=DEFAULT_PORT):
        self.hostname = hostname
        self.ip_address = ip_address
        self.port = port

    def key(self):
        """
        >>> TCPServerEndpoint(None, 'ipaddr', 55).key()
        'ipaddr:55'
        >>> TCPServerEndpoint('name', 'ipaddr', 55).key()
        'name:55'
        """
        return str(self.hostname or self.ip_address) + ':' + str(self.port)

    @property
    def address(self):
        """ the (host, port) pair to connect to """
        return self.ip_address or self.hostname, self.port

    @staticmethod
    def parse(text, default_port=DEFAULT_PORT):
        """
        Parses 'host[:port]'.
        >>> TCPServerEndpoint.parse('localhost').address
        ('localhost', 7624)
        >>> TCPServerEndpoint.parse('10.0.0.2:7625').key()
        '10.0.0.2:7625'
        """
        host, _, port = text.strip().rpartition(':') if ':' in text else (text.strip(), '', '')
        return TCPServerEndpoint(host or 'localhost', None, int(port) if port else default_port)

    def __repr__(self):
        return "TCPServerEndpoint(%s)" % self.key()


class SocketConnector(Connector):
    """
    A connector that communicates data via a TCP socket
    """
    def __init__(self, sock_args, connect_args, report_errors=True):
        """
        :param sock_args The arguments for socket.socket(), describing the socket family and type.
        :param connect_args connection arguments for the socket.connect() call
        """
        super().__init__()
        self._sock_args = sock_args
        self._connect_args = connect_args
        self._report_errors = report_errors

    @property
    def endpoint(self):
        return self._connect_args

    def _open(self) -> Conduit:
        try:
            sock = socket.socket(*self._sock_args)
            sock.settimeout(CONNECT_TIMEOUT)
            sock.connect(self._connect_args)
            sock.settimeout(None)
            logger.info("opened socket to %s" % str(self._connect_args))
            return SocketConduit(sock)
        except socket.error as e:
            method = logger.warning if self._report_errors else logger.debug
            method("error opening socket to %s: %s" % (self._connect_args, e))
            raise ConnectorError("cannot connect to %s" % (self._connect_args,)) from e


def tcp_connector(host='localhost', port=DEFAULT_PORT):
    """ a connector for an INDI server listening on the given host and port """
    return SocketConnector((socket.AF_INET, socket.SOCK_STREAM), (host, port))
