import socket
import unittest

import timeout_decorator
from hamcrest import assert_that, is_, calling, raises

from indi.connector.base import ConnectorError
from indi.connector.socketconn import TCPServerEndpoint, SocketConnector, tcp_connector, DEFAULT_PORT
from indi.protocol.io_test import debug_timeout


class TCPServerEndpointTest(unittest.TestCase):

    def test_parse_host_and_port(self):
        sut = TCPServerEndpoint.parse('observatory:7625')
        assert_that(sut.address, is_(('observatory', 7625)))

    def test_parse_uses_default_port(self):
        assert_that(TCPServerEndpoint.parse('observatory').port, is_(DEFAULT_PORT))
        assert_that(TCPServerEndpoint.parse('observatory', 1234).port, is_(1234))

    def test_parse_empty_host(self):
        assert_that(TCPServerEndpoint.parse(':7000').address, is_(('localhost', 7000)))

    def test_ip_address_is_preferred(self):
        sut = TCPServerEndpoint('observatory', '10.0.0.2', 7624)
        assert_that(sut.address, is_(('10.0.0.2', 7624)))
        assert_that(sut.key(), is_('observatory:7624'))


class SocketConnectorTest(unittest.TestCase):

    def setUp(self):
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(('127.0.0.1', 0))
        self.listener.listen(1)
        self.port = self.listener.getsockname()[1]

    def tearDown(self):
        self.listener.close()

    @timeout_decorator.timeout(debug_timeout(5))
    def test_connects_to_listening_server(self):
        sut = tcp_connector('127.0.0.1', self.port)
        assert_that(sut.endpoint, is_(('127.0.0.1', self.port)))
        assert_that(sut.available, is_(True))
        sut.connect()
        peer, _ = self.listener.accept()
        try:
            assert_that(sut.connected, is_(True))
            sut.conduit.output.write(b'<getProperties version="1.7" />')
            sut.conduit.output.flush()
            assert_that(peer.recv(100), is_(b'<getProperties version="1.7" />'))
        finally:
            sut.disconnect()
            peer.close()
        assert_that(sut.connected, is_(False))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_refused_connection(self):
        self.listener.close()
        sut = SocketConnector((socket.AF_INET, socket.SOCK_STREAM), ('127.0.0.1', self.port), report_errors=False)
        assert_that(calling(sut.connect), raises(ConnectorError))
        assert_that(sut.connected, is_(False))
