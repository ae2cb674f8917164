"""
A relay INDI server.

The server connects to any number of drivers (driver programs, other INDI servers, or any
IndiConnection) and accepts INDI clients on a TCP port. Bytes from every driver are sent
unmodified to every client, and bytes from every client to every driver. Each client has its
own outbound queue so a slow client does not hold up the others.
"""

import argparse
import logging
import os
import select
import socket
import sys
import threading
import time
from queue import Queue, Empty

from indi.client import IndiConnection
from indi.conduit.discovery import ResourceAvailableEvent, ResourceUnavailableEvent
from indi.conduit.socket_conduit import SocketConduit
from indi.connector.socketconn import TCPServerEndpoint
from indi.protocol import codec
from indi.protocol.asyncloop import AsyncLoop
from indi.protocol.io import wait_for_input, read_available

logger = logging.getLogger(__name__)

BIND_ADDRESS = '127.0.0.1:7624'
DEFAULT_PORT = 7624
POLL_INTERVAL = 0.1
READ_SIZE = 65536
BACKLOG = 5


def make_driver(driver):
    """
    Builds the connection for a driver given as an IndiConnection, the path of a driver program,
    or the 'host[:port]' of another INDI server.
    """
    if isinstance(driver, IndiConnection):
        return driver
    if os.path.isfile(driver):
        return IndiConnection.driver(driver)
    endpoint = TCPServerEndpoint.parse(driver, DEFAULT_PORT)
    host, port = endpoint.address
    return IndiConnection.tcp(host, port, name=endpoint.key())


class ClientSession:
    """ One accepted client socket, with a reader and a writer loop. """

    def __init__(self, server, sock, address):
        self.server = server
        self.address = address
        self.conduit = SocketConduit(sock)
        self.queue = Queue()
        self._closed = False
        name = '%s:%s' % address[:2]
        self.reader = AsyncLoop(self._read_once, log=logger, name='relay reader %s' % name)
        self.writer = AsyncLoop(self._write_once, log=logger, name='relay writer %s' % name)

    def start(self):
        self.writer.start()
        self.reader.start()

    def send(self, data):
        self.queue.put(data)

    def _read_once(self):
        try:
            stream = self.conduit.input
            if not wait_for_input(stream, POLL_INTERVAL):
                return
            data = read_available(stream, READ_SIZE)
        except (OSError, ValueError) as e:
            self.close("read failed: %s" % e)
            return
        if not data:
            self.close("client closed the connection")
            return
        for driver in self.server.drivers:
            driver.forward(data)

    def _write_once(self):
        try:
            pending = [self.queue.get(timeout=POLL_INTERVAL)]
        except Empty:
            return
        while True:
            try:
                pending.append(self.queue.get_nowait())
            except Empty:
                break
        try:
            self.conduit.output.write(b''.join(pending))
            self.conduit.output.flush()
        except (OSError, ValueError) as e:
            self.close("write failed: %s" % e)

    def close(self, reason="closed"):
        if self._closed:
            return
        self._closed = True
        self.reader.stop()
        self.writer.stop()
        self.conduit.close()
        self.server._remove_client(self)
        logger.info("client %s disconnected: %s" % (self.address[0], reason))


class IndiServer:
    """
    Relays between drivers and clients.
    :param drivers: the initial drivers, each an IndiConnection, a driver program path or a 'host[:port]'
    :param bind_address: 'address[:port]' to listen on
    """

    def __init__(self, drivers=(), bind_address=None):
        self.bind_address = bind_address or BIND_ADDRESS
        self._drivers = []
        self._sessions = []
        self._lock = threading.RLock()
        self._listener = None
        self._accept_loop = None
        self._discovery = None
        for d in drivers:
            self.add_driver(d)

    # drivers

    @property
    def drivers(self):
        with self._lock:
            return list(self._drivers)

    def add_driver(self, driver):
        """
        Adds a driver. While the server is active the driver is connected straight away.
        :return: the driver's connection
        """
        driver = make_driver(driver)
        with self._lock:
            if driver in self._drivers:
                return driver
            self._drivers.append(driver)
        driver.received.add(self._broadcast)
        if self.active:
            self._connect_driver(driver)
        return driver

    def remove_driver(self, driver):
        """
        Removes a driver, given by its connection or name. The driver is not disconnected.
        :return: the removed connection, or None
        """
        if not isinstance(driver, IndiConnection):
            driver = self.driver(driver)
        with self._lock:
            if driver not in self._drivers:
                return None
            self._drivers.remove(driver)
        driver.received.remove(self._broadcast)
        return driver

    def driver(self, name):
        """ the driver with the given name, or None """
        for d in self.drivers:
            if d.name == name:
                return d
        return None

    @staticmethod
    def _connect_driver(driver):
        if not driver.connect():
            logger.warning("driver %s is not connected" % driver.name)

    # relay

    @property
    def active(self):
        return self._listener is not None

    @property
    def clients(self):
        with self._lock:
            return len(self._sessions)

    @property
    def address(self):
        """ the (host, port) the server listens on, or None when not active """
        listener = self._listener
        return listener.getsockname()[:2] if listener is not None else None

    def start(self):
        """
        Connects the drivers and starts listening for clients.
        :return: True when the listener is active
        """
        if self.active:
            return True
        for d in self.drivers:
            self._connect_driver(d)
        endpoint = TCPServerEndpoint.parse(self.bind_address, DEFAULT_PORT)
        try:
            listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(endpoint.address)
            listener.listen(BACKLOG)
        except OSError as e:
            logger.error("unable to listen on %s: %s" % (self.bind_address, e))
            return False
        self._listener = listener
        self._accept_loop = AsyncLoop(self._accept_once, log=logger, name='relay accept')
        self._accept_loop.start()
        logger.info("listening on %s:%s" % self.address)
        return True

    def stop(self):
        """ Disconnects every driver and client and closes the listener. """
        listener = self._listener
        self._listener = None
        if self._accept_loop is not None:
            self._accept_loop.stop()
            self._accept_loop = None
        if listener is not None:
            listener.close()
        with self._lock:
            sessions = list(self._sessions)
        for s in sessions:
            s.close("server stopped")
        for d in self.drivers:
            d.disconnect()
        if self._discovery is not None:
            self._discovery.close()
            self._discovery = None

    def _accept_once(self):
        listener = self._listener
        if listener is None:
            return
        try:
            readable, _, _ = select.select([listener], [], [], POLL_INTERVAL)
            if not readable:
                return
            sock, address = listener.accept()
        except (OSError, ValueError) as e:
            if self._listener is listener:
                logger.error("accept failed: %s" % e)
                self.stop()
            return
        session = ClientSession(self, sock, address)
        with self._lock:
            self._sessions.append(session)
        session.start()
        logger.info("client %s connected" % address[0])

    def _remove_client(self, session):
        with self._lock:
            if session in self._sessions:
                self._sessions.remove(session)

    def _broadcast(self, data):
        with self._lock:
            sessions = list(self._sessions)
        for s in sessions:
            s.send(data)

    def define_properties(self):
        """ the definitions of every property known from the drivers """
        return ''.join(codec.def_vector(v) for d in self.drivers for v in d.registry.vectors())

    # discovery

    def discover(self, discovery=None):
        """
        Adds INDI servers announced on the local network as drivers, and removes them when they go.
        The discovery is polled by calling its update() method.
        :return: the discovery
        """
        if discovery is None:
            from indi.conduit.server_discovery import IndiServerDiscovery
            discovery = IndiServerDiscovery()
        discovery.listeners.add(self._on_discovery)
        self._discovery = discovery
        return discovery

    def _on_discovery(self, event):
        endpoint = event.resource
        if isinstance(event, ResourceAvailableEvent) and endpoint is not None:
            if self.driver(event.key) is None:
                host, port = endpoint.address
                self.add_driver(IndiConnection.tcp(host, port, name=event.key))
        elif isinstance(event, ResourceUnavailableEvent):
            driver = self.remove_driver(event.key)
            if driver is not None:
                driver.disconnect()


def main(argv=None):
    parser = argparse.ArgumentParser(prog='indi-relay',
                                     description='Relays INDI traffic between drivers and clients.')
    parser.add_argument('drivers', nargs='*', metavar='DRIVER',
                        help='a driver program, or host[:port] of another INDI server')
    parser.add_argument('--bind', help='address[:port] to listen on (default %s)' % BIND_ADDRESS)
    parser.add_argument('--config', metavar='DIR', help='directory holding an indi.cfg with overrides')
    parser.add_argument('--discover', action='store_true', help='relay INDI servers found with zeroconf')
    parser.add_argument('-v', '--verbose', action='store_true', help='log protocol traffic')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    from indi.config.config import configure
    configure(args.config)

    server = IndiServer(args.drivers, args.bind or BIND_ADDRESS)
    if not server.start():
        return 1
    discovery = server.discover() if args.discover else None
    try:
        while server.active:
            time.sleep(1)
            if discovery is not None:
                discovery.update()
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        server.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
