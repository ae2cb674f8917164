"""
The INDI connection engine.

An IndiConnection is one endpoint of an INDI stream: a TCP connection to an INDI server, the
stdin/stdout of a driver process, or any pair of byte streams. It owns

- the outbound queue, drained by a writer loop,
- a reader loop feeding the incremental decoder,
- the property registry the decoded messages are applied to,
- the event sources subscribers listen on.

Commands such as set_number() render the matching INDI message and queue it. For devices
registered locally with register_vector() the connection is the authoritative side: the
registry is updated directly and set messages are sent instead of new ones.
"""

import copy
import logging
import threading
import time
from queue import Queue, Empty

from indi.connector.base import ConnectorError, CloseOnErrorConnector
from indi.connector.processconn import ProcessConnector
from indi.connector.socketconn import tcp_connector, DEFAULT_PORT
from indi.connector.streamconn import StreamConnector
from indi.property import PropertyRegistry, PropertyNotFoundError, MemberNotFoundError, SwitchVector, \
    NumberVector, TextVector, BlobVector, Blob, Rule
from indi.protocol import codec
from indi.protocol.asyncloop import AsyncLoop
from indi.protocol.decoder import XmlStreamDecoder
from indi.protocol.events import VectorEvent, DelPropertyEvent, GetPropertiesEvent, MessageEvent, EnableBlobEvent, \
    DeviceAddedEvent, NewSwitchEvent, NewNumberEvent, NewTextEvent, NewBlobEvent
from indi.protocol.io import wait_for_input, read_available
from indi.support.events import EventSource

logger = logging.getLogger(__name__)

# seconds the loops wait for input or output before checking for shutdown
POLL_INTERVAL = 0.1
# seconds without input before the last command is sent again; 0 disables
STALL_TIMEOUT = 2.0
READ_SIZE = 65536
MAX_BUFFER = 0x1000000


class IndiConnection:
    """
    One INDI endpoint.
    :param connector: how the stream is reached. When None, connect() opens a TCP connection.
    :param name: a name for logging and for the relay's driver list. Defaults to the connector's endpoint.
    """

    def __init__(self, connector=None, name=None):
        self._connector = CloseOnErrorConnector(connector) if connector is not None else None
        self._name = name
        self.registry = PropertyRegistry()
        self.decoder = XmlStreamDecoder(MAX_BUFFER)
        self._outbound = Queue()
        self._state_lock = threading.RLock()
        self._conduit = None
        self._reader = None
        self._writer = None
        self._last_sent = None
        self._last_input = 0.0
        self._stalled = False
        self._local_devices = set()
        self._known_devices = set()
        self._views = {}
        self.blob_policy = {}       # device -> 'Never', 'Also' or 'Only' as requested by the peer

        self.device_added = EventSource('device_added')
        self.new_switch = EventSource('new_switch')
        self.new_number = EventSource('new_number')
        self.new_text = EventSource('new_text')
        self.new_blob = EventSource('new_blob')
        self.del_property = EventSource('del_property')
        self.new_message = EventSource('new_message')
        self.sent = EventSource('sent')
        self.get_properties = EventSource('get_properties')
        self.received = EventSource('received')
        self.disconnected = EventSource('disconnected')
        self._vector_sources = {
            NewSwitchEvent: self.new_switch,
            NewNumberEvent: self.new_number,
            NewTextEvent: self.new_text,
            NewBlobEvent: self.new_blob,
        }

    @classmethod
    def tcp(cls, host='localhost', port=DEFAULT_PORT, name=None):
        """ a connection to an INDI server """
        return cls(tcp_connector(host, port), name or '%s:%s' % (host, port))

    @classmethod
    def driver(cls, image, args=None, cwd=None, name=None):
        """ a connection to a driver program, started on connect, speaking INDI on stdin and stdout """
        return cls(ProcessConnector(image, args, cwd), name or image)

    @classmethod
    def streams(cls, read, write, name='stream'):
        """ a connection over already open byte streams """
        return cls(StreamConnector(read, write, name), name)

    @property
    def name(self):
        if self._name:
            return self._name
        return str(self._connector.endpoint) if self._connector is not None else 'indi'

    @property
    def connector(self):
        return self._connector

    @property
    def connected(self):
        conduit = self._conduit
        return conduit is not None and self._connector.connected

    def connect(self, address=None, port=None):
        """
        Opens the stream and starts the reader and writer loops.
        :param address: the host of an INDI server. When given, replaces the connector with a TCP connector.
        :param port: the server port, 7624 when not given
        :return: True when the connection is usable
        """
        with self._state_lock:
            if address is not None or self._connector is None:
                port = port if port is not None else DEFAULT_PORT
                self.disconnect()
                self._connector = CloseOnErrorConnector(tcp_connector(address or 'localhost', port))
            if self.connected:
                return True
            try:
                self._connector.connect()
            except ConnectorError as e:
                logger.warning("unable to connect to %s: %s" % (self.name, e))
                return False
            self._conduit = self._connector.conduit
            self.decoder = XmlStreamDecoder(MAX_BUFFER)
            self._last_input = time.monotonic()
            self._stalled = False
            self._writer = AsyncLoop(self._write_once, log=logger, name='indi writer %s' % self.name)
            self._reader = AsyncLoop(self._read_once, log=logger, name='indi reader %s' % self.name)
            self._writer.start()
            self._reader.start()
        logger.info("connected to %s" % self.name)
        return self.connected

    def disconnect(self):
        """ Stops both loops, closes the stream and discards anything not yet sent. """
        self._close("disconnect requested")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc):
        self.disconnect()

    def _close(self, reason):
        with self._state_lock:
            conduit = self._conduit
            if conduit is None:
                return
            self._conduit = None
            for loop in (self._reader, self._writer):
                if loop is not None:
                    loop.stop()
            self._reader = self._writer = None
            self._connector.disconnect()
            self._drain_outbound()
            self.decoder.reset()
        logger.info("disconnected from %s: %s" % (self.name, reason))
        self.disconnected.fire(self)

    def _drain_outbound(self):
        while True:
            try:
                self._outbound.get_nowait()
            except Empty:
                return

    # outbound

    def enqueue_outbound(self, xml):
        """
        Queues a message for the writer loop. Line breaks are removed.
        Safe to call from any thread.
        """
        xml = xml.replace('\r', '').replace('\n', '')
        if xml:
            self._outbound.put((xml.encode('utf-8'), xml))
        return xml

    def forward(self, data):
        """ Queues raw bytes to be written to the peer unmodified. Dropped when not connected. """
        if not data:
            return
        if not self.connected:
            logger.debug("%s not connected, dropping %d bytes" % (self.name, len(data)))
            return
        self._outbound.put((bytes(data), None))

    def _write_once(self):
        try:
            pending = [self._outbound.get(timeout=POLL_INTERVAL)]
        except Empty:
            return
        while True:
            try:
                pending.append(self._outbound.get_nowait())
            except Empty:
                break
        conduit = self._conduit
        if conduit is None:
            return
        try:
            output = conduit.output
            output.write(b''.join(data for data, _ in pending))
            output.flush()
        except (OSError, ValueError) as e:
            self._close("write failed: %s" % e)
            return
        for _, text in pending:
            if text is not None:
                self._last_sent = text
                logger.debug("sent %s" % text[:200])
                self.sent.fire(text)

    # inbound

    def _read_once(self):
        conduit = self._conduit
        if conduit is None:
            return
        try:
            stream = conduit.input
            if not wait_for_input(stream, POLL_INTERVAL):
                self._check_stall()
                return
            data = read_available(stream, READ_SIZE)
        except (OSError, ValueError) as e:
            if self._conduit is conduit:
                self._close("read failed: %s" % e)
            return
        if not data:
            self._close("end of stream")
            return
        self._last_input = time.monotonic()
        self._stalled = False
        self.received.fire(data)
        self.process(data)

    def process(self, data):
        """
        Decodes received data and applies it, as the reader loop does.
        :return: the events decoded
        """
        events = self.decoder.feed(data)
        for event in events:
            try:
                self._dispatch(event)
            except Exception as e:
                logger.exception("error handling %s: %s" % (type(event).__name__, e))
        return events

    def _check_stall(self):
        if self._stalled or not STALL_TIMEOUT:
            return
        if time.monotonic() - self._last_input < STALL_TIMEOUT:
            return
        self._stalled = True
        if self.decoder.pending:
            logger.debug("discarding %d characters of incomplete input from %s" %
                         (len(self.decoder.pending), self.name))
            self.decoder.reset()
        if self._last_sent:
            logger.debug("no input from %s, sending the last command again" % self.name)
            self.enqueue_outbound(self._last_sent)

    def _dispatch(self, event):
        if isinstance(event, VectorEvent):
            self._dispatch_vector(event)
        elif isinstance(event, DelPropertyEvent):
            removed = self.registry.remove(event.device, event.name or None)
            if not event.name or not self.registry.vectors(event.device):
                self._known_devices.discard(event.device)
                view = self._views.pop(event.device, None)
                if view is not None:
                    view.close()
            logger.debug("%s deleted %d properties" % (event.device, len(removed)))
            self.del_property.fire(event)
        elif isinstance(event, MessageEvent):
            self.new_message.fire(event)
        elif isinstance(event, GetPropertiesEvent):
            self.get_properties.fire(event)
            if self._local_devices:
                self.define_properties(event.device, event.name)
        elif isinstance(event, EnableBlobEvent):
            self.blob_policy[event.device] = event.mode

    def _dispatch_vector(self, event):
        if event.action == 'def':
            event.vector, _ = self.registry.define_or_merge(event.vector)
        elif event.action == 'set':
            event.vector, _ = self.registry.update_values(event.vector)
        # new messages are requests to the authoritative side and leave the registry as it is
        device = event.device
        if event.action != 'new' and device not in self._known_devices:
            self._known_devices.add(device)
            logger.info("device %s added on %s" % (device, self.name))
            self.device_added.fire(DeviceAddedEvent(device))
        self._vector_sources[type(event)].fire(event)

    # lookup

    def find(self, device, name):
        """ the live vector, or None when it is not defined """
        return self.registry.find(device, name)

    def devices(self):
        return self.registry.devices()

    def device(self, name):
        """ a Device view of a known device, or None """
        if name not in self.registry.devices() and name not in self._local_devices:
            return None
        view = self._views.get(name)
        if view is None:
            from indi.device import Device
            view = self._views[name] = Device(name, self)
        return view

    def _require(self, device, name, vector_type=None):
        vector = self.registry.find(device, name)
        if vector is None:
            raise PropertyNotFoundError(device, name)
        if vector_type is not None and not isinstance(vector, vector_type):
            raise TypeError("%s.%s is a %s vector" % (device, name, vector.kind))
        return vector

    # commands

    def query_properties(self, device='', name=''):
        """ asks the peer to define its properties, of one device or one property when given """
        return self.enqueue_outbound(codec.get_properties(device, name))

    def enable_blob(self, device, enable=True, name=''):
        return self.enqueue_outbound(codec.enable_blob(device, enable, name))

    def set_vector(self, device, name, values):
        """
        Sends new values for every member of a vector, in member order.
        For a locally registered device the registry is updated and a set message is sent.
        :return: the message sent
        """
        vector = self._require(device, name)
        values = list(values)
        if len(values) != len(vector.members):
            raise ValueError("%s.%s has %d members, %d values given" % (device, name, len(vector.members),
                                                                         len(values)))
        if device in self._local_devices:
            update = copy.copy(vector)
            update.members = [copy.copy(m) for m in vector.members]
            for m, v in zip(update.members, values):
                m.value = v
                if isinstance(m, Blob):
                    m.size = codec.base64_length(len(m.value))
            live, _ = self.registry.update_values(update)
            return self.enqueue_outbound(codec.set_vector(live))
        return self.enqueue_outbound(codec.new_vector(vector, values))

    def set_switch(self, device, name, member, value):
        vector = self._require(device, name, SwitchVector)
        index = self._member_index(vector, member)
        value = bool(value)
        if vector.rule is Rule.OneOfMany:
            values = [value if i == index else not value for i in range(len(vector.members))]
        elif vector.rule is Rule.AtMostOne and value:
            values = [i == index for i in range(len(vector.members))]
        else:
            values = vector.values()
            values[index] = value
        return self.set_vector(device, name, values)

    def set_switch_index(self, device, name, index):
        """ switches on the member at index, and the others off """
        vector = self._require(device, name, SwitchVector)
        if not 0 <= index < len(vector.members):
            raise MemberNotFoundError(vector, index)
        return self.set_vector(device, name, [i == index for i in range(len(vector.members))])

    def set_number(self, device, name, member, value):
        return self._set_member(self._require(device, name, NumberVector), member, float(value))

    def set_text(self, device, name, member, value):
        return self._set_member(self._require(device, name, TextVector), member, str(value))

    def set_blob(self, device, name, member, value):
        return self._set_member(self._require(device, name, BlobVector), member, bytes(value))

    def _set_member(self, vector, member, value):
        values = vector.values()
        values[self._member_index(vector, member)] = value
        return self.set_vector(vector.device, vector.name, values)

    @staticmethod
    def _member_index(vector, member):
        index = vector.index_of(member)
        if index < 0:
            raise MemberNotFoundError(vector, member)
        return index

    # local devices

    def register_device(self, device):
        """ makes this connection the authoritative side for the device """
        self._local_devices.add(device)

    def register_vector(self, vector):
        """
        Defines a vector of a local device. The definition is sent to the peer when connected.
        :return: the live vector
        """
        self.register_device(vector.device)
        live, _ = self.registry.define_or_merge(vector)
        if self.connected:
            self.enqueue_outbound(codec.def_vector(live))
        return live

    def delete_property(self, device, name=''):
        """ removes a local property, or every property of the device, and tells the peer """
        self.registry.remove(device, name or None)
        return self.enqueue_outbound(codec.del_property(device, name))

    def send_message(self, text, device=''):
        return self.enqueue_outbound(codec.message(text, device))

    def define_properties(self, device='', name=''):
        """
        Sends the definitions of the local vectors, all of them or those matching device and name.
        :return: the definitions sent
        """
        xml = ''.join(codec.def_vector(v) for v in self.registry.vectors(device, name)
                      if v.device in self._local_devices)
        return self.enqueue_outbound(xml)

    def __repr__(self):
        return "IndiConnection(%s)" % self.name
