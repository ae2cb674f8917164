"""
A view of one remote (or local) INDI device, built on an IndiConnection.
"""

import logging

from indi.property import SwitchVector, NumberVector, TextVector, BlobVector
from indi.support.events import EventSource

logger = logging.getLogger(__name__)

CONNECTION = 'CONNECTION'
CONNECT = 'CONNECT'

_neutral = {
    SwitchVector: False,
    NumberVector: 0.0,
    TextVector: '',
    BlobVector: b'',
}


class Device:
    """
    Typed access to the properties of one device.

    Lookups are best effort: while a property has not been defined yet the getters return
    None, or the neutral value for its kind. Commands are forwarded to the connection and
    raise when the property is unknown.

    connected_changed fires with (device, connected) each time the CONNECTION switch of the
    device changes state.
    """

    def __init__(self, name, connection):
        if connection is None:
            raise ValueError("a device needs a connection")
        self.name = name
        self.connection = connection
        self.connected_changed = EventSource('connected_changed')
        self._connected = bool(self._connect_state(connection.find(name, CONNECTION)))
        connection.new_switch.add(self._on_switch)
        connection.new_message.add(self._on_message)

    def close(self):
        """ stops listening to the connection """
        self.connection.new_switch.remove(self._on_switch)
        self.connection.new_message.remove(self._on_message)

    @property
    def connected(self):
        return self._connected

    def _on_switch(self, event):
        if event.device != self.name or event.vector.name != CONNECTION or event.action == 'new':
            return
        state = self._connect_state(event.vector)
        if state is not None and state != self._connected:
            self._connected = state
            logger.info("%s %s" % (self.name, 'connected' if state else 'disconnected'))
            self.connected_changed.fire(self, state)

    @staticmethod
    def _connect_state(vector):
        """ the value of the CONNECT switch, or of the first switch, or None """
        if not isinstance(vector, SwitchVector) or not vector.members:
            return None
        member = vector.member(CONNECT) or vector.members[0]
        return member.value

    def _on_message(self, event):
        if event.device == self.name:
            logger.info("%s: %s" % (self.name, event.text))

    # lookup

    def vector(self, name):
        return self.connection.find(self.name, name)

    def vectors(self):
        return self.connection.registry.vectors(self.name)

    def groups(self):
        """ the distinct groups of the device's properties, in definition order """
        return self.connection.registry.groups(self.name)

    def _member(self, vector_type, vector, member):
        v = self.connection.find(self.name, vector)
        if not isinstance(v, vector_type):
            return None
        return v.member(member)

    def switch(self, vector, member):
        return self._member(SwitchVector, vector, member)

    def number(self, vector, member):
        return self._member(NumberVector, vector, member)

    def text(self, vector, member):
        return self._member(TextVector, vector, member)

    def blob(self, vector, member):
        return self._member(BlobVector, vector, member)

    def value(self, vector, member, default=None):
        """
        The member's current value, or the default when the property or member is unknown.
        When no default is given the neutral value for the vector's kind is used, or None
        when the vector is not defined at all.
        """
        v = self.connection.find(self.name, vector)
        m = v.member(member) if v is not None else None
        if m is not None:
            return m.value
        if default is None and v is not None:
            return _neutral.get(type(v))
        return default

    # commands

    def set_switch(self, vector, member, value=True):
        return self.connection.set_switch(self.name, vector, member, value)

    def set_number(self, vector, member, value):
        return self.connection.set_number(self.name, vector, member, value)

    def set_text(self, vector, member, value):
        return self.connection.set_text(self.name, vector, member, value)

    def set_blob(self, vector, member, value):
        return self.connection.set_blob(self.name, vector, member, value)

    def connect(self):
        """ asks the driver to connect to the hardware """
        return self.set_switch(CONNECTION, CONNECT, True)

    def disconnect(self):
        return self.set_switch(CONNECTION, CONNECT, False)

    def enable_blob(self, enable=True):
        return self.connection.enable_blob(self.name, enable)

    def query_properties(self, name=''):
        return self.connection.query_properties(self.name, name)

    def __repr__(self):
        return "Device(%r)" % self.name
