"""
Events produced by the incremental decoder, one per complete top-level INDI element.
"""

from indi.support.mixins import CommonEqualityMixin, StringerMixin


class IndiEvent(CommonEqualityMixin, StringerMixin):
    """ base class for decoded events. device is '' when the element names no device. """

    def __init__(self, device):
        self.device = device or ''


class VectorEvent(IndiEvent):
    """
    A vector element was decoded.
    :param vector: the vector as decoded. After it has been applied to a registry, the
        connection replaces this with the live registry instance.
    :param action: the element prefix, one of 'def', 'set' or 'new'
    """

    def __init__(self, vector, device, action):
        super().__init__(device)
        self.vector = vector
        self.action = action

    @property
    def is_definition(self):
        return self.action == 'def'


class NewSwitchEvent(VectorEvent):
    """ a switch vector was defined or updated """


class NewNumberEvent(VectorEvent):
    """ a number vector was defined or updated """


class NewTextEvent(VectorEvent):
    """ a text vector was defined or updated """


class NewBlobEvent(VectorEvent):
    """ a blob vector was defined or updated """


class DelPropertyEvent(IndiEvent):
    """ a property, or all properties of a device when name is empty, was deleted """

    def __init__(self, device, name=''):
        super().__init__(device)
        self.name = name or ''


class GetPropertiesEvent(IndiEvent):
    """ the peer asked for definitions, of one device or property when given """

    def __init__(self, device='', name='', version=None):
        super().__init__(device)
        self.name = name or ''
        self.version = version


class MessageEvent(IndiEvent):
    """ a message from a device, or from the server when device is empty """

    def __init__(self, text, timestamp, device=''):
        super().__init__(device)
        self.text = text or ''
        self.timestamp = timestamp


class EnableBlobEvent(IndiEvent):
    """ the peer changed its blob policy: mode is 'Never', 'Also' or 'Only' """

    def __init__(self, device, name='', mode='Never'):
        super().__init__(device)
        self.name = name or ''
        self.mode = mode


class DeviceAddedEvent(IndiEvent):
    """ the first property of a previously unknown device arrived """


vector_events = {
    'Switch': NewSwitchEvent,
    'Number': NewNumberEvent,
    'Text': NewTextEvent,
    'Blob': NewBlobEvent,
}
