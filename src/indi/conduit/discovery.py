"""
    Discovery of INDI endpoints.
    When an INDI server is announced on the network a ResourceAvailableEvent is posted with the
    server's endpoint, and a ResourceUnavailableEvent when the announcement is withdrawn.
"""

import logging
from queue import Queue, Empty

from indi.support.mixins import CommonEqualityMixin
from indi.support.events import EventSource

logger = logging.getLogger(__name__)


class ResourceEvent(CommonEqualityMixin):
    """ Notification about a resource. """
    def __init__(self, source, key, resource):
        """
        :param source: the ResourceDiscovery that posted this event
        :param key: the name of the resource, such as the announced service name
        :param resource: how to reach the resource, or None when it has gone
        """
        self.source = source
        self.key = key
        self.resource = resource


class ResourceAvailableEvent(ResourceEvent):
    """ Signifies that a resource is available. """


class ResourceUnavailableEvent(ResourceEvent):
    """ Signifies that a resource has become unavailable. """


class ResourceDiscovery:
    """
    Collects availability changes from any thread and posts them to the listeners from the
    thread that calls update().
    """

    def __init__(self):
        self.listeners = EventSource('discovery')
        self._pending = Queue()

    def available(self, key, resource):
        logger.info("available: %s" % key)
        self._pending.put(ResourceAvailableEvent(self, key, resource))

    def unavailable(self, key, resource=None):
        logger.info("unavailable: %s" % key)
        self._pending.put(ResourceUnavailableEvent(self, key, resource))

    def update(self):
        """
        Posts the changes collected since the last call, in the order they happened.
        :return: the events posted
        """
        events = []
        while True:
            try:
                events.append(self._pending.get_nowait())
            except Empty:
                break
        self.listeners.fire_all(events)
        return events

    def close(self):
        """ stops discovering """
