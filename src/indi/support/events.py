import threading


class EventSource(object):
    """
    A multicast callback list. Handlers are called in registration order with the
    arguments passed to fire(). Having no handlers is not an error.

    Handlers may be added and removed from any thread; fire() calls a snapshot of the
    handlers taken when it was invoked.
    """

    def __init__(self, name=None):
        self.name = name
        self._handlers = []
        self._lock = threading.Lock()

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def __len__(self):
        return len(self._handlers)

    def add(self, handler):
        with self._lock:
            self._handlers.append(handler)
        return self

    def remove(self, handler):
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
        return self

    def clear(self):
        with self._lock:
            self._handlers = []

    def handlers(self):
        with self._lock:
            return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        for handler in self.handlers():
            handler(*args, **kwargs)

    def fire_all(self, events):
        for e in events:
            self.fire(e)

    def __repr__(self):
        return "EventSource(%s, %d handlers)" % (self.name, len(self._handlers))
