import types
from functools import wraps


def notify_exception_method_wrapper(listener):

    def wrapper_factory(func):
        """
        wraps a bound method so the listener is told about any exception it raises.
        The exception is passed to the listener and then re-raised.
        """
        @wraps(func)
        def wrapped(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                listener(e)
                raise

        return wrapped

    return wrapper_factory


def make_exception_notify_proxy(target, listener):
    """
    Wraps a stream so that listener(exception) is called whenever one of its methods fails.
    """
    return MethodWrappingProxy(target, notify_exception_method_wrapper(listener))


class MethodWrappingProxy(object):
    """
    Forwards attribute access to a target, passing bound methods through a wrapper first.
    """

    def __init__(self, target, wrapper):
        self._wrapper = wrapper
        self._target = target

    def __getattribute__(self, name):
        target = object.__getattribute__(self, "_target")
        attr = getattr(target, name)
        if isinstance(attr, (types.MethodType, types.BuiltinMethodType)):
            wrapper = object.__getattribute__(self, "_wrapper")
            attr = wrapper(attr)
        return attr
