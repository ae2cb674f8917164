"""
Background loops used by connections and the relay to pump data without blocking the caller.
"""
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class AsyncLoop:
    """
    Calls a function over and over on a daemon thread until stopped.
    The function should block for a short while, such as waiting on a queue or a select with a
    timeout, so the loop notices stop() promptly. An exception raised by the function is logged
    and the loop carries on.
    """

    def __init__(self, fn: Callable, args=(), log=logger, name=None):
        """
        :param fn: the function to call
        :param args: arguments to pass to fn
        :param log: the logger exceptions are reported to
        :param name: the name given to the background thread
        """
        self.fn = fn
        self.args = args
        self.name = name
        self.logger = log
        self.stop_event = threading.Event()
        self.background_thread = None

    def start(self):
        """ Starts the background thread. Has no effect when it is already running. """
        if self.background_thread is None:
            self.stop_event.clear()
            t = threading.Thread(target=self._run, name=self.name, daemon=True)
            self.background_thread = t
            t.start()

    def running(self):
        return not self.stop_event.is_set()

    def stop(self, join=False):
        """
        Signals the loop to finish after the current call.
        :param join: when True, waits for the thread to exit. A loop stopping itself never waits.
        """
        self.stop_event.set()
        thread, self.background_thread = self.background_thread, None
        if join and thread and thread is not threading.current_thread():
            thread.join()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        while self.running():
            try:
                self.fn(*self.args)
            except Exception as e:
                self.exception_handler(e)
        logger.debug("background thread %s exiting" % (self.name or ''))
