import logging
import subprocess

from indi.conduit.base import StreamConduit

logger = logging.getLogger(__name__)


class ProcessConduit(StreamConduit):
    """ Provides a conduit to a locally hosted driver process, speaking INDI on its stdin and stdout. """

    def __init__(self, *args, cwd=None):
        """
        args: the process image name and any additional arguments required by the process.
        raises OSError and ValueError
        """
        super().__init__()
        self.process = None
        self.cwd = cwd
        self._load(*args)

    def _load(self, *args):
        p = subprocess.Popen(args, cwd=self.cwd, stdout=subprocess.PIPE, stdin=subprocess.PIPE)
        self.process = p
        self.attach(p.stdout, p.stdin)

    @property
    def open(self):
        """
        The conduit is considered open if the underlying process is still set and alive.
        """
        return self.process is not None and \
            self.process.poll() is None

    def close(self):
        p = self.process
        if p is not None:
            self.process = None
            super().close()
            if p.poll() is None:
                p.terminate()
            p.wait()
            logger.debug("driver process %s exited with %s" % (p.args[0], p.returncode))
