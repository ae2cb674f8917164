import logging
import os

from indi.conduit.base import Conduit
from indi.conduit.process_conduit import ProcessConduit
from indi.connector.base import Connector, ConnectorError

logger = logging.getLogger(__name__)


class ProcessConnector(Connector):
    """ Starts a driver process and connects to it via standard in/out. """

    def __init__(self, image, args=None, cwd=None):
        super().__init__()
        self.image = image
        self.args = args
        self.cwd = cwd

    @property
    def endpoint(self):
        return self.image

    def _open(self) -> Conduit:
        try:
            args = self.args if self.args is not None else []
            conduit = ProcessConduit(self.image, *args, cwd=self.cwd)
            logger.info("started driver %s" % self.image)
            return conduit
        except (OSError, ValueError) as e:
            logger.error("unable to start driver %s: %s" % (self.image, e))
            raise ConnectorError("cannot start %s" % self.image) from e

    def _available(self):
        return self._is_executable(self.image)

    @staticmethod
    def _is_executable(file):
        """
        Determines if the given file is executable.
        :param file: the filename to check.
        :return: True if the file is executable.
        """
        return os.path.isfile(file) and os.access(file, os.X_OK)
