import socket

from indi.conduit import base


class SocketConduit(base.Conduit):
    """
    A conduit that provides communication via a connected socket.
    """
    def __init__(self, sock: socket.socket):
        """
        :param sock: the client socket that represents the connection
        :type sock: socket
        """
        self.sock = sock
        self.read = sock.makefile('rb')
        self.write = sock.makefile('wb')

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    @property
    def output(self):
        return self.write

    @property
    def input(self):
        return self.read

    def close(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass    # the peer may have closed the socket already
        finally:
            for stream in (self.read, self.write):
                try:
                    stream.close()
                except OSError:
                    pass
            self.sock.close()
