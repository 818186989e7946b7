import socket

from ecpconsole.conduit import base


class SocketConduit(base.Conduit):
    """
    A conduit that provides communication with a console via a TCP socket.
    """
    def __init__(self, sock: socket.socket):
        """
        :param sock: the connected client socket that represents the console session
        :type sock: socket
        """
        self.sock = sock
        self.read = sock.makefile('rb')
        self.write = sock.makefile('wb')

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    @property
    def target(self):
        return self.sock

    @property
    def output(self):
        return self.write

    @property
    def input(self):
        return self.read

    def close(self):
        # shutdown first, so a reader blocked on the input stream wakes up
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # the peer may have closed the socket already
            pass
        finally:
            self.read.close()
            self.write.close()
            self.sock.close()
