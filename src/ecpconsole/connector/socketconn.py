import logging
import re
import socket
import threading

from ecpconsole.conduit.base import Conduit
from ecpconsole.conduit.socket_conduit import SocketConduit
from ecpconsole.connector.base import AbstractConnector, ConnectorError, ConnectionTimeoutError
from ecpconsole.support.mixins import CommonEqualityMixin

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0

_host = re.compile(r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}', re.ASCII)
_port = re.compile(r'\d+', re.ASCII)


class UserInputError(ValueError):
    """ A host or port entered by the user is not usable. """


class ConsoleEndpoint(CommonEqualityMixin):
    """
    The address of a device console: a dotted quad and a TCP port.
    """
    def __init__(self, host, port):
        self.host = host
        self.port = port

    @classmethod
    def parse(cls, host, port):
        """
        Validates the host and port as entered by the user.

        >>> ConsoleEndpoint.parse(' 192.168.1.20 ', '8085')
        ConsoleEndpoint(host='192.168.1.20', port=8085)
        >>> ConsoleEndpoint.parse('roku.local', '8085')
        Traceback (most recent call last):
        ...
        ecpconsole.connector.socketconn.UserInputError: Invalid IP address
        """
        host = (host or '').strip()
        if not _host.fullmatch(host):
            raise UserInputError("Invalid IP address")
        port = str(port).strip()
        if not _port.fullmatch(port) or not 0 < int(port) <= 65535:
            raise UserInputError("Invalid Port")
        return cls(host, int(port))

    @property
    def address(self):
        return self.host, self.port

    def __str__(self):
        return '%s:%d' % self.address


class SocketConnector(AbstractConnector):
    """
    A connector that communicates with a device console via a TCP socket.

    disconnect() may be called from another thread while a connection attempt is in progress.
    The socket being connected is closed at once, and the attempt ends with a ConnectorError.
    """
    def __init__(self, endpoint: ConsoleEndpoint, timeout=CONNECT_TIMEOUT, socket_factory=socket.socket):
        """
        :param endpoint: the console to connect to.
        :param timeout: seconds to wait for the connection to be established.
        :param socket_factory: creates the unconnected socket. The default is socket.socket
        """
        super().__init__()
        self._endpoint = endpoint
        self.timeout = timeout
        self._socket_factory = socket_factory
        self._lock = threading.Lock()
        self._pending = None

    @property
    def endpoint(self):
        return self._endpoint

    def _connect(self) -> Conduit:
        sock = self._socket_factory(socket.AF_INET, socket.SOCK_STREAM)
        with self._lock:
            self._pending = sock
        try:
            sock.settimeout(self.timeout)
            sock.connect(self._endpoint.address)
        except socket.timeout as e:
            sock.close()
            logger.info("timeout opening socket to %s", self._endpoint)
            raise ConnectionTimeoutError(str(self._endpoint)) from e
        except OSError as e:
            sock.close()
            logger.info("error opening socket to %s: %s", self._endpoint, e)
            raise ConnectorError(str(e)) from e
        with self._lock:
            if self._pending is not sock:
                sock.close()
                raise ConnectorError("connection to %s was abandoned" % self._endpoint)
            self._pending = None
            # reads block until data arrives or the socket is closed
            sock.settimeout(None)
            self._conduit = SocketConduit(sock)
        logger.info("opened socket to %s", self._endpoint)
        return self._conduit

    def disconnect(self):
        with self._lock:
            sock, self._pending = self._pending, None
        if sock is not None:
            logger.info("abandoning connection attempt to %s", self._endpoint)
            sock.close()
        super().disconnect()

    def _disconnect(self):
        pass
