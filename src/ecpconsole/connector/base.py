import logging
from abc import abstractmethod

from ecpconsole.conduit.base import Conduit
from ecpconsole.support.events import EventSource

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """ Indicates an error condition with a connection: refused, reset or unreachable. """


class ConnectionTimeoutError(ConnectorError):
    """ The connection could not be established in the time allowed. """


class ConnectionNotConnectedError(ConnectorError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class ConnectorEvent:
    """ base class for connector events. """
    def __init__(self, connector):
        self.connector = connector


class ConnectorConnectedEvent(ConnectorEvent):
    """ The connector was connected. """


class ConnectorDisconnectedEvent(ConnectorEvent):
    """ The connector was disconnected. """


class Connector:
    """ A connector describes an endpoint to which a conduit can be established. """

    def __init__(self):
        self.events = EventSource()

    @property
    @abstractmethod
    def endpoint(self):
        """ the endpoint that this connector reaches out to """
        raise NotImplementedError

    @property
    @abstractmethod
    def connected(self) -> bool:
        """
        Determines if this connector is connected to its underlying resource.
        :return: True if this connector is connected to it's underlying resource. False otherwise.
        :rtype: bool
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def conduit(self) -> Conduit:
        """
        Retrieves the conduit for this connection.
        If the connection is not connected, raises ConnectionNotConnectedError
        """
        raise NotImplementedError

    @abstractmethod
    def connect(self):
        """
        Connects this connector to the underlying resource.
        If the connection is already connected, this method returns silently.
        Raises ConnectorError if the connection cannot be established.
        """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self):
        raise NotImplementedError


class AbstractConnector(Connector):
    """ Manages the connection cycle to an endpoint."""

    def __init__(self):
        super().__init__()
        self._conduit = None

    @property
    def connected(self):
        return self._conduit is not None and self._connected()

    def connect(self):
        if self.connected:
            return

        try:
            self._conduit = self._connect()
            self.events.fire(ConnectorConnectedEvent(self))
        finally:
            if not self._conduit:
                self.disconnect()

    def disconnect(self):
        conduit, self._conduit = self._conduit, None
        if conduit is None:
            return
        self._disconnect()
        conduit.close()
        self.events.fire(ConnectorDisconnectedEvent(self))

    @abstractmethod
    def _connect(self) -> Conduit:
        """ Template method for subclasses to perform the connection.
            If connection is not possible, a ConnectorError should be thrown
        """
        raise NotImplementedError

    @abstractmethod
    def _disconnect(self):
        """ perform any actions needed on disconnection.
        The base class takes care of closing the conduit, which happens
        after this method has been called.
        """
        raise NotImplementedError

    def _connected(self):
        return self._conduit is not None and self._conduit.open

    @property
    def conduit(self) -> Conduit:
        """
        Retrieves the conduit for this connection.
        raises ConnectionNotConnectedError if not connected
        """
        self.check_connected()
        return self._conduit

    def check_connected(self):
        if not self.connected:
            raise ConnectionNotConnectedError
