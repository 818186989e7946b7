"""
Runs a console connection on a background thread, queueing what happens to it as events.
"""
import logging
import threading

from ecpconsole.connector.base import Connector, ConnectorError, ConnectionTimeoutError
from ecpconsole.support.async_loop import AsyncLoop
from ecpconsole.support.events import QueuedEventSource

logger = logging.getLogger(__name__)

READ_SIZE = 4096


class TransportEvent:
    def __init__(self, transport):
        self.transport = transport


class TransportConnectedEvent(TransportEvent):
    """ the connection was established. """


class TransportDataEvent(TransportEvent):
    """ bytes were received from the console. """
    def __init__(self, transport, data: bytes):
        super().__init__(transport)
        self.data = data


class TransportClosedEvent(TransportEvent):
    """ the console closed the connection. """


class TransportErrorEvent(TransportEvent):
    """ the connection failed or was reset. """
    def __init__(self, transport, error):
        super().__init__(transport)
        self.error = error


class TransportTimeoutEvent(TransportErrorEvent):
    """ the connection could not be established in time. """


class ConsoleTransport(AsyncLoop):
    """
    Connects to a console and reads from it until the connection ends.

    Events are posted to `events` and delivered when its owner calls publish(). Each transport
    posts at most one terminal event (closed, error or timeout), and nothing at all once close()
    has been called.
    """

    def __init__(self, connector: Connector, read_size=READ_SIZE, log=logger):
        super().__init__(name='console %s' % connector.endpoint, log=log)
        self.connector = connector
        self.read_size = read_size
        self.events = QueuedEventSource()
        self._lock = threading.Lock()
        self._finished = False

    def startup(self):
        try:
            self.connector.connect()
        except ConnectionTimeoutError as e:
            self._finish(TransportTimeoutEvent(self, e))
        except ConnectorError as e:
            self._finish(TransportErrorEvent(self, e))
        else:
            with self._lock:
                if self.running():
                    self.events.post(TransportConnectedEvent(self))

    def loop(self):
        try:
            data = self.connector.conduit.input.read1(self.read_size)
        except (OSError, ValueError, ConnectorError) as e:
            # ValueError when the stream was closed under the reader
            self._finish(TransportErrorEvent(self, e))
            return
        if not data:
            self._finish(TransportClosedEvent(self))
        else:
            with self._lock:
                if self.running():
                    self.events.post(TransportDataEvent(self, data))

    def shutdown(self):
        self.connector.disconnect()

    def _finish(self, event):
        """ posts the terminal event, unless one has been posted already or the transport was closed """
        with self._lock:
            if not self._finished and self.running():
                self._finished = True
                self.events.post(event)
            self.stop_event.set()

    def write(self, data: bytes):
        """
        Writes data to the console. A failed write ends the connection with an error event.
        """
        try:
            output = self.connector.conduit.output
            output.write(data)
            output.flush()
        except (OSError, ValueError, ConnectorError) as e:
            self.logger.info("write to %s failed: %s", self.connector.endpoint, e)
            self._finish(TransportErrorEvent(self, e))
            self.connector.disconnect()

    def close(self):
        """
        Releases the connection. No further events are posted, and any not yet published are discarded.
        """
        with self._lock:
            self.stop_event.set()
        self.stop(join=False)
        self.connector.disconnect()
        self.events.discard()
