"""
A console session with a device: the connection, the output shown, and the command line.

All methods are called on the owning thread. The socket is read on a background thread by a
ConsoleTransport; what it receives is only acted on when the owner calls update(), and the
received bytes are only decoded and appended to the output when the scheduler ticks.
"""
import logging
from enum import Enum

from ecpconsole.config.settings import Settings
from ecpconsole.connector.socketconn import ConsoleEndpoint, SocketConnector
from ecpconsole.session.history import CommandHistory, Key
from ecpconsole.session.log import SessionLog
from ecpconsole.session.output import OutputBuffer
from ecpconsole.session.packets import PacketQueue
from ecpconsole.session.transport import ConsoleTransport, TransportConnectedEvent, TransportDataEvent, \
    TransportClosedEvent, TransportErrorEvent, TransportTimeoutEvent
from ecpconsole.support.events import EventSource
from ecpconsole.support.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

LINE_END = '\r\n'
BREAK = b'\x03'
BREAK_MARKER = 'Break!!!' + LINE_END


class SessionState(Enum):
    DISCONNECTED = 'Disconnected'
    CONNECTING = 'Connecting'
    CONNECTED = 'Connected'
    CLOSING = 'Closing'


class SessionTerminatedError(RuntimeError):
    """ The session was used after terminate() was called. """


class SessionEvent:
    def __init__(self, session):
        self.session = session


class SessionStateEvent(SessionEvent):
    def __init__(self, session, old, new):
        super().__init__(session)
        self.old = old
        self.new = new


class OutputAppendedEvent(SessionEvent):
    """ text was added to the output. new_unit is False when the text continues the last line shown. """
    def __init__(self, session, text, new_unit):
        super().__init__(session)
        self.text = text
        self.new_unit = new_unit


class OutputEvictedEvent(SessionEvent):
    """ the oldest output units were dropped to keep within the line budget. """
    def __init__(self, session, units):
        super().__init__(session)
        self.units = units


class OutputClearedEvent(SessionEvent):
    pass


def socket_transport(endpoint: ConsoleEndpoint):
    return ConsoleTransport(SocketConnector(endpoint))


class ConnectionSession:
    """
    A session with the console at `endpoint`.

    :param settings: the Settings provider. The session follows changes to auto-scroll
        and the output line budget.
    :param scheduler: paces the decoding of received data, typically ticked once per displayed frame.
    :param on_up: called with the session when the connection is established.
    :param on_down: called with the session when a connection attempt ends, whether it failed,
        timed out, was closed by the device or was disconnected. Called once per attempt.
    :param transport_factory: creates the transport for an endpoint.
    """

    def __init__(self, endpoint: ConsoleEndpoint, settings: Settings=None, scheduler: FrameScheduler=None,
                 on_up=None, on_down=None, transport_factory=socket_transport, session_log: SessionLog=None,
                 log=logger):
        self.endpoint = endpoint
        self.settings = settings or Settings.defaults()
        self.scheduler = scheduler or FrameScheduler()
        self.on_up = on_up
        self.on_down = on_down
        self.transport_factory = transport_factory
        self.session_log = session_log or SessionLog()
        self.logger = log

        self.history = CommandHistory()
        self.packets = PacketQueue()
        self.output = OutputBuffer(self.settings.max_output_lines, self.settings.auto_scroll)
        self.input_line = ''
        self.state = SessionState.DISCONNECTED
        self.state_events = EventSource()
        self.output_events = EventSource()

        self._transport = None
        self._attempt_open = False
        self._drain_handle = None
        self._terminated = False
        self.settings.listeners += self._setting_changed

    @property
    def terminated(self):
        return self._terminated

    @property
    def connected(self):
        return self.state == SessionState.CONNECTED

    def _check(self):
        if self._terminated:
            raise SessionTerminatedError("the session with %s has been terminated" % self.endpoint)

    def _set_state(self, state):
        old = self.state
        if old != state:
            self.state = state
            self.state_events.fire(SessionStateEvent(self, old, state))

    def connect(self):
        """
        Starts a connection attempt, first releasing any current connection. The outcome is
        reported through on_up/on_down as update() delivers it.
        History, output and any data not yet displayed are kept.
        """
        self._check()
        self._release_transport()
        transport = self.transport_factory(self.endpoint)
        transport.events += self._transport_event
        self._transport = transport
        self._attempt_open = True
        self._set_state(SessionState.CONNECTING)
        self.logger.info("connecting to %s", self.endpoint)
        transport.start()

    reconnect = connect

    def disconnect(self):
        """ closes the connection at the user's request. """
        self._check()
        if self._transport is None:
            return
        self._set_state(SessionState.CLOSING)
        self._release_transport()
        self._connection_down()

    def update(self):
        """
        Delivers the connection events received since the last update.
        :return: the number of events delivered
        """
        self._check()
        transport = self._transport
        return transport.events.publish() if transport is not None else 0

    def _release_transport(self):
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.events -= self._transport_event
            transport.close()

    def _transport_event(self, event):
        if event.transport is not self._transport:
            return
        if isinstance(event, TransportConnectedEvent):
            self.logger.info("connected to %s", self.endpoint)
            self._set_state(SessionState.CONNECTED)
            if self.on_up:
                self.on_up(self)
        elif isinstance(event, TransportDataEvent):
            self.receive(event.data)
        elif isinstance(event, TransportTimeoutEvent):
            self.logger.info("timeout connecting to %s", self.endpoint)
            self._connection_lost()
        elif isinstance(event, TransportErrorEvent):
            self.logger.info("connection to %s failed: %s", self.endpoint, event.error)
            self._connection_lost()
        elif isinstance(event, TransportClosedEvent):
            self.logger.info("connection to %s closed", self.endpoint)
            self._connection_lost()

    def _connection_lost(self):
        self._release_transport()
        self._connection_down()

    def _connection_down(self):
        self._set_state(SessionState.DISCONNECTED)
        if self._attempt_open:
            self._attempt_open = False
            if self.on_down:
                self.on_down(self)

    def receive(self, data: bytes):
        """ queues data from the console, to be displayed on the next scheduler tick. """
        self.packets.enqueue(data)
        if self._drain_handle is None:
            self._drain_handle = self.scheduler.request(self._drain)

    def _drain(self):
        self._drain_handle = None
        for _ in range(len(self.packets)):
            text = self.packets.dequeue_decoded()
            if text:
                self.append_output(text)
        if not self.packets.is_empty():
            self._drain_handle = self.scheduler.request(self._drain)

    def send(self, line):
        """ sends a line to the console, when connected, and echoes it to the output. """
        self._check()
        line += LINE_END
        if self.connected:
            self._transport.write(line.encode('utf-8'))
        self.append_output(line)

    def send_break(self):
        self._check()
        self.append_output(BREAK_MARKER)
        if self.connected:
            self._transport.write(BREAK)

    def append_output(self, text):
        """ adds text to the output, evicting the oldest output when over the line budget. """
        self._check()
        self.session_log.write(text)
        new_unit, evicted = self.output.append(text)
        if text:
            self.output_events.fire(OutputAppendedEvent(self, text, new_unit))
        self._evicted(evicted)

    def _evicted(self, units):
        if units:
            self.output_events.fire(OutputEvictedEvent(self, units))

    def clear_screen(self):
        self._check()
        self.output.clear()
        self.output_events.fire(OutputClearedEvent(self))

    def clear_line(self):
        self._check()
        self.input_line = ''
        return self.input_line

    def keydown(self, key: Key, text=None):
        """
        Handles a key pressed on the command line.
        :param text: the text of the command line. Defaults to input_line.
        :return: the new text for the command line, or None to leave it unchanged.
        """
        self._check()
        if text is not None:
            self.input_line = text
        line = self.input_line
        replacement = self.history.keydown(key, line)
        if key == Key.ENTER:
            self.send(line)
            return self.clear_line()
        if key == Key.BREAK:
            self.send_break()
        elif key == Key.ESCAPE:
            return self.clear_line()
        elif key == Key.CLEAR_SCREEN:
            self.clear_screen()
        elif replacement is not None:
            self.input_line = replacement
        return replacement

    def insert_text(self, text, sel_start, sel_end, insert):
        """
        Replaces the selected part of the command line with insert.
        :return: a tuple of the new command line and the caret position after the inserted text.

        >>> session = ConnectionSession(ConsoleEndpoint('10.0.0.5', 8085))
        >>> session.insert_text('print x', 6, 7, 'm.top')
        ('print m.top', 11)
        >>> session.terminate()
        """
        self._check()
        sel_start, sel_end = sorted((max(0, sel_start), min(len(text), sel_end)))
        self.input_line = text[:sel_start] + insert + text[sel_end:]
        return self.input_line, sel_start + len(insert)

    def _setting_changed(self, event):
        if event.name == 'console.auto_scroll':
            self.output.auto_scroll = event.new
        elif event.name == 'console.max_output_lines':
            self.output.max_lines = event.new
        else:
            return
        self._evicted(self.output.prune())

    def terminate(self):
        """
        Releases the connection without calling on_up/on_down, and discards any data not yet shown.
        The session cannot be used afterwards: calling any method, terminate() included, raises
        SessionTerminatedError.
        """
        self._check()
        self._terminated = True
        self._attempt_open = False
        self._release_transport()
        if self._drain_handle is not None:
            self.scheduler.cancel(self._drain_handle)
            self._drain_handle = None
        self.packets.clear()
        self.settings.listeners -= self._setting_changed
        self.session_log.close()
        self.state = SessionState.DISCONNECTED
