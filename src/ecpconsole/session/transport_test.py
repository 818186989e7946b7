import unittest
from io import BytesIO
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, is_, instance_of, contains_exactly

from ecpconsole.test.streams import StreamConduit
from ecpconsole.connector.base import AbstractConnector, ConnectorError, ConnectionTimeoutError
from ecpconsole.session.transport import ConsoleTransport, TransportConnectedEvent, TransportDataEvent, \
    TransportClosedEvent, TransportErrorEvent, TransportTimeoutEvent


class StreamConnector(AbstractConnector):
    """ connects to a console that sends the given bytes then closes the connection. """
    def __init__(self, data=b'', error=None):
        super().__init__()
        self.data = data
        self.error = error

    @property
    def endpoint(self):
        return 'stream'

    def _connect(self):
        if self.error:
            raise self.error
        return StreamConduit(BytesIO(self.data), BytesIO())

    def _disconnect(self):
        pass


class ConsoleTransportTest(unittest.TestCase):

    def run_transport(self, connector, read_size=4096):
        sut = ConsoleTransport(connector, read_size=read_size)
        events = []
        sut.events += events.append
        sut.start()
        assert_that(sut.wait(5), is_(True))
        sut.background_thread.join(5)
        sut.events.publish()
        return sut, events

    @timeout_decorator.timeout(10)
    def test_reads_until_closed(self):
        connector = StreamConnector(b'hello world', )
        sut, events = self.run_transport(connector, read_size=6)
        assert_that([type(e) for e in events], contains_exactly(
            TransportConnectedEvent, TransportDataEvent, TransportDataEvent, TransportClosedEvent))
        assert_that(b''.join(e.data for e in events[1:3]), is_(b'hello world'))
        assert_that(events[0].transport, is_(sut))
        assert_that(connector.connected, is_(False))

    @timeout_decorator.timeout(10)
    def test_connect_error(self):
        error = ConnectorError("refused")
        sut, events = self.run_transport(StreamConnector(error=error))
        assert_that(len(events), is_(1))
        assert_that(events[0], is_(instance_of(TransportErrorEvent)))
        assert_that(events[0].error, is_(error))

    @timeout_decorator.timeout(10)
    def test_connect_timeout(self):
        sut, events = self.run_transport(StreamConnector(error=ConnectionTimeoutError()))
        assert_that(len(events), is_(1))
        assert_that(events[0], is_(instance_of(TransportTimeoutEvent)))

    def test_read_error(self):
        connector = Mock(endpoint='mock')
        connector.conduit.input.read1.side_effect = ConnectionResetError("reset")
        sut = ConsoleTransport(connector)
        sut.loop()
        sut.loop()
        events = []
        sut.events += events.append
        sut.events.publish()
        assert_that(len(events), is_(1))
        assert_that(events[0], is_(instance_of(TransportErrorEvent)))
        assert_that(sut.running(), is_(False))

    def test_write(self):
        connector = Mock(endpoint='mock')
        connector.conduit.output = BytesIO()
        sut = ConsoleTransport(connector)
        sut.write(b'bt\r\n')
        assert_that(connector.conduit.output.getvalue(), is_(b'bt\r\n'))

    def test_write_error(self):
        connector = Mock(endpoint='mock')
        connector.conduit.output.write.side_effect = BrokenPipeError("pipe")
        sut = ConsoleTransport(connector, log=Mock())
        sut.write(b'x')
        connector.disconnect.assert_called_once_with()
        assert_that(sut.events.pending(), is_(True))

    def test_no_events_after_close(self):
        connector = Mock(endpoint='mock')
        connector.conduit.input.read1.return_value = b'late'
        sut = ConsoleTransport(connector)
        sut.events.post(TransportConnectedEvent(sut))
        sut.close()
        sut.loop()
        sut.startup()
        assert_that(sut.events.pending(), is_(False))
        connector.disconnect.assert_called_with()
