import unittest
from unittest.mock import Mock

from hamcrest import assert_that, is_, raises, calling, instance_of, none

from ecpconsole.connector.base import ConnectorEvent, ConnectorConnectedEvent, ConnectorDisconnectedEvent, \
    Connector, AbstractConnector, ConnectorError, ConnectionNotConnectedError
from ecpconsole.support.events import EventSource


class ConnectorEventsTest(unittest.TestCase):

    def test_connector_event(self):
        self.assert_event(ConnectorEvent)
        self.assert_event(ConnectorConnectedEvent)
        self.assert_event(ConnectorDisconnectedEvent)

    def assert_event(self, event_class):
        source = Mock()
        event = event_class(source)
        assert_that(event.connector, is_(source))
        source.assert_not_called()


class ConnectorTest(unittest.TestCase):
    def test_abstract_methods(self):
        sut = Connector()
        assert_that(sut.events, is_(instance_of(EventSource)))
        assert_that(calling(sut.disconnect), raises(NotImplementedError))
        assert_that(calling(sut.connect), raises(NotImplementedError))
        # property access has to be deferred or it raises outside the assertion
        assert_that(calling(getattr).with_args(sut, 'endpoint'), raises(NotImplementedError))
        assert_that(calling(getattr).with_args(sut, 'connected'), raises(NotImplementedError))
        assert_that(calling(getattr).with_args(sut, 'conduit'), raises(NotImplementedError))


class StubConnector(AbstractConnector):
    def __init__(self, conduit=None, error=None):
        super().__init__()
        self.conduit_value = conduit
        self.error = error
        self.disconnects = 0

    def _connect(self):
        if self.error:
            raise self.error
        return self.conduit_value

    def _disconnect(self):
        self.disconnects += 1


class AbstractConnectorTest(unittest.TestCase):
    def test_constructor(self):
        sut = AbstractConnector()
        assert_that(sut.events, is_(instance_of(EventSource)))
        assert_that(sut._conduit, is_(none()))
        assert_that(sut.connected, is_(False))

    def test_abstract_methods(self):
        sut = AbstractConnector()
        assert_that(calling(sut._connect), raises(NotImplementedError))
        assert_that(calling(sut._disconnect), raises(NotImplementedError))

    def test_connected_follows_conduit(self):
        conduit = Mock(open=True)
        sut = StubConnector(conduit)
        sut.connect()
        assert_that(sut.connected, is_(True))
        assert_that(sut.conduit, is_(conduit))
        conduit.open = False
        assert_that(sut.connected, is_(False))

    def test_check_connected_false(self):
        sut = StubConnector()
        assert_that(calling(sut.check_connected), raises(ConnectionNotConnectedError))
        assert_that(calling(getattr).with_args(sut, 'conduit'), raises(ConnectionNotConnectedError))

    def test_connect_fires_event(self):
        sut = StubConnector(Mock(open=True))
        listener = Mock()
        sut.events += listener
        sut.connect()
        event = listener.call_args[0][0]
        assert_that(event, is_(instance_of(ConnectorConnectedEvent)))
        assert_that(event.connector, is_(sut))

        sut.connect()
        assert_that(listener.call_count, is_(1))

    def test_connect_error_propagates(self):
        sut = StubConnector(error=ConnectorError("refused"))
        listener = Mock()
        sut.events += listener
        assert_that(calling(sut.connect), raises(ConnectorError))
        listener.assert_not_called()
        assert_that(sut.disconnects, is_(0))

    def test_disconnect_closes_conduit(self):
        conduit = Mock(open=True)
        sut = StubConnector(conduit)
        sut.connect()
        listener = Mock()
        sut.events += listener
        sut.disconnect()
        conduit.close.assert_called_once_with()
        assert_that(sut.disconnects, is_(1))
        assert_that(listener.call_args[0][0], is_(instance_of(ConnectorDisconnectedEvent)))

        sut.disconnect()
        assert_that(sut.disconnects, is_(1))
        assert_that(listener.call_count, is_(1))
