from queue import Empty, Queue


class EventSource(object):
    """
    A list of handlers that are each called when an event is fired.
    Handlers can be added and removed with += and -=.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def clear(self):
        del self._handlers[:]

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def fire_all(self, events):
        self._fire_all(events)

    def _fire_all(self, events):
        for e in events:
            self._fire(e)

    def _fire(self, *args, **kwargs):
        # copy, so handlers may unregister themselves while being notified
        for handler in tuple(self._handlers):
            handler(*args, **kwargs)


class QueuedEventSource(EventSource):
    """
    Events passed to post() are queued, and only delivered to the handlers
    when some thread calls publish(). Background threads post, the owning
    thread publishes.
    """
    def __init__(self):
        super().__init__()
        self.event_queue = Queue()

    def post(self, event):
        self.event_queue.put(event)

    def pending(self):
        return not self.event_queue.empty()

    def discard(self):
        """ drops any events that have not yet been published. """
        self._drain()

    def _drain(self):
        events = []
        while True:
            try:
                events.append(self.event_queue.get_nowait())
            except Empty:
                return events

    def publish(self):
        """ publishes any queued events on the calling thread.
        :return: the number of events published
        """
        events = self._drain()
        if events:
            self._fire_all(events)
        return len(events)
