import itertools


class FrameScheduler:
    """
    Stands in for a display refresh signal. Callbacks requested with request() are run
    on the next call to tick(), once each. Callbacks requested while a tick is running are
    deferred to the following tick, so a callback that reschedules itself runs once per frame.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending = {}

    def request(self, callback):
        """
        :return: a handle that can be passed to cancel()
        """
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel(self, handle):
        self._pending.pop(handle, None)

    @property
    def pending(self):
        return len(self._pending)

    def tick(self):
        """ runs the callbacks requested before this tick.
        :return: the number of callbacks run
        """
        due, self._pending = self._pending, {}
        for callback in due.values():
            callback()
        return len(due)
