import threading
import unittest
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, is_, none, not_none

from ecpconsole.support.async_loop import AsyncLoop


class AsyncLoopTest(unittest.TestCase):

    def test_loop_calls_fn_with_args(self):
        fn = Mock()
        sut = AsyncLoop(fn, (1, 2))
        sut.loop()
        fn.assert_called_once_with(1, 2)

    def test_exceptions_are_logged(self):
        log = Mock()
        error = ValueError("oops")
        sut = AsyncLoop(Mock(side_effect=error), log=log)
        sut._do(sut.loop)
        log.exception.assert_called_once_with(error)

    def test_running_until_stopped(self):
        sut = AsyncLoop(Mock())
        assert_that(sut.running(), is_(True))
        sut.stop()
        assert_that(sut.running(), is_(False))

    def test_wait_returns_true_when_stopped(self):
        sut = AsyncLoop(Mock())
        sut.stop()
        assert_that(sut.wait(5), is_(True))

    @timeout_decorator.timeout(5)
    def test_runs_on_background_thread_until_stopped(self):
        called = threading.Event()
        threads = []

        def fn():
            threads.append(threading.current_thread())
            called.set()
            sut.wait(0.01)

        sut = AsyncLoop(fn, name="test-loop")
        startup = Mock()
        shutdown = Mock()
        sut.startup = startup
        sut.shutdown = shutdown
        sut.start()
        assert_that(sut.background_thread, is_(not_none()))
        called.wait()
        sut.stop()
        assert_that(sut.background_thread, is_(none()))
        assert_that(threads[0] is threading.current_thread(), is_(False))
        assert_that(threads[0].daemon, is_(True))
        startup.assert_called_once_with()
        shutdown.assert_called_once_with()

    def test_start_twice_starts_one_thread(self):
        sut = AsyncLoop(lambda: sut.wait(0.01))
        sut.start()
        first = sut.background_thread
        sut.start()
        assert_that(sut.background_thread is first, is_(True))
        sut.stop()
