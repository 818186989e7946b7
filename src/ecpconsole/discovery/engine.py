"""
Runs the discovery strategies and delivers the device details they find.

The multicast search, the notify listener and the detail fetches all run on background
threads. Their results are queued, and only published to listeners when update() is
called, so listeners such as the DeviceRegistry see every result on the calling thread.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from ecpconsole.discovery.ecp import DetailFetcher
from ecpconsole.discovery.ssdp import SSDPNotifyListener, SSDPSearch
from ecpconsole.discovery.subnet import local_ipv4_interfaces, sweep_targets, SWEEP_MAX_HOSTS
from ecpconsole.support.events import QueuedEventSource

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """
    Discovers ECP devices by three independent strategies:

    - multicast search, repeated search_count times search_interval seconds apart
    - the multicast notify listener, rebound every rebind_period seconds
    - a sweep of the local subnets, bounded to sweep_max_hosts addresses per interface

    Every address found is passed to a detail fetch. The DeviceDetails resulting from each
    fetch are fired through `listeners` when update() is called.

    :param fetcher  resolves an address to DeviceDetails. See DetailFetcher.
    :param interfaces   a callable returning the local interfaces to sweep.
    """

    def __init__(self, fetcher: DetailFetcher=None, search_count=3, search_interval=15.0,
                 rebind_period=300.0, sweep=True, sweep_max_hosts=SWEEP_MAX_HOSTS, workers=32,
                 interfaces=local_ipv4_interfaces, log=logger):
        self.fetcher = fetcher or DetailFetcher()
        self.search_count = search_count
        self.search_interval = search_interval
        self.rebind_period = rebind_period
        self.sweep_enabled = sweep
        self.sweep_max_hosts = sweep_max_hosts
        self.workers = workers
        self.interfaces = interfaces
        self.logger = log
        self.listeners = QueuedEventSource()
        self.search = None
        self.notify = None
        self._lock = threading.Lock()
        self._executor = self._new_executor()

    @classmethod
    def from_settings(cls, settings, **kwargs):
        """ builds an engine from the [discovery] section of a Settings instance. """
        d = settings.discovery
        return cls(fetcher=kwargs.pop('fetcher', None) or DetailFetcher(timeout=d['fetch_timeout']),
                   search_count=d['search_count'], search_interval=d['search_interval'],
                   rebind_period=d['notify_rebind_period'], sweep=d['sweep_enabled'],
                   sweep_max_hosts=d['sweep_max_hosts'], workers=d['fetch_workers'], **kwargs)

    def _new_executor(self):
        return ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='ecp-fetch')

    @property
    def executor(self):
        """ the fetch pool, or None once the engine is stopped. """
        return self._executor

    @property
    def stopped(self):
        return self._executor is None

    def _submit(self, fn, *args):
        with self._lock:
            if self._executor is None:
                return None
            try:
                return self._executor.submit(fn, *args)
            except RuntimeError:
                # shut down by its owner
                return None

    def discover(self):
        """
        Starts all the discovery strategies. Returns immediately; errors are logged, never raised.
        """
        self.stop()
        with self._lock:
            self._executor = self._new_executor()
        self.search = SSDPSearch(self.announced, count=self.search_count, interval=self.search_interval)
        self.notify = SSDPNotifyListener(self.announced, rebind_period=self.rebind_period)
        self.search.start()
        self.notify.start()
        if self.sweep_enabled:
            self._submit(self.sweep)

    def announced(self, ip_address, serial_number):
        """ callback from the SSDP strategies. The announcement alone is not enough to list the device. """
        return self.fetch(ip_address, serial_number)

    def sweep(self):
        try:
            interfaces = self.interfaces()
        except OSError as e:
            self.logger.warning("unable to list network interfaces: %s", e)
            return 0
        targets = sweep_targets(interfaces, self.sweep_max_hosts)
        self.logger.info("sweeping %d addresses", len(targets))
        for ip_address in targets:
            if self._submit(self._fetch, ip_address, '') is None:
                break
        return len(targets)

    def fetch(self, ip_address, known_serial=''):
        """
        Fetches the details for a device at ip_address in the background.
        Also used for an address entered by the user, where the serial number is not known.
        :return: a Future that completes with the DeviceDetails, or None if the device
            could not be identified. None instead of a Future when the engine is stopped.
        """
        return self._submit(self._fetch, ip_address, known_serial)

    def _fetch(self, ip_address, known_serial):
        details = self.fetcher.fetch(ip_address, known_serial)
        if details is not None and not self.stopped:
            self.listeners.post(details)
        return details

    def update(self):
        """ delivers the device details found since the last update on the calling thread. """
        return self.listeners.publish()

    def stop(self):
        """
        stops the multicast strategies and abandons any fetches not yet started.
        Announcements arriving afterwards are dropped.
        """
        for loop in (self.search, self.notify):
            if loop is not None:
                loop.stop(join=False)
        self.search = self.notify = None
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
