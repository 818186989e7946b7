"""
SSDP discovery of ECP devices.

Two strategies share the same datagram handling:

- SSDPSearch multicasts an M-SEARCH for the roku:ecp service type a few times, since UDP
  delivery is not guaranteed, and listens for the unicast replies.
- SSDPNotifyListener joins the multicast group on port 1900 and handles the NOTIFY
  announcements devices send when they come onto the network. There is no signal when the
  network goes away under a bound socket, so the listener closes and rebinds periodically.

Both report (ip_address, serial_number) pairs to a callback. The announcement only carries a
location and an identifier, so the callback is expected to fetch the full device details.
"""
import logging
import re
import socket
import struct
import time

from ecpconsole.support.async_loop import AsyncLoop
from ecpconsole.support.period import Period

logger = logging.getLogger(__name__)

SSDP_GROUP = '239.255.255.250'
SSDP_PORT = 1900
SEARCH_TARGET = 'roku:ecp'
SEARCH_MX = 3

POLL_INTERVAL = 1.0         # seconds a receive blocks before the loop checks for stop/rebind
MAX_DATAGRAM = 65507

_location = re.compile(r'\r\nLocation\s*:\s*(?:.*?://)?([^:/\r\n]+)', re.IGNORECASE)
_usn = re.compile(r'\r\nUSN:\s*uuid:roku:ecp:\s*([A-Z0-9]+)', re.IGNORECASE)


class ProtocolParseError(ValueError):
    """ A discovery payload or detail response did not have the expected content. """


def search_request(search_target=SEARCH_TARGET, mx=SEARCH_MX) -> bytes:
    """
    >>> search_request().splitlines()[3]
    b'ST: roku:ecp'
    """
    return ('M-SEARCH * HTTP/1.1\r\n'
            'HOST: %s:%d\r\n'
            'MAN: "ssdp:discover"\r\n'
            'ST: %s\r\n'
            'MX: %d\r\n'
            '\r\n' % (SSDP_GROUP, SSDP_PORT, search_target, mx)).encode('ascii')


def extract(pattern, text):
    """ returns the first group matched by pattern in text, or an empty string """
    m = pattern.search(text)
    return m.group(1) if m else ''


def parse_announcement(payload) -> tuple:
    """
    Extracts the device address from the Location header and the serial number from
    a USN of the form uuid:roku:ecp:<SERIAL>.

    :param payload: an M-SEARCH reply or NOTIFY datagram, as bytes or str
    :return: a tuple (ip_address, serial_number)
    :raises ProtocolParseError: when either field is missing

    >>> parse_announcement('HTTP/1.1 200 OK\\r\\nLocation: http://10.0.0.5:8060/\\r\\nUSN: uuid:roku:ecp:ABC123\\r\\n')
    ('10.0.0.5', 'ABC123')
    """
    text = payload.decode('utf-8', errors='replace') if isinstance(payload, bytes) else payload
    ip_address = extract(_location, text)
    serial_number = extract(_usn, text)
    if not (ip_address and serial_number):
        raise ProtocolParseError("no location or ecp serial number in announcement")
    return ip_address, serial_number


class SSDPReceiver(AsyncLoop):
    """
    Base for the loops that receive SSDP datagrams on a UDP socket.
    Announcements with an address and serial number are passed to on_found(ip_address, serial_number),
    anything else is dropped.
    """

    def __init__(self, on_found, socket_factory=socket.socket, clock=time.monotonic, name=None, log=logger):
        super().__init__(name=name, log=log)
        self.on_found = on_found
        self.socket_factory = socket_factory
        self.clock = clock
        self.sock = None

    def handle_datagram(self, data, sender=None):
        try:
            ip_address, serial_number = parse_announcement(data)
        except ProtocolParseError:
            self.logger.debug("ignoring ssdp datagram from %s", sender)
            return False
        self.on_found(ip_address, serial_number)
        return True

    def receive(self):
        """ waits up to POLL_INTERVAL for a datagram and handles it.
        :return: True if an announcement was handled
        """
        sock = self.sock
        if sock is None:
            self.wait(POLL_INTERVAL)
            return False
        try:
            data, sender = sock.recvfrom(MAX_DATAGRAM)
        except socket.timeout:
            return False
        except OSError as e:
            if self.running():
                self.logger.info("ssdp receive error: %s", e)
                self.close_socket()
            return False
        return self.handle_datagram(data, sender)

    def close_socket(self):
        sock, self.sock = self.sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                self.logger.debug("error closing ssdp socket: %s", e)

    def shutdown(self):
        self.close_socket()


class SSDPSearch(SSDPReceiver):
    """
    Sends `count` M-SEARCH requests, `interval` seconds apart, and collects replies until
    `linger` seconds after the last request. The loop then stops by itself.
    """

    def __init__(self, on_found, count=3, interval=15.0, linger=SEARCH_MX + 2, **kwargs):
        super().__init__(on_found, name='ssdp-search', **kwargs)
        self.count = count
        self.period = Period(interval)
        self.linger = linger
        self.sent = 0
        self.last_sent = None

    def startup(self):
        sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
        sock.settimeout(POLL_INTERVAL)
        self.sock = sock

    def loop(self):
        now = self.clock()
        if self.sent < self.count:
            if self.period(now) <= 0:
                self.send()
                self.last_sent = now
        elif self.last_sent is None or now - self.last_sent >= self.linger:
            self.stop_event.set()
            return
        self.receive()

    def send(self):
        self.sent += 1
        if self.sock is None:
            return
        try:
            self.sock.sendto(search_request(), (SSDP_GROUP, SSDP_PORT))
            self.logger.debug("sent ssdp search %d of %d", self.sent, self.count)
        except OSError as e:
            self.logger.info("unable to send ssdp search: %s", e)


class SSDPNotifyListener(SSDPReceiver):
    """
    Listens for NOTIFY announcements on the SSDP multicast group.
    The socket is rebuilt every rebind_period seconds.
    """

    def __init__(self, on_found, rebind_period=300.0, **kwargs):
        super().__init__(on_found, name='ssdp-notify', **kwargs)
        self.rebind_period = Period(rebind_period)

    def loop(self):
        if self.rebind_period(self.clock()) <= 0:
            self.rebind()
        self.receive()

    def rebind(self):
        self.close_socket()
        sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, 'SO_REUSEPORT'):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.bind(('', SSDP_PORT))
            # don't receive our own M-SEARCH requests
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 0)
            membership = struct.pack('4s4s', socket.inet_aton(SSDP_GROUP), socket.inet_aton('0.0.0.0'))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
            sock.settimeout(POLL_INTERVAL)
        except OSError as e:
            self.logger.warning("unable to listen for ssdp notify on port %d: %s", SSDP_PORT, e)
            sock.close()
            return False
        self.sock = sock
        self.logger.debug("listening for ssdp notify")
        return True
