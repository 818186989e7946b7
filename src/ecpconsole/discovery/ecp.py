"""
The ECP detail fetch: a GET to port 8060 on a device, whose XML response describes the device.
Only the identity fields are used here, extracted by tag.
"""
import logging
import re

import requests

from ecpconsole.devices import DeviceDetails
from ecpconsole.discovery.ssdp import extract

logger = logging.getLogger(__name__)

ECP_PORT = 8060
FETCH_TIMEOUT = 10.0


def _tag(name):
    return re.compile(r'<%s>(.*?)</%s>' % (name, name), re.IGNORECASE | re.DOTALL)


_serial_number = _tag('serialNumber')
_friendly_name = _tag('friendlyName')
_model_number = _tag('modelNumber')
_model_name = _tag('modelName')


def parse_device_details(ip_address, known_serial, body) -> DeviceDetails:
    """
    Builds the device details from an ECP response body. A serial number already known
    from the SSDP announcement takes precedence over the one in the body. The body is empty
    when the fetch failed, in which case only the known fields are filled in.

    >>> parse_device_details('10.0.0.5', '', '<root><serialNumber>X1</serialNumber></root>').serial_number
    'X1'
    >>> parse_device_details('10.0.0.5', 'ABC', '').serial_number
    'ABC'
    """
    body = body or ''
    return DeviceDetails(ip_address,
                         known_serial or extract(_serial_number, body).strip(),
                         extract(_friendly_name, body).strip(),
                         extract(_model_number, body).strip(),
                         extract(_model_name, body).strip())


class DetailFetcher:
    """
    Resolves a bare address into the device identity.

    The request timeout covers the connection attempt, so an address with no host behind it
    fails after `timeout` seconds rather than waiting for the operating system to give up.
    """

    def __init__(self, timeout=FETCH_TIMEOUT, port=ECP_PORT, session: requests.Session=None, log=logger):
        self.timeout = timeout
        self.port = port
        self.session = session or requests.Session()
        self.logger = log

    def url(self, ip_address):
        """
        >>> DetailFetcher().url('10.0.0.5')
        'http://10.0.0.5:8060/'
        """
        return 'http://%s:%d/' % (ip_address, self.port)

    def fetch(self, ip_address, known_serial='') -> DeviceDetails:
        """
        Fetches the details of the device at ip_address.
        Failures are logged and not raised: the details then carry only the known address and serial number.
        :return: the details, or None when no serial number could be determined.
        """
        body = ''
        try:
            response = self.session.get(self.url(ip_address), timeout=self.timeout)
            response.raise_for_status()
            body = response.text
        except requests.Timeout:
            self.logger.info("ecp request to %s timed out", ip_address)
        except requests.RequestException as e:
            self.logger.info("ecp request to %s failed: %s", ip_address, e)

        details = parse_device_details(ip_address, known_serial, body)
        if not details.serial_number:
            self.logger.debug("no serial number for %s, discarded", ip_address)
            return None
        return details

    def close(self):
        self.session.close()
