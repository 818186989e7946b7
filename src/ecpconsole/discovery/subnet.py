"""
Subnet sweep: the candidate device addresses on each local IPv4 network.
"""
import logging
import socket

import psutil

from ecpconsole.address import to_int32, to_dotted, MAX_INT32

logger = logging.getLogger(__name__)

SWEEP_MAX_HOSTS = 256


class Interface:
    def __init__(self, name, address, netmask):
        self.name = name
        self.address = address
        self.netmask = netmask

    def __repr__(self):
        return "Interface(%r, %r, %r)" % (self.name, self.address, self.netmask)


def local_ipv4_interfaces():
    """
    The IPv4 addresses of the interfaces that are up, excluding loopback.
    """
    stats = psutil.net_if_stats()
    result = []
    for name, addresses in psutil.net_if_addrs().items():
        st = stats.get(name)
        if st is not None and not st.isup:
            continue
        for a in addresses:
            if a.family != socket.AF_INET or not a.address or not a.netmask:
                continue
            if a.address.startswith('127.'):
                continue
            result.append(Interface(name, a.address, a.netmask))
    return result


def sweep_hosts(address, netmask, max_hosts=SWEEP_MAX_HOSTS):
    """
    The host addresses on the subnet of address, excluding the address itself and the
    network and broadcast addresses. When the subnet has more than max_hosts candidates,
    the max_hosts addresses surrounding the local address are used.

    >>> sweep_hosts('192.168.1.10', '255.255.255.252')
    ['192.168.1.9']
    >>> sweep_hosts('10.0.0.1', '255.255.255.0', max_hosts=4)
    ['10.0.0.2', '10.0.0.3', '10.0.0.4', '10.0.0.5']
    """
    local = to_int32(address)
    mask = to_int32(netmask)
    if not local or max_hosts <= 0:
        return []
    network = local & mask
    broadcast = network | (~mask & MAX_INT32)
    first, last = network + 1, broadcast - 1
    if last < first:
        return []
    if last - first + 1 > max_hosts + 1:
        start = min(max(local - max_hosts // 2, first), last - max_hosts)
        first, last = start, start + max_hosts
    return [to_dotted(ip) for ip in range(first, last + 1) if ip != local][:max_hosts]


def sweep_targets(interfaces, max_hosts=SWEEP_MAX_HOSTS):
    """ the sweep addresses of all the interfaces, each address once. """
    local = {i.address for i in interfaces}
    seen = set()
    targets = []
    for interface in interfaces:
        hosts = sweep_hosts(interface.address, interface.netmask, max_hosts)
        logger.debug("sweeping %d hosts on %s (%s/%s)", len(hosts), interface.name,
                     interface.address, interface.netmask)
        for host in hosts:
            if host not in seen and host not in local:
                seen.add(host)
                targets.append(host)
    return targets
