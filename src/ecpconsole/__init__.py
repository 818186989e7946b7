"""


Device consoles over the local network

- AddressCodec (address): dotted IPv4 strings to and from 32-bit integers, so devices can be listed
  in address order.
- DeviceRegistry (devices): the known devices, keyed by serial number. An address belongs to at most one
  device; a device the user deleted stays deleted until restart.
- DiscoveryEngine (discovery.engine): finds devices three ways
 - SSDP multicast search, repeated a few times (discovery.ssdp)
 - the SSDP notify listener, rebound periodically (discovery.ssdp)
 - a sweep of the local subnets (discovery.subnet)
 Every address found gets an ECP detail fetch on port 8060 (discovery.ecp) to learn the device identity.
- ConnectionSession (session.session): a raw TCP connection to one of a device's console ports.
  Keeps the command history, the output shown and the output line budget.
- Conduit/Connector: the socket plumbing under a session.
- Settings (config): configobj files, validated against a schema, with change notification.


## Threading

Sockets are blocking. Each one is serviced by a background thread (AsyncLoop) that posts what happens
onto a QueuedEventSource. Nothing is acted on until the owner calls update(), so the registry and
sessions only ever change on the owner's thread.

Received bytes are queued again in the session (PacketQueue), and decoded when the FrameScheduler ticks.
A UI ticks once per displayed frame, so a console producing output faster than it can be shown is
paced to the display, and the line budget bounds what is kept.

"""
