"""
    The registry of devices seen on the local network.

    Discovery responses arrive unordered and duplicated from several sources. The
    registry reconciles them into one record per serial number, the durable identity
    of a device. The ip address is not durable since DHCP may reassign it.
"""
import logging

from ecpconsole.address import to_int32
from ecpconsole.support.events import EventSource
from ecpconsole.support.mixins import CommonEqualityMixin

logger = logging.getLogger(__name__)


class DeviceDetails(CommonEqualityMixin):
    """ The identity of a device as received in a single discovery response. """

    def __init__(self, ip_address, serial_number, friendly_name='', model_number='', model_name=''):
        self.ip_address = ip_address
        self.serial_number = serial_number
        self.friendly_name = friendly_name
        self.model_number = model_number
        self.model_name = model_name


class DeviceRecord(CommonEqualityMixin):
    """ A reconciled registry entry. ip32 is derived from ip_address and only used for ordering. """

    fields = ('serial_number', 'ip_address', 'friendly_name', 'model_number', 'model_name')

    def __init__(self, serial_number, ip_address, friendly_name='', model_number='', model_name=''):
        self.serial_number = serial_number
        self.ip_address = ip_address
        self.ip32 = to_int32(ip_address)
        self.friendly_name = friendly_name
        self.model_number = model_number
        self.model_name = model_name

    @classmethod
    def from_details(cls, details: DeviceDetails):
        return cls(details.serial_number, details.ip_address, details.friendly_name,
                   details.model_number, details.model_name)

    def merge(self, details: DeviceDetails) -> bool:
        """
        Merges a later discovery response into this record.
        The friendly name is only filled in when blank, since the user may have edited it.
        Model fields are not overwritten by blanks from a failed detail fetch.
        :return: True if any field changed.
        """
        before = self.as_dict()
        if self.ip_address != details.ip_address:
            self.ip_address = details.ip_address
            self.ip32 = to_int32(details.ip_address)
        if not self.friendly_name:
            self.friendly_name = details.friendly_name
        if details.model_name:
            self.model_name = details.model_name
        if details.model_number:
            self.model_number = details.model_number
        return self.as_dict() != before

    def as_dict(self):
        return {f: getattr(self, f) for f in self.fields}


class UpsertResult(CommonEqualityMixin):
    def __init__(self, changed):
        self.changed = changed

    def __bool__(self):
        return self.changed


class DevicesChangedEvent(CommonEqualityMixin):
    """ Posted when the set of devices or any of their fields has changed. """
    def __init__(self, registry):
        self.registry = registry


class DeviceRegistry:
    """
    Map of serial number to DeviceRecord.

    At most one record exists per serial number, and at most one per ip address:
    when a device is seen on an address already bound to another serial number,
    the older record is evicted.

    Deleted serial numbers are remembered for the lifetime of this instance so that
    late discovery responses do not silently add them back.

    Not thread safe. Discovery results are expected to be delivered on a single thread,
    see DiscoveryEngine.update().
    """

    def __init__(self):
        self._records = {}
        self._denied = set()
        self.listeners = EventSource()

    def __len__(self):
        return len(self._records)

    def __contains__(self, serial_number):
        return serial_number in self._records

    def get(self, serial_number) -> DeviceRecord:
        return self._records.get(serial_number)

    def find_by_ip(self, ip_address) -> DeviceRecord:
        for record in self._records.values():
            if record.ip_address == ip_address:
                return record
        return None

    def is_denied(self, serial_number):
        return serial_number in self._denied

    def upsert(self, details: DeviceDetails) -> UpsertResult:
        """ reconciles a discovery response with the existing records. """
        serial = details.serial_number
        if serial in self._denied:
            logger.debug("ignoring deleted device %s", serial)
            return UpsertResult(False)

        record = self._records.get(serial)
        if record is None:
            record = self._records[serial] = DeviceRecord.from_details(details)
            logger.info("new device %s at %s", serial, details.ip_address)
            changed = True
        else:
            changed = record.merge(details)

        for other in self._others_at(record):
            logger.info("device %s at %s replaced by %s", other.serial_number, other.ip_address, serial)
            del self._records[other.serial_number]
            changed = True

        if changed:
            self._changed()
        return UpsertResult(changed)

    def _others_at(self, record):
        return [r for r in self._records.values()
                if r.ip_address == record.ip_address and r.serial_number != record.serial_number]

    def delete(self, serial_number):
        """ removes a device, and prevents discovery adding it again. """
        self._denied.add(serial_number)
        if self._records.pop(serial_number, None) is not None:
            self._changed()

    def set_friendly_name(self, serial_number, name):
        record = self._records[serial_number]
        if record.friendly_name != name:
            record.friendly_name = name
            self._changed()

    def list(self):
        """ the devices sorted by ascending ip address """
        return sorted(self._records.values(), key=lambda r: r.ip32)

    def to_dict(self):
        """ a serializable association of serial number to record fields """
        return {serial: record.as_dict() for serial, record in self._records.items()}

    def restore(self, saved: dict):
        """
        Repopulates the registry from a previously saved to_dict() mapping.
        Entries that are malformed or deleted in this session are skipped. When two entries share
        an address, only the later one is kept.
        """
        for serial, fields in (saved or {}).items():
            if serial in self._denied:
                continue
            try:
                values = {f: str(fields.get(f) or '') for f in DeviceRecord.fields}
            except AttributeError:
                logger.warning("skipping malformed saved device %r", serial)
                continue
            values['serial_number'] = serial
            record = DeviceRecord(**values)
            if record.ip_address:
                # the later entry for an address wins
                for other in self._others_at(record):
                    del self._records[other.serial_number]
            self._records[serial] = record
        self._changed()

    def _changed(self):
        self.listeners.fire(DevicesChangedEvent(self))
