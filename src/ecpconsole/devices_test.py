import unittest
from unittest.mock import Mock

from hamcrest import assert_that, is_, none, equal_to, contains_exactly, calling, raises, has_entries

from ecpconsole.devices import DeviceDetails, DeviceRecord, DeviceRegistry, DevicesChangedEvent


def details(ip='10.0.0.5', serial='ABC123', friendly='Living Room', number='3930X', name='Roku Express'):
    return DeviceDetails(ip, serial, friendly, number, name)


class DeviceRecordTest(unittest.TestCase):
    def test_from_details_computes_ip32(self):
        record = DeviceRecord.from_details(details())
        assert_that(record.ip32, is_(0x0A000005))
        assert_that(record.friendly_name, is_('Living Room'))

    def test_merge_identical_is_unchanged(self):
        record = DeviceRecord.from_details(details())
        assert_that(record.merge(details()), is_(False))

    def test_merge_new_address(self):
        record = DeviceRecord.from_details(details())
        assert_that(record.merge(details(ip='10.0.0.9')), is_(True))
        assert_that(record.ip_address, is_('10.0.0.9'))
        assert_that(record.ip32, is_(0x0A000009))

    def test_merge_keeps_existing_friendly_name(self):
        record = DeviceRecord.from_details(details(friendly='Den'))
        assert_that(record.merge(details(friendly='Living Room')), is_(False))
        assert_that(record.friendly_name, is_('Den'))

    def test_merge_fills_blank_friendly_name(self):
        record = DeviceRecord.from_details(details(friendly=''))
        assert_that(record.merge(details(friendly='Living Room')), is_(True))
        assert_that(record.friendly_name, is_('Living Room'))

    def test_merge_does_not_blank_model_fields(self):
        record = DeviceRecord.from_details(details())
        assert_that(record.merge(details(number='', name='')), is_(False))
        assert_that(record.model_number, is_('3930X'))
        assert_that(record.model_name, is_('Roku Express'))

    def test_merge_updates_model_fields(self):
        record = DeviceRecord.from_details(details())
        assert_that(record.merge(details(number='4660X', name='Roku Ultra')), is_(True))
        assert_that(record.model_name, is_('Roku Ultra'))


class DeviceRegistryTest(unittest.TestCase):
    def setUp(self):
        self.sut = DeviceRegistry()
        self.listener = Mock()
        self.sut.listeners += self.listener

    def test_first_upsert_creates_record(self):
        assert_that(self.sut.upsert(details()).changed, is_(True))
        assert_that(self.sut.get('ABC123').ip_address, is_('10.0.0.5'))
        self.listener.assert_called_once_with(DevicesChangedEvent(self.sut))

    def test_repeated_identical_upsert_is_unchanged(self):
        self.sut.upsert(details())
        self.listener.reset_mock()
        result = self.sut.upsert(details())
        assert_that(result.changed, is_(False))
        assert_that(bool(result), is_(False))
        self.listener.assert_not_called()

    def test_same_address_different_serial_evicts_old_record(self):
        self.sut.upsert(details(serial='OLD1'))
        assert_that(self.sut.upsert(details(serial='NEW2')).changed, is_(True))
        assert_that(self.sut.get('OLD1'), is_(none()))
        assert_that(self.sut.find_by_ip('10.0.0.5').serial_number, is_('NEW2'))
        assert_that(len(self.sut), is_(1))

    def test_moved_device_evicts_record_at_new_address(self):
        self.sut.upsert(details(serial='A', ip='10.0.0.5'))
        self.sut.upsert(details(serial='B', ip='10.0.0.6'))
        self.sut.upsert(details(serial='A', ip='10.0.0.6'))
        assert_that([r.serial_number for r in self.sut.list()], is_(['A']))

    def test_deleted_serial_stays_deleted(self):
        self.sut.upsert(details())
        self.sut.delete('ABC123')
        assert_that('ABC123' in self.sut, is_(False))
        assert_that(self.sut.upsert(details()).changed, is_(False))
        assert_that('ABC123' in self.sut, is_(False))
        assert_that(self.sut.is_denied('ABC123'), is_(True))

    def test_delete_unknown_serial_is_denied_without_event(self):
        self.sut.delete('XYZ')
        self.listener.assert_not_called()
        assert_that(self.sut.upsert(details(serial='XYZ')).changed, is_(False))

    def test_set_friendly_name_bypasses_merge_rule(self):
        self.sut.upsert(details())
        self.sut.set_friendly_name('ABC123', 'Bedroom')
        assert_that(self.sut.get('ABC123').friendly_name, is_('Bedroom'))
        self.sut.upsert(details(friendly='Living Room'))
        assert_that(self.sut.get('ABC123').friendly_name, is_('Bedroom'))

    def test_set_friendly_name_unknown_serial(self):
        assert_that(calling(self.sut.set_friendly_name).with_args('nope', 'x'), raises(KeyError))

    def test_list_sorted_by_numeric_address(self):
        self.sut.upsert(details(serial='C', ip='192.168.1.100'))
        self.sut.upsert(details(serial='A', ip='192.168.1.20'))
        self.sut.upsert(details(serial='B', ip='10.1.1.1'))
        self.sut.upsert(details(serial='D', ip='192.168.1.3'))
        assert_that([r.serial_number for r in self.sut.list()], contains_exactly('B', 'D', 'A', 'C'))

    def test_find_by_ip_missing(self):
        assert_that(self.sut.find_by_ip('1.2.3.4'), is_(none()))

    def test_to_dict_and_restore(self):
        self.sut.upsert(details())
        saved = self.sut.to_dict()
        assert_that(saved['ABC123'], has_entries(ip_address='10.0.0.5', model_name='Roku Express'))

        restored = DeviceRegistry()
        restored.restore(saved)
        assert_that(restored.get('ABC123'), is_(equal_to(self.sut.get('ABC123'))))

    def test_restore_skips_malformed_and_denied(self):
        self.sut.delete('GONE')
        self.sut.restore({'GONE': {'ip_address': '1.1.1.1'},
                          'BAD': 'not a mapping',
                          'OK': {'ip_address': '1.1.1.2'}})
        assert_that([r.serial_number for r in self.sut.list()], is_(['OK']))
        assert_that(self.sut.get('OK').friendly_name, is_(''))

    def test_restore_keeps_one_record_per_address(self):
        self.sut.restore({'OLD': {'ip_address': '10.0.0.5', 'friendly_name': 'Den'},
                          'NEW': {'ip_address': '10.0.0.5', 'friendly_name': 'Kitchen'},
                          'OTHER': {'ip_address': '10.0.0.6'}})
        assert_that(sorted(r.serial_number for r in self.sut.list()), is_(['NEW', 'OTHER']))
        assert_that(self.sut.find_by_ip('10.0.0.5').friendly_name, is_('Kitchen'))

    def test_restore_none(self):
        self.sut.restore(None)
        assert_that(len(self.sut), is_(0))
