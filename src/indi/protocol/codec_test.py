import locale
import unittest
import xml.etree.ElementTree as ET

from hamcrest import assert_that, is_, equal_to, starts_with, contains_string, is_not, calling, raises

from indi.property import SwitchVector, Switch, Rule, Permission, NumberVector, Number, TextVector, Text, \
    BlobVector, Blob, PropertyState
from indi.protocol import codec
from indi.protocol.decoder import XmlStreamDecoder


def exposure():
    return NumberVector('CCD Simulator', 'CCD_EXPOSURE', 'Expose', 'Main Control', Permission.ReadWrite,
                        members=[Number('CCD_EXPOSURE_VALUE', 'Duration (s)', '%5.2f', 0.05, 10000, 0.05, 1)])


def connection():
    return SwitchVector('CCD Simulator', 'CONNECTION', 'Connection', 'Main Control', Permission.ReadWrite,
                        Rule.OneOfMany, [Switch('CONNECT', 'Connect', False), Switch('DISCONNECT', 'Disconnect', True)])


def decode_one(xml):
    events = XmlStreamDecoder().feed(xml)
    assert_that(len(events), is_(1))
    return events[0]


class FormatTest(unittest.TestCase):

    def test_number_format(self):
        assert_that(codec.format_number(1.5), is_('1.5'))
        assert_that(codec.format_number(10000), is_('10000'))
        assert_that(codec.format_number(1e-7), is_('1e-07'))

    def test_number_format_ignores_locale(self):
        previous = locale.setlocale(locale.LC_NUMERIC)
        try:
            for name in ('de_DE.UTF-8', 'fr_FR.UTF-8'):
                try:
                    locale.setlocale(locale.LC_NUMERIC, name)
                    break
                except locale.Error:
                    continue
            assert_that(codec.format_number(0.5), is_('0.5'))
        finally:
            locale.setlocale(locale.LC_NUMERIC, previous)

    def test_switch_text(self):
        assert_that(codec.format_switch(True), is_('On'))
        assert_that(codec.format_switch(False), is_('Off'))

    def test_timestamp_has_no_zone(self):
        assert_that(codec.timestamp(), is_not(contains_string('+')))


class NewVectorTest(unittest.TestCase):

    def test_new_number(self):
        xml = codec.new_vector(exposure(), [2.5])
        assert_that(xml, is_('<newNumberVector device="CCD Simulator" name="CCD_EXPOSURE">'
                             '<oneNumber name="CCD_EXPOSURE_VALUE">2.5</oneNumber></newNumberVector>'))

    def test_new_switch_uses_current_values(self):
        xml = codec.new_vector(connection())
        assert_that(xml, is_('<newSwitchVector device="CCD Simulator" name="CONNECTION">'
                             '<oneSwitch name="CONNECT">Off</oneSwitch>'
                             '<oneSwitch name="DISCONNECT">On</oneSwitch></newSwitchVector>'))

    def test_new_text_is_escaped(self):
        v = TextVector('dev', 'T', members=[Text('A', value='a<b & "c"')])
        element = ET.fromstring(codec.new_vector(v))
        assert_that(element.find('oneText').text, is_('a<b & "c"'))

    def test_new_blob_size_is_base64_length(self):
        v = BlobVector('dev', 'B', members=[Blob('IMG', format='.fits', value=b'')])
        element = ET.fromstring(codec.new_vector(v, [b'12345']))
        one = element.find('oneBlob')
        assert_that(one.get('size'), is_('8'))
        assert_that(one.get('format'), is_('.fits'))
        assert_that(one.text, is_('MTIzNDU='))

    def test_wrong_value_count(self):
        assert_that(calling(codec.new_vector).with_args(exposure(), [1, 2]), raises(ValueError))

    def test_no_line_breaks(self):
        assert_that(codec.def_vector(exposure()), is_not(contains_string('\n')))


class DefVectorTest(unittest.TestCase):

    def test_def_switch_attributes(self):
        element = ET.fromstring(codec.def_vector(connection()))
        assert_that(element.tag, is_('defSwitchVector'))
        assert_that(element.get('rule'), is_('OneOfMany'))
        assert_that(element.get('perm'), is_('rw'))
        assert_that(element.get('group'), is_('Main Control'))
        assert_that([d.get('name') for d in element], is_(['CONNECT', 'DISCONNECT']))

    def test_def_number_attributes(self):
        element = ET.fromstring(codec.def_vector(exposure()))
        d = element.find('defNumber')
        assert_that((d.get('format'), d.get('min'), d.get('max'), d.get('step')),
                    is_(('%5.2f', '0.05', '10000', '0.05')))
        assert_that(d.text, is_('1'))

    def test_round_trip_each_kind(self):
        vectors = [
            connection(),
            exposure(),
            TextVector('dev', 'DEVICE_PORT', 'Ports', 'Options', Permission.ReadWrite,
                       members=[Text('PORT', 'Port', '/dev/ttyUSB0')], state=PropertyState.Ok),
            BlobVector('dev', 'CCD1', 'Image', 'Data', Permission.ReadOnly,
                       members=[Blob('CCD1', 'Image', '.fits', b'\x00\x01\x02binary')]),
        ]
        for v in vectors:
            event = decode_one(codec.def_vector(v))
            assert_that(event.vector, is_(equal_to(v)))
            assert_that(event.action, is_('def'))

    def test_round_trip_new_switch(self):
        v = connection()
        event = decode_one(codec.new_vector(v))
        assert_that(event.action, is_('new'))
        assert_that([m.value for m in event.vector], is_([False, True]))


class OtherMessagesTest(unittest.TestCase):

    def test_get_properties(self):
        assert_that(codec.get_properties(), is_('<getProperties version="1.7" />'))
        element = ET.fromstring(codec.get_properties('CCD Simulator', 'CCD_EXPOSURE'))
        assert_that(element.attrib, is_({'device': 'CCD Simulator', 'name': 'CCD_EXPOSURE', 'version': '1.7'}))

    def test_del_property(self):
        element = ET.fromstring(codec.del_property('dev'))
        assert_that(element.get('device'), is_('dev'))
        assert_that(element.get('name'), is_(None))

    def test_message(self):
        element = ET.fromstring(codec.message('hello', 'dev'))
        assert_that(element.get('message'), is_('hello'))

    def test_enable_blob(self):
        assert_that(codec.enable_blob('dev', True), is_('<enableBLOB device="dev">Also</enableBLOB>'))
        assert_that(codec.enable_blob('dev', False), is_('<enableBLOB device="dev">Never</enableBLOB>'))
        assert_that(codec.enable_blob('dev', 'Only', 'CCD1'), starts_with('<enableBLOB device="dev" name="CCD1">'))

    def test_blob_tag_setting(self):
        previous = codec.blob_tag
        codec.blob_tag = 'BLOB'
        try:
            v = BlobVector('dev', 'B', members=[Blob('IMG', value=b'x')])
            assert_that(codec.new_vector(v), starts_with('<newBLOBVector'))
            assert_that(codec.new_vector(v), contains_string('<oneBLOB'))
        finally:
            codec.blob_tag = previous
