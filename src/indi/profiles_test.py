import unittest

from hamcrest import assert_that, is_, none, calling, raises, has_item, has_entries, contains_string

from indi.client import IndiConnection
from indi.profiles import DeviceProfile, PROFILES

CAMERA = ('<defNumberVector device="CCD Simulator" name="CCD_EXPOSURE" perm="rw">'
          '<defNumber name="CCD_EXPOSURE_VALUE" min="0" max="3600">1</defNumber></defNumberVector>'
          '<defSwitchVector device="CCD Simulator" name="CCD_COOLER" rule="OneOfMany" perm="rw">'
          '<defSwitch name="COOLER_ON">Off</defSwitch><defSwitch name="COOLER_OFF">On</defSwitch></defSwitchVector>'
          '<defTextVector device="CCD Simulator" name="UPLOAD_SETTINGS" perm="rw">'
          '<defText name="UPLOAD_DIR">/tmp</defText><defText name="UPLOAD_PREFIX">IMAGE_XXX</defText>'
          '</defTextVector>')


def sent(connection):
    return connection._outbound.get_nowait()[1]


class DeviceProfileTest(unittest.TestCase):

    def setUp(self):
        self.connection = IndiConnection(name='test')
        self.connection.process(CAMERA)
        self.sut = DeviceProfile('camera', self.connection.device('CCD Simulator'))

    def test_every_kind_has_the_general_properties(self):
        for kind, table in PROFILES.items():
            assert_that(table, has_entries(connect=('CONNECTION', 'CONNECT'), port=('DEVICE_PORT', 'PORT')))

    def test_unknown_kind(self):
        assert_that(calling(DeviceProfile).with_args('microscope', None), raises(ValueError))

    def test_read(self):
        assert_that(self.sut.exposure, is_(1.0))
        assert_that(self.sut.cooler, is_(False))
        assert_that(self.sut.upload_dir, is_('/tmp'))
        assert_that(self.sut.temperature, is_(none()))

    def test_unknown_attribute(self):
        assert_that(calling(getattr).with_args(self.sut, 'focal_length'), raises(AttributeError))
        assert_that(calling(setattr).with_args(self.sut, 'focal_length', 1), raises(AttributeError))

    def test_write_number(self):
        self.sut.exposure = 2.5
        assert_that(sent(self.connection), is_('<newNumberVector device="CCD Simulator" name="CCD_EXPOSURE">'
                                               '<oneNumber name="CCD_EXPOSURE_VALUE">2.5</oneNumber>'
                                               '</newNumberVector>'))

    def test_write_switch(self):
        self.sut.cooler = True
        assert_that(sent(self.connection), is_('<newSwitchVector device="CCD Simulator" name="CCD_COOLER">'
                                               '<oneSwitch name="COOLER_ON">On</oneSwitch>'
                                               '<oneSwitch name="COOLER_OFF">Off</oneSwitch></newSwitchVector>'))

    def test_write_text(self):
        self.sut.upload_prefix = 'M31_XXX'
        assert_that(sent(self.connection), contains_string('M31_XXX'))

    def test_dir_lists_properties(self):
        assert_that(dir(self.sut), has_item('exposure'))
