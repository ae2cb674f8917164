"""
Standard INDI property names for common kinds of device.

PROFILES maps a device kind to a table of attribute name -> (vector, member). The names are
the standard INDI properties drivers of that kind define. DeviceProfile reads and writes
them through a Device:

    camera = DeviceProfile('camera', connection.device('CCD Simulator'))
    camera.exposure = 1.5
    camera.temperature      # None until the driver defines CCD_TEMPERATURE
"""

GENERAL = {
    'connect': ('CONNECTION', 'CONNECT'),
    'port': ('DEVICE_PORT', 'PORT'),
    'lst': ('TIME_LST', 'LST'),
    'utc': ('TIME_UTC', 'UTC'),
    'utc_offset': ('TIME_UTC', 'OFFSET'),
    'latitude': ('GEOGRAPHIC_COORD', 'LAT'),
    'longitude': ('GEOGRAPHIC_COORD', 'LONG'),
    'elevation': ('GEOGRAPHIC_COORD', 'ELEV'),
    'atmosphere_temperature': ('ATMOSPHERE', 'TEMPERATURE'),
    'atmosphere_pressure': ('ATMOSPHERE', 'PRESSURE'),
    'atmosphere_humidity': ('ATMOSPHERE', 'HUMIDITY'),
    'upload_dir': ('UPLOAD_SETTINGS', 'UPLOAD_DIR'),
    'upload_prefix': ('UPLOAD_SETTINGS', 'UPLOAD_PREFIX'),
    'active_telescope': ('ACTIVE_DEVICES', 'ACTIVE_TELESCOPE'),
    'active_ccd': ('ACTIVE_DEVICES', 'ACTIVE_CCD'),
    'active_filter': ('ACTIVE_DEVICES', 'ACTIVE_FILTER'),
    'active_focuser': ('ACTIVE_DEVICES', 'ACTIVE_FOCUSER'),
    'active_dome': ('ACTIVE_DEVICES', 'ACTIVE_DOME'),
    'active_gps': ('ACTIVE_DEVICES', 'ACTIVE_GPS'),
}

TELESCOPE = {
    'ra': ('EQUATORIAL_EOD_COORD', 'RA'),
    'dec': ('EQUATORIAL_EOD_COORD', 'DEC'),
    'j2000_ra': ('EQUATORIAL_COORD', 'RA'),
    'j2000_dec': ('EQUATORIAL_COORD', 'DEC'),
    'altitude': ('HORIZONTAL_COORD', 'ALT'),
    'azimuth': ('HORIZONTAL_COORD', 'AZ'),
    'park': ('TELESCOPE_PARK', 'PARK'),
    'abort': ('TELESCOPE_ABORT_MOTION', 'ABORT_MOTION'),
    'motion_north': ('TELESCOPE_MOTION_NS', 'MOTION_NORTH'),
    'motion_south': ('TELESCOPE_MOTION_NS', 'MOTION_SOUTH'),
    'motion_west': ('TELESCOPE_MOTION_WE', 'MOTION_WEST'),
    'motion_east': ('TELESCOPE_MOTION_WE', 'MOTION_EAST'),
    'guide_north': ('TELESCOPE_TIMED_GUIDE_NS', 'TIMED_GUIDE_N'),
    'guide_south': ('TELESCOPE_TIMED_GUIDE_NS', 'TIMED_GUIDE_S'),
    'guide_west': ('TELESCOPE_TIMED_GUIDE_WE', 'TIMED_GUIDE_W'),
    'guide_east': ('TELESCOPE_TIMED_GUIDE_WE', 'TIMED_GUIDE_E'),
    'aperture': ('TELESCOPE_INFO', 'TELESCOPE_APERTURE'),
    'focal_length': ('TELESCOPE_INFO', 'TELESCOPE_FOCAL_LENGTH'),
    'guider_aperture': ('TELESCOPE_INFO', 'GUIDER_APERTURE'),
    'guider_focal_length': ('TELESCOPE_INFO', 'GUIDER_FOCAL_LENGTH'),
}

CAMERA = {
    'exposure': ('CCD_EXPOSURE', 'CCD_EXPOSURE_VALUE'),
    'abort': ('CCD_ABORT_EXPOSURE', 'ABORT'),
    'temperature': ('CCD_TEMPERATURE', 'CCD_TEMPERATURE_VALUE'),
    'cooler': ('CCD_COOLER', 'COOLER_ON'),
    'cooler_power': ('CCD_COOLER_POWER', 'CCD_COOLER_VALUE'),
    'bin_x': ('CCD_BINNING', 'HOR_BIN'),
    'bin_y': ('CCD_BINNING', 'VER_BIN'),
    'frame_x': ('CCD_FRAME', 'X'),
    'frame_y': ('CCD_FRAME', 'Y'),
    'frame_width': ('CCD_FRAME', 'WIDTH'),
    'frame_height': ('CCD_FRAME', 'HEIGHT'),
    'frame_reset': ('CCD_FRAME_RESET', 'RESET'),
    'max_x': ('CCD_INFO', 'CCD_MAX_X'),
    'max_y': ('CCD_INFO', 'CCD_MAX_Y'),
    'pixel_size_x': ('CCD_INFO', 'CCD_PIXEL_SIZE_X'),
    'pixel_size_y': ('CCD_INFO', 'CCD_PIXEL_SIZE_Y'),
    'cfa_offset_x': ('CCD_CFA', 'CFA_OFFSET_X'),
    'cfa_offset_y': ('CCD_CFA', 'CFA_OFFSET_Y'),
    'compression': ('CCD_COMPRESSION', 'CCD_COMPRESSION_ON'),
}

DOME = {
    'azimuth': ('ABS_DOME_POSITION', 'DOME_ABSOLUTE_POSITION'),
    'relative_position': ('REL_DOME_POSITION', 'DOME_RELATIVE_POSITION'),
    'speed': ('DOME_SPEED', 'DOME_SPEED_VALUE'),
    'timer': ('DOME_TIMER', 'DOME_TIMER_VALUE'),
    'shutter_open': ('DOME_SHUTTER', 'SHUTTER_OPEN'),
    'shutter_close': ('DOME_SHUTTER', 'SHUTTER_CLOSE'),
    'clockwise': ('DOME_MOTION', 'DOME_CW'),
    'counter_clockwise': ('DOME_MOTION', 'DOME_CCW'),
    'abort': ('DOME_ABORT_MOTION', 'ABORT'),
    'park': ('DOME_PARK', 'PARK'),
    'goto_home': ('DOME_GOTO', 'DOME_HOME'),
    'goto_park': ('DOME_GOTO', 'DOME_PARK'),
    'autosync': ('DOME_AUTOSYNC', 'DOME_AUTOSYNC_ENABLE'),
    'autosync_threshold': ('DOME_PARAMS', 'AUTOSYNC_THRESHOLD'),
    'radius': ('DOME_MEASUREMENTS', 'DM_DOME_RADIUS'),
    'shutter_width': ('DOME_MEASUREMENTS', 'DOME_SHUTTER_WIDTH'),
    'north_displacement': ('DOME_MEASUREMENTS', 'DM_NORTH_DISPLACEMENT'),
    'east_displacement': ('DOME_MEASUREMENTS', 'DM_EAST_DISPLACEMENT'),
    'up_displacement': ('DOME_MEASUREMENTS', 'DM_UP_DISPLACEMENT'),
    'ota_offset': ('DOME_MEASUREMENTS', 'DM_OTA_OFFSET'),
}

FOCUSER = {
    'position': ('ABS_FOCUS_POSITION', 'FOCUS_ABSOLUTE_POSITION'),
    'relative_position': ('REL_FOCUS_POSITION', 'FOCUS_RELATIVE_POSITION'),
    'speed': ('FOCUS_SPEED', 'FOCUS_SPEED_VALUE'),
    'timer': ('FOCUS_TIMER', 'FOCUS_TIMER_VALUE'),
    'inward': ('FOCUS_MOTION', 'FOCUS_INWARD'),
    'outward': ('FOCUS_MOTION', 'FOCUS_OUTWARD'),
    'abort': ('FOCUS_ABORT_MOTION', 'ABORT'),
}

FILTER_WHEEL = {
    'slot': ('FILTER_SLOT', 'FILTER_SLOT_VALUE'),
}

SPECTROGRAPH = {
    'integration': ('SENSOR_INTEGRATION', 'SENSOR_INTEGRATION_VALUE'),
    'abort': ('SENSOR_ABORT_INTEGRATION', 'ABORT'),
    'temperature': ('SENSOR_TEMPERATURE', 'SENSOR_TEMPERATURE_VALUE'),
    'cooler': ('SPECTROGRAPH_COOLER', 'COOLER_ON'),
    'cooler_power': ('SPECTROGRAPH_COOLER_POWER', 'SPECTROGRAPH_COOLER_VALUE'),
    'sample_rate': ('SPECTROGRAPH_SETTINGS', 'SPECTROGRAPH_SAMPLERATE'),
    'frequency': ('SPECTROGRAPH_SETTINGS', 'SPECTROGRAPH_FREQUENCY'),
    'gain': ('SPECTROGRAPH_SETTINGS', 'SPECTROGRAPH_GAIN'),
    'bandwidth': ('SPECTROGRAPH_SETTINGS', 'SPECTROGRAPH_BANDWIDTH'),
    'bits_per_sample': ('SPECTROGRAPH_INFO', 'SPECTROGRAPH_BITSPERSAMPLE'),
}

DETECTOR = {
    'capture': ('DETECTOR_CAPTURE', 'DETECTOR_CAPTURE_VALUE'),
    'abort': ('DETECTOR_ABORT_CAPTURE', 'ABORT'),
    'temperature': ('DETECTOR_TEMPERATURE', 'DETECTOR_TEMPERATURE_VALUE'),
    'cooler': ('DETECTOR_COOLER', 'COOLER_ON'),
    'cooler_power': ('DETECTOR_COOLER_POWER', 'DETECTOR_COOLER_VALUE'),
    'sample_rate': ('DETECTOR_SETTINGS', 'DETECTOR_SAMPLERATE'),
    'frequency': ('DETECTOR_SETTINGS', 'DETECTOR_FREQUENCY'),
    'bits_per_sample': ('DETECTOR_INFO', 'DETECTOR_BITSPERSAMPLE'),
}

PROFILES = {
    'general': GENERAL,
    'telescope': dict(GENERAL, **TELESCOPE),
    'camera': dict(GENERAL, **CAMERA),
    'dome': dict(GENERAL, **DOME),
    'focuser': dict(GENERAL, **FOCUSER),
    'filter_wheel': dict(GENERAL, **FILTER_WHEEL),
    'spectrograph': dict(GENERAL, **SPECTROGRAPH),
    'detector': dict(GENERAL, **DETECTOR),
}


class DeviceProfile:
    """
    Attribute access to a device's standard properties.
    Reading an attribute whose property is not defined yet gives the neutral value for its kind
    (or None while the vector is unknown); assigning sends the new value to the driver.
    """

    def __init__(self, kind, device):
        if kind not in PROFILES:
            raise ValueError("unknown device kind %r, expected one of %s" % (kind, ', '.join(sorted(PROFILES))))
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'device', device)
        object.__setattr__(self, 'table', PROFILES[kind])

    def __getattr__(self, name):
        try:
            vector, member = self.table[name]
        except KeyError:
            raise AttributeError(name) from None
        return self.device.value(vector, member)

    def __setattr__(self, name, value):
        if name not in self.table:
            raise AttributeError("%s has no property %s" % (self.kind, name))
        vector, member = self.table[name]
        v = self.device.vector(vector)
        if v is None or v.kind == 'Number':
            self.device.set_number(vector, member, value)
        elif v.kind == 'Switch':
            self.device.set_switch(vector, member, value)
        elif v.kind == 'Text':
            self.device.set_text(vector, member, value)
        else:
            self.device.set_blob(vector, member, value)

    def __dir__(self):
        return sorted(self.table)
