"""
Renders INDI messages as XML text.

All functions are pure and return a str holding one complete element. Numbers are always
written with '.' as the decimal separator; Python's %-formatting does not consult the locale.
"""

import base64
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from indi.property import BlobVector, SwitchVector, NumberVector

PROTOCOL_VERSION = '1.7'

# The element name used for blobs: 'Blob' as in newBlobVector/oneBlob, or the 'BLOB' spelling
# used by the reference INDI server. Configurable through indi.cfg.
blob_tag = 'Blob'


def format_number(value):
    """
    >>> format_number(1.0)
    '1'
    >>> format_number(0.05)
    '0.05'
    >>> format_number(-12.5)
    '-12.5'
    """
    return '%.15g' % float(value)


def format_switch(value):
    return 'On' if value else 'Off'


def encode_blob(value):
    """ the base64 text for blob bytes """
    return base64.b64encode(bytes(value or b'')).decode('ascii')


def base64_length(byte_count):
    """
    the length of the base64 text that encodes the given number of bytes
    >>> base64_length(3), base64_length(4), base64_length(0)
    (4, 8, 0)
    """
    return 4 * ((byte_count + 2) // 3)


def timestamp(when=None):
    """ an INDI timestamp: UTC, ISO 8601, no zone designator """
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc).replace(tzinfo=None)
    return when.isoformat(timespec='seconds')


def kind_name(vector):
    """ the capitalized kind used in element names, e.g. 'Number' """
    return blob_tag if isinstance(vector, BlobVector) else vector.kind


def _tostring(element):
    return ET.tostring(element, encoding='unicode')


def _member_text(vector, value):
    if isinstance(vector, SwitchVector):
        return format_switch(value)
    if isinstance(vector, NumberVector):
        return format_number(value)
    if isinstance(vector, BlobVector):
        return encode_blob(value)
    return '' if value is None else str(value)


def _values(vector, values):
    if values is None:
        return vector.values()
    values = list(values)
    if len(values) != len(vector.members):
        raise ValueError("%s.%s has %d members, %d values given" %
                         (vector.device, vector.name, len(vector.members), len(values)))
    return values


def _one_elements(parent, vector, values):
    """ appends a one<Kind> child per member, carrying just the name and the value """
    kind = kind_name(vector)
    for member, value in zip(vector.members, values):
        one = ET.SubElement(parent, 'one' + kind, name=member.name)
        text = _member_text(vector, value)
        if isinstance(vector, BlobVector):
            one.set('format', member.format)
            one.set('size', str(len(text)))
        one.text = text
    return parent


def new_vector(vector, values=None):
    """
    Renders a client command asking the driver to change the vector's values.
    :param values: the new value of every member, in member order. When omitted the
        current member values are sent.
    """
    element = ET.Element('new' + kind_name(vector) + 'Vector', device=vector.device, name=vector.name)
    return _tostring(_one_elements(element, vector, _values(vector, values)))


def set_vector(vector, values=None, message=None):
    """ Renders the driver's notification of the vector's current values. """
    element = ET.Element('set' + kind_name(vector) + 'Vector', device=vector.device, name=vector.name)
    if vector.state is not None:
        element.set('state', vector.state.value)
    element.set('timestamp', timestamp())
    if message:
        element.set('message', message)
    return _tostring(_one_elements(element, vector, _values(vector, values)))


def def_vector(vector):
    """ Renders the full definition of a vector, including the members' metadata. """
    kind = kind_name(vector)
    element = ET.Element('def' + kind + 'Vector', device=vector.device, name=vector.name,
                         label=vector.label, group=vector.group)
    if isinstance(vector, SwitchVector):
        element.set('rule', vector.rule.value if vector.rule else '')
    element.set('perm', vector.permission.value)
    if vector.state is not None:
        element.set('state', vector.state.value)
    for m in vector.members:
        d = ET.SubElement(element, 'def' + kind, label=m.label, name=m.name)
        if isinstance(vector, NumberVector):
            d.set('format', m.format)
            d.set('min', format_number(m.min))
            d.set('max', format_number(m.max))
            d.set('step', format_number(m.step))
        elif isinstance(vector, BlobVector):
            d.set('format', m.format)
        d.text = _member_text(vector, m.value)
    return _tostring(element)


def get_properties(device='', name=''):
    element = ET.Element('getProperties')
    if device:
        element.set('device', device)
    if name:
        element.set('name', name)
    element.set('version', PROTOCOL_VERSION)
    return _tostring(element)


def del_property(device, name=''):
    element = ET.Element('delProperty', device=device)
    if name:
        element.set('name', name)
    element.set('timestamp', timestamp())
    return _tostring(element)


def message(text, device='', when=None):
    element = ET.Element('message')
    if device:
        element.set('device', device)
    element.set('timestamp', timestamp(when))
    element.set('message', text)
    return _tostring(element)


def enable_blob(device, enable, name=''):
    """ enable is a bool, or one of the policy words 'Never', 'Also' or 'Only' """
    element = ET.Element('enableBLOB', device=device)
    if name:
        element.set('name', name)
    if isinstance(enable, str):
        element.text = enable
    else:
        element.text = 'Also' if enable else 'Never'
    return _tostring(element)
