"""
Incremental decoding of the un-framed INDI byte stream.

INDI sends a sequence of top-level XML elements with no enclosing document and no length
prefix. The decoder accumulates text until the accumulation parses as the content of a
synthetic <document> element and then scans it for complete messages. Text that does not
yet parse is kept until more input arrives.
"""

import base64
import binascii
import codecs
import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime

from indi.property import IndiError, Switch, Number, Text, Blob, vector_type_for, SwitchVector, NumberVector, \
    TextVector, BlobVector
from indi.protocol.events import vector_events, DelPropertyEvent, GetPropertiesEvent, MessageEvent, EnableBlobEvent

logger = logging.getLogger(__name__)

MAX_BUFFER = 0x1000000

# characters that may not appear in an XML 1.0 document
_invalid_xml = re.compile('[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]')
_declaration = re.compile(r'<\?xml[^>]*\?>')
# the end of a top-level INDI message: the closing tag of a vector or the self-closing simple messages
_message_end = re.compile(r'</(?:def|set|new)\w*Vector\s*>|</(?:message|delProperty|getProperties|enableBLOB)\s*>|'
                          r'<(?:message|delProperty|getProperties|enableBLOB)\b[^<>]*/>')


class DecodeError(IndiError):
    """ One element could not be decoded. """


def strip_invalid(text):
    """
    >>> strip_invalid('a\\x00b\\x1bc')
    'abc'
    """
    return _invalid_xml.sub('', text)


def parse_number(text):
    """
    Parses an INDI number. Sexagesimal values such as '12:30:00' or '-5 30' are converted to
    decimal. The decimal separator is always '.'.
    >>> parse_number(' 1.5 ')
    1.5
    >>> parse_number('12:30:00')
    12.5
    >>> parse_number('-0:30')
    -0.5
    """
    text = (text or '').strip()
    if not text:
        return 0.0
    parts = re.split(r'[:\s]+', text)
    if len(parts) == 1:
        return float(text)
    sign = -1.0 if parts[0].startswith('-') else 1.0
    value = 0.0
    for i, part in enumerate(parts[:3]):
        value += abs(float(part)) / (60 ** i)
    return sign * value


def parse_timestamp(text):
    """ an INDI timestamp, or None when absent or malformed """
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.strip().rstrip('Z'))
    except ValueError:
        logger.debug("malformed timestamp %r" % text)
        return None


def _int(text, default=0):
    try:
        return int(text)
    except (TypeError, ValueError):
        return default


def _float(text, default=0.0):
    try:
        return parse_number(text) if text is not None else default
    except ValueError:
        return default


def decode_blob(text, size):
    """
    Decodes base64 blob text. When the text is not valid base64 a zero-filled value of the
    declared size is produced.
    """
    text = re.sub(r'\s+', '', text or '')
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("invalid base64 in blob (%d characters), using %d zero bytes" % (len(text), size))
        return bytes(max(size, 0))


def build_member(vector_type, element):
    """ builds the typed member described by a def<Kind> or one<Kind> element """
    attrs = element.attrib
    name = attrs.get('name', '')
    label = attrs.get('label', '')
    text = element.text or ''
    if vector_type is SwitchVector:
        return Switch(name, label, 'On' in text)
    if vector_type is NumberVector:
        try:
            value = parse_number(text)
        except ValueError as e:
            raise DecodeError("number %s has value %r" % (name, text)) from e
        return Number(name, label, attrs.get('format', ''), _float(attrs.get('min')), _float(attrs.get('max')),
                      _float(attrs.get('step')), value)
    if vector_type is TextVector:
        return Text(name, label, text)
    if vector_type is BlobVector:
        stripped = re.sub(r'\s+', '', text)
        size = _int(attrs.get('size'), len(stripped))
        return Blob(name, label, attrs.get('format', ''), decode_blob(stripped, size), size)
    raise DecodeError("no member type for %s" % element.tag)


class _OpenVector:
    """ a vector element whose start tag has been seen, collecting its members """

    def __init__(self, vector_type, action, attrs):
        self.vector_type = vector_type
        self.action = action
        self.attrs = attrs
        self.members = []

    def build(self):
        a = self.attrs
        return self.vector_type(a.get('device'), a.get('name'), a.get('label'), a.get('group'),
                                a.get('perm'), a.get('rule'), self.members, a.get('state'))


class XmlStreamDecoder:
    """
    Turns chunks of bytes (or text) into INDI events.
    One instance per stream: the decoder keeps the text that has not yet formed complete elements.
    """

    def __init__(self, max_buffer=None):
        self.max_buffer = max_buffer if max_buffer is not None else MAX_BUFFER
        self._text = codecs.getincrementaldecoder('utf-8')('replace')
        self._buffer = ''

    @property
    def pending(self):
        """ the text received that has not yet been decoded """
        return self._buffer

    def reset(self):
        """ discards any incomplete input """
        self._text.reset()
        self._buffer = ''

    def feed(self, data):
        """
        Adds data to the accumulation and decodes whatever complete messages it now holds.
        :param data: bytes or str
        :return: the list of decoded events, in stream order
        """
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = self._text.decode(bytes(data))
        self._buffer += _declaration.sub('', strip_invalid(data))
        events = self._decode_complete()
        if len(self._buffer) > self.max_buffer:
            logger.warning("discarding %d characters of undecodable input" % len(self._buffer))
            self._buffer = ''
        return events

    def _decode_complete(self):
        buffer = self._buffer
        if not buffer.strip():
            self._buffer = ''
            return []
        parser = self._parse(buffer)
        if parser is not None:
            self._buffer = ''
            return self._scan(parser)
        ends = [m.end() for m in _message_end.finditer(buffer)]
        if not ends:
            return []
        # the tail may be the start of a message still to come: try the part up to the last complete message
        if ends[-1] < len(buffer):
            parser = self._parse(buffer[:ends[-1]])
            if parser is not None:
                self._buffer = buffer[ends[-1]:]
                return self._scan(parser)
        # a complete message is not well-formed: decode the messages one at a time and drop the bad ones
        events = []
        start = 0
        for end in ends:
            message = buffer[start:end]
            start = end
            parser = self._parse(message)
            if parser is None:
                logger.warning("dropping malformed message %s" % _shorten(message.strip()))
                continue
            events.extend(self._scan(parser))
        self._buffer = buffer[start:]
        return events

    @staticmethod
    def _parse(text):
        """ parses the text as the content of a document. returns the parser holding the events, or None """
        parser = ET.XMLPullParser(events=('start', 'end'))
        try:
            parser.feed('<document>')
            parser.feed(text)
            parser.feed('</document>')
            parser.close()
        except ET.ParseError:
            return None
        return parser

    def _scan(self, parser):
        events = []
        current = None
        for kind, element in parser.read_events():
            tag = element.tag
            if tag == 'document':
                continue
            try:
                if kind == 'start':
                    current = self._start(tag, element, current, events)
                else:
                    current = self._end(tag, element, current, events)
            except Exception as e:
                logger.warning("unable to decode <%s %s>: %s" % (tag, _excerpt(element.attrib), e))
        return events

    def _start(self, tag, element, current, events):
        action, target = tag[:3].lower(), tag[3:].lower()
        attrs = element.attrib
        if target.endswith('vector'):
            vector_type = vector_type_for(target)
            if vector_type is None:
                logger.debug("ignoring %s" % tag)
                return None
            if not attrs.get('device') or not attrs.get('name'):
                raise DecodeError("vector without device or name")
            if attrs.get('message'):
                events.append(MessageEvent(attrs['message'], parse_timestamp(attrs.get('timestamp')),
                                           attrs['device']))
            return _OpenVector(vector_type, action, attrs)
        if tag == 'message':
            events.append(MessageEvent(attrs.get('message', ''), parse_timestamp(attrs.get('timestamp')),
                                       attrs.get('device', '')))
        elif tag == 'delProperty':
            events.append(DelPropertyEvent(attrs.get('device', ''), attrs.get('name', '')))
        elif tag == 'getProperties':
            events.append(GetPropertiesEvent(attrs.get('device', ''), attrs.get('name', ''), attrs.get('version')))
        return current

    def _end(self, tag, element, current, events):
        target = tag[3:].lower()
        if target.endswith('vector'):
            if current is None:
                return None
            vector = current.build()
            events.append(vector_events[vector.kind](vector, vector.device, current.action))
            return None
        if tag.lower() == 'enableblob':
            events.append(EnableBlobEvent(element.attrib.get('device', ''), element.attrib.get('name', ''),
                                          (element.text or '').strip() or 'Never'))
        elif current is not None:
            current.members.append(build_member(current.vector_type, element))
        return current


def _shorten(text, limit=80):
    return text if len(text) <= limit else text[:limit] + '...'


def _excerpt(attrs, limit=80):
    return _shorten(' '.join('%s="%s"' % kv for kv in attrs.items()), limit)
