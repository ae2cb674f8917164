import os
import unittest
from unittest.mock import Mock, PropertyMock

from hamcrest import is_, assert_that, raises, calling, is_not, same_instance, instance_of

from indi.conduit.base import Conduit, StreamConduit, ErrorReportingConduit


class ConduitTest(unittest.TestCase):

    def test_abstract_methods(self):
        sut = Conduit()
        assert_that(calling(sut.close), raises(NotImplementedError))
        for name in ('input', 'output', 'open'):
            assert_that(calling(sut.__getattribute__).with_args(name), raises(NotImplementedError))


class StreamConduitTest(unittest.TestCase):

    def test_read_write(self):
        read, write = Mock(), Mock()
        sut = StreamConduit(read, write)
        assert_that(sut.input, is_(read))
        assert_that(sut.output, is_(write))

    def test_single_stream_is_used_both_ways(self):
        stream = Mock()
        sut = StreamConduit(stream)
        assert_that(sut.output, is_(stream))

    def test_attach_later(self):
        sut = StreamConduit()
        assert_that(sut.open, is_(False))
        read, write = Mock(), Mock()
        sut.attach(read, write)
        assert_that(sut.open, is_(True))
        assert_that(sut.output, is_(write))

    def test_open_until_closed(self):
        read_fd, write_fd = os.pipe()
        sut = StreamConduit(os.fdopen(read_fd, 'rb'), os.fdopen(write_fd, 'wb'))
        assert_that(sut.open, is_(True))
        sut.close()
        assert_that(sut.open, is_(False))
        assert_that(sut.input.closed, is_(True))
        assert_that(sut.output.closed, is_(True))

    def test_close_is_idempotent_and_ignores_errors(self):
        read, write = Mock(), Mock()
        write.close.side_effect = OSError('broken pipe')
        sut = StreamConduit(read, write)
        sut.close()
        sut.close()
        write.close.assert_called_once()
        read.close.assert_called_once()


class ResetStream:
    """ a stream whose peer has gone away """

    def read1(self, size):
        raise ConnectionResetError()

    def write(self, data):
        raise BrokenPipeError()


class ErrorReportingConduitTest(unittest.TestCase):

    def setUp(self):
        self.conduit = Mock()
        self.conduit.input = ResetStream()
        self.conduit.output = ResetStream()
        self.handler = Mock()
        self.sut = ErrorReportingConduit(self.conduit, self.handler)

    def test_read_error_is_reported_and_raised(self):
        assert_that(calling(self.sut.input.read1).with_args(10), raises(ConnectionResetError))
        self.handler.assert_called_once()
        assert_that(self.handler.call_args[0][0], is_(instance_of(ConnectionResetError)))

    def test_write_error_is_reported_and_raised(self):
        assert_that(calling(self.sut.output.write).with_args(b'<getProperties/>'), raises(BrokenPipeError))
        assert_that(self.handler.call_args[0][0], is_(instance_of(BrokenPipeError)))

    def test_streams_are_wrapped_once(self):
        assert_that(self.sut.input, is_(same_instance(self.sut.input)))
        assert_that(self.sut.input, is_not(same_instance(self.conduit.input)))

    def test_open_and_close_go_to_the_wrapped_conduit(self):
        type(self.conduit).open = PropertyMock(return_value=True)
        assert_that(self.sut.open, is_(True))
        self.sut.close()
        self.conduit.close.assert_called_once()
