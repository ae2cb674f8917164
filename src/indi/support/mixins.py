import threading


def quote(val):
    return "'" + str(val) + "'" if val is not None else "None"


class StringerMixin:

    def __str__(self):
        """
        the class name followed by the public attributes in key sorted order
        """
        return type(self).__name__ + ':' + self._sorted_items_string()

    def _sorted_items_string(self):
        return "{" + ", ".join(["'" + str(key) + "': " + quote(val)
                                for key, val in sorted(self.__dict__.items())
                                if not key.startswith('_')]) + "}"


class CommonEqualityMixin(object):
    """
    Value equality over the instance dictionary, for the property members and vectors.
    Attributes starting with an underscore are bookkeeping and take no part in the comparison.
    """
    local = threading.local()

    def __eq__(self, other):
        if not hasattr(CommonEqualityMixin.local, 'seen'):
            CommonEqualityMixin.local.seen = []
        seen = CommonEqualityMixin.local.seen
        return isinstance(other, self.__class__) and self._dicts_equal(other, seen)

    def _public_items(self):
        return {k: v for k, v in self.__dict__.items() if not k.startswith('_')}

    def _dicts_equal(self, other, seen):
        p = (id(self), id(other))
        if p in seen:
            raise ValueError("recursive comparison of %r" % (p,))
        try:
            seen.append(p)
            result = self._public_items() == other._public_items()
        finally:
            seen.pop()
        return result

    def __ne__(self, other):
        return not self.__eq__(other)
