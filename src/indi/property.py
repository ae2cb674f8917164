"""
The INDI property model.

A property (or vector) is a named group of typed members that belongs to one device.
Four kinds exist: switches, numbers, texts and BLOBs. Vectors are plain data; the only
behaviour they carry is keeping the switch rule invariant and merging updates into an
existing instance so that anyone holding a reference keeps seeing current values.

The PropertyRegistry owns every vector reachable from one connection, keyed by
(device, name).
"""

import logging
import threading
from enum import Enum

from indi.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class IndiError(Exception):
    """ Base class for errors raised by the INDI property and connection layer. """


class PropertyNotFoundError(IndiError, KeyError):
    """ A command named a vector that is not defined. """

    def __init__(self, device, name):
        super().__init__("no property %s.%s" % (device, name))
        self.device = device
        self.name = name


class MemberNotFoundError(IndiError, KeyError):
    """ A command named a member that the vector does not have. """

    def __init__(self, vector, member):
        super().__init__("property %s.%s has no member %s" % (vector.device, vector.name, member))
        self.vector = vector
        self.member = member


class Permission(Enum):
    ReadOnly = 'ro'
    WriteOnly = 'wo'
    ReadWrite = 'rw'

    @classmethod
    def parse(cls, text):
        """
        >>> Permission.parse('rw')
        <Permission.ReadWrite: 'rw'>
        >>> Permission.parse(None)
        <Permission.ReadOnly: 'ro'>
        """
        for p in cls:
            if text and p.value == text.strip().lower():
                return p
        return cls.ReadOnly


class Rule(Enum):
    OneOfMany = 'OneOfMany'
    AtMostOne = 'AtMostOne'
    AnyOfMany = 'AnyOfMany'

    @classmethod
    def parse(cls, text):
        """
        Rule names are matched without regard to case. Returns None for a missing or unknown rule.
        >>> Rule.parse('oneofmany')
        <Rule.OneOfMany: 'OneOfMany'>
        >>> Rule.parse('') is None
        True
        """
        for r in cls:
            if text and r.value.lower() == text.strip().lower():
                return r
        return None


class PropertyState(Enum):
    Idle = 'Idle'
    Ok = 'Ok'
    Busy = 'Busy'
    Alert = 'Alert'

    @classmethod
    def parse(cls, text):
        for s in cls:
            if text and s.value.lower() == text.strip().lower():
                return s
        return None


class Member(CommonEqualityMixin, StringerMixin):
    """ A single named value within a vector. """

    def __init__(self, name, label=None, value=None):
        self.name = name or ''
        self.label = label or ''
        self.value = value

    def update(self, other):
        """ copies the value from another member of the same kind """
        self.value = other.value


class Switch(Member):
    def __init__(self, name, label=None, value=False):
        super().__init__(name, label, bool(value))


class Number(Member):
    def __init__(self, name, label=None, format=None, min=0.0, max=0.0, step=0.0, value=0.0):
        super().__init__(name, label, float(value))
        self.format = format or ''
        self.min = float(min)
        self.max = float(max)
        self.step = float(step)

    def update(self, other):
        super().update(other)
        self.value = float(self.value)


class Text(Member):
    def __init__(self, name, label=None, value=''):
        super().__init__(name, label, value if value is not None else '')


class Blob(Member):
    """
    Binary member. size is the declared size as carried on the wire, which is the length of
    the base64 text rather than the number of decoded bytes.
    """
    def __init__(self, name, label=None, format=None, value=b'', size=None):
        value = bytes(value) if value is not None else b''
        super().__init__(name, label, value)
        self.format = format or ''
        self.size = int(size) if size is not None else 4 * ((len(value) + 2) // 3)

    def update(self, other):
        super().update(other)
        if other.format:
            self.format = other.format
        self.size = other.size


class Vector(CommonEqualityMixin, StringerMixin):
    """
    A named, typed group of members belonging to one device.
    Subclasses set member_type, and the kind used in the wire element names.
    """
    member_type = Member
    kind = None

    def __init__(self, device, name, label=None, group=None, permission=Permission.ReadOnly, rule=None,
                 members=(), state=None):
        self.device = device or ''
        self.name = name or ''
        self.label = label or ''
        self.group = group or ''
        self.permission = permission if isinstance(permission, Permission) else Permission.parse(permission)
        self.rule = rule if isinstance(rule, Rule) or rule is None else Rule.parse(rule)
        self.state = state if isinstance(state, PropertyState) or state is None else PropertyState.parse(state)
        self.members = list(members)

    @property
    def key(self):
        return self.device, self.name

    def __iter__(self):
        return iter(self.members)

    def __len__(self):
        return len(self.members)

    def member(self, name):
        """ the member with the given name, or None """
        for m in self.members:
            if m.name == name:
                return m
        return None

    def index_of(self, name):
        for i, m in enumerate(self.members):
            if m.name == name:
                return i
        return -1

    def values(self):
        return [m.value for m in self.members]

    def merge(self, other):
        """
        Merges a definition of the same vector into this instance, field by field.
        The member list is replaced by the definition's members.
        """
        self._check_same_kind(other)
        self.label = other.label or self.label
        self.group = other.group or self.group
        self.permission = other.permission
        self.rule = other.rule if other.rule is not None else self.rule
        self.state = other.state if other.state is not None else self.state
        self.members = list(other.members)
        self._changed(other)
        return self

    def update_values(self, other):
        """
        Applies the values from a set or new message to the members with the same names.
        Members unknown to this vector are appended.
        """
        self._check_same_kind(other)
        if other.state is not None:
            self.state = other.state
        for m in other.members:
            mine = self.member(m.name)
            if mine is None:
                self.members.append(m)
            else:
                mine.update(m)
        self._changed(other)
        return self

    def _check_same_kind(self, other):
        if type(other) is not type(self):
            raise TypeError("cannot merge %s into %s %s.%s" % (type(other).__name__, type(self).__name__,
                                                               self.device, self.name))

    def _changed(self, update=None):
        """ template method called after the members change, with the merged vector if any """

    def __repr__(self):
        return "%s(%r, %r, %d members)" % (type(self).__name__, self.device, self.name, len(self.members))


class SwitchVector(Vector):
    member_type = Switch
    kind = 'Switch'

    def __init__(self, device, name, label=None, group=None, permission=Permission.ReadOnly, rule=None,
                 members=(), state=None):
        super().__init__(device, name, label, group, permission, rule, members, state)
        self._selected_index = -1
        self._changed()

    @property
    def selected_index(self):
        return self._selected_index

    @property
    def selected(self):
        """ the first member that is on, or None """
        i = self._selected_index
        return self.members[i] if 0 <= i < len(self.members) else None

    def select(self, which, value=True):
        """
        Switches a member, given by name or index, keeping the rule satisfied.
        Under OneOfMany and AtMostOne switching a member on switches all others off.
        """
        index = which if isinstance(which, int) else self.index_of(which)
        if not 0 <= index < len(self.members):
            raise MemberNotFoundError(self, which)
        if value and self.rule in (Rule.OneOfMany, Rule.AtMostOne):
            for m in self.members:
                m.value = False
        self.members[index].value = bool(value)
        preferred = index
        if not value and self.rule is Rule.OneOfMany and not any(m.value for m in self.members):
            # switching the only selected member off selects the next one
            preferred = (index + 1) % len(self.members)
            self.members[preferred].value = True
        self._selected_index = self._enforce_rule(preferred)
        return self

    def _changed(self, update=None):
        """ a member switched on by an update wins over members that were already on """
        switched_on = next((m.name for m in update.members if m.value), None) if update is not None else None
        self._selected_index = self._enforce_rule(self.index_of(switched_on) if switched_on is not None else -1)

    def _enforce_rule(self, preferred=-1):
        """
        Recomputes the selected index. Under OneOfMany exactly one member stays on,
        under AtMostOne at most one. The preferred member is kept when it is on,
        otherwise the first member that is on.
        """
        members = self.members
        if 0 <= preferred < len(members) and members[preferred].value:
            first = preferred
        else:
            first = next((i for i, m in enumerate(members) if m.value), -1)
        if self.rule in (Rule.OneOfMany, Rule.AtMostOne):
            for i, m in enumerate(members):
                if i != first and m.value:
                    m.value = False
            if first < 0 and self.rule is Rule.OneOfMany and members:
                members[0].value = True
                first = 0
        return first


class NumberVector(Vector):
    member_type = Number
    kind = 'Number'


class TextVector(Vector):
    member_type = Text
    kind = 'Text'


class BlobVector(Vector):
    member_type = Blob
    kind = 'Blob'


vector_types = {
    'switch': SwitchVector,
    'number': NumberVector,
    'text': TextVector,
    'blob': BlobVector,
}


def vector_type_for(target):
    """
    Finds the vector class for a lowercase element target such as 'switchvector' or 'onenumber'.
    >>> vector_type_for('blobvector').__name__
    'BlobVector'
    >>> vector_type_for('lightvector') is None
    True
    """
    for kind, cls in vector_types.items():
        if kind in target:
            return cls
    return None


class PropertyRegistry:
    """
    Holds the live vectors for one connection, keyed by (device, name).

    Network updates are applied by the owning connection's reader loop only; lookups may come
    from any thread, so all access is serialized with a re-entrant lock.
    """

    def __init__(self):
        self._vectors = {}      # (device, name) -> Vector, in definition order
        self._lock = threading.RLock()

    @property
    def lock(self):
        return self._lock

    def define_or_merge(self, vector):
        """
        Adds a vector, or merges it into the existing vector with the same key.
        :return: the live vector held by this registry and a flag that is True when it was newly added
        """
        with self._lock:
            existing = self._vectors.get(vector.key)
            if existing is None or type(existing) is not type(vector):
                if existing is not None:
                    logger.warning("%s.%s redefined as %s" % (vector.device, vector.name, type(vector).__name__))
                self._vectors[vector.key] = vector
                return vector, True
            return existing.merge(vector), False

    def update_values(self, vector):
        """
        Applies a set or new message. An unknown vector is added as if it were defined.
        :return: the live vector and a flag that is True when it was newly added
        """
        with self._lock:
            existing = self._vectors.get(vector.key)
            if existing is None or type(existing) is not type(vector):
                logger.debug("values for undefined property %s.%s" % vector.key)
                return self.define_or_merge(vector)
            return existing.update_values(vector), False

    def find(self, device, name):
        """ the vector with the given key, or None when it is not (yet) defined """
        with self._lock:
            return self._vectors.get((device, name))

    def remove(self, device, name=None):
        """
        Removes one vector, or every vector of the device when name is empty.
        :return: the list of removed vectors
        """
        with self._lock:
            if name:
                v = self._vectors.pop((device, name), None)
                return [v] if v is not None else []
            keys = [k for k in self._vectors if k[0] == device]
            return [self._vectors.pop(k) for k in keys]

    def devices(self):
        """ the distinct device names, in the order they were first seen """
        with self._lock:
            seen = []
            for device, _ in self._vectors:
                if device not in seen:
                    seen.append(device)
            return seen

    def vectors(self, device=None, name=None):
        with self._lock:
            return [v for v in self._vectors.values()
                    if (not device or v.device == device) and (not name or v.name == name)]

    def groups(self, device):
        """ distinct group names of the device's vectors, in definition order """
        result = []
        for v in self.vectors(device):
            if v.group not in result:
                result.append(v.group)
        return result

    def clear(self):
        with self._lock:
            self._vectors.clear()

    def __contains__(self, key):
        with self._lock:
            return key in self._vectors

    def __len__(self):
        with self._lock:
            return len(self._vectors)
