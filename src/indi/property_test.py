import threading
import unittest

from hamcrest import assert_that, is_, equal_to, none, calling, raises, contains_exactly, same_instance, empty, \
    instance_of

from indi.property import SwitchVector, Switch, Rule, Permission, PropertyState, NumberVector, Number, TextVector, \
    Text, BlobVector, Blob, PropertyRegistry, MemberNotFoundError, PropertyNotFoundError, IndiError, vector_type_for


def switches(device='dev', name='MODE', rule=Rule.OneOfMany, values=(True, False, False)):
    members = [Switch('S%d' % i, 'Switch %d' % i, v) for i, v in enumerate(values)]
    return SwitchVector(device, name, 'Mode', 'Main', Permission.ReadWrite, rule, members)


def on(vector):
    return [m.value for m in vector.members]


class EnumParseTest(unittest.TestCase):

    def test_permission(self):
        assert_that(Permission.parse('wo'), is_(Permission.WriteOnly))
        assert_that(Permission.parse('bogus'), is_(Permission.ReadOnly))

    def test_rule_is_case_insensitive(self):
        assert_that(Rule.parse('ATMOSTONE'), is_(Rule.AtMostOne))
        assert_that(Rule.parse('anyofmany'), is_(Rule.AnyOfMany))
        assert_that(Rule.parse(None), is_(none()))

    def test_state(self):
        assert_that(PropertyState.parse('Busy'), is_(PropertyState.Busy))
        assert_that(PropertyState.parse('whatever'), is_(none()))


class SwitchVectorTest(unittest.TestCase):

    def test_one_of_many_with_none_on_selects_first(self):
        sut = switches(values=(False, False, False))
        assert_that(on(sut), is_([True, False, False]))
        assert_that(sut.selected_index, is_(0))

    def test_one_of_many_with_several_on_keeps_first(self):
        sut = switches(values=(False, True, True))
        assert_that(on(sut), is_([False, True, False]))
        assert_that(sut.selected.name, is_('S1'))

    def test_select_switches_others_off(self):
        sut = switches()
        sut.select('S2')
        assert_that(on(sut), is_([False, False, True]))
        assert_that(sut.selected_index, is_(2))

    def test_select_by_index(self):
        sut = switches()
        sut.select(1)
        assert_that(on(sut), is_([False, True, False]))

    def test_switching_selected_off_selects_next(self):
        sut = switches(values=(False, False, True))
        sut.select('S2', False)
        assert_that(on(sut), is_([True, False, False]))

    def test_unknown_member(self):
        sut = switches()
        assert_that(calling(sut.select).with_args('NOPE'), raises(MemberNotFoundError))

    def test_at_most_one_allows_none(self):
        sut = switches(rule=Rule.AtMostOne, values=(False, False))
        assert_that(on(sut), is_([False, False]))
        assert_that(sut.selected_index, is_(-1))
        sut.select('S1')
        sut.select('S1', False)
        assert_that(on(sut), is_([False, False]))

    def test_any_of_many_is_unconstrained(self):
        sut = switches(rule=Rule.AnyOfMany, values=(True, True, False))
        sut.select('S2')
        assert_that(on(sut), is_([True, True, True]))

    def test_update_prefers_member_switched_on(self):
        sut = switches(values=(True, False, False))
        update = SwitchVector('dev', 'MODE', members=[Switch('S0', value=True), Switch('S2', value=True)])
        sut.update_values(update)
        assert_that(on(sut), is_([True, False, False]))

        update = SwitchVector('dev', 'MODE', members=[Switch('S2', value=True)])
        sut.update_values(update)
        assert_that(on(sut), is_([False, False, True]))

    def test_one_of_many_invariant_after_any_update(self):
        sut = switches()
        for values in ((True, True, True), (False, False, False), (False, True, True), (True, False, True)):
            update = SwitchVector('dev', 'MODE', members=[Switch('S%d' % i, value=v) for i, v in enumerate(values)])
            sut.update_values(update)
            assert_that(sum(on(sut)), is_(1))


class VectorTest(unittest.TestCase):

    def test_member_lookup(self):
        sut = NumberVector('dev', 'N', members=[Number('A', value=1), Number('B', value=2)])
        assert_that(sut.member('B').value, is_(2.0))
        assert_that(sut.member('C'), is_(none()))
        assert_that(sut.index_of('B'), is_(1))
        assert_that(sut.values(), is_([1.0, 2.0]))
        assert_that(len(sut), is_(2))

    def test_merge_replaces_members_and_keeps_identity(self):
        sut = TextVector('dev', 'T', 'Label', 'G', members=[Text('A', value='a')])
        other = TextVector('dev', 'T', '', 'G2', Permission.ReadWrite, members=[Text('B', value='b')])
        result = sut.merge(other)
        assert_that(result, is_(same_instance(sut)))
        assert_that([m.name for m in sut], is_(['B']))
        assert_that(sut.label, is_('Label'))
        assert_that(sut.group, is_('G2'))
        assert_that(sut.permission, is_(Permission.ReadWrite))

    def test_update_values_by_name(self):
        sut = NumberVector('dev', 'N', members=[Number('A', format='%g', min=0, max=10, value=1), Number('B')])
        sut.update_values(NumberVector('dev', 'N', members=[Number('A', value=5)], state='Busy'))
        assert_that(sut.member('A').value, is_(5.0))
        assert_that(sut.member('A').max, is_(10.0))
        assert_that(sut.state, is_(PropertyState.Busy))

    def test_update_values_appends_unknown_members(self):
        sut = NumberVector('dev', 'N', members=[Number('A')])
        sut.update_values(NumberVector('dev', 'N', members=[Number('Z', value=3)]))
        assert_that([m.name for m in sut], is_(['A', 'Z']))

    def test_merge_different_kind_fails(self):
        sut = NumberVector('dev', 'N')
        assert_that(calling(sut.merge).with_args(TextVector('dev', 'N')), raises(TypeError))

    def test_equality(self):
        assert_that(switches(), is_(equal_to(switches())))
        assert_that(switches(), is_(equal_to(switches(values=(False, False, False)))))

    def test_blob_size_defaults_to_base64_length(self):
        assert_that(Blob('B', value=b'abcd').size, is_(8))
        assert_that(Blob('B', value=b'abcd', size=3).size, is_(3))

    def test_vector_type_for(self):
        assert_that(vector_type_for('numbervector'), is_(NumberVector))
        assert_that(vector_type_for('oneswitch'), is_(SwitchVector))
        assert_that(vector_type_for('lightvector'), is_(none()))


class PropertyRegistryTest(unittest.TestCase):

    def test_define_then_find(self):
        sut = PropertyRegistry()
        v, added = sut.define_or_merge(switches())
        assert_that(added, is_(True))
        assert_that(sut.find('dev', 'MODE'), is_(same_instance(v)))
        assert_that(sut.find('dev', 'OTHER'), is_(none()))
        assert_that(('dev', 'MODE') in sut, is_(True))

    def test_redefinition_merges_into_existing(self):
        sut = PropertyRegistry()
        first, _ = sut.define_or_merge(switches())
        second, added = sut.define_or_merge(switches(values=(False, True, False)))
        assert_that(added, is_(False))
        assert_that(second, is_(same_instance(first)))
        assert_that(on(first), is_([False, True, False]))
        assert_that(len(sut), is_(1))

    def test_update_unknown_defines(self):
        sut = PropertyRegistry()
        v, added = sut.update_values(NumberVector('dev', 'N', members=[Number('A', value=1)]))
        assert_that(added, is_(True))
        assert_that(sut.find('dev', 'N'), is_(same_instance(v)))

    def test_remove_one(self):
        sut = PropertyRegistry()
        sut.define_or_merge(switches(name='A'))
        sut.define_or_merge(switches(name='B'))
        removed = sut.remove('dev', 'A')
        assert_that([v.name for v in removed], is_(['A']))
        assert_that(sut.find('dev', 'A'), is_(none()))
        assert_that(sut.find('dev', 'B'), is_(instance_of(SwitchVector)))

    def test_remove_device(self):
        sut = PropertyRegistry()
        sut.define_or_merge(switches(name='A'))
        sut.define_or_merge(switches(name='B'))
        sut.define_or_merge(switches(device='other', name='A'))
        removed = sut.remove('dev')
        assert_that(len(removed), is_(2))
        assert_that(sut.vectors('dev'), is_(empty()))
        assert_that(sut.devices(), contains_exactly('other'))

    def test_remove_missing(self):
        assert_that(PropertyRegistry().remove('dev', 'X'), is_(empty()))

    def test_groups_in_definition_order(self):
        sut = PropertyRegistry()
        sut.define_or_merge(TextVector('dev', 'A', group='Main'))
        sut.define_or_merge(TextVector('dev', 'B', group='Options'))
        sut.define_or_merge(TextVector('dev', 'C', group='Main'))
        assert_that(sut.groups('dev'), is_(['Main', 'Options']))

    def test_concurrent_definitions(self):
        sut = PropertyRegistry()

        def define(device):
            for i in range(100):
                sut.define_or_merge(NumberVector(device, 'N%d' % i))
        threads = [threading.Thread(target=define, args=('d%d' % t,)) for t in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert_that(len(sut), is_(400))


class ErrorsTest(unittest.TestCase):

    def test_lookup_errors_are_key_errors(self):
        assert_that(issubclass(PropertyNotFoundError, KeyError), is_(True))
        assert_that(issubclass(MemberNotFoundError, IndiError), is_(True))
        e = PropertyNotFoundError('dev', 'N')
        assert_that(e.device, is_('dev'))
        assert_that(e.name, is_('N'))
