"""
Tests for strata.Record: the immutable storage behind every Model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from strata import (
    Model, Record, RecordDraft, RecordShape, FieldValidationError, UNDEFINED,
)
from strata.fields import FieldKind, FieldSpec, compile_field_specs, freeze_data
from strata.record import freeze_value, export_value


class Tag(Model):
    model_name = 'record_tests.tag'
    fields = {'id': None, 'label': ''}


def make_shape():
    return RecordShape('record_tests.item', 'id', compile_field_specs({
        'id': UNDEFINED,
        'count': 0,
        'meta': {},
        'items': [],
        'tag': Tag,
    }))


SHAPE = make_shape()


# ============================================================
# Test: Construction and reads
# ============================================================

class TestRecordReads:

    def test_defaults(self):
        record = Record(SHAPE)
        assert record['id'] is UNDEFINED
        assert record['count'] == 0
        assert isinstance(record['tag'], Tag)

    def test_unknown_keys_dropped(self):
        record = Record(SHAPE, {'count': 3, 'bogus': True})
        assert record['count'] == 3
        assert 'bogus' not in record

    def test_iterates_in_field_order(self):
        assert list(Record(SHAPE)) == ['id', 'count', 'meta', 'items', 'tag']
        assert len(Record(SHAPE)) == 5

    def test_get_in(self):
        record = Record(SHAPE, {'meta': {'a': {'b': 1}}, 'items': [10, 20]})
        assert record.get_in(['meta', 'a', 'b']) == 1
        assert record.get_in(['items', 1]) == 20
        assert record.get_in(['tag', 'label']) == ''
        assert record.get_in(['meta', 'x', 'y'], 'missing') == 'missing'

    def test_immutable(self):
        record = Record(SHAPE)
        with pytest.raises(AttributeError):
            record.count = 1
        with pytest.raises(TypeError):
            record['count'] = 1


class TestFieldDefaults:

    def test_scalar_default(self):
        spec = FieldSpec('name', '')
        assert spec.kind is FieldKind.SCALAR
        assert spec.get_default() == ''

    def test_none_default(self):
        assert FieldSpec('id', None).get_default() is None

    def test_container_default_is_frozen(self):
        spec = FieldSpec('tags', ['a'])
        assert spec.get_default() == ('a',)
        assert spec.get_default() is spec.get_default()

    def test_shape_defaults(self):
        assert SHAPE.defaults()['count'] == 0
        assert SHAPE.defaults()['items'] == ()
        assert isinstance(SHAPE.defaults()['tag'], Tag)

    def test_freeze_data(self):
        tag = Tag(id=1)
        frozen = freeze_data({'a': [1, {'b': {2}}], 'tag': tag})
        assert frozen == {'a': (1, {'b': frozenset({2})}), 'tag': tag}
        assert frozen['tag'] is tag
        with pytest.raises(TypeError):
            frozen['a'] = 2


# ============================================================
# Test: Transforms
# ============================================================

class TestRecordTransforms:

    def test_set_returns_new_record(self):
        record = Record(SHAPE)
        changed = record.set('count', 1)
        assert changed['count'] == 1
        assert record['count'] == 0

    def test_set_shares_untouched_values(self):
        record = Record(SHAPE, {'meta': {'a': 1}})
        changed = record.set('count', 1)
        assert changed['meta'] is record['meta']
        assert changed['tag'] is record['tag']

    def test_set_unknown_field(self):
        with pytest.raises(FieldValidationError, match="Cannot set unknown fields"):
            Record(SHAPE).set('bogus', 1)

    def test_set_coerces_submodel(self):
        record = Record(SHAPE).set('tag', {'id': 2, 'label': 'py'})
        assert isinstance(record['tag'], Tag)
        assert record['tag'].label == 'py'

    def test_update(self):
        assert Record(SHAPE).update('count', lambda n: n + 5)['count'] == 5

    def test_delete_resets_default(self):
        record = Record(SHAPE, {'count': 9})
        assert record.delete('count')['count'] == 0
        assert record.remove('count')['count'] == 0

    def test_set_in_creates_branches(self):
        record = Record(SHAPE).set_in(['meta', 'a', 'b'], 1)
        assert record['meta'] == {'a': {'b': 1}}

    def test_set_in_submodel(self):
        record = Record(SHAPE).set_in(['tag', 'label'], 'x')
        assert isinstance(record['tag'], Tag)
        assert record['tag'].label == 'x'

    def test_set_in_list(self):
        record = Record(SHAPE, {'items': [1, 2, 3]}).set_in(['items', 1], 20)
        assert record['items'] == (1, 20, 3)

    def test_set_in_empty_path(self):
        with pytest.raises(ValueError):
            Record(SHAPE).set_in([], 1)

    def test_update_in_default(self):
        record = Record(SHAPE).update_in(['meta', 'hits'], lambda n: n + 1, 0)
        assert record['meta'] == {'hits': 1}

    def test_delete_in(self):
        record = Record(SHAPE, {'meta': {'a': 1, 'b': 2}})
        assert record.delete_in(['meta', 'a'])['meta'] == {'b': 2}
        assert record.remove_in(['meta', 'zzz'])['meta'] == {'a': 1, 'b': 2}

    def test_merge(self):
        record = Record(SHAPE).merge({'count': 1}, {'meta': {'a': 1}})
        assert record['count'] == 1
        assert record['meta'] == {'a': 1}

    def test_merge_unknown_field(self):
        with pytest.raises(FieldValidationError):
            Record(SHAPE).merge({'bogus': 1})

    def test_merge_is_shallow(self):
        record = Record(SHAPE, {'meta': {'a': 1}}).merge({'meta': {'b': 2}})
        assert record['meta'] == {'b': 2}

    def test_merge_deep(self):
        record = Record(SHAPE, {'meta': {'a': 1}}).merge_deep({'meta': {'b': 2}})
        assert record['meta'] == {'a': 1, 'b': 2}

    def test_merge_deep_into_submodel(self):
        record = Record(SHAPE, {'tag': {'id': 1, 'label': 'a'}})
        merged = record.merge_deep({'tag': {'label': 'b'}})
        assert merged['tag'].id == 1
        assert merged['tag'].label == 'b'

    def test_merge_with(self):
        record = Record(SHAPE, {'count': 2})
        merged = record.merge_with(lambda old, new, key: old + new, {'count': 3})
        assert merged['count'] == 5

    def test_merge_deep_in(self):
        record = Record(SHAPE, {'meta': {'a': {'x': 1}}})
        merged = record.merge_deep_in(['meta', 'a'], {'y': 2})
        assert merged['meta'] == {'a': {'x': 1, 'y': 2}}

    def test_no_change_returns_same_record(self):
        record = Record(SHAPE)
        assert record.merge() is record


class TestRecordDraft:

    def test_with_mutations(self):
        record = Record(SHAPE)

        def mutate(draft):
            draft.set('count', 1).set_in(['meta', 'a'], 2)
            draft.update('count', lambda n: n + 1)

        result = record.with_mutations(mutate)
        assert result['count'] == 2
        assert result['meta'] == {'a': 2}
        assert record['count'] == 0

    def test_draft_reads_current_record(self):
        draft = RecordDraft(Record(SHAPE))
        draft.merge({'count': 4})
        assert draft.get('count') == 4
        draft.delete('count')
        assert draft.get('count') == 0


# ============================================================
# Test: Export and comparison
# ============================================================

class TestRecordExport:

    def test_to_object_keeps_submodels(self):
        obj = Record(SHAPE).to_object()
        assert isinstance(obj['tag'], Tag)

    def test_to_dict_exports_submodels(self):
        data = Record(SHAPE, {'tag': {'id': 1, 'label': 'a'}}).to_dict()
        assert data['tag'] == {'id': 1, 'label': 'a'}

    def test_equality(self):
        assert Record(SHAPE, {'count': 1}) == Record(SHAPE, {'count': 1})
        assert Record(SHAPE, {'count': 1}) != Record(SHAPE, {'count': 2})

    def test_hashable_with_nested_containers(self):
        a = Record(SHAPE, {'meta': {'a': [1, 2]}})
        b = Record(SHAPE, {'meta': {'a': [1, 2]}})
        assert hash(a) == hash(b)

    def test_repr(self):
        assert repr(Record(SHAPE, {'count': 1})).startswith("Record<record_tests.item>(id=UNDEFINED, count=1")


class TestValueHelpers:

    def test_freeze_value(self):
        assert freeze_value({'a': [1, {2, 3}]}) == frozenset({('a', (1, frozenset({2, 3})))})

    def test_export_value(self):
        tag = Tag(id=1, label='x')
        assert export_value([tag, (tag,)]) == [{'id': 1, 'label': 'x'}, ({'id': 1, 'label': 'x'},)]
