"""
Tests for SchemaRegistry and schema compilation.
"""

import logging
import threading

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from strata import (
    Model, SchemaRegistry, RecordShape, FieldKind, ModelDefinitionError,
    ModelConfig, CONFIG_DEFAULTS, get_config_value, UNDEFINED,
)
from strata.registry import build_shape


@pytest.fixture
def registry():
    return SchemaRegistry()


def define(registry, name, fields, **attrs):
    attrs.update({'registry': registry, 'model_name': name, 'fields': fields})
    return type('Defined', (Model,), attrs)


class TestRegistration:

    def test_registered_on_first_use(self, registry):
        User = define(registry, 'user', {'id': None, 'name': ''})
        assert 'user' not in registry
        User()
        assert 'user' in registry
        assert len(registry) == 1
        assert list(registry) == ['user']

    def test_shape_cached_per_class(self, registry):
        User = define(registry, 'user', {'id': None})
        assert registry.shape_for(User) is registry.shape_for(User)
        assert User().record.shape is User().record.shape

    def test_identical_schema_reused(self, registry):
        A = define(registry, 'user', {'id': None, 'name': ''})
        B = define(registry, 'user', {'id': None, 'name': ''})
        assert registry.shape_for(A) is registry.shape_for(B)

    def test_conflicting_schema_rejected(self, registry):
        A = define(registry, 'user', {'id': None, 'name': ''})
        B = define(registry, 'user', {'id': None, 'email': ''})
        A()
        with pytest.raises(ModelDefinitionError, match="already registered with a different schema"):
            B()

    def test_registries_are_isolated(self):
        first, second = SchemaRegistry(), SchemaRegistry()
        define(first, 'user', {'id': None})()
        define(second, 'user', {'id': None, 'name': ''})()
        assert first.get('user').field_names == ('id',)
        assert second.get('user').field_names == ('id', 'name')

    def test_clear(self, registry):
        define(registry, 'user', {'id': None})()
        registry.clear()
        assert len(registry) == 0
        assert registry.get('user') is None

    def test_concurrent_first_registration(self, registry):
        """Threads racing to register one new model agree on a single shape"""
        workers = 8
        classes = [define(registry, 'user', {'id': None, 'name': ''}) for _ in range(workers)]
        barrier = threading.Barrier(workers)
        shapes, errors = [], []

        def register(model_cls):
            barrier.wait()
            try:
                shapes.append(registry.shape_for(model_cls))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=register, args=(cls,)) for cls in classes]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(shapes) == workers
        assert all(shape is shapes[0] for shape in shapes)
        assert registry.get('user') is shapes[0]
        assert len(registry) == 1

    def test_concurrent_construction_of_one_class(self, registry):
        User = define(registry, 'user', {'id': None, 'name': ''})
        barrier = threading.Barrier(4)
        built = []

        def construct(n):
            barrier.wait()
            built.append(User(id=n))

        threads = [threading.Thread(target=construct, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(u.id for u in built) == [0, 1, 2, 3]
        assert len({id(u.record.shape) for u in built}) == 1

    def test_logs_registration(self, registry, caplog):
        User = define(registry, 'user', {'id': None})
        with caplog.at_level(logging.DEBUG, logger='strata.registry'):
            User()
        assert "Registered schema 'user'" in caplog.text


class TestRecordShape:

    def test_field_order_and_kinds(self, registry):
        Tag = define(registry, 'tag', {'id': None})
        Post = define(registry, 'post', {'id': None, 'title': '', 'tag': Tag})
        shape = build_shape(Post)
        assert shape.field_names == ('id', 'title', 'tag')
        assert shape.submodel_field_names == ('tag',)
        assert shape.spec_by_name['tag'].kind is FieldKind.SUBMODEL
        assert shape.spec_by_name['title'].kind is FieldKind.SCALAR

    def test_accessors(self, registry):
        User = define(registry, 'user', {'id': UNDEFINED, 'name': ''})
        shape = build_shape(User)
        assert shape.accessors['name']({'id': 1, 'name': 'Joe'}) == 'Joe'

    def test_immutable(self, registry):
        shape = build_shape(define(registry, 'user', {'id': None}))
        assert isinstance(shape, RecordShape)
        with pytest.raises(AttributeError):
            shape.name = 'other'

    def test_non_string_field_name(self, registry):
        with pytest.raises(ModelDefinitionError, match="Field names must be strings"):
            build_shape(define(registry, 'bad', {'id': None, 1: 'x'}))


class TestConfig:

    def test_defaults(self):
        assert CONFIG_DEFAULTS['extra'] == 'ignore'
        assert get_config_value(None, 'extra') == 'ignore'

    def test_override(self):
        assert get_config_value(ModelConfig(extra='forbid'), 'extra') == 'forbid'

    def test_missing_key_falls_back(self):
        assert get_config_value(ModelConfig(), 'extra') == 'ignore'
        assert get_config_value(ModelConfig(), 'unknown', 42) == 42
