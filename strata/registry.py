"""
Schema registry for strata models.

Every Model subclass is backed by a RecordShape: the compiled, immutable
description of its schema. Shapes are keyed by ``model_name`` in a
SchemaRegistry so that constructing many instances of a model does not
rebuild its record structure. The registry is an explicit object: each
Model subclass points at one through its ``registry`` class attribute,
which defaults to ``default_registry``.

Example:
    from strata import Model, SchemaRegistry

    isolated = SchemaRegistry()

    class User(Model):
        registry = isolated
        model_name = 'user'
        fields = {'id': None, 'name': ''}

    User(id=1)
    assert 'user' in isolated
"""

import logging
import operator
import threading
import weakref
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from .errors import ModelDefinitionError
from .fields import FieldSpec, compile_field_specs

logger = logging.getLogger(__name__)


class RecordShape:
    """Immutable structure of one model schema.

    Holds the compiled field specs in declaration order and the accessor
    table used to read field values off a record.
    """
    __slots__ = (
        'name', 'id_field', 'specs', 'field_names', 'submodel_field_names',
        'spec_by_name', 'accessors', '__weakref__',
    )

    def __init__(self, name: str, id_field: str, specs: Tuple[FieldSpec, ...]) -> None:
        _set = object.__setattr__
        _set(self, 'name', name)
        _set(self, 'id_field', id_field)
        _set(self, 'specs', specs)
        _set(self, 'field_names', tuple(s.name for s in specs))
        _set(self, 'submodel_field_names', tuple(s.name for s in specs if s.is_submodel))
        _set(self, 'spec_by_name', MappingProxyType({s.name: s for s in specs}))
        accessors: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
            s.name: operator.itemgetter(s.name) for s in specs
        }
        _set(self, 'accessors', MappingProxyType(accessors))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"RecordShape '{self.name}' is immutable")

    def defaults(self) -> Dict[str, Any]:
        """Field name to default value, in declaration order."""
        return {s.name: s.get_default() for s in self.specs}

    def same_as(self, other: "RecordShape") -> bool:
        if self.name != other.name or self.id_field != other.id_field:
            return False
        if len(self.specs) != len(other.specs):
            return False
        return all(a.same_as(b) for a, b in zip(self.specs, other.specs))

    def __contains__(self, name: object) -> bool:
        return name in self.spec_by_name

    def __repr__(self) -> str:
        return f"RecordShape({self.name!r}, fields={list(self.field_names)!r})"


def _reserved(model_cls: type, name: str) -> bool:
    # A field must not be shadowed by a class attribute, since field values
    # are looked up only when normal attribute lookup fails.
    if name.startswith('_'):
        return True
    return any(name in klass.__dict__ for klass in model_cls.__mro__)


def build_shape(model_cls: type) -> RecordShape:
    """Validate a Model subclass's schema and compile it into a RecordShape."""
    model_name = getattr(model_cls, 'model_name', None)
    if model_name is None:
        raise ModelDefinitionError(
            model_cls, "Models must have a static model_name property defined"
        )
    fields = getattr(model_cls, 'fields', None)
    if not isinstance(fields, Mapping):
        raise ModelDefinitionError(
            model_cls, "Models must have fields defined with default values"
        )
    id_field = getattr(model_cls, 'id_field', 'id')
    if id_field not in fields:
        raise ModelDefinitionError(
            model_cls, f"Must supply an ID field for this model ('{id_field}' is not in fields)"
        )
    for name in fields:
        if not isinstance(name, str):
            raise ModelDefinitionError(
                model_cls, f"Field names must be strings, got {name!r}"
            )
        if _reserved(model_cls, name):
            raise ModelDefinitionError(
                model_cls,
                f"Field '{name}' collides with a Model attribute; "
                f"rename it with a filter() hook",
            )
    return RecordShape(str(model_name), id_field, compile_field_specs(fields))


class SchemaRegistry:
    """Maps model names to their RecordShape.

    A shape is written once per model name and only read afterwards.
    The first write is a check-and-set under a lock, so concurrent first
    constructions of the same model agree on a single shape.
    """

    def __init__(self) -> None:
        self._shapes: Dict[str, RecordShape] = {}
        self._by_class: "weakref.WeakKeyDictionary[type, RecordShape]" = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def shape_for(self, model_cls: type) -> RecordShape:
        """Return the shape for ``model_cls``, registering it on first use.

        Raises:
            ModelDefinitionError: the class declares an invalid schema, or
                another schema is already registered under its model_name.
        """
        shape = self._by_class.get(model_cls)
        if shape is not None:
            return shape

        built = build_shape(model_cls)
        with self._lock:
            shape = self._shapes.get(built.name)
            if shape is None:
                shape = self._shapes[built.name] = built
                logger.debug("Registered schema '%s' with fields %s", built.name, built.field_names)
            elif shape.same_as(built):
                logger.debug("Reusing registered schema '%s' for %s", built.name, model_cls.__qualname__)
            else:
                raise ModelDefinitionError(
                    model_cls,
                    f"model_name '{built.name}' is already registered with a different schema",
                )
            self._by_class[model_cls] = shape
        return shape

    def get(self, name: str, default: Optional[RecordShape] = None) -> Optional[RecordShape]:
        return self._shapes.get(name, default)

    def clear(self) -> None:
        """Forget every registered shape."""
        with self._lock:
            self._shapes.clear()
            self._by_class.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._shapes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._shapes))

    def __len__(self) -> int:
        return len(self._shapes)

    def __repr__(self) -> str:
        return f"SchemaRegistry({sorted(self._shapes)!r})"


# Registry used by every Model subclass that does not declare its own
default_registry = SchemaRegistry()


__all__ = ["RecordShape", "SchemaRegistry", "build_shape", "default_registry"]
