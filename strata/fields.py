"""
Field descriptors for strata schemas.

A Model declares its schema as an ordered mapping of field name to default
value. Each entry is compiled once, when the schema is registered, into a
FieldSpec tagged as either a scalar field or a sub-model field.

Example:
    class Post(Model):
        model_name = 'post'
        fields = {
            'id': None,
            'title': '',
            'author': User,      # sub-model field, default User()
        }
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from .consts import UNDEFINED
from .errors import ModelDefinitionError

_MISSING = object()  # Sentinel for a default not built yet


def is_model_class(obj: Any) -> bool:
    """Check if an object is a Model subclass."""
    return isinstance(obj, type) and getattr(obj, '__strata_model__', False)


def is_model_instance(obj: Any) -> bool:
    """Check if an object is an instance of a Model subclass."""
    return getattr(type(obj), '__strata_model__', False)


def freeze_data(value: Any) -> Any:
    """Return a read-only copy of a container value, recursively.

    Lists and tuples become tuples, sets become frozensets and mappings become
    read-only mapping proxies over a private dict. Model instances and records
    are immutable already and are kept as given.
    """
    if is_model_instance(value) or getattr(type(value), '__strata_record__', False):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze_data(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        items = tuple(freeze_data(v) for v in value)
        if type(value) is tuple and all(a is b for a, b in zip(items, value)):
            return value
        return items
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze_data(v) for v in value)
    return value


class FieldKind(Enum):
    SCALAR = 'scalar'
    SUBMODEL = 'submodel'


class FieldSpec:
    """Compiled description of one schema field.

    For sub-model fields ``model`` holds the nested Model subclass. The
    declared default may be the subclass itself (its default is then an
    instance built from its own schema defaults) or an instance.
    """
    __slots__ = ('name', 'kind', 'declared', 'model', '_default', '_building')

    def __init__(self, name: str, declared: Any) -> None:
        self.name = name
        self.declared = declared
        self._default = _MISSING
        self._building = False
        if is_model_class(declared):
            self.kind = FieldKind.SUBMODEL
            self.model = declared
        elif is_model_instance(declared):
            self.kind = FieldKind.SUBMODEL
            self.model = type(declared)
            self._default = declared
        else:
            self.kind = FieldKind.SCALAR
            self.model = None
            self._default = freeze_data(declared)

    @property
    def is_submodel(self) -> bool:
        return self.kind is FieldKind.SUBMODEL

    def get_default(self) -> Any:
        """Return the value stored when raw data omits this field."""
        if self._default is not _MISSING:
            return self._default
        # Only sub-model classes reach here; build their default once.
        if self._building:
            raise ModelDefinitionError(
                self.model,
                f"sub-model field '{self.name}' refers back to its own model; "
                f"declare a default instance instead of the class",
            )
        self._building = True
        try:
            self._default = self.model()
        finally:
            self._building = False
        return self._default

    def coerce(self, value: Any) -> Any:
        """Prepare a value for storage.

        Raw data for a sub-model field becomes a sub-model instance; model
        instances and unset values are kept as given. Container values of
        scalar fields are stored as read-only copies.
        """
        if self.kind is FieldKind.SCALAR:
            return freeze_data(value)
        if value is None or value is UNDEFINED or is_model_instance(value):
            return value
        if isinstance(value, Mapping):
            return self.model(value)
        return value

    def same_as(self, other: "FieldSpec") -> bool:
        if self.name != other.name or self.kind is not other.kind:
            return False
        if self.kind is FieldKind.SUBMODEL:
            return self.model is other.model
        return self.declared is other.declared or self.declared == other.declared

    def __repr__(self) -> str:
        if self.kind is FieldKind.SUBMODEL:
            return f"FieldSpec({self.name!r}, submodel={self.model.__name__})"
        return f"FieldSpec({self.name!r}, default={self.declared!r})"


def compile_field_specs(fields: Mapping[str, Any]) -> Tuple[FieldSpec, ...]:
    """Compile a schema mapping into FieldSpecs, in declaration order."""
    return tuple(FieldSpec(name, default) for name, default in fields.items())


__all__ = [
    "FieldKind", "FieldSpec",
    "compile_field_specs", "freeze_data", "is_model_class", "is_model_instance",
]
