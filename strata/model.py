"""
Model implementation for strata.

A Model subclass declares a schema (field name to default value), the name
of its identity field and a process-unique ``model_name``. Instances are
immutable snapshots: field values are read as attributes, and every update
method returns a new instance sharing untouched values with the original.

Fields whose default is another Model subclass (or an instance of one) are
sub-model fields. Raw mappings given for them are turned into instances of
that model, so nested data is always made of models.

The class also builds the descriptors consumed by resolvers: ``item()`` and
``list()`` return Returns descriptors, ``get_item()`` and ``get_list()``
return Query descriptors.

Example:
    from strata import Model

    class User(Model):
        model_name = 'user'
        fields = {'id': None, 'name': ''}

    class Post(Model):
        model_name = 'post'
        fields = {'id': None, 'title': '', 'author': User}

        @staticmethod
        def filter(data):
            # The API calls the author 'user'
            if 'user' in data:
                data['author'] = data.pop('user')
            return data

    joe = User({'id': 1, 'name': 'Joe'})
    jane = joe.set('name', 'Jane')
    assert joe.name == 'Joe' and jane.name == 'Jane'

    post = Post({'id': 7, 'user': {'id': 1, 'name': 'Joe'}})
    assert post.author.name == 'Joe'

    query = User.get_item({'id': 1})
"""

import logging
from collections.abc import Mapping
from typing import (
    Any, Callable, ClassVar, Dict, Iterable, Iterator, List, Optional,
    Sequence, Type, TypeVar, Union,
)

from .config import ModelConfig, get_config_value
from .consts import ALL_FIELDS, UNDEFINED, QueryType, ReturnType
from .errors import FieldValidationError, ImmutableModelError, ModelDefinitionError
from .fields import is_model_instance
from .query import Query
from .record import Record, RecordDraft
from .registry import RecordShape, SchemaRegistry, default_registry
from .returns import Returns

logger = logging.getLogger(__name__)

_T = TypeVar('_T', bound='Model')

_NOT_GIVEN = object()  # Sentinel telling get_item(params) from get_item(fields, params)

Path = Sequence[Any]


def _split_fields_and_params(fields: Any, params: Any) -> tuple:
    # User.get_item({'id': 1}) passes only params.
    if params is _NOT_GIVEN:
        if fields is _NOT_GIVEN:
            return ALL_FIELDS, {}
        if isinstance(fields, Mapping):
            return ALL_FIELDS, fields
        return fields, {}
    if fields is _NOT_GIVEN:
        fields = ALL_FIELDS
    return fields, params


def _unset_ids(model: "Model") -> "Model":
    result = model.unset_id()
    for name in type(model).submodel_field_names():
        sub = result.get(name)
        if is_model_instance(sub):
            result = result.set(name, _unset_ids(sub))
    return result


class Model:
    """Schema-validated, immutable domain record.

    Subclasses must define ``model_name`` and ``fields`` (an ordered
    mapping of field name to default value), and ``fields`` must contain
    ``id_field``. A subclass may define a ``filter(data)`` static method
    or class method to reshape raw data before it is stored; it runs after
    sub-model fields have been coerced.

    Example:
        class User(Model):
            model_name = 'user'
            fields = {'id': None, 'name': '', 'email': ''}

        user = User(id=1, name='Joe')
        assert user.values() == {'id': 1, 'name': 'Joe', 'email': ''}
    """

    __slots__ = ('_record',)
    __strata_model__: ClassVar[bool] = True

    model_name: ClassVar[Optional[str]] = None
    fields: ClassVar[Optional[Mapping[str, Any]]] = None
    id_field: ClassVar[str] = 'id'
    model_config: ClassVar[Optional[ModelConfig]] = None
    registry: ClassVar[SchemaRegistry] = default_registry

    _record: Record

    def __init__(self, data: Any = None, **kwargs: Any) -> None:
        cls = type(self)
        shape = cls._shape()

        if isinstance(data, Record) and data.shape is shape and not kwargs:
            # Copies produced by update methods adopt the new record as is.
            record = data
        elif isinstance(data, cls) and not kwargs:
            record = data._record
        else:
            if data is None:
                raw: Dict[str, Any] = {}
            elif is_model_instance(data):
                raw = data.to_object()
            elif isinstance(data, Mapping):
                raw = dict(data)
            else:
                raise TypeError(
                    f"{cls.__name__} data must be a mapping, got {type(data).__name__}"
                )
            raw.update(kwargs)
            record = cls._build_record(shape, raw)

        object.__setattr__(self, '_record', record)

    @classmethod
    def _shape(cls) -> RecordShape:
        return cls.registry.shape_for(cls)

    @classmethod
    def _build_record(cls, shape: RecordShape, raw: Dict[str, Any]) -> Record:
        for name in shape.submodel_field_names:
            if name in raw:
                raw[name] = shape.spec_by_name[name].coerce(raw[name])

        filter_hook = getattr(cls, 'filter', None)
        if callable(filter_hook):
            filtered = filter_hook(raw)
            # None means the hook edited raw in place
            if filtered is not None:
                if not isinstance(filtered, Mapping):
                    raise ModelDefinitionError(
                        cls,
                        f"filter() must return a mapping or None, got {type(filtered).__name__}",
                    )
                raw = dict(filtered)
            # filter() may have moved raw data onto sub-model fields
            for name in shape.submodel_field_names:
                if name in raw:
                    raw[name] = shape.spec_by_name[name].coerce(raw[name])

        unknown = [key for key in raw if key not in shape]
        if unknown:
            if get_config_value(cls.model_config, 'extra') == 'forbid':
                raise FieldValidationError(
                    cls,
                    unknown,
                    f"Unknown fields for {shape.name}: {', '.join(map(str, unknown))}",
                )
            logger.debug("Dropping unknown fields for %s: %s", shape.name, unknown)
        return Record(shape, raw)

    def _wrap(self: _T, record: Record) -> _T:
        return type(self)(record)

    # --- field access ---

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails, i.e. for schema fields.
        try:
            record = object.__getattribute__(self, '_record')
        except AttributeError:
            raise AttributeError(name) from None
        accessor = record.shape.accessors.get(name)
        if accessor is None:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            )
        return accessor(record)

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableModelError(self, name)

    def __delattr__(self, name: str) -> None:
        raise ImmutableModelError(self, name)

    def __getitem__(self, key: str) -> Any:
        return self._record[key]

    def __contains__(self, key: object) -> bool:
        return key in self._record

    def __iter__(self) -> Iterator[str]:
        """Iterate over field names."""
        return iter(self._record)

    @property
    def record(self) -> Record:
        """The immutable record backing this instance."""
        return self._record

    @property
    def identity(self) -> Any:
        return self._record[type(self).id_field]

    def has_identity(self) -> bool:
        """False when the identity field is unset, e.g. on a blank()."""
        return self.identity is not UNDEFINED

    def get(self, key: str, default: Any = None) -> Any:
        return self._record.get(key, default)

    def get_in(self, path: Path, default: Any = None) -> Any:
        return self._record.get_in(path, default)

    # --- update methods: each returns a new instance ---

    def set(self: _T, key: str, value: Any) -> _T:
        return self._wrap(self._record.set(key, value))

    def set_in(self: _T, path: Path, value: Any) -> _T:
        return self._wrap(self._record.set_in(path, value))

    def update(self: _T, key: str, updater: Callable[[Any], Any]) -> _T:
        return self._wrap(self._record.update(key, updater))

    def update_in(self: _T, path: Path, updater: Callable[[Any], Any], default: Any = None) -> _T:
        return self._wrap(self._record.update_in(path, updater, default))

    def delete(self: _T, key: str) -> _T:
        """Reset a field to its schema default."""
        return self._wrap(self._record.delete(key))

    def remove(self: _T, key: str) -> _T:
        return self._wrap(self._record.remove(key))

    def delete_in(self: _T, path: Path) -> _T:
        return self._wrap(self._record.delete_in(path))

    def remove_in(self: _T, path: Path) -> _T:
        return self._wrap(self._record.remove_in(path))

    def merge(self: _T, *sources: Any) -> _T:
        return self._wrap(self._record.merge(*sources))

    def merge_with(self: _T, merger: Callable[[Any, Any, str], Any], *sources: Any) -> _T:
        return self._wrap(self._record.merge_with(merger, *sources))

    def merge_in(self: _T, path: Path, *sources: Any) -> _T:
        return self._wrap(self._record.merge_in(path, *sources))

    def merge_deep(self: _T, *sources: Any) -> _T:
        return self._wrap(self._record.merge_deep(*sources))

    def merge_deep_with(self: _T, merger: Callable[[Any, Any, str], Any], *sources: Any) -> _T:
        return self._wrap(self._record.merge_deep_with(merger, *sources))

    def merge_deep_in(self: _T, path: Path, *sources: Any) -> _T:
        return self._wrap(self._record.merge_deep_in(path, *sources))

    def with_mutations(self: _T, mutator: Callable[[RecordDraft], Any]) -> _T:
        """Apply several updates in one scope and wrap the final record once.

        Example:
            user = user.with_mutations(lambda d: d.set('name', 'Jane').set('email', 'j@x.io'))
        """
        return self._wrap(self._record.with_mutations(mutator))

    def to_object(self) -> Dict[str, Any]:
        """Shallow dict of field values; sub-models stay models."""
        return self._record.to_object()

    def to_dict(self) -> Dict[str, Any]:
        """Deep export to plain Python values."""
        return self._record.to_dict()

    def values(self) -> Dict[str, Any]:
        """Dict of field values with every sub-model unwrapped to its own values()."""
        data = self._record.to_object()
        for name in type(self).submodel_field_names():
            if is_model_instance(data[name]):
                data[name] = data[name].values()
        return data

    def unset_id(self: _T) -> _T:
        """Return a copy whose identity field is UNDEFINED.

        Used to build placeholders for data that has not resolved yet.
        """
        return self._wrap(self._record.set(type(self).id_field, UNDEFINED))

    # --- schema ---

    @classmethod
    def blank(cls: Type[_T]) -> _T:
        """Return an instance of schema defaults with every identity unset.

        The identity fields of all nested sub-models are unset as well. A
        query built from a blank's identity has UNDEFINED params, which tells
        resolvers that it depends on another query still in flight:

            a = User.blank()
            b = Post.get_list({'author_id': a.id})   # deferred until a resolves
        """
        return _unset_ids(cls())

    @classmethod
    def field_names(cls) -> List[str]:
        return list(cls._shape().field_names)

    @classmethod
    def submodel_field_names(cls) -> List[str]:
        """Names of the fields whose values are sub-models."""
        return list(cls._shape().submodel_field_names)

    @classmethod
    def assert_fields_exist(cls, fields: Union[str, Iterable[str], None] = ALL_FIELDS) -> None:
        """Ensure every requested field is part of the schema.

        Raises:
            FieldValidationError: listing every requested name that is missing.
        """
        if fields is None or fields == ALL_FIELDS:
            return
        if isinstance(fields, str):
            fields = [fields]
        shape = cls._shape()
        missing: List[str] = []
        for name in fields:
            if name not in shape and name not in missing:
                missing.append(name)
        if missing:
            raise FieldValidationError(cls, missing)

    # --- query builders ---

    @classmethod
    def item(cls, fields: Union[str, Iterable[str]] = ALL_FIELDS) -> Returns:
        return Returns(cls, fields, ReturnType.ITEM)

    @classmethod
    def list(cls, fields: Union[str, Iterable[str]] = ALL_FIELDS) -> Returns:
        return Returns(cls, fields, ReturnType.LIST)

    @classmethod
    def get_item(cls, fields: Any = _NOT_GIVEN, params: Any = _NOT_GIVEN) -> Query:
        """Query for a single instance.

        Called with one mapping, that mapping is the params:

            User.get_item({'id': 1})
            User.get_item(['name'], {'id': 1})

        A single argument that is not a mapping is read as the field
        selection, so ``User.get_item(['name'])`` asks for the name of an
        item with no params. Params are always a mapping, so the two
        readings never collide.
        """
        fields, params = _split_fields_and_params(fields, params)
        return Query(
            model=cls,
            fields=fields,
            params=params,
            query_type=QueryType.GET,
            return_type=ReturnType.ITEM,
        )

    @classmethod
    def get_list(cls, fields: Any = _NOT_GIVEN, params: Any = _NOT_GIVEN) -> Query:
        """Query for a list of instances; arguments as for get_item()."""
        fields, params = _split_fields_and_params(fields, params)
        return Query(
            model=cls,
            fields=fields,
            params=params,
            query_type=QueryType.GET,
            return_type=ReturnType.LIST,
        )

    @classmethod
    def create_item(
        cls,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        fields: Union[str, Iterable[str]] = ALL_FIELDS,
    ) -> Query:
        return Query(cls, fields, params, QueryType.CREATE, ReturnType.ITEM, body=body)

    @classmethod
    def update_item(
        cls,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        fields: Union[str, Iterable[str]] = ALL_FIELDS,
    ) -> Query:
        return Query(cls, fields, params, QueryType.UPDATE, ReturnType.ITEM, body=body)

    @classmethod
    def delete_item(cls, params: Optional[Mapping[str, Any]] = None) -> Query:
        return Query(cls, ALL_FIELDS, params, QueryType.DELETE, ReturnType.NONE)

    # --- dunder ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return type(self) is type(other) and self._record == other._record

    def __hash__(self) -> int:
        return hash((type(self), self._record))

    def __repr__(self) -> str:
        parts = ', '.join(f"{k}={v!r}" for k, v in self._record.items())
        return f"{type(self).__name__}({parts})"

    def __copy__(self: _T) -> _T:
        return self

    def __deepcopy__(self: _T, memo: Dict[int, Any]) -> _T:
        return self


__all__ = ["Model"]
