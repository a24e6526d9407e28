"""
Immutable record storage backing strata models.

A Record holds one value for every field of a RecordShape. It never changes
after construction: every transformation returns a new Record that shares
all untouched values with the original.

Paths (``set_in``, ``update_in``, ``delete_in``, ``merge_in`` ...) walk into
nested models, records, mappings and lists. Nested models are updated
through their own update methods, so they stay models; mappings and
sequences along the path are copied, never modified.

Example:
    record = Record(shape, {'id': 1, 'name': 'Joe'})
    renamed = record.set('name', 'Jane')
    assert record['name'] == 'Joe' and renamed['name'] == 'Jane'
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Sequence, Union

from .consts import UNDEFINED
from .errors import FieldValidationError
from .fields import is_model_instance
from .registry import RecordShape

Path = Sequence[Any]
Source = Union[Mapping, "Record", Any]

_MISSING = object()


def freeze_value(value: Any) -> Any:
    """Return a hashable stand-in for ``value``, recursing into containers."""
    if isinstance(value, Record) or is_model_instance(value):
        return value
    if isinstance(value, Mapping):
        return frozenset((k, freeze_value(v)) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze_value(v) for v in value)
    return value


def export_value(value: Any) -> Any:
    """Deep plain-Python export of a stored value."""
    if isinstance(value, Record) or is_model_instance(value):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: export_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [export_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(export_value(v) for v in value)
    return value


def _items(source: Source) -> Iterable:
    if isinstance(source, Record):
        return source._values.items()
    if is_model_instance(source):
        return source.to_object().items()
    if isinstance(source, Mapping):
        return source.items()
    raise TypeError(f"Cannot merge {type(source).__name__} into a record")


def _is_branch(value: Any) -> bool:
    return isinstance(value, (Record, Mapping)) or is_model_instance(value)


def _get_child(node: Any, key: Any) -> Any:
    if isinstance(node, Record) or is_model_instance(node):
        return node.get(key, _MISSING)
    if isinstance(node, Mapping):
        return node.get(key, _MISSING)
    if isinstance(node, (list, tuple)) and isinstance(key, int):
        return node[key] if -len(node) <= key < len(node) else _MISSING
    return _MISSING


def _set_child(node: Any, key: Any, value: Any) -> Any:
    if isinstance(node, Record) or is_model_instance(node):
        return node.set(key, value)
    if node is _MISSING or node is None or node is UNDEFINED:
        return {key: value}
    if isinstance(node, Mapping):
        copied = dict(node)
        copied[key] = value
        return copied
    if isinstance(node, (list, tuple)) and isinstance(key, int):
        copied = list(node)
        copied[key] = value
        return type(node)(copied) if isinstance(node, tuple) else copied
    raise TypeError(f"Cannot set key {key!r} on {type(node).__name__}")


def _delete_child(node: Any, key: Any) -> Any:
    if isinstance(node, Record) or is_model_instance(node):
        return node.delete(key)
    if isinstance(node, Mapping):
        if key not in node:
            return node
        return {k: v for k, v in node.items() if k != key}
    if isinstance(node, (list, tuple)) and isinstance(key, int):
        if not -len(node) <= key < len(node):
            return node
        copied = list(node)
        del copied[key]
        return type(node)(copied) if isinstance(node, tuple) else copied
    return node


def _set_in(node: Any, path: Path, value: Any) -> Any:
    if not path:
        return value
    key = path[0]
    if is_model_instance(node) or isinstance(node, Record):
        return node.set_in(path, value)
    child = _get_child(node, key)
    return _set_child(node, key, _set_in(child, path[1:], value))


def _delete_in(node: Any, path: Path) -> Any:
    if is_model_instance(node) or isinstance(node, Record):
        return node.delete_in(path)
    key = path[0]
    if len(path) == 1:
        return _delete_child(node, key)
    child = _get_child(node, key)
    if child is _MISSING:
        return node
    return _set_child(node, key, _delete_in(child, path[1:]))


def _merge_into(node: Any, sources: Sequence[Source], deep: bool, merger: Optional[Callable]) -> Any:
    if is_model_instance(node) or isinstance(node, Record):
        if deep:
            return node.merge_deep_with(merger, *sources) if merger else node.merge_deep(*sources)
        return node.merge_with(merger, *sources) if merger else node.merge(*sources)
    merged: Dict[Any, Any] = dict(node) if isinstance(node, Mapping) else {}
    for source in sources:
        for key, value in _items(source):
            if key in merged:
                merged[key] = _merge_value(merged[key], value, key, deep, merger)
            else:
                merged[key] = value
    return merged


def _merge_value(old: Any, new: Any, key: Any, deep: bool, merger: Optional[Callable]) -> Any:
    if deep and _is_branch(old) and _is_branch(new):
        return _merge_into(old, [new], deep, merger)
    if merger is not None:
        return merger(old, new, key)
    return new


class Record(Mapping):
    """Immutable mapping of every schema field to its value.

    Unknown keys in the constructor data are dropped. Unknown keys given to
    ``set`` or ``merge`` raise FieldValidationError. Lists, sets and dicts are
    stored as tuples, frozensets and read-only mapping proxies.
    """
    __slots__ = ('shape', '_values')
    __strata_record__ = True

    def __init__(self, shape: RecordShape, data: Optional[Mapping] = None) -> None:
        values = shape.defaults()
        if data:
            for key, value in data.items():
                if key in values:
                    values[key] = shape.spec_by_name[key].coerce(value)
        object.__setattr__(self, 'shape', shape)
        object.__setattr__(self, '_values', MappingProxyType(values))

    @classmethod
    def _adopt(cls, shape: RecordShape, values: Dict[str, Any]) -> "Record":
        record = object.__new__(cls)
        object.__setattr__(record, 'shape', shape)
        object.__setattr__(record, '_values', MappingProxyType(values))
        return record

    def _replace(self, changes: Mapping[str, Any]) -> "Record":
        if not changes:
            return self
        values = dict(self._values)
        values.update(changes)
        return Record._adopt(self.shape, values)

    def _check_keys(self, keys: Iterable[Any]) -> None:
        unknown = [k for k in keys if k not in self.shape]
        if unknown:
            raise FieldValidationError(
                self.shape.name,
                [str(k) for k in unknown],
                f"Cannot set unknown fields on {self.shape.name}: "
                + ', '.join(str(k) for k in unknown),
            )

    def _coerce(self, key: str, value: Any) -> Any:
        return self.shape.spec_by_name[key].coerce(value)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Record is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Record is immutable")

    # --- reads ---

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.shape.field_names)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_in(self, path: Path, default: Any = None) -> Any:
        node: Any = self
        for key in path:
            node = _get_child(node, key)
            if node is _MISSING:
                return default
        return node

    # --- single field transforms ---

    def set(self, key: str, value: Any) -> "Record":
        self._check_keys([key])
        return self._replace({key: self._coerce(key, value)})

    def update(self, key: str, updater: Callable[[Any], Any]) -> "Record":
        return self.set(key, updater(self.get(key)))

    def delete(self, key: str) -> "Record":
        """Reset a field to its schema default."""
        self._check_keys([key])
        return self._replace({key: self.shape.spec_by_name[key].get_default()})

    remove = delete

    # --- path transforms ---

    def set_in(self, path: Path, value: Any) -> "Record":
        path = list(path)
        if not path:
            raise ValueError("set_in requires a non-empty path")
        key = path[0]
        if len(path) == 1:
            return self.set(key, value)
        self._check_keys([key])
        return self.set(key, _set_in(self.get(key), path[1:], value))

    def update_in(self, path: Path, updater: Callable[[Any], Any], default: Any = None) -> "Record":
        return self.set_in(path, updater(self.get_in(path, default)))

    def delete_in(self, path: Path) -> "Record":
        path = list(path)
        if not path:
            raise ValueError("delete_in requires a non-empty path")
        key = path[0]
        if len(path) == 1:
            return self.delete(key)
        self._check_keys([key])
        child = self.get(key)
        return self.set(key, _delete_in(child, path[1:]))

    remove_in = delete_in

    # --- merges ---

    def merge(self, *sources: Source) -> "Record":
        return self._merge(sources, deep=False, merger=None)

    def merge_with(self, merger: Callable[[Any, Any, str], Any], *sources: Source) -> "Record":
        return self._merge(sources, deep=False, merger=merger)

    def merge_deep(self, *sources: Source) -> "Record":
        return self._merge(sources, deep=True, merger=None)

    def merge_deep_with(self, merger: Callable[[Any, Any, str], Any], *sources: Source) -> "Record":
        return self._merge(sources, deep=True, merger=merger)

    def merge_in(self, path: Path, *sources: Source) -> "Record":
        return self.update_in(path, lambda node: _merge_into(node, sources, False, None))

    def merge_deep_in(self, path: Path, *sources: Source) -> "Record":
        return self.update_in(path, lambda node: _merge_into(node, sources, True, None))

    def _merge(self, sources: Sequence[Source], deep: bool, merger: Optional[Callable]) -> "Record":
        changes: Dict[str, Any] = {}
        for source in sources:
            items = list(_items(source))
            self._check_keys(k for k, _ in items)
            for key, value in items:
                current = changes.get(key, self._values[key])
                changes[key] = self._coerce(key, _merge_value(current, value, key, deep, merger))
        return self._replace(changes)

    # --- bulk ---

    def with_mutations(self, mutator: Callable[["RecordDraft"], Any]) -> "Record":
        """Apply several transforms through a draft and return the final record."""
        draft = RecordDraft(self)
        mutator(draft)
        return draft.record

    # --- export ---

    def to_object(self) -> Dict[str, Any]:
        """Shallow plain dict; nested models are kept as models."""
        return dict(self._values)

    def to_dict(self) -> Dict[str, Any]:
        """Deep plain export; nested models and records become dicts."""
        return {k: export_value(v) for k, v in self._values.items()}

    # --- comparisons ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        if other is self:
            return True
        return self.shape.name == other.shape.name and dict(self._values) == dict(other._values)

    def __hash__(self) -> int:
        return hash((self.shape.name, tuple(freeze_value(self._values[n]) for n in self.shape.field_names)))

    def __repr__(self) -> str:
        body = ', '.join(f"{k}={v!r}" for k, v in self._values.items())
        return f"Record<{self.shape.name}>({body})"


class RecordDraft:
    """Mutable view over a record, valid inside ``with_mutations``.

    Each call replaces the draft's current record; the original record is
    never touched.
    """
    __slots__ = ('record',)

    def __init__(self, record: Record) -> None:
        self.record = record

    def get(self, key: str, default: Any = None) -> Any:
        return self.record.get(key, default)

    def set(self, key: str, value: Any) -> "RecordDraft":
        self.record = self.record.set(key, value)
        return self

    def set_in(self, path: Path, value: Any) -> "RecordDraft":
        self.record = self.record.set_in(path, value)
        return self

    def update(self, key: str, updater: Callable[[Any], Any]) -> "RecordDraft":
        self.record = self.record.update(key, updater)
        return self

    def update_in(self, path: Path, updater: Callable[[Any], Any], default: Any = None) -> "RecordDraft":
        self.record = self.record.update_in(path, updater, default)
        return self

    def delete(self, key: str) -> "RecordDraft":
        self.record = self.record.delete(key)
        return self

    def delete_in(self, path: Path) -> "RecordDraft":
        self.record = self.record.delete_in(path)
        return self

    def merge(self, *sources: Source) -> "RecordDraft":
        self.record = self.record.merge(*sources)
        return self

    def merge_deep(self, *sources: Source) -> "RecordDraft":
        self.record = self.record.merge_deep(*sources)
        return self


__all__ = ["Record", "RecordDraft", "freeze_value", "export_value"]
