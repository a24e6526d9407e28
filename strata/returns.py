"""
Returns descriptor: which model, which fields, one item or a list.

Built by ``Model.item()`` and ``Model.list()`` and turned into a Query once
parameters are known:

    returns = User.item(['name'])
    query = returns.query({'id': 1})
"""

from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union

from .consts import ALL_FIELDS, QueryType, ReturnType

FieldSelector = Union[str, FrozenSet[str]]


def normalize_fields(model: Any, fields: Union[str, Iterable[str], None]) -> FieldSelector:
    """Validate a field selection against ``model`` and freeze it.

    ALL_FIELDS (or None) is kept as the sentinel; a single name or an
    iterable of names becomes a frozenset.
    """
    if fields is None or fields == ALL_FIELDS:
        return ALL_FIELDS
    if isinstance(fields, str):
        fields = (fields,)
    else:
        fields = tuple(fields)
    model.assert_fields_exist(fields)
    return frozenset(fields)


def fields_repr(fields: FieldSelector) -> str:
    if fields == ALL_FIELDS:
        return repr(ALL_FIELDS)
    return repr(sorted(fields))


class Returns:
    """Immutable (model, fields, return_type) triple."""

    __slots__ = ('model', 'fields', 'return_type')

    def __init__(
        self,
        model: Any,
        fields: Union[str, Iterable[str], None] = ALL_FIELDS,
        return_type: Union[ReturnType, str] = ReturnType.ITEM,
    ) -> None:
        object.__setattr__(self, 'model', model)
        object.__setattr__(self, 'fields', normalize_fields(model, fields))
        object.__setattr__(self, 'return_type', ReturnType.coerce(return_type))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Returns is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Returns is immutable")

    def query(
        self,
        params: Optional[Mapping[str, Any]] = None,
        query_type: Union[QueryType, str] = QueryType.GET,
        body: Any = None,
    ):
        """Build the Query requesting this model, field set and cardinality."""
        from .query import Query
        return Query.from_returns(self, params, query_type=query_type, body=body)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Returns):
            return NotImplemented
        return (
            self.model is other.model
            and self.fields == other.fields
            and self.return_type is other.return_type
        )

    def __hash__(self) -> int:
        return hash((self.model, self.fields, self.return_type))

    def __repr__(self) -> str:
        return (
            f"Returns({self.model.__name__}, fields={fields_repr(self.fields)}, "
            f"return_type={self.return_type.value!r})"
        )


__all__ = ["Returns", "FieldSelector", "normalize_fields"]
