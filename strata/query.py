"""
Query descriptor: the full intent of one request.

A Query names the model, the requested fields, the parameters, the kind of
operation and the cardinality of the result. It is an inert value: two
queries with the same content compare and hash equal, which is what lets a
resolver deduplicate requests and diff them against earlier ones.

A parameter whose value is UNDEFINED (or a model instance whose identity is
unset, such as one returned by ``Model.blank()``) marks the query as not yet
resolvable. Resolvers should defer such queries, neither fetching nor
failing them:

    author = User.blank()
    posts = Post.get_list({'author_id': author.id})
    assert posts.state is State.UNDEFINED_PARAMS
"""

import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from .consts import ALL_FIELDS, UNDEFINED, QueryType, ReturnType, State
from .fields import is_model_instance
from .record import freeze_value
from .returns import FieldSelector, Returns, fields_repr, normalize_fields

logger = logging.getLogger(__name__)


def _is_undefined(value: Any) -> bool:
    if value is UNDEFINED:
        return True
    return is_model_instance(value) and not value.has_identity()


class Query:
    """Immutable request descriptor, compared by value."""

    __slots__ = ('model', 'fields', 'params', 'query_type', 'return_type', 'body')

    def __init__(
        self,
        model: Any,
        fields: Union[str, Iterable[str], None] = ALL_FIELDS,
        params: Optional[Mapping[str, Any]] = None,
        query_type: Union[QueryType, str] = QueryType.GET,
        return_type: Union[ReturnType, str] = ReturnType.ITEM,
        body: Any = None,
    ) -> None:
        if params is None:
            params = {}
        elif not isinstance(params, Mapping):
            raise TypeError(
                f"Query params must be a mapping, got {type(params).__name__}"
            )
        _set = object.__setattr__
        _set(self, 'model', model)
        _set(self, 'fields', normalize_fields(model, fields))
        _set(self, 'params', MappingProxyType(dict(params)))
        _set(self, 'query_type', QueryType.coerce(query_type))
        _set(self, 'return_type', ReturnType.coerce(return_type))
        _set(self, 'body', body)

        if self.has_undefined_params():
            logger.debug(
                "Deferring %s %s query for %s: undefined params %s",
                self.query_type.value, self.return_type.value,
                model.__name__, self.undefined_params(),
            )

    @classmethod
    def from_returns(
        cls,
        returns: Returns,
        params: Optional[Mapping[str, Any]] = None,
        query_type: Union[QueryType, str] = QueryType.GET,
        body: Any = None,
    ) -> "Query":
        """Build a Query from a Returns descriptor plus runtime parameters."""
        return cls(
            model=returns.model,
            fields=returns.fields,
            params=params,
            query_type=query_type,
            return_type=returns.return_type,
            body=body,
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Query is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Query is immutable")

    @property
    def returns(self) -> Returns:
        return Returns(self.model, self.fields, self.return_type)

    def undefined_params(self) -> list:
        """Names of params whose values are not known yet."""
        return [name for name, value in self.params.items() if _is_undefined(value)]

    def has_undefined_params(self) -> bool:
        return any(_is_undefined(value) for value in self.params.values())

    @property
    def state(self) -> Optional[State]:
        """UNDEFINED_PARAMS when the query cannot be resolved yet, else None.

        Fetch progress is tracked by the resolver's Status, not here.
        """
        if self.has_undefined_params():
            return State.UNDEFINED_PARAMS
        return None

    def _key(self) -> tuple:
        return (
            self.model,
            self.fields,
            self.query_type,
            self.return_type,
            freeze_value(self.params),
            freeze_value(self.body),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return (
            self.model is other.model
            and self.fields == other.fields
            and self.query_type is other.query_type
            and self.return_type is other.return_type
            and dict(self.params) == dict(other.params)
            and self.body == other.body
        )

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        parts = [
            self.model.__name__,
            f"fields={fields_repr(self.fields)}",
            f"params={dict(self.params)!r}",
            f"query_type={self.query_type.value!r}",
            f"return_type={self.return_type.value!r}",
        ]
        if self.body is not None:
            parts.append(f"body={self.body!r}")
        return f"Query({', '.join(parts)})"


__all__ = ["Query", "FieldSelector"]
