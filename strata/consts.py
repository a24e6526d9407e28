"""
Shared vocabulary for strata queries and statuses.

Queries state whether they read, create, update or delete a model, whether
they return a single item, a list, or nothing, and which fields they need.
Statuses report where an asynchronous fetch is in its lifecycle.

Example:
    from strata.consts import QueryType, ReturnType, ALL_FIELDS

    QueryType.coerce("GET") is QueryType.GET
"""

from enum import Enum
from typing import Any


class _Undefined:
    """Marker for a value that is not known yet.

    Used for unset identity fields and for query params that depend on
    another query which has not resolved.
    """

    __slots__ = ()
    _instance = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'UNDEFINED'

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: Any) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return 'UNDEFINED'


UNDEFINED = _Undefined()


class _CoercibleEnum(str, Enum):

    @classmethod
    def coerce(cls, value: Any) -> Any:
        """Return the member for ``value``, accepting members or raw strings."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"{value!r} is not a valid {cls.__name__}; expected one of "
                + ', '.join(m.value for m in cls)
            ) from None

    def __str__(self) -> str:
        return self.value


class QueryType(_CoercibleEnum):
    """Whether a query reads, creates, updates or deletes a model."""
    GET = 'GET'
    CREATE = 'CREATE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'


class ReturnType(_CoercibleEnum):
    """Cardinality of a query's result."""
    ITEM = 'item'
    LIST = 'list'
    # No return data, as with DELETE. Whether other query types may use it is
    # left to the resolver.
    NONE = 'none'


class State(_CoercibleEnum):
    """Lifecycle of a fetch, plus the deferred state of an unresolvable query."""
    PENDING = 'PENDING'
    SUCCESS = 'SUCCESS'
    ERROR = 'ERROR'
    # Some params are UNDEFINED: the query depends on queries still in flight.
    # It is neither pending nor failed.
    UNDEFINED_PARAMS = 'UNDEFINED_PARAMS'


# Field selector meaning "every field in the schema"
ALL_FIELDS = '*'

GET = QueryType.GET
CREATE = QueryType.CREATE
UPDATE = QueryType.UPDATE
DELETE = QueryType.DELETE

RETURNS_ALL_FIELDS = ALL_FIELDS
RETURNS_ITEM = ReturnType.ITEM
RETURNS_LIST = ReturnType.LIST
RETURNS_NONE = ReturnType.NONE

PENDING = State.PENDING
SUCCESS = State.SUCCESS
ERROR = State.ERROR
UNDEFINED_PARAMS = State.UNDEFINED_PARAMS


__all__ = [
    "UNDEFINED", "ALL_FIELDS",
    "QueryType", "ReturnType", "State",
    "GET", "CREATE", "UPDATE", "DELETE",
    "RETURNS_ALL_FIELDS", "RETURNS_ITEM", "RETURNS_LIST", "RETURNS_NONE",
    "PENDING", "SUCCESS", "ERROR", "UNDEFINED_PARAMS",
]
