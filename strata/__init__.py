"""
strata - declarative data access for client applications

Describe what data you need (a model, a field set, a cardinality) and let a
resolver work out how to fetch it. strata provides the primitives resolvers
are built on: immutable, schema-checked models, comparable query
descriptors, and a Status wrapper for in-flight fetches.

Example:
    from strata import Model

    class User(Model):
        model_name = 'user'
        fields = {'id': None, 'name': ''}

    class Post(Model):
        model_name = 'post'
        fields = {'id': None, 'title': '', 'author': User}

    user = User({'id': 1, 'name': 'Joe'})
    user = user.set('name', 'Jane')

    query = Post.get_list(['title'], {'author_id': user.id})
"""

__version__ = "0.3.0"

# --- Constants ---
from .consts import (
    UNDEFINED, ALL_FIELDS,
    QueryType, ReturnType, State,
    GET, CREATE, UPDATE, DELETE,
    RETURNS_ALL_FIELDS, RETURNS_ITEM, RETURNS_LIST, RETURNS_NONE,
    PENDING, SUCCESS, ERROR, UNDEFINED_PARAMS,
)

# --- Errors ---
from .errors import (
    StrataError,
    ModelDefinitionError,
    FieldValidationError,
    ImmutableModelError,
    StatusError,
)

# --- Configuration ---
from .config import ModelConfig, CONFIG_DEFAULTS, get_config_value

# --- Schema ---
from .fields import FieldKind, FieldSpec
from .registry import RecordShape, SchemaRegistry, default_registry
from .record import Record, RecordDraft

# --- Descriptors ---
from .returns import Returns
from .query import Query

# --- Model ---
from .model import Model

# --- Status ---
from .status import Status


__all__ = [
    # Constants
    "UNDEFINED", "ALL_FIELDS",
    "QueryType", "ReturnType", "State",
    "GET", "CREATE", "UPDATE", "DELETE",
    "RETURNS_ALL_FIELDS", "RETURNS_ITEM", "RETURNS_LIST", "RETURNS_NONE",
    "PENDING", "SUCCESS", "ERROR", "UNDEFINED_PARAMS",

    # Errors
    "StrataError", "ModelDefinitionError", "FieldValidationError",
    "ImmutableModelError", "StatusError",

    # Configuration
    "ModelConfig", "CONFIG_DEFAULTS", "get_config_value",

    # Schema
    "FieldKind", "FieldSpec",
    "RecordShape", "SchemaRegistry", "default_registry",
    "Record", "RecordDraft",

    # Descriptors
    "Returns", "Query",

    # Model
    "Model",

    # Status
    "Status",
]
