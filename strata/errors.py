"""
Exceptions raised by strata.

Every error here is raised synchronously at the point of misuse and is never
caught inside the library. Failed fetches are not errors in this sense: they
surface through a Status whose continuation chain takes its rejection path.
"""

from typing import Any, Iterable, Optional, Tuple


class StrataError(Exception):
    """Base class for all strata errors."""


class ModelDefinitionError(StrataError, TypeError):
    """A Model subclass declares an invalid schema."""

    def __init__(self, model: Any, message: str) -> None:
        self.model = model
        self.message = message
        super().__init__(f"{_model_label(model)}: {message}")


class FieldValidationError(StrataError, ValueError):
    """Requested field names are not part of a model's schema."""

    def __init__(
        self,
        model: Any,
        missing: Iterable[str],
        message: Optional[str] = None,
    ) -> None:
        self.model = model
        self.missing: Tuple[str, ...] = tuple(missing)
        if message is None:
            message = (
                f"All fields must be defined within {_model_label(model)}. "
                f"Missing: {', '.join(self.missing)}"
            )
        self.message = message
        super().__init__(message)


class ImmutableModelError(StrataError, AttributeError):
    """Attempted to write through a field accessor of an immutable model."""

    def __init__(self, model: Any, name: str) -> None:
        self.model = model
        self.name = name
        super().__init__(
            f"Cannot set '{name}' on an immutable model {_model_label(model)}; "
            f"use set(), merge() or another update method"
        )


class StatusError(StrataError, TypeError):
    """A Status was constructed without an asynchronous result handle."""


def _model_label(model: Any) -> str:
    if model is None:
        return 'model'
    if isinstance(model, str):
        return model
    if not isinstance(model, type):
        model = type(model)
    return getattr(model, 'model_name', None) or model.__name__


__all__ = [
    "StrataError",
    "ModelDefinitionError",
    "FieldValidationError",
    "ImmutableModelError",
    "StatusError",
]
