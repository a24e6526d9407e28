"""
ModelConfig for strata - per-model configuration.

Provides the ModelConfig TypedDict for tuning how a Model stores incoming
raw data.

Example:
    from strata import Model, ModelConfig

    class User(Model):
        model_name = 'user'
        model_config = ModelConfig(extra='forbid')
        fields = {'id': None, 'name': ''}
"""

from typing import Any, Literal, Optional, TypedDict


class ModelConfig(TypedDict, total=False):
    """Configuration dictionary for Model subclasses."""

    extra: Literal['ignore', 'forbid']
    """How to handle keys in raw data that are not schema fields. Default: 'ignore'.
    - 'ignore': Unknown keys are dropped, as an immutable record drops them.
    - 'forbid': Unknown keys raise a FieldValidationError.
    """


# Default configuration values
CONFIG_DEFAULTS: ModelConfig = {
    'extra': 'ignore',
}


def get_config_value(config: Optional[ModelConfig], key: str, default: Any = None) -> Any:
    """Get a configuration value with fallback to defaults."""
    if config is None:
        return CONFIG_DEFAULTS.get(key, default)
    return config.get(key, CONFIG_DEFAULTS.get(key, default))


__all__ = ["ModelConfig", "CONFIG_DEFAULTS", "get_config_value"]
