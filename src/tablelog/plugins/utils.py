"""
Plugin utilities for configuration parsing and name resolution.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import InvalidConfigurationError

ConfigT = TypeVar("ConfigT", bound=BaseModel)


def parse_plugin_config(
    model: type[ConfigT],
    config: ConfigT | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> ConfigT:
    """Build a validated config model from an instance, a mapping or kwargs.

    Keyword arguments override mapping/instance values. Any validation
    failure is raised as ``InvalidConfigurationError``; values are never
    clamped into range.
    """
    try:
        if isinstance(config, model):
            if not kwargs:
                return config
            data: dict[str, Any] = config.model_dump()
        elif config is None:
            data = {}
        elif isinstance(config, Mapping):
            data = dict(config)
        else:
            raise InvalidConfigurationError(
                f"Unsupported config type for {model.__name__}: "
                f"{type(config).__name__}"
            )
        data.update(kwargs)
        return model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidConfigurationError(
            f"Invalid {model.__name__}: {problems}",
            cause=exc,
            model=model.__name__,
        ) from exc


def get_plugin_name(plugin: Any) -> str:
    """Canonical plugin name: ``plugin.name`` when set, else the class name."""
    name = getattr(plugin, "name", None)
    if name and isinstance(name, str) and name.strip():
        return name.strip()
    cls = plugin if isinstance(plugin, type) else plugin.__class__
    return cls.__name__


__all__ = ["get_plugin_name", "parse_plugin_config"]
