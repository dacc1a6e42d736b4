"""Configuration resolution and merging logic.

This module provides the single entrypoint for configuration resolution:
resolve_config(). It merges ParamConfig, UserConfig, and CLIConfig in
the correct precedence order and returns a validated InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from aura.schemas.param import ParamConfig
from aura.schemas.user import UserConfig
from aura.schemas.cli import CLIConfig
from aura.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values are replaced.

    Parameters
    ----------
    base : dict
        Base dictionary (lowest priority)
    *overrides : dict
        Override dictionaries (higher priority, left to right)

    Returns
    -------
    dict
        Merged dictionary

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _coerce(model_cls, cfg):
    if cfg is None or (isinstance(cfg, dict) and not cfg):
        return model_cls()
    if isinstance(cfg, model_cls):
        return cfg
    return model_cls.model_validate(cfg)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    This is the SINGLE ENTRYPOINT for configuration resolution. It validates
    and merges configs in the correct precedence order, then returns an
    immutable InternalConfig for runtime use. City presets are expanded into
    name and coordinates during validation.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides. If None or empty, uses only param defaults.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides. If None or empty, no CLI overrides applied.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation (unknown city, inverted
        period, non-positive resolution or sample size, geographic target CRS)

    Examples
    --------
    >>> from aura.schemas import resolve_config, ParamConfig, UserConfig
    >>> config = resolve_config(ParamConfig(), UserConfig(CITY="colombo", SEED=7))
    >>> config.region.name
    'Colombo'
    >>> config.sampling.seed
    7
    """
    param = _coerce(ParamConfig, param_cfg)
    user = _coerce(UserConfig, user_cfg)
    cli = _coerce(CLIConfig, cli_cfg)

    # Convert to dicts for merging
    param_dict = param.model_dump(by_alias=True)  # Use 'global' not 'global_'
    user_overrides = user.to_internal_overrides()
    cli_overrides = cli.to_internal_overrides()

    # Deep merge: param < user < cli
    merged = deep_merge(param_dict, user_overrides, cli_overrides)

    return InternalConfig.model_validate(merged)
