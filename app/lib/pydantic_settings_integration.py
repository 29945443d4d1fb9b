import logging
from collections.abc import Callable
from sys import modules
from typing import Any, get_type_hints

from pydantic import create_model
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CONFIG = SettingsConfigDict(
    env_file='.env',
    env_file_encoding='utf-8',
    extra='ignore',
)


def _is_setting_name(name: str) -> bool:
    return name[:1] != '_' and name.isupper()


def pydantic_settings_integration(
    caller_name: str,
    caller_globals: dict[str, Any],
    /,
    config: SettingsConfigDict = _DEFAULT_CONFIG,
    name_filter: Callable[[str], bool] = _is_setting_name,
) -> None:
    """
    Load module-level settings from the environment.

    Upper-case globals of the calling module become fields of a dynamic
    BaseSettings model. Their current values act as defaults, environment
    variables and the .env file override them, and the validated values are
    written back into the module globals.
    """
    settings = {k: v for k, v in caller_globals.items() if name_filter(k)}
    if not settings:
        logging.warning('No settings found in %s matching the filter', caller_name)
        return

    type_hints = get_type_hints(modules[caller_name], caller_globals)
    fields: dict[str, tuple[Any, Any]] = {
        name: (
            type_hints.get(name, Any if isinstance(value, FieldInfo) else type(value)),
            value,
        )
        for name, value in settings.items()
    }

    base = type(
        f'{caller_name}_SettingsBase',
        (BaseSettings,),
        {'model_config': config},
    )
    loaded = create_model(f'{caller_name}_Settings', __base__=base, **fields)()  # type: ignore

    for name in settings:
        caller_globals[name] = getattr(loaded, name)
