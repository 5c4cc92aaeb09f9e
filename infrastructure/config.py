"""
PLEXUS CONFIG - Settings Loading

Configuration lives in `config/plexus.toml`, one table per concern:

    [editor]         name
    [logging]        level
    [recorder]       buffer_size, log_path
    [serialization]  format

Precedence (highest first):
    1. PLEXUS_* environment variables
    2. The TOML file
    3. Defaults declared on the structs below

Values are validated with msgspec, so a bad level or a negative buffer size
fails loudly at startup instead of deep inside a pipe.

Usage:
    from infrastructure.config import load_settings, configure_logging

    settings = load_settings()
    configure_logging(settings)
    editor = NodeEditor(settings.editor.name)
"""
import logging
import os
import tomllib
import warnings
from pathlib import Path
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Union

import msgspec


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "plexus.toml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EditorSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    name: str = "NodeEditor"


class LoggingSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    level: LogLevel = "WARNING"


class RecorderSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    buffer_size: Annotated[int, msgspec.Meta(gt=0)] = 10000
    log_path: Optional[str] = None      # Directory for JSONL event logs. None = memory only.


class SerializationSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    format: Literal["json", "msgpack"] = "json"


class PlexusSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    editor: EditorSettings = msgspec.field(default_factory=EditorSettings)
    logging: LoggingSettings = msgspec.field(default_factory=LoggingSettings)
    recorder: RecorderSettings = msgspec.field(default_factory=RecorderSettings)
    serialization: SerializationSettings = msgspec.field(default_factory=SerializationSettings)


# (env var, section, key)
ENV_OVERRIDES = (
    ("PLEXUS_EDITOR_NAME", "editor", "name"),
    ("PLEXUS_LOG_LEVEL", "logging", "level"),
    ("PLEXUS_RECORDER_BUFFER_SIZE", "recorder", "buffer_size"),
    ("PLEXUS_RECORDER_LOG_PATH", "recorder", "log_path"),
    ("PLEXUS_SNAPSHOT_FORMAT", "serialization", "format"),
)


def load_toml_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Read the raw TOML tables.

    A missing default file yields {} with a warning. An explicit path that
    does not exist raises FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            warnings.warn(f"Config file not found at {DEFAULT_CONFIG_PATH}, using defaults")
            return {}
        path = DEFAULT_CONFIG_PATH

    with open(path, "rb") as f:
        return tomllib.load(f)


def apply_env_overrides(
    config: Dict[str, Any],
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Return a copy of `config` with PLEXUS_* variables applied."""
    environ = os.environ if environ is None else environ
    merged = {section: dict(values) for section, values in config.items()}

    for var, section, key in ENV_OVERRIDES:
        value = environ.get(var)
        if value is None:
            continue
        if var == "PLEXUS_LOG_LEVEL":
            value = value.upper()
        merged.setdefault(section, {})[key] = value

    return merged


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PlexusSettings:
    """
    Load and validate settings.

    Raises:
        FileNotFoundError: If an explicit path does not exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
        msgspec.ValidationError: If a value has the wrong type or range
    """
    config = apply_env_overrides(load_toml_config(path), environ)
    # strict=False lets "500" from the environment become an int
    return msgspec.convert(config, type=PlexusSettings, strict=False)


def configure_logging(settings: PlexusSettings) -> logging.Logger:
    """Set the level of the `plexus` logger tree and give it a handler."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger("plexus")
    root.setLevel(settings.logging.level)
    return root
