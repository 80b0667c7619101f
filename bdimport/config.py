"""
Settings for bdimport.

Values are layered: built-in defaults, then the user file
(~/.config/bdimport/config.toml), then the first local file found in the
working directory (bdimport.toml or .bdimportrc), then an explicitly named
file, then BDI_* environment variables. Command-line flags are applied last
through init_config().
"""
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import tomli
import tomli_w

from bdimport.constants import DEFAULT_MAX_WORKERS

ENV_PREFIX = "BDI_"
LOCAL_CONFIG_NAMES = ("bdimport.toml", ".bdimportrc")
TRUE_STRINGS = ("true", "1", "yes", "on")


def user_config_path() -> Path:
    return Path.home() / ".config" / "bdimport" / "config.toml"


def _expand(path: str) -> str:
    return os.path.expanduser(os.path.expandvars(path))


@dataclass
class ImporterConfig:
    """
    Importer settings.

    Attributes:
        max_workers: Sources decoded in parallel
        copy_databases: Copy SQLite stores to a temp file before reading them
        temp_dir: Where those copies go (system default when unset)
        chrome_epoch_shift: Convert Chrome timestamps from the 1601 epoch;
            False keeps the older unshifted conversion
        sources: Default input path per source kind, used when the command
            line names none
        output_format: table, json or csv
        export_pretty: Indent exported JSON
        color_output: Colored terminal output
        log_level: Root log level name
    """

    max_workers: int = field(default=DEFAULT_MAX_WORKERS)
    copy_databases: bool = field(default=True)
    temp_dir: Optional[str] = field(default=None)
    chrome_epoch_shift: bool = field(default=True)

    sources: Dict[str, str] = field(default_factory=dict)

    output_format: str = field(default="table")
    export_pretty: bool = field(default=True)
    color_output: bool = field(default=True)
    log_level: str = field(default="INFO")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "ImporterConfig":
        """
        Build a configuration from every layer.

        Args:
            config_file: Extra file applied after the user and local files

        Returns:
            The merged configuration
        """
        config = cls()

        layers = [user_config_path()]
        local = next((Path.cwd() / name for name in LOCAL_CONFIG_NAMES
                      if (Path.cwd() / name).exists()), None)
        if local is not None:
            layers.append(local)
        if config_file is not None:
            layers.append(Path(config_file))

        for path in layers:
            if path.exists():
                config.update(read_toml(path))

        config.update_from_env(os.environ)
        config.expand_paths()
        return config

    def update(self, values: Dict[str, Any]):
        """Apply known keys; tables such as ``sources`` are merged, not replaced."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                continue
            current = getattr(self, key)
            if isinstance(current, dict) and isinstance(value, dict):
                current.update(value)
            else:
                setattr(self, key, value)

    def update_from_env(self, environ):
        """Apply BDI_* variables, coercing to the type of the current value."""
        known = {f.name for f in fields(self)}
        for name, raw in environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            key = name[len(ENV_PREFIX):].lower()
            if key not in known:
                continue

            current = getattr(self, key)
            # bool first: bool is a subclass of int
            if isinstance(current, bool):
                setattr(self, key, raw.strip().lower() in TRUE_STRINGS)
            elif isinstance(current, int):
                setattr(self, key, int(raw))
            elif isinstance(current, dict):
                continue
            else:
                setattr(self, key, raw)

    def expand_paths(self):
        """Expand ~ and $VARS in temp_dir and source paths."""
        if isinstance(self.temp_dir, str):
            self.temp_dir = _expand(self.temp_dir)
        self.sources = {kind: _expand(path) for kind, path in self.sources.items()}

    def save(self, path: Optional[Path] = None):
        """Write the configuration as TOML (the user file by default)."""
        target = Path(path) if path is not None else user_config_path()
        target.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null, so unset optional values are left out
        data = {key: value for key, value in asdict(self).items() if value is not None}
        with open(target, "wb") as f:
            tomli_w.dump(data, f)


def read_toml(path: Path) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomli.load(f)


_config: Optional[ImporterConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> ImporterConfig:
    """Return the cached configuration, loading it on first use or on ``reload``."""
    global _config
    if reload or _config is None:
        _config = ImporterConfig.load(config_file)
    return _config


def init_config(config_file: Optional[Path] = None, **overrides) -> ImporterConfig:
    """
    Load (or reuse) the configuration and apply command-line overrides.

    Passing ``config_file`` forces a reload. Overrides whose value is None
    are ignored so unset flags do not clobber file values.
    """
    config = get_config(reload=config_file is not None, config_file=config_file)
    config.update({key: value for key, value in overrides.items() if value is not None})
    return config
