"""Unified settings — CLI flags, env vars, .env, and TOML config in one object.

Priority chain (highest to lowest):
  1. CLI flags passed by Click as init kwargs
  2. ``SOUNDGOOD_*`` env vars, ``__`` for nested sections
  3. ``.env`` in the working directory, same names
  4. ``soundgood.toml`` discovered via walk-up
  5. Code defaults baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from soundgood.config.discovery import find_config
from soundgood.config.models import DatabaseConfig, RentalsConfig, ReplConfig

DEFAULT_DB_FILENAME = "soundgood.db"
TOML_SECTIONS = ("database", "rentals", "repl")


class TomlSettingsSource(PydanticBaseSettingsSource):
    """The ``[database]``, ``[rentals]`` and ``[repl]`` tables of a config file.

    Other top-level keys are ignored so that CLI-only flags such as
    ``quiet`` cannot be pinned from the file.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._sections: dict[str, Any] = {}
        if toml_path is None or not toml_path.is_file():
            return
        try:
            with toml_path.open("rb") as fh:
                document = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            import click

            msg = f"Invalid TOML in {toml_path}: {exc}"
            raise click.ClickException(msg) from exc
        self._sections = {name: document[name] for name in TOML_SECTIONS if name in document}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._sections.get(field_name), field_name, field_name in self._sections

    def __call__(self) -> dict[str, Any]:
        return dict(self._sections)


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class SoundgoodSettings(BaseSettings):
    """Settings for the soundgood CLI and console.

    Attributes:
        root: Directory the config was found in (or CWD); the default
            SQLite database lives here.
        config_path: The TOML file in use, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "SOUNDGOOD_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "extra": "ignore",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    no_interact: bool = False

    # --- TOML sections ---
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    rentals: RentalsConfig = Field(default_factory=RentalsConfig)
    repl: ReplConfig = Field(default_factory=ReplConfig)

    @property
    def database_url(self) -> str:
        """Configured database URL, or the SQLite file under :attr:`root`."""
        if self.database.url:
            return self.database.url
        return f"sqlite:///{self.root / DEFAULT_DB_FILENAME}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between .env and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        database_url: str | None = None,
        **cli_flags: Any,
    ) -> SoundgoodSettings:
        """Construct settings from a CLI invocation.

        Discovers ``soundgood.toml`` via walk-up (or explicit *config_path*),
        resolves *root* from the config file's parent directory, and merges
        CLI flags as highest-priority overrides. ``--database-url`` replaces
        only the ``url`` of the ``[database]`` section.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            settings = cls(root=resolved_root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

        if database_url:
            database = settings.database.model_copy(update={"url": database_url})
            settings = settings.model_copy(update={"database": database})
        return settings
