from __future__ import annotations

import logging
import os
from collections import namedtuple
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qs, unquote, urlparse

from dotenv import find_dotenv, load_dotenv
from psycopg.conninfo import make_conninfo

from pgchain.exception import ConfigurationError

logger = logging.getLogger(__name__)

SettingMapping = namedtuple("SettingMapping", ("key", "cast"))


URLPARSE_MAPPING = {
    "hostname": SettingMapping("host", str),
    "username": SettingMapping("user", unquote),
    "password": SettingMapping("password", unquote),
    "port": SettingMapping("port", int),
    "path": SettingMapping("database", lambda value: unquote(value.strip("/"))),
}

ENVIRON_MAPPING = {
    "DB_USER": SettingMapping("user", str),
    "DB_PASSWORD": SettingMapping("password", str),
    "DB_DATABASE": SettingMapping("database", str),
    "DB_HOST": SettingMapping("host", str),
    "DB_PORT": SettingMapping("port", int),
    "MIN_POOL": SettingMapping("min_size", int),
    "MAX_POOL": SettingMapping("max_size", int),
    "IDLE_TIMEOUT_MS": SettingMapping("idle_timeout_ms", int),
    "DB_SSLMODE": SettingMapping("sslmode", str),
}
URL_VARIABLE = "DATABASE_URL"
ENV_VARIABLE = "APP_ENV"
TEST_DATABASE_VARIABLE = "DB_DATABASE_TEST"
REQUIRED = ("user", "password", "database")
NUMERIC = ("port", "min_size", "max_size", "idle_timeout_ms")

_dotenv_loaded = False


@dataclass(frozen=True)
class PoolConfig:
    """Settings for one connection pool

    Instances are immutable. Use `PoolConfig.resolve` to build one from the
    environment and explicit overrides.
    """

    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    database: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    min_size: int = 1
    max_size: int = 20
    idle_timeout_ms: int = 60000
    sslmode: Optional[str] = None

    def __post_init__(self):
        missing = [name for name in REQUIRED if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                "Database improperly configured, missing: "
                + ", ".join(missing)
            )
        if not isinstance(self.port, int) or self.port not in range(
            0, 65536
        ):
            raise ConfigurationError(
                "port: must be an integer between 0 and 65535"
            )
        if self.max_size < 1 or self.min_size > self.max_size:
            raise ConfigurationError(
                f"Invalid pool sizing: min_size={self.min_size}, "
                f"max_size={self.max_size}"
            )

    @property
    def conninfo(self) -> str:
        params: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.database,
        }
        if self.sslmode:
            params["sslmode"] = self.sslmode
        return make_conninfo(**params)

    @property
    def max_idle(self) -> float:
        return self.idle_timeout_ms / 1000

    @classmethod
    def resolve(
        cls,
        base: Optional[PoolConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> PoolConfig:
        """Merge the configuration layers into one `PoolConfig`

        Layers, lowest precedence first:

        1. the defaults declared on this class
        2. the environment (see `from_environment`)
        3. `base`, typically the configuration that is currently active
        4. `overrides`, where `url` may stand in for the discrete
           connection fields

        Args:
            base (PoolConfig, optional): Configuration to extend.
                Defaults to `None`.
            environ (Mapping[str, str], optional): Variables to read instead
                of `os.environ`. A `.env` file is only loaded when this is
                not given. Defaults to `None`.

        Raises:
            ConfigurationError: If user, password or database are still
                missing after the merge, or a value cannot be parsed
        """
        settings = from_environment(environ)
        if base is not None:
            settings.update(asdict(base))
        settings.update(_normalize(overrides))
        return cls(**settings)


def parse_url(url: str) -> Dict[str, Any]:
    parts = urlparse(url)
    settings: Dict[str, Any] = {}
    for attr, mapping in URLPARSE_MAPPING.items():
        try:
            value = getattr(parts, attr)
        except ValueError as e:
            raise ConfigurationError(f"Invalid database URL: {e}") from e
        if value:
            settings[mapping.key] = mapping.cast(value)
    sslmode = parse_qs(parts.query).get("sslmode")
    if sslmode:
        settings["sslmode"] = sslmode[-1]
    return settings


def from_environment(
    environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Read the settings that are present in the environment

    `DATABASE_URL`, when set, replaces the discrete connection variables.
    When `APP_ENV` is `test` and `DB_DATABASE_TEST` is set, the latter names
    the database.
    """
    if environ is None:
        _load_dotenv()
        environ = os.environ

    settings: Dict[str, Any] = {}
    for variable, mapping in ENVIRON_MAPPING.items():
        value = environ.get(variable)
        if value:
            settings[mapping.key] = _cast(variable, value, mapping.cast)

    url = environ.get(URL_VARIABLE)
    if url:
        logger.debug("Using %s for connection settings", URL_VARIABLE)
        settings.update(parse_url(url))

    test_database = environ.get(TEST_DATABASE_VARIABLE)
    if environ.get(ENV_VARIABLE) == "test" and test_database:
        settings["database"] = test_database

    return settings


def _normalize(overrides: Mapping[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(PoolConfig)}
    settings: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key == "url" or value is None:
            continue
        if key not in known:
            raise ConfigurationError(f"Unknown configuration option: {key}")
        if key in NUMERIC and isinstance(value, str):
            value = _cast(key, value, int)
        settings[key] = value
    url = overrides.get("url")
    if url:
        settings.update(parse_url(url))
    return settings


def _cast(variable: str, value: str, cast):
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{variable}: cannot parse {value!r}"
        ) from e


def _load_dotenv() -> None:
    global _dotenv_loaded
    if _dotenv_loaded:
        return
    _dotenv_loaded = True
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)
        logger.debug("Loaded environment variables from %s", path)
