"""Client configuration for pyschoolbus."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyschoolbus._constants import BASE_URL, parse_clock
from pyschoolbus.exceptions import SchoolBusConfigError

PATH_STYLES: frozenset[str] = frozenset({"flat", "verb"})


@dataclasses.dataclass(frozen=True)
class CallerIdentity:
    """Caller identity forwarded with every request.

    These values are issued by the authentication layer of the console;
    the client never generates or validates them.
    """

    operator_id: str = ""
    role_id: str = ""
    session_id: str = ""


@dataclasses.dataclass(frozen=True)
class SchoolBusConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Backend base URL, without trailing slash.
    path_style : str
        ``"flat"`` for ``/{entity}/{id}/{action}`` resources or ``"verb"``
        for ``/v1/{Controller}/{Action}`` endpoints.
    identity : CallerIdentity
        Operator, role and session ids attached to every request.
    api_token : str or None
        Optional bearer token sent as ``Authorization``.
    cache_ttl : float
        Seconds a fetched collection is served from cache.  ``0`` disables
        expiry (collections then refresh only when forced).
    live_cache_ttl : float
        Cache lifetime for fast-moving collections (trips, notifications).
    stop_base_time : str
        ``HH:MM`` clock of the first derived route stop.
    stop_interval_minutes : int
        Minutes between consecutive derived route stops.
    """

    base_url: str = BASE_URL
    path_style: str = "flat"
    identity: CallerIdentity = dataclasses.field(default_factory=CallerIdentity)
    api_token: str | None = None
    cache_ttl: float = 300.0
    live_cache_ttl: float = 60.0
    stop_base_time: str = "07:00"
    stop_interval_minutes: int = 5

    def __post_init__(self) -> None:
        if self.path_style not in PATH_STYLES:
            raise SchoolBusConfigError(f"path_style must be one of {sorted(PATH_STYLES)}, got {self.path_style!r}")
        if not self.base_url:
            raise SchoolBusConfigError("base_url must be non-empty")
        if self.stop_interval_minutes < 0:
            raise SchoolBusConfigError("stop_interval_minutes must be >= 0")
        try:
            parse_clock(self.stop_base_time)
        except ValueError as exc:
            raise SchoolBusConfigError(str(exc)) from exc
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> SchoolBusConfig:
        """Create configuration from ``SCHOOLBUS_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SchoolBusConfig
            Populated configuration.
        """
        env = os.environ

        identity_kwargs: dict[str, str] = {}
        _ENV_IDENTITY_MAP = {
            "SCHOOLBUS_OPERATOR_ID": "operator_id",
            "SCHOOLBUS_ROLE_ID": "role_id",
            "SCHOOLBUS_SESSION_ID": "session_id",
        }
        for env_key, field_name in _ENV_IDENTITY_MAP.items():
            val = env.get(env_key)
            if val is not None:
                identity_kwargs[field_name] = val

        identity_overrides = overrides.pop("identity", None)
        if isinstance(identity_overrides, dict):
            identity_kwargs.update(identity_overrides)
        elif isinstance(identity_overrides, CallerIdentity):
            identity_kwargs = dataclasses.asdict(identity_overrides)

        _ENV_CONFIG_MAP = {
            "SCHOOLBUS_BASE_URL": "base_url",
            "SCHOOLBUS_PATH_STYLE": "path_style",
            "SCHOOLBUS_API_TOKEN": "api_token",
            "SCHOOLBUS_STOP_BASE_TIME": "stop_base_time",
        }
        config_kwargs: dict[str, Any] = {"identity": CallerIdentity(**identity_kwargs)}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields
        _ENV_NUMERIC_MAP = {
            "SCHOOLBUS_CACHE_TTL": ("cache_ttl", float),
            "SCHOOLBUS_LIVE_CACHE_TTL": ("live_cache_ttl", float),
            "SCHOOLBUS_STOP_INTERVAL_MINUTES": ("stop_interval_minutes", int),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = convert(val)
            except ValueError as exc:
                raise SchoolBusConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
