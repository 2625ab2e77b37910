"""
HarnessConfig - configuration for a verification run.

Everything the harness needs to know about its target and its timing lives
in one explicit object that is handed to the probe and the orchestrator at
construction. Nothing reads the environment mid-run.

Example:
    >>> from sagaverify import HarnessConfig
    >>>
    >>> # Explicit
    >>> config = HarnessConfig(host="10.0.0.5", port=8081, default_max_wait=30)
    >>>
    >>> # From DOCKER_HOST_IP / SAGAVERIFY_* environment variables (and .env)
    >>> config = HarnessConfig.from_env()
    >>>
    >>> # From a YAML file with ${VAR:-default} substitution
    >>> config = HarnessConfig.from_file("sagaverify.yaml")
    >>>
    >>> config.url_for("orders", 42, "cancel")
    'http://10.0.0.5:8081/orders/42/cancel'
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sagaverify.core.env import EnvManager
from sagaverify.core.exceptions import ConfigurationError
from sagaverify.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_APPLICATION_PORT = 8081


@dataclass(frozen=True)
class HarnessConfig:
    """
    Attributes:
        host: Host running the services under test
        port: Application port shared by the services (API gateway)
        scheme: URL scheme
        service_ports: Per-resource port overrides, e.g. {"accounts": 8085}
        request_timeout: Socket timeout for one HTTP request, in seconds
        default_max_wait: How long a convergence check may poll, in seconds
        default_interval: Delay between two poll attempts, in seconds
        run_deadline: Optional cap on a whole scenario run, in seconds
    """

    host: str = "localhost"
    port: int = DEFAULT_APPLICATION_PORT
    scheme: str = "http"
    service_ports: dict[str, int] = field(default_factory=dict)
    request_timeout: float = 10.0
    default_max_wait: float = 10.0
    default_interval: float = 0.5
    run_deadline: float | None = None

    def __post_init__(self) -> None:
        if not self.host:
            msg = "host must not be empty"
            raise ConfigurationError(msg)
        for name, port in {"port": self.port, **self.service_ports}.items():
            if not 0 < int(port) < 65536:
                msg = f"Invalid port for {name}: {port}"
                raise ConfigurationError(msg)
        if self.request_timeout <= 0:
            msg = f"request_timeout must be positive, got {self.request_timeout}"
            raise ConfigurationError(msg)
        if self.default_max_wait < 0:
            msg = f"default_max_wait must not be negative, got {self.default_max_wait}"
            raise ConfigurationError(msg)
        if self.default_interval <= 0:
            msg = f"default_interval must be positive, got {self.default_interval}"
            raise ConfigurationError(msg)
        if self.run_deadline is not None and self.run_deadline <= 0:
            msg = f"run_deadline must be positive, got {self.run_deadline}"
            raise ConfigurationError(msg)

    def port_for(self, resource: str) -> int:
        return self.service_ports.get(resource, self.port)

    def url_for(self, resource: str, *path: Any) -> str:
        """Build ``scheme://host:port/resource/path...`` for a resource."""
        segments = [resource, *(str(p) for p in path)]
        url = f"{self.scheme}://{self.host}:{self.port_for(resource)}/" + "/".join(segments)
        logger.debug(f"url={url}")
        return url

    def with_overrides(self, **changes: Any) -> HarnessConfig:
        """Return a copy with the given non-None fields replaced."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, load_dotenv: bool = True
    ) -> HarnessConfig:
        """
        Create configuration from environment variables.

        Environment Variables:
            DOCKER_HOST_IP / SAGAVERIFY_HOST: Target host (SAGAVERIFY_HOST wins)
            SAGAVERIFY_PORT: Application port (default 8081)
            SAGAVERIFY_SCHEME: URL scheme (default http)
            SAGAVERIFY_REQUEST_TIMEOUT: Per-request timeout in seconds
            SAGAVERIFY_MAX_WAIT: Default convergence wait in seconds
            SAGAVERIFY_INTERVAL: Default poll interval in seconds
            SAGAVERIFY_RUN_DEADLINE: Optional whole-run deadline in seconds

        Args:
            environ: Mapping to read instead of os.environ
            load_dotenv: If True, loads .env file before reading variables
        """
        env = EnvManager(auto_load=False, environ=environ)
        if load_dotenv and environ is None:
            env.load()

        defaults = cls()
        return cls(
            host=env.get_first("SAGAVERIFY_HOST", "DOCKER_HOST_IP", default=defaults.host),
            port=env.get_int("SAGAVERIFY_PORT", defaults.port),
            scheme=env.get("SAGAVERIFY_SCHEME", defaults.scheme),
            request_timeout=env.get_float("SAGAVERIFY_REQUEST_TIMEOUT", defaults.request_timeout),
            default_max_wait=env.get_float("SAGAVERIFY_MAX_WAIT", defaults.default_max_wait),
            default_interval=env.get_float("SAGAVERIFY_INTERVAL", defaults.default_interval),
            run_deadline=env.get_float("SAGAVERIFY_RUN_DEADLINE"),
        )

    @classmethod
    def from_file(cls, file_path: str | Path, substitute_env: bool = True) -> HarnessConfig:
        """
        Load configuration from a YAML file.

        Supports environment variable substitution using ${VAR} syntax:

            target:
              host: ${DOCKER_HOST_IP:-localhost}
              port: 8081
              service_ports:
                accounts: 8085
            polling:
              max_wait: 30
              interval: 0.5
            request_timeout: 10
            run_deadline: 300
        """
        path = Path(file_path)
        if not path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            data = yaml.safe_load(f)

        if not data:
            return cls()
        if not isinstance(data, dict):
            msg = f"Invalid configuration in {file_path}: expected a mapping at top level"
            raise ConfigurationError(msg)

        if substitute_env:
            try:
                data = EnvManager().substitute_dict(data)
            except ValueError as e:
                msg = f"Invalid value in {file_path}: {e}"
                raise ConfigurationError(msg) from e

        target = _section(data, "target", file_path)
        polling = _section(data, "polling", file_path)
        service_ports = _section(target, "service_ports", file_path)
        defaults = cls()

        try:
            return cls(
                host=target.get("host", defaults.host),
                port=int(target.get("port", defaults.port)),
                scheme=target.get("scheme", defaults.scheme),
                service_ports={k: int(v) for k, v in service_ports.items()},
                request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
                default_max_wait=float(polling.get("max_wait", defaults.default_max_wait)),
                default_interval=float(polling.get("interval", defaults.default_interval)),
                run_deadline=(
                    float(data["run_deadline"]) if data.get("run_deadline") is not None else None
                ),
            )
        except (TypeError, ValueError) as e:
            msg = f"Invalid value in {file_path}: {e}"
            raise ConfigurationError(msg) from e


def _section(data: dict[str, Any], name: str, file_path: str | Path) -> dict[str, Any]:
    """Return a mapping section; an empty section (``target:``) counts as absent."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        msg = f"Invalid configuration in {file_path}: '{name}' must be a mapping"
        raise ConfigurationError(msg)
    return section
