"""
Environment variable management with .env file support.

Harness settings (target host, ports, poll timings) usually come from the
environment of the CI job that runs the end-to-end suite. This module loads
an optional ``.env`` file and offers typed accessors plus ``${VAR}``
substitution for YAML config files.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


class EnvManager:
    """
    Reads harness settings from environment variables.

    Example:
        >>> env = EnvManager()
        >>> env.load()  # Loads .env if exists
        >>> host = env.get("SAGAVERIFY_HOST", "localhost")
    """

    def __init__(
        self,
        project_root: Path | str | None = None,
        auto_load: bool = True,
        environ: Mapping[str, str] | None = None,
    ):
        """
        Args:
            project_root: Directory searched for the .env file
            auto_load: Load the .env file immediately if found
            environ: Mapping to read instead of os.environ (mostly for tests)
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._environ = environ

        if auto_load:
            self.load()

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def load(self, env_file: str | Path | None = None, override: bool = False) -> bool:
        """
        Load environment variables from a .env file.

        Returns:
            True if the file existed and was loaded
        """
        env_file = self.project_root / ".env" if env_file is None else Path(env_file)

        if not env_file.exists():
            return False

        load_dotenv(env_file, override=override)
        return True

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get an environment variable value."""
        return self.environ.get(key, default)

    def get_first(self, *keys: str, default: str | None = None) -> str | None:
        """Return the value of the first variable in ``keys`` that is set and non-empty."""
        for key in keys:
            value = self.environ.get(key)
            if value:
                return value
        return default

    def get_int(self, key: str, default: int = 0) -> int:
        """Get environment variable as integer."""
        try:
            return int(self.get(key, str(default)))
        except (ValueError, TypeError):
            return default

    def get_float(self, key: str, default: float | None = None) -> float | None:
        """Get environment variable as float (seconds, typically)."""
        raw = self.get(key)
        if raw is None or raw == "":
            return default
        try:
            return float(raw)
        except ValueError:
            return default

    def substitute(self, text: str) -> str:
        """
        Substitute environment variables in text.

        Supports:
        - ${VAR} - variable substitution
        - ${VAR:-default} - with default value
        - ${VAR:?error} - required variable (raises ValueError if not set)
        """
        pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

        def replace(match):
            var_name = match.group(1)
            operator = match.group(2)
            operand = match.group(3)

            value = self.environ.get(var_name)

            if operator == "-":
                return value if value is not None else operand
            if operator == "?":
                if value is None:
                    raise ValueError(operand or f"Required variable not set: {var_name}")
                return value
            return value if value is not None else f"${{{var_name}}}"

        return re.sub(pattern, replace, text)

    def substitute_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Recursively substitute environment variables in dictionary values."""
        result: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                result[key] = self.substitute(value)
            elif isinstance(value, dict):
                result[key] = self.substitute_dict(value)
            else:
                result[key] = value
        return result
