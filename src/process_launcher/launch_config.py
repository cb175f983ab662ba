"""Launch configurations.

A launch configuration is an optional, named descriptor that supplies the
environment and the display label of a launch. The launcher only relies on
the two methods of the LaunchConfigurationLike protocol, so callers can pass
their own objects.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .errors import CoreError

__all__ = [
    "PROCESS_LABEL_ATTR",
    "LaunchConfiguration",
    "LaunchConfigurationLike",
]

# Attribute key holding the display label of launched processes
PROCESS_LABEL_ATTR = "process.label"

_ENV_VAR_REF = re.compile(r"\$\{env_var:([^}]*)\}")


@runtime_checkable
class LaunchConfigurationLike(Protocol):
    """What the launcher needs from a launch configuration."""

    def get_attribute(self, key: str, default: Any = None) -> Any: ...

    def resolve_environment(self) -> dict[str, str] | None: ...


@dataclass
class LaunchConfiguration:
    """Named launch configuration.

    Attributes:
        name: Configuration name
        attributes: Free-form attributes (PROCESS_LABEL_ATTR sets the label)
        environment: Declared environment variables; values may reference
            the parent environment as ``${env_var:NAME}``
        append_environment: Merge the declared variables over the parent
            environment (True) or use them alone (False)
    """

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    append_environment: bool = True

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def resolve_environment(
        self,
        native_environment: Mapping[str, str] | None = None,
    ) -> dict[str, str] | None:
        """Resolve the environment for a launch.

        Args:
            native_environment: Parent environment (defaults to os.environ)

        Returns:
            The complete child environment, or None when no variables are
            declared (the child inherits the parent's environment)

        Raises:
            CoreError: If a value references an undefined variable
        """
        if not self.environment:
            return None

        native = dict(os.environ if native_environment is None else native_environment)
        resolved = {
            name: self._expand(name, value, native)
            for name, value in self.environment.items()
        }

        if not self.append_environment:
            return resolved
        native.update(resolved)
        return native

    def _expand(self, name: str, value: str, native: Mapping[str, str]) -> str:
        def replace(match: re.Match[str]) -> str:
            ref = match.group(1)
            if ref not in native:
                raise CoreError(
                    f"Launch configuration {self.name!r}: variable {name} "
                    f"references undefined environment variable {ref!r}"
                )
            return native[ref]

        return _ENV_VAR_REF.sub(replace, value)
