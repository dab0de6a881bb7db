# recanon/client/config.py
# Renderer endpoint configuration.
#
# Resolution order for the base URL:
#   1. explicit override (command line, caller)
#   2. RECANON_RENDERER_URL environment variable, when set and non-blank
#   3. DEFAULT_RENDERER_URL
#
# Resolved once at process start and passed to RendererClient. Nothing else
# in the package reads the environment.

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_RENDERER_URL: str = "https://nexart-canonical-renderer-production.up.railway.app"
DEFAULT_TIMEOUT_SECONDS: float = 30.0

ENV_RENDERER_URL: str = "RECANON_RENDERER_URL"
ENV_RENDERER_TIMEOUT: str = "RECANON_RENDERER_TIMEOUT"


@dataclass(frozen=True)
class RendererConfig:
    base_url: str = DEFAULT_RENDERER_URL
    timeout:  float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def resolve(
        cls,
        override: Optional[str] = None,
        environ:  Optional[Mapping[str, str]] = None,
    ) -> "RendererConfig":
        """
        Raises ValueError when RECANON_RENDERER_TIMEOUT is not a positive number.
        """
        env = os.environ if environ is None else environ

        base_url = DEFAULT_RENDERER_URL
        env_url = env.get(ENV_RENDERER_URL, "")
        if override and override.strip():
            base_url = override.strip()
        elif env_url and env_url.strip():
            base_url = env_url.strip()

        timeout = DEFAULT_TIMEOUT_SECONDS
        raw_timeout = env.get(ENV_RENDERER_TIMEOUT, "")
        if raw_timeout and raw_timeout.strip():
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ValueError(
                    f"{ENV_RENDERER_TIMEOUT} must be a number of seconds; got {raw_timeout!r}"
                ) from None
            if not timeout > 0:
                raise ValueError(f"{ENV_RENDERER_TIMEOUT} must be positive; got {raw_timeout!r}")

        return cls(base_url=base_url.rstrip("/"), timeout=timeout)

    @property
    def is_default(self) -> bool:
        return self.base_url == DEFAULT_RENDERER_URL
