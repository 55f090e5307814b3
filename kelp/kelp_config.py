from __future__ import annotations
import codecs
import os
from dataclasses import dataclass
from typing import Mapping, Optional


class ConfigError(ValueError):
    """A KELP_* setting could not be understood."""


def _flag(raw: str) -> bool:
    return raw.strip().lower() not in ("", "0", "false", "no", "off")


@dataclass(frozen=True)
class RuntimeConfig:
    """Settings shared by the effect primitives of one ScriptRunner."""
    encoding: str = "utf-8"
    # None means no timeout: a hung fetch blocks the evaluation step.
    http_timeout: Optional[float] = None
    follow_redirects: bool = True
    user_agent: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'RuntimeConfig':
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get("KELP_ENCODING"):
            try:
                codecs.lookup(env["KELP_ENCODING"])
            except LookupError:
                raise ConfigError(f"KELP_ENCODING names an unknown encoding: {env['KELP_ENCODING']!r}") from None
            kwargs["encoding"] = env["KELP_ENCODING"]
        if env.get("KELP_HTTP_TIMEOUT"):
            raw = env["KELP_HTTP_TIMEOUT"]
            try:
                timeout = float(raw)
            except ValueError:
                raise ConfigError(f"KELP_HTTP_TIMEOUT must be a number of seconds, got {raw!r}") from None
            if not timeout > 0:
                raise ConfigError(f"KELP_HTTP_TIMEOUT must be positive, got {raw!r}")
            kwargs["http_timeout"] = timeout
        if env.get("KELP_FOLLOW_REDIRECTS") is not None:
            kwargs["follow_redirects"] = _flag(env["KELP_FOLLOW_REDIRECTS"])
        if env.get("KELP_USER_AGENT"):
            kwargs["user_agent"] = env["KELP_USER_AGENT"]
        return cls(**kwargs)

    def http_config(self) -> dict:
        cfg = {
            "timeout": self.http_timeout,
            "follow-redirects": self.follow_redirects,
        }
        if self.user_agent:
            cfg["headers"] = {"User-Agent": self.user_agent}
        return cfg
