"""
Configuration for the Kubernetes MCP server subprocess.

A ServerConfig describes how to launch the tool server: the command, its
arguments, and optionally a full replacement environment. Builders never
modify the receiver; each returns a new config.

Usage:
    cfg = ServerConfig.default().with_read_only().with_kubeconfig("~/.kube/dev")
    spec = cfg.to_exec()
    proc = subprocess.Popen(spec.argv, env=spec.env, ...)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "npx"
DEFAULT_ARGS = ("-y", "kubernetes-mcp-server@latest")

READ_ONLY_FLAG = "--read-only"
KUBECONFIG_FLAG = "--kubeconfig"
KUBECONFIG_ENV = "KUBECONFIG"


@dataclass(frozen=True)
class ExecSpec:
    """A resolved process invocation."""
    argv: tuple[str, ...]
    env: dict[str, str] | None = None

    def popen_kwargs(self) -> dict:
        kwargs: dict = {"args": list(self.argv)}
        if self.env is not None:
            kwargs["env"] = dict(self.env)
        return kwargs


@dataclass(frozen=True)
class ServerConfig:
    """
    How to reach the tool server.

    Attributes:
        command: Executable name or path (e.g. "npx").
        args: Arguments passed to command.
        env: KEY=VALUE entries for the subprocess. None means the process
             inherits the current environment; otherwise it replaces it.
    """
    command: str
    args: tuple[str, ...] = ()
    env: tuple[str, ...] | None = field(default=None)

    def __post_init__(self):
        # Callers may hand in lists; store tuples so derived configs never alias.
        object.__setattr__(self, "args", tuple(self.args))
        if self.env is not None:
            object.__setattr__(self, "env", tuple(self.env))

    @classmethod
    def default(cls) -> ServerConfig:
        """Run the Kubernetes MCP server via npx."""
        return cls(command=DEFAULT_COMMAND, args=DEFAULT_ARGS)

    def with_read_only(self) -> ServerConfig:
        """Return a copy with --read-only appended to args."""
        return replace(self, args=self.args + (READ_ONLY_FLAG,))

    def with_kubeconfig(self, path: str) -> ServerConfig:
        """
        Return a copy with --kubeconfig <path> appended to args.

        The path is passed through as-is; the server decides whether it is
        usable. It may point at any kubeconfig, including one for a remote
        cluster with token, client-cert or exec-based auth.
        """
        return replace(self, args=self.args + (KUBECONFIG_FLAG, path))

    def with_kubeconfig_env(self, path: str) -> ServerConfig:
        """
        Return a copy whose environment is the current process environment
        with KUBECONFIG=<path> set.

        Any inherited KUBECONFIG entry is dropped so the result holds exactly
        one. Useful when the kubeconfig path is only known at runtime.
        """
        prefix = KUBECONFIG_ENV + "="
        inherited = [
            f"{key}={value}"
            for key, value in os.environ.items()
            if key != KUBECONFIG_ENV
        ]
        return replace(self, env=tuple(inherited) + (prefix + path,))

    def with_env(self, env: Iterable[str]) -> ServerConfig:
        """
        Return a copy with the subprocess environment replaced by env.

        Entries must be KEY=VALUE; entries without "=" are dropped when the
        process is launched.
        """
        return replace(self, env=tuple(env))

    def to_exec(self) -> ExecSpec:
        """Materialize the process invocation for this config."""
        env = None
        if self.env is not None:
            env = {}
            for entry in self.env:
                key, sep, value = entry.partition("=")
                if sep:
                    env[key] = value
                else:
                    logger.debug(f"Dropping environment entry without '=': {entry!r}")
        return ExecSpec(argv=(self.command,) + self.args, env=env)


def default_k8s_config() -> ServerConfig:
    return ServerConfig.default()
