"""Run configuration — credentials, policy options and run mode.

Credentials come from the command line or from ``NPM_HOST``,
``NPM_EMAIL`` and ``NPM_PASSWORD`` (a ``.env`` file is loaded by the CLI).
Policy options can also be read from a YAML file; command-line flags can
only switch options on.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import yaml

from npm_ssl_updater.errors import ConfigError
from npm_ssl_updater.reconcile.driver import RunMode
from npm_ssl_updater.reconcile.policy import DEFAULT_EXEMPTIONS, PolicyOptions

ENV_HOST = "NPM_HOST"
ENV_EMAIL = "NPM_EMAIL"
ENV_PASSWORD = "NPM_PASSWORD"

# policy file key -> PolicyOptions attribute
_OPTION_KEYS = {
    "hsts_subdomains": "enable_hsts_subdomains",
    "cache_assets": "enable_caching",
    "block_exploits": "block_exploits",
    "enable_websockets": "enable_websockets",
}


@dataclass
class Credentials:
    host: str = ""
    email: str = ""
    password: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def missing(self) -> list[str]:
        return [name for name in ("host", "email", "password") if not getattr(self, name)]


@dataclass
class Settings:
    """Everything a run needs, resolved once at startup."""

    credentials: Credentials
    options: PolicyOptions
    mode: RunMode = RunMode.APPLY
    timeout: float = 30.0


def resolve_credentials(
    host: str | None,
    email: str | None,
    password: str | None,
    env: Mapping[str, str] | None = None,
) -> Credentials:
    """Merge command-line credentials over environment values.

    A warning is recorded for every value given on both sides with
    different contents; the command-line value wins.
    """
    env = os.environ if env is None else env
    creds = Credentials()
    for name, cli_value, env_key, flag in (
        ("host", host, ENV_HOST, "--host"),
        ("email", email, ENV_EMAIL, "--email"),
        ("password", password, ENV_PASSWORD, "--password"),
    ):
        env_value = env.get(env_key) or ""
        if cli_value and env_value and cli_value != env_value:
            creds.warnings.append(f"{flag} differs from {env_key} in the environment; using {flag}")
        setattr(creds, name, cli_value or env_value)
    return creds


def require_credentials(creds: Credentials) -> Credentials:
    if creds.missing:
        names = ", ".join(creds.missing)
        raise ConfigError(
            f"Missing {names}. Pass them as options or set "
            f"{ENV_HOST}, {ENV_EMAIL} and {ENV_PASSWORD} (a .env file works too)."
        )
    return creds


def select_mode(*, dry_run: bool = False, print_advanced: bool = False, list_only: bool = False) -> RunMode:
    """Pick the run mode from the mutually exclusive selector flags."""
    selected = [
        mode
        for flag, mode in (
            (list_only, RunMode.LIST_ONLY),
            (print_advanced, RunMode.VIEW_ADVANCED_CONFIG),
            (dry_run, RunMode.DRY_RUN),
        )
        if flag
    ]
    if len(selected) > 1:
        raise ConfigError("--list, --print-advanced and --dry-run are mutually exclusive")
    return selected[0] if selected else RunMode.APPLY


def load_policy_file(path: str | Path) -> PolicyOptions:
    """Load policy options from a YAML file.

    Example::

        options:
          hsts_subdomains: true
          block_exploits: true
        exemptions:
          - grafana
        replace_default_exemptions: false
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read policy file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in policy file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Policy file {path} must contain a mapping")

    raw_options = data.get("options") or {}
    if not isinstance(raw_options, dict):
        raise ConfigError(f"'options' in {path} must be a mapping")
    unknown = set(raw_options) - set(_OPTION_KEYS)
    if unknown:
        raise ConfigError(f"Unknown option(s) in {path}: {', '.join(sorted(unknown))}")

    exemptions = data.get("exemptions") or []
    if not isinstance(exemptions, list):
        raise ConfigError(f"'exemptions' in {path} must be a list")

    not_bool = sorted(k for k, v in raw_options.items() if not isinstance(v, bool))
    if not_bool:
        raise ConfigError(f"Option(s) in {path} must be true or false: {', '.join(not_bool)}")
    bad_entries = [e for e in exemptions if not isinstance(e, str)]
    if bad_entries:
        raise ConfigError(f"Exemptions in {path} must be strings, got: {bad_entries!r}")

    replace_defaults = data.get("replace_default_exemptions", False)
    if not isinstance(replace_defaults, bool):
        raise ConfigError(f"'replace_default_exemptions' in {path} must be true or false")

    base = frozenset() if replace_defaults else DEFAULT_EXEMPTIONS
    kwargs = {_OPTION_KEYS[k]: v for k, v in raw_options.items()}
    return PolicyOptions(exemption_substrings=base, **kwargs).with_exemptions(exemptions)


def build_options(
    base: PolicyOptions | None = None,
    *,
    hsts_subdomains: bool = False,
    cache_assets: bool = False,
    block_exploits: bool = False,
    enable_websockets: bool = False,
    exemptions: tuple[str, ...] = (),
) -> PolicyOptions:
    """Combine file options with command-line flags (flags only switch on)."""
    base = base or PolicyOptions()
    return PolicyOptions(
        enable_hsts_subdomains=base.enable_hsts_subdomains or hsts_subdomains,
        enable_caching=base.enable_caching or cache_assets,
        block_exploits=base.block_exploits or block_exploits,
        enable_websockets=base.enable_websockets or enable_websockets,
        exemption_substrings=base.exemption_substrings,
    ).with_exemptions(exemptions)
