"""Policy evaluation — the desired flag projection for a proxy host.

SSL, HTTP/2 and HSTS are always forced on. ``hsts_subdomains`` follows
its option both ways and is the one flag this tool can turn off. The
remaining flags are only ever switched on: when an option is not
requested the host keeps its current value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from npm_ssl_updater.models.host import HostRecord, PolicyFlags

# Hosts whose primary domain contains one of these never get exploit
# blocking forced on (their apps break behind the common-exploit rules).
DEFAULT_EXEMPTIONS: frozenset[str] = frozenset(
    {"tinyauth", "vaultls", "pocket-id", "watchyourlan"}
)


@dataclass(frozen=True)
class PolicyOptions:
    """Run-scoped switches selecting which optional flags to force on."""

    enable_hsts_subdomains: bool = False
    enable_caching: bool = False
    block_exploits: bool = False
    enable_websockets: bool = False
    exemption_substrings: frozenset[str] = field(default_factory=lambda: DEFAULT_EXEMPTIONS)

    def with_exemptions(self, extra: Iterable[str]) -> PolicyOptions:
        """Return a copy with *extra* substrings added to the exemption list."""
        cleaned = {s.strip() for s in extra if s and s.strip()}
        return PolicyOptions(
            enable_hsts_subdomains=self.enable_hsts_subdomains,
            enable_caching=self.enable_caching,
            block_exploits=self.block_exploits,
            enable_websockets=self.enable_websockets,
            exemption_substrings=self.exemption_substrings | frozenset(cleaned),
        )


def is_exempt(domain: str, substrings: Iterable[str]) -> bool:
    """True if *domain* contains any of the exemption substrings."""
    return any(s in domain for s in substrings)


def evaluate(host: HostRecord, opts: PolicyOptions) -> PolicyFlags:
    """Compute the desired flags for *host* under *opts*."""
    current = host.flags

    force_block = opts.block_exploits and not is_exempt(
        host.primary_domain, opts.exemption_substrings
    )

    return PolicyFlags(
        ssl_forced=True,
        http2_support=True,
        hsts_enabled=True,
        hsts_subdomains=opts.enable_hsts_subdomains,
        block_exploits=True if force_block else current.block_exploits,
        caching_enabled=True if opts.enable_caching else current.caching_enabled,
        allow_websocket_upgrade=(
            True if opts.enable_websockets else current.allow_websocket_upgrade
        ),
    )
