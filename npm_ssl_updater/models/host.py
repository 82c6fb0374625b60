"""Proxy host records as returned by the Nginx Proxy Manager API."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

# Canonical order of the managed flags. Change detection and diff output
# both iterate this tuple, so new flags must be added here only.
POLICY_FIELDS: tuple[str, ...] = (
    "ssl_forced",
    "http2_support",
    "hsts_enabled",
    "hsts_subdomains",
    "block_exploits",
    "caching_enabled",
    "allow_websocket_upgrade",
)


@dataclass(frozen=True)
class PolicyFlags:
    """The seven security/performance switches managed by this tool."""

    ssl_forced: bool = False
    http2_support: bool = False
    hsts_enabled: bool = False
    hsts_subdomains: bool = False
    block_exploits: bool = False
    caching_enabled: bool = False
    allow_websocket_upgrade: bool = False

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> PolicyFlags:
        """Read the flags from an API dict; missing or null values are False."""
        return cls(**{name: bool(data.get(name) or False) for name in POLICY_FIELDS})

    def as_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in POLICY_FIELDS}


@dataclass(frozen=True)
class ForwardTarget:
    scheme: str = "http"
    host: str = ""
    port: int = 80

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class HostMeta:
    """Host metadata. Only ``dns_challenge`` is read and sent back."""

    dns_challenge: bool = False


@dataclass(frozen=True)
class HostRecord:
    """A single proxy host entry."""

    id: int
    domain_names: tuple[str, ...]
    forward: ForwardTarget = field(default_factory=ForwardTarget)
    access_list_id: int = 0
    certificate_id: int | str | None = None
    locations: tuple[Any, ...] = ()
    advanced_config: str = ""
    meta: HostMeta = field(default_factory=HostMeta)
    flags: PolicyFlags = field(default_factory=PolicyFlags)

    def __post_init__(self) -> None:
        if not self.domain_names:
            raise ValueError(f"Proxy host {self.id} has no domain names")

    @property
    def primary_domain(self) -> str:
        return self.domain_names[0]

    @property
    def label(self) -> str:
        return ", ".join(self.domain_names)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> HostRecord:
        """Build a record from one item of ``GET /api/nginx/proxy-hosts``."""
        meta = data.get("meta") or {}
        return cls(
            id=data["id"],
            domain_names=tuple(data.get("domain_names") or ()),
            forward=ForwardTarget(
                scheme=data.get("forward_scheme") or "http",
                host=data.get("forward_host") or "",
                port=data.get("forward_port") or 80,
            ),
            access_list_id=data.get("access_list_id") or 0,
            certificate_id=data.get("certificate_id"),
            locations=tuple(data.get("locations") or ()),
            advanced_config=data.get("advanced_config") or "",
            meta=HostMeta(dns_challenge=bool(meta.get("dns_challenge", False))),
            flags=PolicyFlags.from_mapping(data),
        )

    def to_update_payload(self, flags: PolicyFlags) -> dict[str, Any]:
        """Full replacement body for ``PUT /api/nginx/proxy-hosts/{id}``.

        Every pass-through field is sent back unchanged; only the policy
        flags take the values from *flags*.
        """
        payload: dict[str, Any] = {
            "domain_names": list(self.domain_names),
            "forward_scheme": self.forward.scheme,
            "forward_host": self.forward.host,
            "forward_port": self.forward.port,
            "access_list_id": self.access_list_id or 0,
            "certificate_id": self.certificate_id,
        }
        payload.update(asdict(flags))
        payload.update(
            {
                "locations": list(self.locations),
                "advanced_config": self.advanced_config or "",
                "meta": {
                    "letsencrypt_agree": True,
                    "dns_challenge": self.meta.dns_challenge,
                },
            }
        )
        return payload
