"""Data models for proxy host records and their policy flags."""

from npm_ssl_updater.models.host import (
    POLICY_FIELDS,
    ForwardTarget,
    HostMeta,
    HostRecord,
    PolicyFlags,
)

__all__ = [
    "POLICY_FIELDS",
    "ForwardTarget",
    "HostMeta",
    "HostRecord",
    "PolicyFlags",
]
