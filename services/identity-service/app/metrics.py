"""Prometheus counters for identity workflows."""

from __future__ import annotations

from prometheus_client import Counter

REGISTRATIONS = Counter(
    "identity_registrations_total",
    "Registration attempts by outcome.",
    ["outcome"],
)
LOGINS = Counter(
    "identity_logins_total",
    "Login attempts by outcome.",
    ["outcome"],
)
DELETIONS = Counter(
    "identity_account_deletions_total",
    "Account deletion requests by outcome.",
    ["outcome"],
)
