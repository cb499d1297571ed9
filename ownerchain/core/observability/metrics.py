from __future__ import annotations

from prometheus_client import Counter

GATE_DECISIONS_TOTAL = Counter(
    "ownerchain_gate_decisions_total",
    "Ownership gate decisions on attempted writes",
    ["model", "decision"],
)

OWNER_LOOKUPS_TOTAL = Counter(
    "ownerchain_owner_lookups_total",
    "Owner identity lookups issued against the data store",
    ["kind"],
)


def record_gate_decision(model: str, allowed: bool) -> None:
    GATE_DECISIONS_TOTAL.labels(model=model, decision="allow" if allowed else "reject").inc()


def record_lookup(kind: str) -> None:
    OWNER_LOOKUPS_TOTAL.labels(kind=kind).inc()
