"""Prometheus metrics for the poll driver and reconciler."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

polls_total = Counter(
    "tagwatch_polls_total",
    "Completed poll cycles",
    ["outcome"],
)

account_polls_total = Counter(
    "tagwatch_account_polls_total",
    "Per-account reconciliation runs",
    ["account", "outcome"],
)

images_listed = Gauge(
    "tagwatch_images_listed",
    "Tagged images returned by the registry on the last poll",
    ["account"],
)

image_decisions_total = Counter(
    "tagwatch_image_decisions_total",
    "Reconciler decisions per image",
    ["account", "decision"],
)

events_emitted_total = Counter(
    "tagwatch_events_emitted_total",
    "Change events handed to the emitter",
    ["account", "success"],
)

registry_list_seconds = Histogram(
    "tagwatch_registry_list_seconds",
    "Time spent listing images for one account",
    ["account"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)
