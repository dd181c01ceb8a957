"""In-process counters and latency histograms.

No external dependencies. One process serves all trainee sessions, so a
module-level registry guarded by locks is enough.
"""

from typing import Dict, Any, Optional, Tuple, List
import threading


LabelKey = Tuple[Tuple[str, str], ...]

_LOCK = threading.Lock()
_COUNTERS: Dict[Tuple[str, LabelKey], int] = {}

# name -> {"bins": [...], "series": {labels -> {"counts": [...], "sum_ms": float}}}
_BINS_MS: List[int] = [5, 10, 25, 50, 100, 250, 500, 1000, 3000]
_HISTOGRAMS: Dict[str, Dict[str, Any]] = {}


def _labels_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def inc_counter(metric: str, labels: Optional[Dict[str, str]] = None) -> None:
    key = (metric, _labels_key(labels))
    with _LOCK:
        _COUNTERS[key] = _COUNTERS.get(key, 0) + 1


def record_timing(metric: str, value_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
    if value_ms is None:
        return
    lk = _labels_key(labels)
    with _LOCK:
        hist = _HISTOGRAMS.setdefault(metric, {"bins": list(_BINS_MS), "series": {}})
        bins: List[int] = hist["bins"]
        entry = hist["series"].setdefault(lk, {"counts": [0] * (len(bins) + 1), "sum_ms": 0.0})
        idx = next((i for i, b in enumerate(bins) if value_ms <= b), len(bins))
        entry["counts"][idx] += 1
        entry["sum_ms"] += float(value_ms)


def record_command(family: str, outcome: str, elapsed_ms: float) -> None:
    """Count one interpreted command and its latency.

    ``outcome`` is one of ok, syntax, precondition, unknown or error.
    """
    inc_counter("commands_total", {"family": family, "outcome": outcome})
    record_timing("command_latency_ms", elapsed_ms, {"family": family})


def get_metrics_snapshot() -> Dict[str, Any]:
    with _LOCK:
        counters = [
            {"name": name, "labels": dict(labels), "value": value}
            for (name, labels), value in _COUNTERS.items()
        ]
        histograms = [
            {
                "name": name,
                "labels": dict(labels),
                "bins_ms": list(h["bins"]),
                "counts": list(entry["counts"]),
                "sum_ms": entry["sum_ms"],
            }
            for name, h in _HISTOGRAMS.items()
            for labels, entry in h["series"].items()
        ]
    return {"counters": counters, "histograms": histograms}


def reset_metrics() -> None:
    with _LOCK:
        _COUNTERS.clear()
        _HISTOGRAMS.clear()
