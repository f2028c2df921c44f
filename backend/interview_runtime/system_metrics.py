import threading
import time
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "sessions_active": 0.0,
    "sessions_completed": 0.0,
    "sessions_refused": 0.0,
    "chunks_enqueued": 0.0,
    "chunks_uploaded": 0.0,
    "chunks_dropped": 0.0,
    "chunks_rejected_disabled": 0.0,
    "chunk_upload_retries": 0.0,
    "uploads_in_flight": 0.0,
    "chat_fallback_replies": 0.0,
    "relay_segments_sent": 0.0,
    "relay_segments_failed": 0.0,
    "recognizer_restarts": 0.0,
    "recognized_text_discarded": 0.0,
    "proctor_checks": 0.0,
    "proctor_mismatches": 0.0,
    "proctor_detector_failures": 0.0,
    "reports_generated": 0.0,
    "reports_fallback_scored": 0.0,
    "llm_followups": 0.0,
    "upload_latency_total_ms": 0.0,
    "upload_latency_samples": 0.0,
}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def decrement_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        next_value = float(_metrics.get(key, 0.0)) - float(amount)
        _metrics[key] = max(0.0, next_value)


def set_metric(name: str, value: float) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = max(0.0, float(value))


def get_metric(name: str) -> float:
    with _lock:
        return float(_metrics.get(str(name or "").strip(), 0.0))


def observe_upload_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["upload_latency_total_ms"] = float(_metrics.get("upload_latency_total_ms", 0.0)) + latency
        _metrics["upload_latency_samples"] = float(_metrics.get("upload_latency_samples", 0.0)) + 1.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    upload_samples = max(1.0, float(data.get("upload_latency_samples") or 0.0))

    payload: dict[str, Any] = {
        "generated_at": time.time(),
        "avg_upload_latency_ms": round(float(data.get("upload_latency_total_ms") or 0.0) / upload_samples, 2),
    }
    for key, value in data.items():
        if key.startswith("upload_latency_"):
            payload[key] = float(value or 0.0)
        else:
            payload[key] = int(value or 0.0)

    if extra:
        payload.update(extra)
    return payload
