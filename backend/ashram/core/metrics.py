from collections import Counter
from threading import Lock
from typing import Counter as CounterType, Dict

_metrics: CounterType[str] = Counter()
_lock = Lock()


def _inc(key: str) -> None:
    with _lock:
        _metrics[key] += 1


def record_receipt_rendered(backend: str) -> None:
    with _lock:
        _metrics["receipts_rendered"] += 1
        _metrics[f"receipts_rendered:{backend}"] += 1


def record_backend_failure(backend: str) -> None:
    _inc(f"receipt_backend_failures:{backend}")


def record_generation_failure() -> None:
    _inc("receipt_generation_failures")


def record_receipt_email_sent() -> None:
    _inc("receipt_emails_sent")


def snapshot() -> Dict[str, int]:
    with _lock:
        return dict(_metrics)


def reset() -> None:
    with _lock:
        _metrics.clear()
