"""
Bridge telemetry

Lightweight accounting of generate and count_tokens calls crossing the bridge.
This is separate from the engine's per-call PerfMetrics: it aggregates over
many calls, as seen from the calling side.
"""

import random
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from .config_loader import get_config


WINDOW_SIZE = 1000


def _window() -> Deque[float]:
    return deque(maxlen=WINDOW_SIZE)


@dataclass
class TelemetryStats:
    """Statistics for telemetry tracking"""
    generate_calls: int = 0
    stream_calls: int = 0
    tokenize_calls: int = 0
    total_tokens: int = 0
    total_generate_time_ms: float = 0.0
    total_tokenize_time_ms: float = 0.0
    generate_latencies_ms: Deque[float] = field(default_factory=_window)
    tokenize_latencies_ms: Deque[float] = field(default_factory=_window)
    errors: int = 0
    cancelled_streams: int = 0


class BridgeTelemetry:
    """
    Rolling-window telemetry for bridge calls

    Features:
    - Percentile latency tracking (p50, p95, p99) once 10 samples exist
    - Rolling window (WINDOW_SIZE samples per latency series)
    - Configurable sampling rate
    """

    def __init__(self, enabled: bool = True, sampling_rate: float = 1.0):
        """
        Initialize telemetry

        Args:
            enabled: Enable/disable telemetry
            sampling_rate: Probability of recording an event (0.01-1.0)
        """
        self.enabled = enabled
        self.sampling_rate = max(0.01, min(1.0, sampling_rate))
        self.stats = TelemetryStats()
        # Calls from different pipelines may record concurrently
        self._lock = threading.Lock()

    def _sampled_out(self) -> bool:
        return self.sampling_rate < 1.0 and random.random() > self.sampling_rate

    def record_generate(
        self,
        duration_ms: float,
        tokens: int,
        success: bool = True,
        streamed: bool = False,
        cancelled: bool = False,
    ) -> None:
        """
        Record a generate call

        Args:
            duration_ms: Wall time of the call in milliseconds
            tokens: Generated token count (0 when unknown)
            success: Whether the call returned normally
            streamed: Whether a token sink was attached
            cancelled: Whether the sink asked the engine to stop
        """
        if not self.enabled:
            return

        with self._lock:
            if not success:
                # Errors are always counted, regardless of sampling
                self.stats.errors += 1

            if self._sampled_out():
                return

            self.stats.generate_calls += 1
            if streamed:
                self.stats.stream_calls += 1
            if cancelled:
                self.stats.cancelled_streams += 1
            self.stats.total_tokens += tokens
            self.stats.total_generate_time_ms += duration_ms
            self.stats.generate_latencies_ms.append(duration_ms)

    def record_tokenize(self, duration_ms: float, success: bool = True) -> None:
        """Record a count_tokens call"""
        if not self.enabled:
            return

        with self._lock:
            if not success:
                self.stats.errors += 1

            if self._sampled_out():
                return

            self.stats.tokenize_calls += 1
            self.stats.total_tokenize_time_ms += duration_ms
            self.stats.tokenize_latencies_ms.append(duration_ms)

    def get_report(self) -> Dict[str, Any]:
        """
        Get telemetry report

        Returns:
            Dictionary with call counts, latency summaries and error counts
        """
        if not self.enabled:
            return {"enabled": False}

        with self._lock:
            total_calls = self.stats.generate_calls + self.stats.tokenize_calls
            return {
                "enabled": True,
                "sampling_rate": self.sampling_rate,
                "generation": self._get_generation_metrics(),
                "tokenization": self._get_tokenization_metrics(),
                "errors": {
                    "total": self.stats.errors,
                    "error_rate": self.stats.errors / max(1, total_calls),
                },
            }

    def _get_generation_metrics(self) -> Dict[str, Any]:
        if self.stats.generate_calls == 0:
            return {"calls": 0, "total_tokens": 0}

        metrics: Dict[str, Any] = {
            "calls": self.stats.generate_calls,
            "stream_calls": self.stats.stream_calls,
            "cancelled_streams": self.stats.cancelled_streams,
            "total_tokens": self.stats.total_tokens,
            "avg_tokens_per_call": self.stats.total_tokens / self.stats.generate_calls,
            "latency_ms": self._latency_summary(
                self.stats.generate_latencies_ms,
                self.stats.total_generate_time_ms / self.stats.generate_calls,
            ),
            "throughput": {
                "tokens_per_second": (
                    (self.stats.total_tokens / (self.stats.total_generate_time_ms / 1000.0))
                    if self.stats.total_generate_time_ms > 0 else 0
                )
            },
        }
        return metrics

    def _get_tokenization_metrics(self) -> Dict[str, Any]:
        if self.stats.tokenize_calls == 0:
            return {"calls": 0}

        return {
            "calls": self.stats.tokenize_calls,
            "latency_ms": self._latency_summary(
                self.stats.tokenize_latencies_ms,
                self.stats.total_tokenize_time_ms / self.stats.tokenize_calls,
            ),
        }

    def _latency_summary(self, samples: Deque[float], mean: float) -> Dict[str, float]:
        latencies = sorted(samples)
        summary = {
            "mean": mean,
            "min": latencies[0] if latencies else 0,
            "max": latencies[-1] if latencies else 0,
        }
        if len(latencies) >= 10:
            summary["p50"] = self._percentile(latencies, 0.50)
            summary["p95"] = self._percentile(latencies, 0.95)
            summary["p99"] = self._percentile(latencies, 0.99)
        return summary

    @staticmethod
    def _percentile(sorted_values: List[float], percentile: float) -> float:
        """Nearest-rank percentile from sorted values"""
        if not sorted_values:
            return 0.0
        n = len(sorted_values)
        index = min(int(percentile * n), n - 1)
        return sorted_values[index]

    def reset(self) -> None:
        """Reset all statistics"""
        with self._lock:
            self.stats = TelemetryStats()

    def get_stats_summary(self) -> str:
        """Get a human-readable summary of statistics"""
        report = self.get_report()

        if not report.get("enabled"):
            return "Telemetry disabled"

        lines = ["=== Bridge Telemetry ==="]

        gen = report["generation"]
        if gen.get("calls", 0) > 0:
            lat = gen["latency_ms"]
            lines.append("Generation:")
            lines.append(f"  Calls: {gen['calls']} (streamed: {gen['stream_calls']}, cancelled: {gen['cancelled_streams']})")
            lines.append(f"  Total tokens: {gen['total_tokens']}")
            lines.append(f"  Throughput: {gen['throughput']['tokens_per_second']:.1f} tokens/s")
            lines.append(f"  Latency: mean={lat['mean']:.2f}ms, min={lat['min']:.2f}ms, max={lat['max']:.2f}ms")
            if "p95" in lat:
                lines.append(f"  Percentiles: p50={lat['p50']:.2f}ms, p95={lat['p95']:.2f}ms, p99={lat['p99']:.2f}ms")

        tok = report["tokenization"]
        if tok.get("calls", 0) > 0:
            lat = tok["latency_ms"]
            lines.append("Tokenization:")
            lines.append(f"  Calls: {tok['calls']}")
            lines.append(f"  Latency: mean={lat['mean']:.2f}ms, min={lat['min']:.2f}ms, max={lat['max']:.2f}ms")

        errors = report["errors"]
        if errors["total"] > 0:
            lines.append("Errors:")
            lines.append(f"  Total: {errors['total']}")
            lines.append(f"  Error rate: {errors['error_rate'] * 100:.2f}%")

        return "\n".join(lines)


_telemetry: Optional[BridgeTelemetry] = None
_telemetry_lock = threading.Lock()


def get_telemetry() -> BridgeTelemetry:
    """Process-wide telemetry instance, configured from runtime.yaml on first use"""
    global _telemetry
    if _telemetry is not None:
        return _telemetry

    with _telemetry_lock:
        if _telemetry is None:
            config = get_config()
            _telemetry = BridgeTelemetry(
                enabled=config.telemetry_enabled,
                sampling_rate=config.telemetry_sampling_rate,
            )
        return _telemetry


def reset_telemetry() -> None:
    """Forget the process-wide instance (next get_telemetry() rebuilds it)"""
    global _telemetry
    with _telemetry_lock:
        _telemetry = None
