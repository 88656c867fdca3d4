"""
Metrics extractor - flatten the engine's PerfMetrics into a fixed record

The record has no nested objects and a fixed field order, so it can be
copied across the boundary by value in any of three encodings:
a packed binary struct, a msgpack array, or a JSON object.

All statistics (mean/std) come from the engine; nothing is aggregated here.
"""

import struct
from dataclasses import astuple, dataclass, fields
from typing import Any, Dict, Tuple

import msgpack
import orjson

# load_time, num_input_tokens, num_generated_tokens, then six float32 stats
_RECORD_LAYOUT = struct.Struct("<fQQffffff")

RECORD_SIZE = _RECORD_LAYOUT.size


@dataclass(frozen=True)
class PerfMetricsRecord:
    """
    Performance figures for one generate call

    Times are in milliseconds, throughput in tokens per second, as reported by
    the engine. load_time is measured once when the pipeline is built and is
    repeated in every record from that pipeline.
    """

    load_time: float = 0.0
    num_input_tokens: int = 0
    num_generated_tokens: int = 0
    ttft_mean: float = 0.0
    ttft_std: float = 0.0
    throughput_mean: float = 0.0
    throughput_std: float = 0.0
    generate_duration_mean: float = 0.0
    generate_duration_std: float = 0.0

    @property
    def ttft(self) -> Tuple[float, float]:
        return (self.ttft_mean, self.ttft_std)

    @property
    def throughput(self) -> Tuple[float, float]:
        return (self.throughput_mean, self.throughput_std)

    @property
    def generate_duration(self) -> Tuple[float, float]:
        return (self.generate_duration_mean, self.generate_duration_std)

    def to_tuple(self) -> Tuple[Any, ...]:
        return astuple(self)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_bytes(self) -> bytes:
        """Pack into the fixed little-endian layout (float32 stats, uint64 counts)"""
        return _RECORD_LAYOUT.pack(*self.to_tuple())

    @classmethod
    def from_bytes(cls, data: bytes) -> "PerfMetricsRecord":
        """
        Unpack a record produced by to_bytes()

        Raises:
            ValueError: If data is not exactly RECORD_SIZE bytes
        """
        if len(data) != RECORD_SIZE:
            raise ValueError(f"metrics record must be {RECORD_SIZE} bytes, got {len(data)}")
        return cls(*_RECORD_LAYOUT.unpack(data))

    def to_msgpack(self) -> bytes:
        """Encode as a msgpack array in field order"""
        return msgpack.packb(list(self.to_tuple()), use_bin_type=True)

    @classmethod
    def from_msgpack(cls, data: bytes) -> "PerfMetricsRecord":
        values = msgpack.unpackb(data, raw=False)
        if not isinstance(values, list) or len(values) != len(fields(cls)):
            raise ValueError("msgpack payload is not a metrics record")
        return cls(*values)

    def to_json(self) -> bytes:
        """Encode as a JSON object (orjson keeps dataclass field order)"""
        return orjson.dumps(self)


@dataclass(frozen=True)
class GenerationResult:
    """Primary generated text plus the metrics of the call that produced it"""

    text: str
    metrics: PerfMetricsRecord


def _mean_std(pair: Any) -> Tuple[float, float]:
    return float(pair.mean), float(pair.std)


def extract_metrics(perf_metrics: Any) -> PerfMetricsRecord:
    """
    Copy the engine's PerfMetrics into a PerfMetricsRecord

    Must be called once, after generation has completed.

    Args:
        perf_metrics: Engine PerfMetrics object, or None when the engine gave none

    Returns:
        PerfMetricsRecord (all zeros for None)
    """
    if perf_metrics is None:
        return PerfMetricsRecord()

    ttft_mean, ttft_std = _mean_std(perf_metrics.get_ttft())
    throughput_mean, throughput_std = _mean_std(perf_metrics.get_throughput())
    duration_mean, duration_std = _mean_std(perf_metrics.get_generate_duration())

    return PerfMetricsRecord(
        load_time=float(perf_metrics.get_load_time()),
        num_input_tokens=int(perf_metrics.get_num_input_tokens()),
        num_generated_tokens=int(perf_metrics.get_num_generated_tokens()),
        ttft_mean=ttft_mean,
        ttft_std=ttft_std,
        throughput_mean=throughput_mean,
        throughput_std=throughput_std,
        generate_duration_mean=duration_mean,
        generate_duration_std=duration_std,
    )


@dataclass(frozen=True)
class InferenceMetrics:
    """Session-level summary of one call's metrics"""

    tokens_per_second: float
    time_to_first_token_ms: float
    num_input_tokens: int
    num_output_tokens: int
    total_time_ms: float

    @classmethod
    def from_record(cls, record: PerfMetricsRecord) -> "InferenceMetrics":
        return cls(
            tokens_per_second=record.throughput_mean,
            time_to_first_token_ms=record.ttft_mean,
            num_input_tokens=record.num_input_tokens,
            num_output_tokens=record.num_generated_tokens,
            total_time_ms=record.generate_duration_mean,
        )
