"""
Generation facade - the three generate call shapes

Responsibilities:
- Funnel plain, with-metrics and streaming calls into one engine generate call
- Surface only the primary candidate; zero candidates means ""
- Wrap engine failures in GenerationError, never retry

Calls are synchronous: the calling thread is occupied for the whole
generation, including every streaming callback.
"""

from time import perf_counter
from typing import Any, Optional, Tuple

from .errors import BridgeError, GenerationError
from .handles import ConfigHandle, PipelineHandle
from .log_utils import BenchmarkAwareLogger
from .metrics import GenerationResult, PerfMetricsRecord, extract_metrics
from .streaming import StreamerAdapter, TokenSink
from .telemetry import get_telemetry
from .validators import validate_text_input

_logger = BenchmarkAwareLogger("generation")


def primary_text(results: Any) -> str:
    """
    First candidate text of an engine result

    Older bindings return a bare str for a single prompt; newer ones return
    decoded results with a texts list that may be empty.
    """
    if isinstance(results, str):
        return results
    texts = getattr(results, "texts", None)
    if not texts:
        return ""
    return str(texts[0])


def _invoke(
    pipeline: PipelineHandle,
    prompt: Any,
    config: ConfigHandle,
    streamer: Optional[StreamerAdapter] = None,
) -> Any:
    native_pipeline = pipeline._native_or_raise()
    native_config = config._native_or_raise()
    text = validate_text_input(prompt, "prompt")

    try:
        if streamer is None:
            return native_pipeline.generate(text, native_config)
        return native_pipeline.generate(text, native_config, streamer)
    except BridgeError:
        raise
    except Exception as exc:
        if streamer is not None and exc is streamer.sink_error:
            # Sink failures belong to the caller; pass them through untouched
            raise
        raise GenerationError(pipeline.model_path, f"{type(exc).__name__}: {exc}") from exc


def _record(kind: str, started_at: float, prompt: Any, tokens: int, success: bool,
            streamer: Optional[StreamerAdapter] = None) -> None:
    elapsed_ms = (perf_counter() - started_at) * 1000
    get_telemetry().record_generate(
        elapsed_ms,
        tokens,
        success=success,
        streamed=streamer is not None,
        cancelled=bool(streamer is not None and streamer.stopped),
    )
    _logger.debug(
        f"{kind} finished",
        prompt_chars=len(prompt) if hasattr(prompt, "__len__") else "?",
        tokens=tokens,
        success=success,
        elapsed_ms=f"{elapsed_ms:.1f}",
    )


def generate(pipeline: PipelineHandle, prompt: Any, config: ConfigHandle) -> str:
    """
    Generate text for a prompt

    Args:
        pipeline: Open pipeline handle
        prompt: Prompt as str or UTF-8 bytes
        config: Generation config (must not be mutated during the call)

    Returns:
        Primary generated text ("" when the engine produced no candidate)

    Raises:
        GenerationError: If the engine fails
        HandleClosedError: If a handle was already closed
    """
    started_at = perf_counter()
    success = False
    try:
        text = primary_text(_invoke(pipeline, prompt, config))
        success = True
        return text
    finally:
        _record("generate", started_at, prompt, 0, success)


def generate_with_metrics(
    pipeline: PipelineHandle, prompt: Any, config: ConfigHandle
) -> Tuple[str, PerfMetricsRecord]:
    """
    Generate text and return the engine's performance metrics

    Metrics are present even when the text is empty.

    Returns:
        (text, metrics)
    """
    started_at = perf_counter()
    tokens = 0
    success = False
    try:
        results = _invoke(pipeline, prompt, config)
        metrics = extract_metrics(getattr(results, "perf_metrics", None))
        tokens = metrics.num_generated_tokens
        success = True
        return primary_text(results), metrics
    finally:
        _record("generate_with_metrics", started_at, prompt, tokens, success)


def generate_stream(
    pipeline: PipelineHandle, prompt: Any, config: ConfigHandle, sink: TokenSink
) -> Tuple[str, PerfMetricsRecord]:
    """
    Generate text while feeding each chunk to a sink

    The sink is called synchronously, in generation order, on this thread.
    Returning False from sink.on_token stops generation; the returned text
    then holds at most the content up to that chunk.

    Returns:
        (text, metrics) once generation has ended
    """
    streamer = StreamerAdapter(sink, pipeline._engine)
    started_at = perf_counter()
    tokens = 0
    success = False
    try:
        results = _invoke(pipeline, prompt, config, streamer)
        metrics = extract_metrics(getattr(results, "perf_metrics", None))
        tokens = metrics.num_generated_tokens
        success = True
        return primary_text(results), metrics
    finally:
        _record("generate_stream", started_at, prompt, tokens, success, streamer)


def generate_result(
    pipeline: PipelineHandle,
    prompt: Any,
    config: ConfigHandle,
    sink: Optional[TokenSink] = None,
) -> GenerationResult:
    """generate_with_metrics / generate_stream packaged as a GenerationResult"""
    if sink is None:
        text, metrics = generate_with_metrics(pipeline, prompt, config)
    else:
        text, metrics = generate_stream(pipeline, prompt, config, sink)
    return GenerationResult(text=text, metrics=metrics)


# Names used on the boundary
pipeline_generate = generate
pipeline_generate_with_metrics = generate_with_metrics
pipeline_generate_stream = generate_stream
