"""
GenAI bridge - opaque-handle access to an OpenVINO GenAI pipeline

Typical use:

    from genai_bridge import (
        create_pipeline, create_generation_config, config_set_max_new_tokens,
        generate_with_metrics,
    )

    with create_pipeline("models/qwen2-0.5b-int4", "CPU") as pipeline, \\
            create_generation_config() as config:
        config_set_max_new_tokens(config, 64)
        text, metrics = generate_with_metrics(pipeline, "Hello", config)
"""

__version__ = "0.1.0"

from .chat import chat_session, finish_chat, pipeline_finish_chat, pipeline_start_chat, start_chat
from .errors import (
    ERROR_CODE_MAP,
    BridgeError,
    EngineUnavailableError,
    GenerationError,
    HandleClosedError,
    PipelineLoadError,
    TokenizerError,
    serialize_error,
)
from .generation import (
    generate,
    generate_result,
    generate_stream,
    generate_with_metrics,
    pipeline_generate,
    pipeline_generate_stream,
    pipeline_generate_with_metrics,
)
from .generation_config import (
    apply_generation_params,
    config_get,
    config_set_do_sample,
    config_set_frequency_penalty,
    config_set_logprobs,
    config_set_max_new_tokens,
    config_set_presence_penalty,
    config_set_repetition_penalty,
    config_set_rng_seed,
    config_set_stop_strings,
    config_set_temperature,
    config_set_top_k,
    config_set_top_p,
    config_snapshot,
)
from .handles import (
    ConfigHandle,
    NativeHandle,
    PipelineHandle,
    TokenizerHandle,
    create_generation_config,
    create_pipeline,
    destroy,
)
from .log_utils import configure_logging
from .metrics import GenerationResult, InferenceMetrics, PerfMetricsRecord, extract_metrics
from .session import InferenceSession
from .streaming import CollectingSink, DeadlineSink, StreamerAdapter, TokenSink, Utf8CallbackSink
from .tokenizer import count_tokens, get_tokenizer, pipeline_get_tokenizer, tokenizer_count_tokens

__all__ = [
    "__version__",
    "configure_logging",
    # Handles
    "NativeHandle",
    "PipelineHandle",
    "ConfigHandle",
    "TokenizerHandle",
    "create_pipeline",
    "create_generation_config",
    "destroy",
    # Config translator
    "config_set_max_new_tokens",
    "config_set_temperature",
    "config_set_top_p",
    "config_set_top_k",
    "config_set_do_sample",
    "config_set_stop_strings",
    "config_set_frequency_penalty",
    "config_set_presence_penalty",
    "config_set_repetition_penalty",
    "config_set_rng_seed",
    "config_set_logprobs",
    "config_get",
    "config_snapshot",
    "apply_generation_params",
    # Generation
    "generate",
    "generate_with_metrics",
    "generate_stream",
    "generate_result",
    "pipeline_generate",
    "pipeline_generate_with_metrics",
    "pipeline_generate_stream",
    # Streaming
    "TokenSink",
    "StreamerAdapter",
    "Utf8CallbackSink",
    "CollectingSink",
    "DeadlineSink",
    # Metrics
    "PerfMetricsRecord",
    "GenerationResult",
    "InferenceMetrics",
    "extract_metrics",
    # Chat
    "start_chat",
    "finish_chat",
    "chat_session",
    "pipeline_start_chat",
    "pipeline_finish_chat",
    # Tokenizer
    "get_tokenizer",
    "count_tokens",
    "pipeline_get_tokenizer",
    "tokenizer_count_tokens",
    # Session
    "InferenceSession",
    # Errors
    "BridgeError",
    "EngineUnavailableError",
    "PipelineLoadError",
    "GenerationError",
    "TokenizerError",
    "HandleClosedError",
    "ERROR_CODE_MAP",
    "serialize_error",
]
