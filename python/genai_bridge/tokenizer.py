"""
Tokenizer access - derive tokenizers from pipelines and count tokens

Responsibilities:
- Hand out a fresh TokenizerHandle per request (no caching)
- Count tokens for a text; token IDs themselves are not exposed
"""

from time import perf_counter
from typing import Any

from .config_loader import get_config
from .errors import BridgeError, TokenizerError
from .handles import PipelineHandle, TokenizerHandle
from .telemetry import get_telemetry
from .validators import validate_text_input


def get_tokenizer(pipeline: PipelineHandle) -> TokenizerHandle:
    """
    Obtain the pipeline's tokenizer as an independently owned handle

    The returned handle stays valid after the pipeline is closed.

    Raises:
        TokenizerError: If the engine cannot provide a tokenizer
    """
    native_pipeline = pipeline._native_or_raise()
    try:
        native = native_pipeline.get_tokenizer()
    except Exception as exc:
        raise TokenizerError(pipeline.model_path, f"get_tokenizer failed: {exc}") from exc
    if native is None:
        raise TokenizerError(pipeline.model_path, "Tokenizer unavailable")
    return TokenizerHandle(native, pipeline._engine, pipeline.model_path)


def _element_count(input_ids: Any) -> int:
    """Number of elements in an encoded tensor"""
    get_size = getattr(input_ids, "get_size", None)
    if callable(get_size):
        return int(get_size())
    size = getattr(input_ids, "size", None)
    if size is not None and not callable(size):
        return int(size)
    return len(input_ids)


def count_tokens(tokenizer: TokenizerHandle, text: Any) -> int:
    """
    Count the tokens the tokenizer produces for a text

    Special tokens are added only if tokenizer.add_special_tokens is set in
    runtime.yaml (off by default, so "" counts as 0).

    Args:
        tokenizer: Open tokenizer handle
        text: Text as str or UTF-8 bytes

    Returns:
        Number of token IDs

    Raises:
        TokenizerError: If encoding fails
    """
    native = tokenizer._native_or_raise()
    text = validate_text_input(text, "text")
    add_special_tokens = get_config().add_special_tokens

    started_at = perf_counter()
    success = False
    try:
        encoded = native.encode(text, add_special_tokens=add_special_tokens)
        input_ids = getattr(encoded, "input_ids", encoded)
        count = _element_count(input_ids)
        success = True
        return count
    except BridgeError:
        raise
    except Exception as exc:
        raise TokenizerError(tokenizer.model_path, f"count failed: {exc}") from exc
    finally:
        get_telemetry().record_tokenize((perf_counter() - started_at) * 1000, success=success)


# Names used on the boundary
pipeline_get_tokenizer = get_tokenizer
tokenizer_count_tokens = count_tokens
