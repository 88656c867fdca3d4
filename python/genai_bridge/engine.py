"""
Engine probe - locate the OpenVINO GenAI bindings

Responsibilities:
- Import openvino_genai once and remember why it failed if it did
- Hand the engine module (or a caller-supplied equivalent) to the handle factories

The bridge touches the engine only through:
    LLMPipeline(model_path, device)
    LLMPipeline.generate(prompt, config[, streamer])
    LLMPipeline.get_tokenizer() / start_chat() / finish_chat()
    GenerationConfig()
    StreamingStatus.RUNNING / StreamingStatus.STOP
    Tokenizer.encode(text, add_special_tokens=...)
Anything exposing those names can be passed as ``engine=`` to the factories.
"""

from typing import Any, Optional

from .errors import EngineUnavailableError
from .log_utils import BenchmarkAwareLogger

_logger = BenchmarkAwareLogger("engine")

ENGINE_AVAILABLE = False
ENGINE_IMPORT_ERROR: Optional[str] = None
_default_engine: Any = None

try:
    import openvino_genai as _default_engine

    ENGINE_AVAILABLE = True
except Exception as exc:  # noqa: BLE001
    # Keep the bridge importable; construction reports the reason later.
    ENGINE_IMPORT_ERROR = f"openvino_genai import failed: {exc}"
    _logger.debug("engine probe failed", reason=ENGINE_IMPORT_ERROR)


def resolve_engine(engine: Any = None) -> Any:
    """
    Pick the engine module used to build a handle

    Args:
        engine: Explicit engine (module or object with the same names)

    Returns:
        The engine to use

    Raises:
        EngineUnavailableError: If no engine was given and openvino_genai is missing
    """
    if engine is not None:
        return engine
    if not ENGINE_AVAILABLE or _default_engine is None:
        raise EngineUnavailableError(
            ENGINE_IMPORT_ERROR or "openvino_genai not available - install openvino-genai"
        )
    return _default_engine


def engine_version(engine: Any = None) -> str:
    """Best-effort version string of the engine in use"""
    try:
        module = resolve_engine(engine)
    except EngineUnavailableError:
        return ENGINE_IMPORT_ERROR or "unavailable"

    version = getattr(module, "__version__", None)
    if version is None and callable(getattr(module, "get_version", None)):
        version = module.get_version()
    return str(version) if version is not None else "unknown"
