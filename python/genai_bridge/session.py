"""
Inference session - one loaded model plus its chat mode

A convenience layer over the bridge functions for callers that keep a model
resident: it resolves model paths, picks a device, optionally checks memory
before loading, and remembers whether a chat is open so close() can end it.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from . import chat, generation, tokenizer
from .config_loader import get_config
from .devices import detect_devices, select_best_device
from .errors import PipelineLoadError
from .generation_config import config_set_max_new_tokens
from .handles import ConfigHandle, PipelineHandle, create_generation_config, create_pipeline
from .log_utils import BenchmarkAwareLogger
from .metrics import GenerationResult, InferenceMetrics
from .resources import (
    INSUFFICIENT,
    WARNING,
    detect_system_resources,
    estimate_model_memory,
    validate_model_load,
)
from .streaming import Utf8CallbackSink

_logger = BenchmarkAwareLogger("session")


def resolve_model_path(model_path: Any) -> Path:
    """
    Map a user-supplied model location to what the engine loads

    A directory or a .gguf file is used as-is; any other file (for example
    openvino_model.xml) resolves to the directory containing it.
    """
    path = Path(model_path).expanduser()
    if path.suffix.lower() == ".gguf" or path.is_dir():
        return path
    return path.parent


class InferenceSession:
    """Owns one pipeline and tracks whether it is in chat mode"""

    def __init__(self, pipeline: PipelineHandle):
        self._pipeline = pipeline
        self.in_chat_mode = False

    @classmethod
    def load(
        cls,
        model_path: Any,
        device: Optional[str] = None,
        *,
        engine: Any = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> "InferenceSession":
        """
        Resolve, check and load a model

        Args:
            model_path: Model directory, .gguf file, or a file inside the model directory
            device: Device selector (None = best detected device per engine.device_preference)
            engine: Engine module to use (defaults to openvino_genai)
            properties: Extra engine properties for the pipeline

        Raises:
            PipelineLoadError: If the preflight finds too little memory or the engine refuses the model
        """
        config = get_config()
        path = resolve_model_path(model_path)

        if device is None:
            device = select_best_device(detect_devices()) or config.default_device

        if config.resource_preflight:
            check = validate_model_load(
                estimate_model_memory(path), device, detect_system_resources()
            )
            if check.status == INSUFFICIENT:
                raise PipelineLoadError(str(path), device, check.message)
            if check.status == WARNING:
                _logger.warning(check.message, model_path=str(path), device=device)

        return cls(create_pipeline(path, device, engine=engine, properties=properties))

    @property
    def pipeline(self) -> PipelineHandle:
        return self._pipeline

    # -- chat ------------------------------------------------------------

    def start_chat(self) -> None:
        chat.start_chat(self._pipeline)
        self.in_chat_mode = True

    def finish_chat(self) -> None:
        chat.finish_chat(self._pipeline)
        self.in_chat_mode = False

    # -- generation ------------------------------------------------------

    def new_config(self) -> ConfigHandle:
        """Generation config from the same engine as this session's pipeline"""
        return create_generation_config(engine=self._pipeline._engine)

    def generate(self, prompt: Any, max_tokens: int) -> str:
        """Generate with engine defaults and a max_new_tokens limit"""
        with self.new_config() as config:
            config_set_max_new_tokens(config, max_tokens)
            return generation.generate(self._pipeline, prompt, config)

    def generate_with_config(self, prompt: Any, config: ConfigHandle) -> str:
        return generation.generate(self._pipeline, prompt, config)

    def generate_with_metrics(
        self, prompt: Any, config: ConfigHandle
    ) -> Tuple[str, InferenceMetrics]:
        text, record = generation.generate_with_metrics(self._pipeline, prompt, config)
        return text, InferenceMetrics.from_record(record)

    def generate_stream(
        self, prompt: Any, config: ConfigHandle, callback: Callable[[str], bool]
    ) -> GenerationResult:
        """
        Stream complete UTF-8 text pieces to callback

        Returns:
            GenerationResult with the final text and raw metrics record
        """
        sink = Utf8CallbackSink(callback)
        text, record = generation.generate_stream(self._pipeline, prompt, config, sink)
        sink.flush()
        return GenerationResult(text=text, metrics=record)

    # -- tokenizer -------------------------------------------------------

    def count_tokens(self, text: Any) -> int:
        with tokenizer.get_tokenizer(self._pipeline) as tok:
            return tokenizer.count_tokens(tok, text)

    # -- lifecycle -------------------------------------------------------

    def close(self) -> None:
        """End an open chat, then release the pipeline"""
        if self._pipeline.closed:
            return
        try:
            if self.in_chat_mode:
                self.finish_chat()
        finally:
            self._pipeline.close()

    def __enter__(self) -> "InferenceSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
