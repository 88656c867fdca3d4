"""
Handle wrappers - single-owner containers for native engine objects

Responsibilities:
- Construct the engine pipeline and generation config
- Own each native object exclusively and release it exactly once
- Refuse use after release (HandleClosedError)

Handles are opaque: callers may only pass them back into bridge functions.
There is no internal locking; one handle must not be used from several
threads at once without external synchronization.
"""

import weakref
from time import perf_counter
from typing import Any, Dict, Optional, Tuple

from .config_loader import get_config
from .engine import resolve_engine
from .errors import BridgeError, HandleClosedError, PipelineLoadError
from .log_utils import BenchmarkAwareLogger
from .validators import validate_device, validate_model_path

_logger = BenchmarkAwareLogger("handles")


def _release_native(kind: str, native: Any) -> None:
    """Drop the last bridge-held reference to a native object"""
    _logger.debug("native object released", kind=kind, native_type=type(native).__name__)


class NativeHandle:
    """
    Base class for opaque owning handles

    The native object is held privately and released exactly once, either by
    close() or, failing that, when the handle is garbage collected.
    Handles cannot be copied or pickled; detach() moves ownership instead.
    """

    __slots__ = ("_native", "_engine", "_finalizer", "__weakref__")

    # Extra slots copied verbatim when ownership moves to a new handle
    _metadata_slots: Tuple[str, ...] = ()

    def __init__(self, native: Any, engine: Any):
        self._native = native
        self._engine = engine
        self._finalizer = weakref.finalize(self, _release_native, type(self).__name__, native)

    # -- lifecycle -------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._native is None

    def close(self) -> None:
        """Release the native object (idempotent)"""
        if self._native is None:
            return
        self._native = None
        self._finalizer()

    def detach(self) -> "NativeHandle":
        """
        Move ownership into a new handle of the same type

        The original handle is closed without releasing the native object.

        Returns:
            New handle owning the native object
        """
        native = self._native_or_raise()
        self._finalizer.detach()
        self._native = None

        moved = type(self).__new__(type(self))
        for name in self._metadata_slots:
            setattr(moved, name, getattr(self, name))
        NativeHandle.__init__(moved, native, self._engine)
        return moved

    def __enter__(self):
        self._native_or_raise()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- internal access -------------------------------------------------

    def _native_or_raise(self) -> Any:
        native = self._native
        if native is None:
            raise HandleClosedError(type(self).__name__)
        return native

    # -- single ownership ------------------------------------------------

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied; use detach() to move ownership")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied; use detach() to move ownership")

    def __reduce_ex__(self, protocol):
        raise TypeError(f"{type(self).__name__} cannot be pickled")

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {state}>"


class PipelineHandle(NativeHandle):
    """Owns one engine pipeline bound to a model artifact and a device"""

    __slots__ = ("_model_path", "_device")
    _metadata_slots = ("_model_path", "_device")

    def __init__(self, native: Any, engine: Any, model_path: str, device: str):
        self._model_path = model_path
        self._device = device
        super().__init__(native, engine)

    @property
    def model_path(self) -> str:
        return self._model_path

    @property
    def device(self) -> str:
        return self._device

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<PipelineHandle model_path={self._model_path!r} device={self._device!r} {state}>"


class ConfigHandle(NativeHandle):
    """Owns one engine generation config, independent of any pipeline"""

    __slots__ = ()


class TokenizerHandle(NativeHandle):
    """Owns a tokenizer obtained from a pipeline; outlives that pipeline"""

    __slots__ = ("_model_path",)
    _metadata_slots = ("_model_path",)

    def __init__(self, native: Any, engine: Any, model_path: str):
        self._model_path = model_path
        super().__init__(native, engine)

    @property
    def model_path(self) -> str:
        return self._model_path


def create_pipeline(
    model_path: Any,
    device: Optional[str] = None,
    *,
    engine: Any = None,
    properties: Optional[Dict[str, Any]] = None,
) -> PipelineHandle:
    """
    Load a model into a new pipeline

    Args:
        model_path: Directory (or file) of the converted model
        device: Device selector such as "CPU", "GPU" or "NPU"
            (defaults to engine.default_device from runtime.yaml)
        engine: Engine module to use (defaults to openvino_genai)
        properties: Extra engine properties forwarded to the pipeline constructor

    Returns:
        PipelineHandle owning the loaded pipeline

    Raises:
        EngineUnavailableError: If no engine is available
        PipelineLoadError: If the artifact or device is rejected
    """
    engine = resolve_engine(engine)

    if device is None:
        device = get_config().default_device

    raw_path = str(model_path)
    try:
        resolved_path = validate_model_path(model_path)
        device = validate_device(device)
    except (FileNotFoundError, ValueError) as exc:
        raise PipelineLoadError(raw_path, str(device), str(exc)) from exc

    started_at = perf_counter()
    try:
        native = engine.LLMPipeline(resolved_path, device, **(properties or {}))
    except BridgeError:
        raise
    except Exception as exc:
        raise PipelineLoadError(resolved_path, device, f"{type(exc).__name__}: {exc}") from exc

    elapsed_ms = (perf_counter() - started_at) * 1000
    _logger.info("pipeline loaded", model_path=resolved_path, device=device, elapsed_ms=f"{elapsed_ms:.1f}")

    return PipelineHandle(native, engine, resolved_path, device)


def create_generation_config(*, engine: Any = None) -> ConfigHandle:
    """
    Create a generation config holding the engine's defaults

    Args:
        engine: Engine module to use (defaults to openvino_genai)

    Returns:
        ConfigHandle owning the native config
    """
    engine = resolve_engine(engine)
    return ConfigHandle(engine.GenerationConfig(), engine)


def destroy(handle: NativeHandle) -> None:
    """Release a handle's native resource (same as handle.close())"""
    handle.close()
