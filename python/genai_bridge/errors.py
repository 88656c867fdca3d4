"""
Custom exception types for the GenAI bridge

Provides typed exceptions for consistent error mapping across the boundary.
All bridge-level failures inherit from BridgeError.
"""

from typing import Any, Dict, Optional


class BridgeError(Exception):
    """Base exception for all bridge errors"""

    def __init__(self, message: str, model_path: Optional[str] = None):
        self.message = message
        self.model_path = model_path
        super().__init__(message)


class EngineUnavailableError(BridgeError):
    """Raised when the inference engine package cannot be imported"""

    def __init__(self, reason: str):
        super().__init__(f"Inference engine unavailable: {reason}")
        self.reason = reason


class PipelineLoadError(BridgeError):
    """Raised when pipeline construction fails (bad artifact or device)"""

    def __init__(self, model_path: str, device: str, reason: str):
        super().__init__(
            f"Failed to load pipeline {model_path} on {device}: {reason}", model_path
        )
        self.device = device
        self.reason = reason


class GenerationError(BridgeError):
    """Raised when the engine rejects or fails a generate call"""

    def __init__(self, model_path: str, reason: str):
        super().__init__(f"Generation failed for {model_path}: {reason}", model_path)
        self.reason = reason


class TokenizerError(BridgeError):
    """Raised when token encoding fails"""

    def __init__(self, model_path: str, reason: str):
        super().__init__(f"Tokenizer error for {model_path}: {reason}", model_path)
        self.reason = reason


class HandleClosedError(BridgeError):
    """Raised when a handle is used after it was closed"""

    def __init__(self, handle_type: str):
        super().__init__(f"{handle_type} has been closed")
        self.handle_type = handle_type


# Stable numeric codes for the calling runtime.
# Subclasses must come before BridgeError so lookups by exact type stay unambiguous.
ERROR_CODE_MAP = {
    PipelineLoadError: -32001,
    GenerationError: -32002,
    TokenizerError: -32003,
    HandleClosedError: -32004,
    EngineUnavailableError: -32005,
    BridgeError: -32099,  # Generic bridge error
}

INVALID_PARAMS_CODE = -32602


def serialize_error(exc: BaseException) -> Dict[str, Any]:
    """
    Translate an exception into a boundary-safe error object

    Args:
        exc: Exception raised by a bridge operation

    Returns:
        Dict with code, message and data keys
    """
    if isinstance(exc, BridgeError):
        code = ERROR_CODE_MAP.get(type(exc), ERROR_CODE_MAP[BridgeError])
        data = {"model_path": exc.model_path} if exc.model_path is not None else {}
        return {"code": code, "message": exc.message, "data": data}
    if isinstance(exc, (ValueError, TypeError)):
        # Narrowing failures carry safe, caller-facing messages
        return {
            "code": INVALID_PARAMS_CODE,
            "message": str(exc),
            "data": {"type": type(exc).__name__},
        }
    # Generic error to avoid leaking engine internals
    return {
        "code": ERROR_CODE_MAP[BridgeError],
        "message": "An unexpected internal error occurred",
        "data": {"type": "InternalError"},
    }
