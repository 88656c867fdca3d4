"""
Input coercion for bridge entry points

Converts caller-side values into the representations the engine stores.
These checks are about representation only (can the value be expressed as an
unsigned count, a 32-bit float, a UTF-8 string). Range checks such as
top_p <= 1 are left to the engine, which validates at generate time.
"""

from __future__ import annotations

import operator
import struct
from pathlib import Path
from typing import Any, Iterable, Set, Union

TextLike = Union[str, bytes, bytearray, memoryview]

_FLOAT32 = struct.Struct("<f")
SIZE_MAX = 2**64 - 1


def validate_text_input(text: Any, param_name: str = "text") -> str:
    """
    Accept a prompt or text argument as str or UTF-8 bytes

    Args:
        text: Value to coerce
        param_name: Parameter name for error messages

    Returns:
        Text as str

    Raises:
        TypeError: If text is neither str nor bytes-like
        ValueError: If bytes are not valid UTF-8
    """
    if isinstance(text, str):
        return text

    if isinstance(text, (bytes, bytearray, memoryview)):
        try:
            return bytes(text).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"{param_name} is not valid UTF-8: {exc}") from exc

    raise TypeError(f"{param_name} must be str or bytes, got {type(text).__name__}")


def validate_model_path(model_path: Any) -> str:
    """
    Validate the model artifact location

    Args:
        model_path: Directory or file holding the converted model

    Returns:
        Path as str

    Raises:
        TypeError: If model_path is not str or PathLike
        FileNotFoundError: If nothing exists at the path
    """
    if isinstance(model_path, Path):
        path = model_path
    elif isinstance(model_path, (str, bytes)):
        path = Path(validate_text_input(model_path, "model_path"))
    else:
        raise TypeError(f"model_path must be a str or Path, got {type(model_path).__name__}")

    if not str(path):
        raise FileNotFoundError("model_path is empty")

    expanded = path.expanduser()
    if not expanded.exists():
        raise FileNotFoundError(f"Model path does not exist: {expanded}")

    return str(expanded)


def validate_device(device: Any) -> str:
    """
    Validate the device selector string

    Only shape is checked here ("CPU", "GPU.1", "HETERO:GPU,CPU" all pass);
    the engine decides whether the device is usable.

    Raises:
        TypeError: If device is not a string
        ValueError: If device is empty or contains whitespace
    """
    device = validate_text_input(device, "device")
    if not device:
        raise ValueError("device must be a non-empty string")
    if any(ch.isspace() for ch in device):
        raise ValueError(f"device must not contain whitespace, got {device!r}")
    return device


def to_unsigned(value: Any, param_name: str) -> int:
    """
    Narrow a value into an unsigned count

    Raises:
        TypeError: If value is not integral (bool is rejected too)
        ValueError: If value is negative or does not fit in 64 bits
    """
    if isinstance(value, bool):
        raise TypeError(f"{param_name} must be an integer, got bool")
    try:
        number = operator.index(value)
    except TypeError:
        raise TypeError(f"{param_name} must be an integer, got {type(value).__name__}") from None
    if number < 0:
        raise ValueError(f"{param_name} must be non-negative, got {number}")
    if number > SIZE_MAX:
        raise ValueError(f"{param_name} must fit in 64 bits, got {number}")
    return number


def to_float32(value: Any, param_name: str) -> float:
    """
    Narrow a real number to single precision

    Out-of-range magnitudes become +/-inf the way a C float cast would,
    NaN is kept as NaN.

    Raises:
        TypeError: If value is not a real number
    """
    if isinstance(value, (bool, str, bytes)):
        raise TypeError(f"{param_name} must be a number, got {type(value).__name__}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise TypeError(f"{param_name} must be a number, got {type(value).__name__}") from None
    try:
        return _FLOAT32.unpack(_FLOAT32.pack(number))[0]
    except OverflowError:
        return float("inf") if number > 0 else float("-inf")


def to_bool(value: Any, param_name: str) -> bool:
    """Accept only real booleans"""
    if not isinstance(value, bool):
        raise TypeError(f"{param_name} must be a bool, got {type(value).__name__}")
    return value


def to_string_set(values: Union[TextLike, Iterable[TextLike]], param_name: str) -> Set[str]:
    """
    Collapse strings into a set

    A bare string is one element, not an iterable of characters.
    """
    if isinstance(values, (str, bytes, bytearray, memoryview)):
        return {validate_text_input(values, param_name)}

    try:
        items = iter(values)
    except TypeError:
        raise TypeError(f"{param_name} must be an iterable of strings, got {type(values).__name__}") from None

    return {validate_text_input(item, f"{param_name} item") for item in items}
