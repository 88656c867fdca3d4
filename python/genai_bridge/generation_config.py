"""
Config translator - caller values into the engine's GenerationConfig

Responsibilities:
- One setter per field, each a total overwrite of that field
- Narrow caller values to the engine's storage types (unsigned, float32, bool, set of str)
- Map request-style parameter dicts onto a config

No range validation happens here: top_p > 1 or a negative temperature is
forwarded unchanged and rejected (or accepted) by the engine at generate time.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from .config_loader import get_config
from .handles import ConfigHandle
from .validators import TextLike, to_bool, to_float32, to_string_set, to_unsigned

# Field name -> narrowing function, in declaration order
CONFIG_FIELDS: Dict[str, Callable[[Any, str], Any]] = {
    "max_new_tokens": to_unsigned,
    "temperature": to_float32,
    "top_p": to_float32,
    "top_k": to_unsigned,
    "do_sample": to_bool,
    "stop_strings": to_string_set,
    "frequency_penalty": to_float32,
    "presence_penalty": to_float32,
    "repetition_penalty": to_float32,
    "rng_seed": to_unsigned,
    "logprobs": to_unsigned,
}


def _write(config: ConfigHandle, field_name: str, value: Any) -> None:
    native = config._native_or_raise()
    setattr(native, field_name, CONFIG_FIELDS[field_name](value, field_name))


def config_set_max_new_tokens(config: ConfigHandle, value: int) -> None:
    _write(config, "max_new_tokens", value)


def config_set_temperature(config: ConfigHandle, value: float) -> None:
    _write(config, "temperature", value)


def config_set_top_p(config: ConfigHandle, value: float) -> None:
    _write(config, "top_p", value)


def config_set_top_k(config: ConfigHandle, value: int) -> None:
    _write(config, "top_k", value)


def config_set_do_sample(config: ConfigHandle, value: bool) -> None:
    _write(config, "do_sample", value)


def config_set_stop_strings(
    config: ConfigHandle, value: Union[TextLike, Iterable[TextLike]]
) -> None:
    """Replace the whole stop set; duplicates collapse"""
    _write(config, "stop_strings", value)


def config_set_frequency_penalty(config: ConfigHandle, value: float) -> None:
    _write(config, "frequency_penalty", value)


def config_set_presence_penalty(config: ConfigHandle, value: float) -> None:
    _write(config, "presence_penalty", value)


def config_set_repetition_penalty(config: ConfigHandle, value: float) -> None:
    _write(config, "repetition_penalty", value)


def config_set_rng_seed(config: ConfigHandle, value: Optional[int]) -> None:
    """Set the sampling seed; None leaves the engine's current seed in place"""
    if value is None:
        config._native_or_raise()
        return
    _write(config, "rng_seed", value)


def config_set_logprobs(config: ConfigHandle, value: int) -> None:
    """Number of log-probabilities to return per token (0 disables)"""
    _write(config, "logprobs", value)


def config_get(config: ConfigHandle, field_name: str) -> Any:
    """
    Read one field back from the native config

    Raises:
        KeyError: If field_name is not a bridge-managed field
    """
    if field_name not in CONFIG_FIELDS:
        raise KeyError(f"Unknown generation config field: {field_name}")
    value = getattr(config._native_or_raise(), field_name)
    if field_name == "stop_strings":
        return set(value)
    return value


def config_snapshot(config: ConfigHandle) -> Dict[str, Any]:
    """All bridge-managed fields as a plain dict"""
    return {name: config_get(config, name) for name in CONFIG_FIELDS}


def apply_generation_params(config: ConfigHandle, params: Mapping[str, Any]) -> ConfigHandle:
    """
    Apply request-style generation parameters to a config

    Only keys present (and not None) are written, except max_tokens which
    falls back to generation.default_max_new_tokens from runtime.yaml.

    Args:
        config: Target config
        params: Mapping with any of max_tokens, temperature, top_p, top_k,
            frequency_penalty, presence_penalty, repetition_penalty, seed,
            stop, logprobs, top_logprobs

    Returns:
        The same config, for chaining
    """
    max_tokens = params.get("max_tokens")
    if max_tokens is None:
        max_tokens = get_config().default_max_new_tokens
    config_set_max_new_tokens(config, max_tokens)

    setters = (
        ("temperature", config_set_temperature),
        ("top_p", config_set_top_p),
        ("top_k", config_set_top_k),
        ("frequency_penalty", config_set_frequency_penalty),
        ("presence_penalty", config_set_presence_penalty),
        ("repetition_penalty", config_set_repetition_penalty),
        ("seed", config_set_rng_seed),
        ("stop", config_set_stop_strings),
    )
    for key, setter in setters:
        value = params.get(key)
        if value is not None:
            setter(config, value)

    if params.get("logprobs"):
        top_logprobs = params.get("top_logprobs")
        config_set_logprobs(config, 1 if top_logprobs is None else top_logprobs)

    return config
