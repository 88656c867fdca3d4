#!/usr/bin/env python3
"""
Basic Generation Example - one prompt, with metrics

Loads an OpenVINO model, generates a short completion and prints the
engine's performance figures.

Requirements:
- openvino-genai installed
- A model converted with optimum-cli (e.g. TinyLlama-1.1B-Chat int4)

Usage:
    python examples/basic_generation.py models/TinyLlama-1.1B-Chat-v1.0-int4 [DEVICE]
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../python'))

from genai_bridge import (
    BridgeError,
    configure_logging,
    config_set_max_new_tokens,
    config_set_stop_strings,
    create_generation_config,
    create_pipeline,
    generate_with_metrics,
)


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    model_path = sys.argv[1]
    device = sys.argv[2] if len(sys.argv) > 2 else "CPU"
    configure_logging()

    try:
        with create_pipeline(model_path, device) as pipeline, \
                create_generation_config() as config:
            config_set_max_new_tokens(config, 64)
            config_set_stop_strings(config, ["</s>"])

            text, metrics = generate_with_metrics(
                pipeline, "What is OpenVINO? Answer in one sentence.", config
            )
    except BridgeError as exc:
        print(f"Error: {exc}")
        return 1

    print(text)
    print()
    print(f"Load time:       {metrics.load_time:.1f} ms")
    print(f"Input tokens:    {metrics.num_input_tokens}")
    print(f"Output tokens:   {metrics.num_generated_tokens}")
    print(f"TTFT:            {metrics.ttft_mean:.1f} ms")
    print(f"Throughput:      {metrics.throughput_mean:.1f} tokens/s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
