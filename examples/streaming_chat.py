#!/usr/bin/env python3
"""
Streaming Chat Example - multi-turn chat with token streaming

Keeps a model resident in an InferenceSession, opens a chat and streams
each reply to the terminal as it is produced. An empty line ends the chat.

Usage:
    python examples/streaming_chat.py models/Qwen2-0.5B-Instruct-int4
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../python'))

from genai_bridge import InferenceSession, apply_generation_params


def print_chunk(text: str) -> bool:
    print(text, end="", flush=True)
    return True


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    with InferenceSession.load(sys.argv[1]) as session:
        print(f"Loaded on {session.pipeline.device}. Empty line to quit.")
        session.start_chat()

        while True:
            prompt = input("\n> ").strip()
            if not prompt:
                break

            with session.new_config() as config:
                apply_generation_params(config, {"max_tokens": 256, "temperature": 0.7})
                try:
                    result = session.generate_stream(prompt, config, print_chunk)
                except KeyboardInterrupt:
                    print("\n[interrupted]")
                    continue

            print(f"\n[{result.metrics.num_generated_tokens} tokens, "
                  f"{result.metrics.throughput_mean:.1f} tok/s]")

    return 0


if __name__ == "__main__":
    sys.exit(main())
