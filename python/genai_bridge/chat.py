"""
Chat state - forward start/finish of the engine's chat mode

The session flag lives inside the engine pipeline; the bridge does not track
it and adds no guards. Calling start_chat twice, or finish_chat without a
prior start_chat, is forwarded as-is and the engine decides what happens.
"""

from contextlib import contextmanager
from typing import Iterator

from .handles import PipelineHandle
from .log_utils import BenchmarkAwareLogger

_logger = BenchmarkAwareLogger("chat")


def start_chat(pipeline: PipelineHandle) -> None:
    """Enter multi-turn mode: later generate calls accumulate context"""
    pipeline._native_or_raise().start_chat()
    _logger.debug("chat started", model_path=pipeline.model_path)


def finish_chat(pipeline: PipelineHandle) -> None:
    """Leave multi-turn mode and drop the accumulated context"""
    pipeline._native_or_raise().finish_chat()
    _logger.debug("chat finished", model_path=pipeline.model_path)


@contextmanager
def chat_session(pipeline: PipelineHandle) -> Iterator[PipelineHandle]:
    """
    Run a block inside a chat session

    finish_chat is forwarded on every exit path, including exceptions
    raised by generate calls inside the block.
    """
    start_chat(pipeline)
    try:
        yield pipeline
    finally:
        if not pipeline.closed:
            finish_chat(pipeline)


# Names used on the boundary
pipeline_start_chat = start_chat
pipeline_finish_chat = finish_chat
