"""
Streaming bridge - caller token sinks inside the engine's generate loop

The engine calls the streamer synchronously, once per produced chunk, on the
thread that called generate. The sink's boolean reply is the only
cancellation channel: False asks the engine to stop.

StreamerAdapter only frames chunks as UTF-8 bytes and translates the reply.
It neither buffers nor catches exceptions raised by the sink.
"""

import codecs
from time import monotonic
from typing import Any, Callable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class TokenSink(Protocol):
    """Caller-owned receiver of streamed chunks"""

    def on_token(self, chunk: bytes) -> bool:
        """Receive one chunk; return False to stop generation"""
        ...


class StreamerAdapter:
    """
    Callable handed to the engine as its streamer

    Holds a reference to the sink for the duration of one generate call.
    """

    __slots__ = ("_sink", "_running", "_stop", "calls", "stopped", "sink_error")

    def __init__(self, sink: TokenSink, engine: Any = None):
        self._sink = sink
        status = getattr(engine, "StreamingStatus", None) if engine is not None else None
        if status is not None:
            self._running = status.RUNNING
            self._stop = status.STOP
        else:
            # Older bindings take a plain bool where True means "stop"
            self._running = False
            self._stop = True
        self.calls = 0
        self.stopped = False
        self.sink_error: Optional[BaseException] = None

    def __call__(self, chunk: Any) -> Any:
        if isinstance(chunk, str):
            payload = chunk.encode("utf-8", errors="surrogatepass")
        else:
            payload = bytes(chunk)

        self.calls += 1
        try:
            keep_going = self._sink.on_token(payload)
        except BaseException as exc:
            # Remembered so the facade can tell sink failures from engine failures
            self.sink_error = exc
            raise
        if keep_going:
            return self._running

        self.stopped = True
        return self._stop


class Utf8CallbackSink:
    """
    Sink that turns byte chunks into complete text for a str callback

    Multi-byte characters split across chunks are held back until complete;
    while waiting the sink answers "continue" without calling the callback.
    Invalid byte sequences are replaced with U+FFFD.
    """

    def __init__(self, callback: Callable[[str], bool]):
        self._callback = callback
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.stopped = False

    def on_token(self, chunk: bytes) -> bool:
        text = self._decoder.decode(chunk)
        if not text:
            return True
        return self._emit(text)

    def flush(self) -> bool:
        """Emit whatever is still buffered at end of stream (no-op after a stop)"""
        if self.stopped:
            return False
        text = self._decoder.decode(b"", final=True)
        if not text:
            return True
        return self._emit(text)

    def _emit(self, text: str) -> bool:
        keep_going = bool(self._callback(text))
        if not keep_going:
            self.stopped = True
        return keep_going


class CollectingSink:
    """
    Sink that keeps every chunk it receives

    Args:
        stop_after: Ask the engine to stop after this many chunks (None = never)
    """

    def __init__(self, stop_after: Optional[int] = None):
        self.chunks: List[bytes] = []
        self.stop_after = stop_after

    def on_token(self, chunk: bytes) -> bool:
        self.chunks.append(chunk)
        if self.stop_after is not None and len(self.chunks) >= self.stop_after:
            return False
        return True

    @property
    def text(self) -> str:
        return b"".join(self.chunks).decode("utf-8", errors="replace")


class DeadlineSink:
    """
    Sink wrapper that stops generation once a wall-clock budget is spent

    The check happens at each chunk, so the engine stops at the first chunk
    after the deadline rather than at the deadline itself.
    """

    def __init__(self, inner: TokenSink, timeout_s: float, clock: Callable[[], float] = monotonic):
        self._inner = inner
        self._clock = clock
        self.deadline = clock() + timeout_s
        self.expired = False

    def on_token(self, chunk: bytes) -> bool:
        if self._clock() >= self.deadline:
            self.expired = True
            return False
        return self._inner.on_token(chunk)
