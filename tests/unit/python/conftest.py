"""
Shared fixtures for bridge unit tests

StubEngine stands in for the openvino_genai module: it exposes the same names
the bridge touches (LLMPipeline, GenerationConfig, StreamingStatus) and is
passed to the factories through their engine= argument. Generation is
deterministic, so tests can compare outputs across calls.
"""

import enum
import weakref
from pathlib import Path
from typing import List, Optional

import pytest

SIZE_MAX = 2**64 - 1

VOCAB = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta"]


class StubStreamingStatus(enum.Enum):
    RUNNING = 0
    STOP = 1
    CANCEL = 2


class MeanStd:
    def __init__(self, mean: float, std: float):
        self.mean = mean
        self.std = std


class StubPerfMetrics:
    def __init__(self, load_time: float, num_input: int, num_generated: int):
        self.load_time = load_time
        self.num_input = num_input
        self.num_generated = num_generated

    def get_load_time(self):
        return self.load_time

    def get_num_input_tokens(self):
        return self.num_input

    def get_num_generated_tokens(self):
        return self.num_generated

    def get_ttft(self):
        return MeanStd(3.5, 0.0) if self.num_generated else MeanStd(0.0, 0.0)

    def get_throughput(self):
        return MeanStd(250.0, 12.5) if self.num_generated else MeanStd(0.0, 0.0)

    def get_generate_duration(self):
        return MeanStd(4.0 * self.num_generated, 0.25)


class StubDecodedResults:
    def __init__(self, texts: List[str], perf_metrics: StubPerfMetrics):
        self.texts = texts
        self.perf_metrics = perf_metrics


class StubTensor:
    def __init__(self, values: List[int]):
        self.values = values

    def get_size(self):
        return len(self.values)


class StubTokenizedInputs:
    def __init__(self, ids: List[int]):
        self.input_ids = StubTensor(ids)


class StubTokenizer:
    """Whitespace tokenizer; BOS id 1 when special tokens are requested"""

    def __init__(self):
        self.last_add_special_tokens: Optional[bool] = None

    def encode(self, text, add_special_tokens=True):
        self.last_add_special_tokens = add_special_tokens
        ids = [len(word) + 2 for word in text.split()]
        if add_special_tokens:
            ids = [1] + ids
        return StubTokenizedInputs(ids)


class StubGenerationConfig:
    def __init__(self):
        self.max_new_tokens = SIZE_MAX
        self.temperature = 1.0
        self.top_p = 1.0
        self.top_k = SIZE_MAX
        self.do_sample = False
        self.stop_strings = set()
        self.frequency_penalty = 0.0
        self.presence_penalty = 0.0
        self.repetition_penalty = 1.0
        self.rng_seed = 0
        self.logprobs = 0


class StubPipeline:
    LOAD_TIME_MS = 42.0

    def __init__(self, engine: "StubEngine", model_path: str, device: str, **properties):
        if device not in engine.supported_devices:
            raise RuntimeError(f"Device with \"{device}\" name is not registered in the OpenVINO Runtime")
        path = Path(model_path)
        if path.suffix != ".gguf" and not (path / "openvino_model.xml").exists():
            raise RuntimeError(f"Model file {path / 'openvino_model.xml'} does not exist")
        self.engine = engine
        self.model_path = model_path
        self.device = device
        self.properties = properties
        self.in_chat = False
        self.history: List[str] = []
        self.start_chat_calls = 0
        self.finish_chat_calls = 0
        self.generate_calls = 0
        engine.pipelines.add(self)

    def _validate(self, config):
        if not 0.0 < config.top_p <= 1.0:
            raise RuntimeError(f"top_p must be a positive float > 0 and <= 1, but got {config.top_p}")
        if config.temperature < 0.0:
            raise RuntimeError(f"temperature must be >= 0, but got {config.temperature}")

    def _chunks(self, prompt, config):
        limit = min(config.max_new_tokens, self.engine.natural_length)
        start = (len(prompt) + len(self.history)) % len(VOCAB)
        chunks = []
        for i in range(limit):
            word = VOCAB[(start + i) % len(VOCAB)]
            if word in config.stop_strings:
                break
            chunks.append(word if i == 0 else " " + word)
        return chunks

    def _is_stop(self, status):
        status_type = self.engine.StreamingStatus
        if status_type is None:
            return status is True
        return status in (status_type.STOP, status_type.CANCEL)

    def generate(self, prompt, config, streamer=None):
        self.generate_calls += 1
        if self.engine.generate_error is not None:
            raise self.engine.generate_error
        self._validate(config)

        emitted = []
        for chunk in self._chunks(prompt, config):
            emitted.append(chunk)
            if streamer is not None and self._is_stop(streamer(chunk)):
                break

        text = "".join(emitted)
        if self.in_chat:
            self.history.extend([prompt, text])

        texts = [] if self.engine.zero_candidates else [text]
        metrics = StubPerfMetrics(self.LOAD_TIME_MS, len(prompt.split()), len(emitted))
        return StubDecodedResults(texts, metrics)

    def get_tokenizer(self):
        if self.engine.tokenizer_error is not None:
            raise self.engine.tokenizer_error
        return StubTokenizer()

    def start_chat(self):
        self.start_chat_calls += 1
        self.in_chat = True
        self.history = []

    def finish_chat(self):
        self.finish_chat_calls += 1
        self.in_chat = False
        self.history = []


class StubEngine:
    """Module-shaped stand-in for openvino_genai"""

    __version__ = "stub-2025.1"

    def __init__(self, with_streaming_status: bool = True):
        self.StreamingStatus = StubStreamingStatus if with_streaming_status else None
        self.GenerationConfig = StubGenerationConfig
        self.supported_devices = {"CPU", "GPU"}
        self.natural_length = 32
        self.zero_candidates = False
        self.generate_error: Optional[BaseException] = None
        self.tokenizer_error: Optional[BaseException] = None
        self.pipelines = weakref.WeakSet()

    def LLMPipeline(self, model_path, device, **properties):
        return StubPipeline(self, model_path, device, **properties)


@pytest.fixture
def stub_engine():
    """Engine stand-in with StreamingStatus support"""
    return StubEngine()


@pytest.fixture
def legacy_engine():
    """Engine stand-in whose streamer protocol is a bare bool (True = stop)"""
    return StubEngine(with_streaming_status=False)


@pytest.fixture
def model_dir(tmp_path):
    """Directory laid out like a converted OpenVINO model"""
    directory = tmp_path / "tiny-llm-ov"
    directory.mkdir()
    (directory / "openvino_model.xml").write_text("<net/>")
    (directory / "openvino_model.bin").write_bytes(b"\0" * 4096)
    (directory / "openvino_tokenizer.xml").write_text("<net/>")
    return directory


@pytest.fixture
def pipeline(stub_engine, model_dir):
    """Open pipeline handle on CPU, closed after the test"""
    from genai_bridge import create_pipeline

    handle = create_pipeline(model_dir, "CPU", engine=stub_engine)
    yield handle
    handle.close()


@pytest.fixture
def config(stub_engine):
    """Generation config with engine defaults, closed after the test"""
    from genai_bridge import create_generation_config

    handle = create_generation_config(engine=stub_engine)
    yield handle
    handle.close()
