"""
Unit tests for InferenceSession

Tests model path resolution, device selection, the memory preflight, and
the session-level generate/chat/tokenizer helpers.
"""

import logging

import pytest

from genai_bridge import (
    InferenceMetrics,
    InferenceSession,
    PipelineLoadError,
    config_set_max_new_tokens,
)
from genai_bridge import session as session_module
from genai_bridge.config_loader import initialize_config
from genai_bridge.devices import DeviceInfo, DeviceType
from genai_bridge.resources import SystemResources
from genai_bridge.session import resolve_model_path


@pytest.fixture
def cpu_only(monkeypatch):
    """Pretend the host has a CPU and nothing else"""
    monkeypatch.setattr(
        session_module, "detect_devices", lambda: [DeviceInfo("CPU", DeviceType.CPU)]
    )


@pytest.fixture
def session(stub_engine, model_dir, cpu_only):
    with InferenceSession.load(model_dir, engine=stub_engine) as loaded:
        yield loaded


def preflight_config(tmp_path, mode):
    config_file = tmp_path / "preflight.yaml"
    config_file.write_text(f"resources:\n  preflight: true\n  mode: {mode}\n")
    initialize_config(str(config_file))


class TestResolveModelPath:
    """Test mapping user paths to engine paths"""

    def test_directory(self, model_dir):
        """Test a directory is used as-is"""
        assert resolve_model_path(model_dir) == model_dir

    def test_file_in_directory(self, model_dir):
        """Test a model file resolves to its directory"""
        assert resolve_model_path(model_dir / "openvino_model.xml") == model_dir

    def test_gguf_file(self, tmp_path):
        """Test a .gguf file is loaded directly"""
        gguf = tmp_path / "model.Q4_K_M.gguf"

        assert resolve_model_path(str(gguf)) == gguf


class TestLoad:
    """Test session construction"""

    def test_auto_device(self, session):
        """Test the best detected device is used when none is given"""
        assert session.pipeline.device == "CPU"
        assert not session.in_chat_mode

    def test_explicit_device(self, stub_engine, model_dir):
        """Test an explicit device wins over detection"""
        with InferenceSession.load(model_dir, "GPU", engine=stub_engine) as loaded:
            assert loaded.pipeline.device == "GPU"

    def test_load_from_model_file(self, stub_engine, model_dir, cpu_only):
        """Test pointing at a file inside the model directory works"""
        with InferenceSession.load(model_dir / "openvino_model.xml", engine=stub_engine) as loaded:
            assert loaded.pipeline.model_path == str(model_dir)

    def test_unavailable_preference_falls_back(self, stub_engine, model_dir, cpu_only, tmp_path):
        """Test a preferred device that is absent falls back to the default device"""
        config_file = tmp_path / "npu.yaml"
        config_file.write_text("engine:\n  device_preference: npu\n  default_device: CPU\n")
        initialize_config(str(config_file))

        with InferenceSession.load(model_dir, engine=stub_engine) as loaded:
            assert loaded.pipeline.device == "CPU"

    def test_preflight_refuses(self, stub_engine, model_dir, cpu_only, tmp_path, monkeypatch):
        """Test strict preflight stops a model that does not fit"""
        preflight_config(tmp_path, "strict")
        monkeypatch.setattr(
            session_module, "detect_system_resources", lambda: SystemResources(8_000, 100)
        )

        with pytest.raises(PipelineLoadError) as exc_info:
            InferenceSession.load(model_dir, engine=stub_engine)

        assert "Insufficient memory" in exc_info.value.reason
        assert len(stub_engine.pipelines) == 0

    def test_preflight_loose_warns(self, stub_engine, model_dir, cpu_only, tmp_path, monkeypatch, caplog):
        """Test loose preflight logs a warning and loads anyway"""
        preflight_config(tmp_path, "loose")
        monkeypatch.setattr(
            session_module, "detect_system_resources", lambda: SystemResources(8_000, 100)
        )

        with caplog.at_level(logging.WARNING, logger="genai_bridge"):
            with InferenceSession.load(model_dir, engine=stub_engine) as loaded:
                assert not loaded.pipeline.closed

        assert any("Insufficient memory" in r.getMessage() for r in caplog.records)

    def test_preflight_passes(self, stub_engine, model_dir, cpu_only, tmp_path, monkeypatch):
        """Test plenty of memory loads silently"""
        preflight_config(tmp_path, "strict")
        monkeypatch.setattr(
            session_module,
            "detect_system_resources",
            lambda: SystemResources(64_000_000_000, 32_000_000_000),
        )

        with InferenceSession.load(model_dir, engine=stub_engine) as loaded:
            assert loaded.pipeline.device == "CPU"


class TestSessionGeneration:
    """Test generation helpers"""

    def test_generate(self, session):
        """Test generate limits output to max_tokens"""
        text = session.generate("Hello", 3)

        assert len(text.split()) == 3

    def test_generate_with_config(self, session):
        """Test a caller-owned config is honored"""
        with session.new_config() as config:
            config_set_max_new_tokens(config, 2)
            assert session.generate_with_config("Hello", config) == session.generate("Hello", 2)

    def test_generate_with_metrics(self, session):
        """Test the metrics summary accompanies the text"""
        with session.new_config() as config:
            config_set_max_new_tokens(config, 4)
            text, metrics = session.generate_with_metrics("Hello there", config)

        assert isinstance(metrics, InferenceMetrics)
        assert metrics.num_output_tokens == 4
        assert metrics.num_input_tokens == 2
        assert text

    def test_generate_stream(self, session):
        """Test streamed text pieces add up to the final text"""
        pieces = []
        with session.new_config() as config:
            config_set_max_new_tokens(config, 5)
            result = session.generate_stream("Hello", config, lambda text: pieces.append(text) or True)

        assert "".join(pieces) == result.text
        assert result.metrics.num_generated_tokens == 5

    def test_generate_stream_stop(self, session):
        """Test a False callback reply stops the stream"""
        pieces = []

        def callback(text):
            pieces.append(text)
            return False

        with session.new_config() as config:
            config_set_max_new_tokens(config, 5)
            result = session.generate_stream("Hello", config, callback)

        assert len(pieces) == 1
        assert result.metrics.num_generated_tokens == 1

    def test_count_tokens(self, session):
        """Test token counting through the session"""
        assert session.count_tokens("a b c") == 3
        assert session.count_tokens("") == 0


class TestSessionLifecycle:
    """Test chat tracking and close"""

    def test_chat_mode_flag(self, session):
        """Test in_chat_mode follows start/finish"""
        session.start_chat()
        assert session.in_chat_mode

        session.finish_chat()
        assert not session.in_chat_mode

    def test_close_ends_chat(self, stub_engine, session):
        """Test close() finishes an open chat before releasing the pipeline"""
        native = next(iter(stub_engine.pipelines))
        session.start_chat()

        session.close()

        assert native.finish_chat_calls == 1
        assert session.pipeline.closed

    def test_close_idempotent(self, session):
        """Test closing twice is harmless"""
        session.close()
        session.close()

        assert session.pipeline.closed
