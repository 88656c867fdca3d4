"""
Unit tests for bridge telemetry
"""

import random
import threading

from genai_bridge.config_loader import initialize_config
from genai_bridge.telemetry import BridgeTelemetry, get_telemetry, reset_telemetry


class TestBridgeTelemetry:
    """Test counters and reports"""

    def test_generate_counters(self):
        """Test generate calls update counts and totals"""
        telemetry = BridgeTelemetry()

        telemetry.record_generate(100.0, 10)
        telemetry.record_generate(50.0, 5, streamed=True, cancelled=True)

        report = telemetry.get_report()["generation"]
        assert report["calls"] == 2
        assert report["stream_calls"] == 1
        assert report["cancelled_streams"] == 1
        assert report["total_tokens"] == 15
        assert report["avg_tokens_per_call"] == 7.5
        assert report["throughput"]["tokens_per_second"] == 100.0
        assert report["latency_ms"]["min"] == 50.0
        assert "p95" not in report["latency_ms"]

    def test_percentiles_after_ten_samples(self):
        """Test percentiles appear once enough samples exist"""
        telemetry = BridgeTelemetry()
        for ms in range(1, 21):
            telemetry.record_generate(float(ms), 1)

        latency = telemetry.get_report()["generation"]["latency_ms"]
        assert latency["p50"] == 11.0
        assert latency["p99"] == 20.0

    def test_rolling_window(self):
        """Test only the most recent samples are kept"""
        telemetry = BridgeTelemetry()
        for ms in range(1500):
            telemetry.record_tokenize(float(ms))

        assert len(telemetry.stats.tokenize_latencies_ms) == 1000
        assert telemetry.stats.tokenize_latencies_ms[0] == 500.0
        assert telemetry.stats.tokenize_calls == 1500

    def test_errors_always_counted(self, monkeypatch):
        """Test failures are counted even when sampled out"""
        telemetry = BridgeTelemetry(sampling_rate=0.01)
        monkeypatch.setattr(random, "random", lambda: 0.99)

        telemetry.record_generate(10.0, 0, success=False)
        telemetry.record_tokenize(1.0, success=False)

        assert telemetry.stats.errors == 2
        assert telemetry.stats.generate_calls == 0
        assert telemetry.get_report()["errors"]["error_rate"] == 2.0

    def test_disabled(self):
        """Test a disabled instance records nothing"""
        telemetry = BridgeTelemetry(enabled=False)
        telemetry.record_generate(1.0, 1)

        assert telemetry.stats.generate_calls == 0
        assert telemetry.get_report() == {"enabled": False}
        assert telemetry.get_stats_summary() == "Telemetry disabled"

    def test_summary_text(self):
        """Test the human-readable summary lists each section"""
        telemetry = BridgeTelemetry()
        telemetry.record_generate(20.0, 4)
        telemetry.record_tokenize(1.0)
        telemetry.record_tokenize(1.0, success=False)

        summary = telemetry.get_stats_summary()

        assert "Generation:" in summary
        assert "Tokenization:" in summary
        assert "Errors:" in summary

    def test_reset(self):
        """Test reset clears everything"""
        telemetry = BridgeTelemetry()
        telemetry.record_generate(1.0, 1)
        telemetry.reset()

        assert telemetry.get_report()["generation"] == {"calls": 0, "total_tokens": 0}

    def test_concurrent_recording(self):
        """Test counts stay exact when several threads record and report at once"""
        telemetry = BridgeTelemetry()
        threads_count, calls = 8, 500
        report_errors = []

        def record():
            for _ in range(calls):
                telemetry.record_generate(1.0, 2)
                telemetry.record_tokenize(0.5)

        def report():
            for _ in range(50):
                try:
                    telemetry.get_report()
                except RuntimeError as exc:
                    report_errors.append(exc)

        workers = [threading.Thread(target=record) for _ in range(threads_count)]
        workers.append(threading.Thread(target=report))
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert telemetry.stats.generate_calls == threads_count * calls
        assert telemetry.stats.tokenize_calls == threads_count * calls
        assert telemetry.stats.total_tokens == threads_count * calls * 2
        assert report_errors == []


class TestGlobalTelemetry:
    """Test the process-wide instance"""

    def test_configured_from_yaml(self, tmp_path):
        """Test the instance picks up telemetry settings"""
        config_file = tmp_path / "runtime.yaml"
        config_file.write_text("telemetry:\n  enabled: false\n")
        initialize_config(str(config_file))
        reset_telemetry()

        assert get_telemetry().enabled is False

    def test_singleton(self):
        """Test repeated calls share one instance"""
        assert get_telemetry() is get_telemetry()
