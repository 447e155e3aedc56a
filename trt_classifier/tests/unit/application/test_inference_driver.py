from __future__ import annotations

import dataclasses
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from conftest import EXPECTED_CLASS, SCORES, FakeEngine, install_fake_trt, make_fake_trt
from trt_classifier.application.inference_driver import OnnxClassifierSample
from trt_classifier.core.sample_params import SampleParams


def _output_lines(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.startswith("OUTPUT:")]


class TestBuild:
    def test_missing_engine_file_fails_cleanly(
        self, sample_params: SampleParams, tmp_path: Path, fake_trt: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        params = dataclasses.replace(sample_params, engine_path=tmp_path / "missing.trt")
        sample = OnnxClassifierSample(params)

        assert sample.build() is False
        assert sample.engine is None
        assert "[ERROR] [ENGINE] Failed to build the engine" in capsys.readouterr().out

    def test_rejected_engine_fails(self, sample_params: SampleParams, fake_trt: MagicMock) -> None:
        sample_params.engine_path.write_bytes(b"garbage")
        assert OnnxClassifierSample(sample_params).build() is False

    def test_loads_cached_engine(
        self, sample_params: SampleParams, fake_trt: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sample = OnnxClassifierSample(sample_params)
        assert sample.build() is True
        assert isinstance(sample.engine, FakeEngine)
        assert "Successfully built the engine" in capsys.readouterr().out

    def test_build_flag_compiles_onnx_first(self, sample_params: SampleParams, data_dir: Path, fake_trt: MagicMock) -> None:
        (data_dir / "model.onnx").write_bytes(b"\x08\x00")
        params = dataclasses.replace(sample_params, build_engine=True)
        with patch("trt_classifier.application.inference_driver.build_engine_file") as build_engine_file:
            assert OnnxClassifierSample(params).build() is True
        build_engine_file.assert_called_once_with(data_dir / "model.onnx", params)

    def test_build_flag_without_onnx_fails(self, sample_params: SampleParams, fake_trt: MagicMock) -> None:
        params = dataclasses.replace(sample_params, build_engine=True)
        with patch("trt_classifier.application.inference_driver.build_engine_file") as build_engine_file:
            assert OnnxClassifierSample(params).build() is False
        build_engine_file.assert_not_called()


class TestInfer:
    def test_infer_requires_engine(self, sample_params: SampleParams) -> None:
        assert OnnxClassifierSample(sample_params).infer() is False

    def test_prints_index_of_top_score(
        self, sample_params: SampleParams, fake_trt: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sample = OnnxClassifierSample(sample_params)
        assert sample.build()

        assert sample.infer() is True

        out = capsys.readouterr().out
        assert _output_lines(out) == [f"OUTPUT: {EXPECTED_CLASS}"]
        assert sample.last_result is not None
        assert sample.last_result.index == EXPECTED_CLASS
        np.testing.assert_allclose(sample.last_result.scores, SCORES)
        assert "Probability of class 15 before normalization is:" in out
        assert "input[275] = 55.0" in out
        assert set(sample.timings) == {"h2d_ms", "infer_ms", "d2h_ms"}

    def test_missing_input_file_fails(
        self, sample_params: SampleParams, data_dir: Path, fake_trt: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (data_dir / "input_matrix.bin").unlink()
        sample = OnnxClassifierSample(sample_params)
        assert sample.build()
        assert sample.infer() is False
        assert "Failed in reading input" in capsys.readouterr().out

    def test_execution_failure(
        self, sample_params: SampleParams, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        install_fake_trt(monkeypatch, make_fake_trt(lambda: FakeEngine(execute_ok=False)))
        sample = OnnxClassifierSample(sample_params)
        assert sample.build()
        assert sample.infer() is False
        out = capsys.readouterr().out
        assert "Failed in making execution" in out
        assert _output_lines(out) == []

    def test_context_creation_failure(self, sample_params: SampleParams, monkeypatch: pytest.MonkeyPatch) -> None:
        install_fake_trt(monkeypatch, make_fake_trt(lambda: FakeEngine(context_ok=False)))
        sample = OnnxClassifierSample(sample_params)
        assert sample.build()
        assert sample.infer() is False

    def test_buffer_allocation_failure(
        self, sample_params: SampleParams, fake_trt: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        sample = OnnxClassifierSample(dataclasses.replace(sample_params, device="cuda"))
        assert sample.build()
        with patch("trt_classifier.infrastructure.buffer_manager.torch.cuda.is_available", return_value=False):
            assert sample.infer() is False
        assert "Failed in allocating buffers" in capsys.readouterr().out

    def test_unknown_output_tensor_fails(self, sample_params: SampleParams, fake_trt: MagicMock) -> None:
        sample = OnnxClassifierSample(dataclasses.replace(sample_params, output_tensor_names=("scores",)))
        assert sample.build()
        assert sample.infer() is False

    def test_output_shorter_than_class_count_fails(self, sample_params: SampleParams, fake_trt: MagicMock) -> None:
        sample = OnnxClassifierSample(dataclasses.replace(sample_params, output_size=32))
        assert sample.build()
        assert sample.infer() is False


class TestSerialize:
    def test_writes_engine_back_to_cache_path(self, sample_params: SampleParams, fake_trt: MagicMock) -> None:
        sample = OnnxClassifierSample(sample_params)
        assert sample.build()
        assert sample.serialize() is True
        assert sample_params.engine_path.read_bytes() == b"FAKE-ENGINE-serialized"

    def test_requires_engine(self, sample_params: SampleParams) -> None:
        assert OnnxClassifierSample(sample_params).serialize() is False
