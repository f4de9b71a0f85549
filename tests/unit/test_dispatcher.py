"""Unit tests for the pipeline and batch dispatch."""

from unittest.mock import patch

import numpy as np
import pytest

from speech_essence.audio import FrameSource
from speech_essence.config.settings import RecognitionConfig, Settings
from speech_essence.dispatcher import discover_files, process
from speech_essence.errors import (
    CodecError,
    IoFailure,
    MalformedContainer,
    ModelLoadFailure,
    SpeakerModelUnsupported,
)
from speech_essence.pipeline import Pipeline, channel_output_path


class TestPipeline:
    """Test the decode -> demux -> feed pipeline."""

    def test_stereo_file_writes_two_channel_files(self, stereo_wav, tmp_path, fake_engine, settings):
        """A stereo file yields <stem>_channel_0.txt and <stem>_channel_1.txt."""
        out = tmp_path / "out"
        out.mkdir()

        report = Pipeline(fake_engine, settings).process_file(stereo_wav, out)

        assert sorted(p.name for p in out.iterdir()) == ["stereo_channel_0.txt", "stereo_channel_1.txt"]
        assert report.channel_outputs == [out / "stereo_channel_0.txt", out / "stereo_channel_1.txt"]
        assert report.format == "WAV"
        assert report.duration_seconds == pytest.approx(1.5)

    def test_each_channel_gets_its_own_recognizer(self, stereo_wav, stereo_samples, tmp_path, fake_engine, settings):
        """Recognizers receive their channel's samples at the file rate."""
        Pipeline(fake_engine, settings).process_file(stereo_wav, tmp_path)

        left, right = fake_engine.recognizers
        assert left.sample_rate == 16000
        np.testing.assert_array_equal(left.samples, stereo_samples[:, 0])
        np.testing.assert_array_equal(right.samples, stereo_samples[:, 1])

    def test_transcript_is_one_line(self, mono_wav, mono_samples, tmp_path, fake_engine, settings):
        """The channel file holds the final text and a newline."""
        Pipeline(fake_engine, settings).process_file(mono_wav, tmp_path)

        text = (tmp_path / "mono_channel_0.txt").read_text(encoding="utf-8")
        assert text == f"samples {len(mono_samples)} rate 16000\n"

    def test_zero_samples_still_write_every_channel(self, make_wav, tmp_path, fake_engine, settings):
        """An empty stereo file flushes each channel once."""
        path = make_wav("silent.wav", np.zeros((0, 2), dtype=np.int16))
        out = tmp_path / "out"
        out.mkdir()

        Pipeline(fake_engine, settings).process_file(path, out)

        assert [r.final_calls for r in fake_engine.recognizers] == [1, 1]
        for channel in (0, 1):
            assert (out / f"silent_channel_{channel}.txt").read_text() == "samples 0 rate 16000\n"

    def test_bulk_mode(self, mono_wav, tmp_path, fake_engine):
        """Bulk mode feeds each channel in one call."""
        settings = Settings(recognition=RecognitionConfig(feed_mode="bulk"))
        Pipeline(fake_engine, settings).process_file(mono_wav, tmp_path)

        (recognizer,) = fake_engine.recognizers
        assert len(recognizer.chunks) == 1

    def test_existing_transcripts_are_overwritten(self, mono_wav, tmp_path, fake_engine, settings):
        """Reprocessing replaces the previous transcript."""
        target = channel_output_path(tmp_path, "mono", 0)
        target.write_text("old\nstale\n")

        Pipeline(fake_engine, settings).process_file(mono_wav, tmp_path)

        assert target.read_text().count("\n") == 1
        assert "old" not in target.read_text()

    def test_unwritable_output_raises_io_failure(self, mono_wav, tmp_path, fake_engine, settings):
        """A missing output directory surfaces as IoFailure."""
        with pytest.raises(IoFailure) as exc_info:
            Pipeline(fake_engine, settings).process_file(mono_wav, tmp_path / "missing")
        assert "mono_channel_0.txt" in str(exc_info.value)


class TestDiscovery:
    """Test input discovery."""

    def test_directory_is_scanned_recursively_and_sorted(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "z.wav").write_bytes(b"")
        (tmp_path / "a.mp3").write_bytes(b"")
        (tmp_path / "c.txt").write_bytes(b"")

        files, errors = discover_files(tmp_path)

        assert files == [tmp_path / "a.mp3", tmp_path / "b" / "z.wav", tmp_path / "c.txt"]
        assert errors == []

    def test_single_file(self, tmp_path):
        files, errors = discover_files(tmp_path / "one.wav")
        assert files == [tmp_path / "one.wav"]
        assert errors == []

    def test_walk_errors_are_collected(self, tmp_path):
        def failing_walk(top, onerror=None):
            onerror(PermissionError(13, "Permission denied", str(top / "locked")))
            yield str(top), [], ["ok.wav"]

        with patch("speech_essence.dispatcher.os.walk", failing_walk):
            files, errors = discover_files(tmp_path)

        assert files == [tmp_path / "ok.wav"]
        assert len(errors) == 1
        assert "locked" in errors[0]


class TestProcess:
    """Test batch processing."""

    def test_unsupported_files_are_skipped(self, make_wav, mono_samples, tmp_path, fake_engine, settings, caplog):
        """An .ogg file is skipped and its sibling still transcribed."""
        inputs = tmp_path / "in"
        make_wav("in/speech.wav", mono_samples)
        (inputs / "music.ogg").write_bytes(b"OggS")
        (inputs / "NOTES").write_text("no extension")
        out = tmp_path / "out"

        report = process(inputs, tmp_path / "model", None, out, settings=settings, engine=fake_engine)

        assert sorted(p.name for p in out.iterdir()) == ["speech_channel_0.txt"]
        assert [p.name for p, _ in report.skipped] == ["NOTES", "music.ogg"]
        assert report.failed == []
        assert report.ok
        assert "music.ogg" in caplog.text
        assert "NOTES" in caplog.text

    def test_broken_file_does_not_stop_siblings(self, make_wav, mono_samples, tmp_path, fake_engine, settings):
        """A malformed file is recorded and the batch continues."""
        inputs = tmp_path / "in"
        inputs.mkdir()
        (inputs / "a_broken.wav").write_bytes(b"RIFF0000WAVEjunk")
        make_wav("in/b_good.wav", mono_samples)
        out = tmp_path / "out"

        report = process(inputs, tmp_path / "model", None, out, settings=settings, engine=fake_engine)

        assert [r.path.name for r in report.processed] == ["b_good.wav"]
        (failed_path, error), = report.failed
        assert failed_path.name == "a_broken.wav"
        assert isinstance(error, MalformedContainer)
        assert not report.ok
        assert (out / "b_good_channel_0.txt").exists()

    def test_decode_fault_keeps_audio_read_so_far(self, make_wav, tmp_path, fake_engine, settings, caplog):
        """Samples decoded before a mid-stream fault are still transcribed."""
        path = make_wav("long.wav", np.arange(8192, dtype=np.int16))
        out = tmp_path / "out"

        def faulty_chunks(self):
            yield np.arange(1024, dtype=np.int16)
            yield np.arange(1024, 2048, dtype=np.int16)
            raise CodecError("WAV decode failed (bad frame)", self.path)

        with patch.object(FrameSource, "_chunks", faulty_chunks):
            report = process(path, tmp_path / "model", None, out, settings=settings, engine=fake_engine)

        (failed_path, error), = report.failed
        assert failed_path.name == "long.wav"
        assert isinstance(error, CodecError)

        (recognizer,) = fake_engine.recognizers
        np.testing.assert_array_equal(recognizer.samples, np.arange(2048))
        assert recognizer.final_calls == 1
        assert (out / "long_channel_0.txt").read_text() == "samples 2048 rate 16000\n"
        assert "Decoding stopped early" in caplog.text

    def test_fail_fast_reraises(self, tmp_path, fake_engine):
        """With fail_fast the first per-file error propagates."""
        broken = tmp_path / "broken.wav"
        broken.write_bytes(b"nope")

        with pytest.raises(MalformedContainer):
            process(broken, tmp_path / "model", None, tmp_path / "out",
                    settings=Settings(fail_fast=True), engine=fake_engine)

    def test_missing_input_is_reported(self, tmp_path, fake_engine, settings):
        """A single missing input file fails without aborting."""
        report = process(tmp_path / "gone.wav", tmp_path / "model", None, tmp_path / "out",
                         settings=settings, engine=fake_engine)
        assert [type(e).__name__ for _, e in report.failed] == ["UnreadableFile"]

    def test_output_directory_is_created(self, mono_wav, tmp_path, fake_engine, settings):
        out = tmp_path / "nested" / "out"
        process(mono_wav, tmp_path / "model", None, out, settings=settings, engine=fake_engine)
        assert (out / "mono_channel_0.txt").exists()

    def test_speaker_model_is_rejected(self, mono_wav, tmp_path, fake_engine, settings):
        """Speaker identification is refused before any work is done."""
        out = tmp_path / "out"
        with pytest.raises(SpeakerModelUnsupported):
            process(mono_wav, tmp_path / "model", tmp_path / "spk", out, settings=settings, engine=fake_engine)
        assert fake_engine.recognizers == []
        assert not out.exists()

    def test_model_load_failure_aborts_run(self, make_wav, mono_samples, tmp_path, settings):
        """An invalid model stops the whole batch."""
        inputs = tmp_path / "in"
        make_wav("in/a.wav", mono_samples)
        make_wav("in/b.wav", mono_samples)

        with pytest.raises(ModelLoadFailure):
            process(inputs, tmp_path / "no-model", None, tmp_path / "out", settings=settings)
        assert list((tmp_path / "out").iterdir()) == []

    def test_metrics_file_written(self, mono_wav, tmp_path, fake_engine):
        """Run metrics land in the configured textfile."""
        metrics_file = tmp_path / "metrics" / "speech.prom"
        process(mono_wav, tmp_path / "model", None, tmp_path / "out",
                settings=Settings(metrics_file=metrics_file), engine=fake_engine)

        content = metrics_file.read_text()
        assert "speech_essence_files_total" in content
        assert 'format="WAV"' in content
