import asyncio

import numpy as np
import pytest

import specview.spectrogram_engine as spectrogram_engine
from specview.config import SpectrogramParams
from specview.spectrogram_engine import SpectrogramBuilder, build_spectrogram, build_spectrogram_async


def _sine_wave(freq: float, sr: int, duration: float, amplitude: float = 1.0) -> np.ndarray:
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def test_four_second_grid_dimensions():
    audio = _sine_wave(1000.0, 44100, 4.0)
    assert len(audio) == 176400
    spectrogram = build_spectrogram(audio, 44100)
    assert spectrogram.magnitudes.shape == (340, 1024)
    assert spectrogram.hop_size == 512
    assert (spectrogram.magnitudes >= 0).all()
    assert spectrogram.max_magnitude == pytest.approx(float(spectrogram.magnitudes.max()))


def test_exactly_one_frame_of_audio_gives_empty_grid():
    spectrogram = build_spectrogram(np.ones(2048, dtype=np.float32), 44100)
    assert spectrogram.is_empty
    assert spectrogram.magnitudes.shape == (0, 1024)
    assert spectrogram.max_magnitude == 0.0


def test_too_short_channel_is_not_an_error():
    spectrogram = build_spectrogram(np.zeros(100, dtype=np.float32), 22050)
    assert spectrogram.num_frames == 0
    assert spectrogram.freq_bins == 1024


def test_silent_channel_normalizes_by_one():
    spectrogram = build_spectrogram(np.zeros(8192, dtype=np.float32), 44100)
    assert spectrogram.num_frames == 12
    assert spectrogram.max_magnitude == 0.0
    assert spectrogram.normalization == 1.0


def test_440_hz_peak_in_every_column():
    sr = 44100
    spectrogram = build_spectrogram(_sine_wave(440.0, sr, 1.0), sr)
    resolution = sr / 2048
    peaks = spectrogram.peak_frequencies()
    assert len(peaks) == spectrogram.num_frames == 82
    assert np.all(np.abs(peaks - 440.0) <= resolution)


def test_chunks_stop_every_fifty_frames():
    builder = SpectrogramBuilder(_sine_wave(300.0, 44100, 4.0), 44100)
    progress = list(builder.chunks())
    assert progress == [50, 100, 150, 200, 250, 300, 340]
    assert builder.frames_done == builder.num_frames


def test_result_requires_completed_build():
    builder = SpectrogramBuilder(_sine_wave(300.0, 44100, 1.0), 44100)
    with pytest.raises(RuntimeError):
        builder.result()


def test_chunk_size_does_not_change_result():
    audio = _sine_wave(2500.0, 48000, 1.0) + 0.1 * _sine_wave(60.0, 48000, 1.0)
    default = SpectrogramBuilder(audio, 48000).build()
    single = SpectrogramBuilder(audio, 48000, SpectrogramParams(frames_per_yield=1)).build()
    np.testing.assert_allclose(default.magnitudes, single.magnitudes, rtol=1e-6, atol=1e-6)
    assert default.max_magnitude == pytest.approx(single.max_magnitude, rel=1e-6)


def test_async_build_matches_sync_and_yields(monkeypatch):
    audio = _sine_wave(880.0, 44100, 2.0)
    real_sleep = asyncio.sleep
    yields = []

    async def counting_sleep(delay, *args, **kwargs):
        yields.append(delay)
        await real_sleep(delay, *args, **kwargs)

    monkeypatch.setattr(spectrogram_engine.asyncio, "sleep", counting_sleep)

    cooperative = asyncio.run(build_spectrogram_async(audio, 44100))
    blocking = build_spectrogram(audio, 44100)

    np.testing.assert_array_equal(cooperative.magnitudes, blocking.magnitudes)
    assert cooperative.max_magnitude == blocking.max_magnitude
    # 168 frames -> chunks of 50, 50, 50, 18
    assert len(yields) == 4


def test_rejects_multichannel_array():
    with pytest.raises(ValueError):
        SpectrogramBuilder(np.zeros((2, 4096)), 44100)
