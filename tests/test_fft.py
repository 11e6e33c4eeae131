import numpy as np
import pytest

from specview.fft import bit_reversal_permutation, stage_twiddles, transform
from specview.windowing import apply_window


def _cosine_at_bin(k: int, n: int) -> np.ndarray:
    return np.cos(2 * np.pi * k * np.arange(n) / n)


@pytest.mark.parametrize("n", [2, 4, 8, 64, 512, 2048])
def test_magnitude_vector_is_half_length_and_non_negative(n):
    rng = np.random.default_rng(n)
    magnitudes = transform(rng.uniform(-1.0, 1.0, n))
    assert magnitudes.shape == (n // 2,)
    assert magnitudes.dtype == np.float32
    assert (magnitudes >= 0).all()


def test_zero_frame_gives_zero_spectrum():
    assert not transform(np.zeros(2048)).any()


def test_single_sample_returns_absolute_value():
    np.testing.assert_array_equal(transform([-0.75]), np.array([0.75], dtype=np.float32))


def test_matches_numpy_reference():
    rng = np.random.default_rng(7)
    frame = rng.uniform(-1.0, 1.0, 1024)
    expected = np.abs(np.fft.rfft(frame))[:512]
    np.testing.assert_allclose(transform(frame), expected, rtol=1e-4, atol=1e-3)


@pytest.mark.parametrize("k", [1, 20, 100, 511])
def test_pure_tone_peaks_at_its_bin(k):
    n = 1024
    assert int(np.argmax(transform(_cosine_at_bin(k, n)))) == k


@pytest.mark.parametrize("k", [3, 37, 400])
def test_windowed_tone_peaks_within_one_bin(k):
    n = 2048
    peak = int(np.argmax(transform(apply_window(_cosine_at_bin(k, n)))))
    assert abs(peak - k) <= 1


def test_energy_ordering_is_preserved():
    rng = np.random.default_rng(3)
    noise = rng.uniform(-1.0, 1.0, 2048)
    quiet = np.sum(transform(apply_window(0.1 * noise)) ** 2)
    loud = np.sum(transform(apply_window(0.8 * noise)) ** 2)
    assert loud > quiet


def test_stacked_frames_match_single_frames():
    rng = np.random.default_rng(11)
    frames = rng.uniform(-1.0, 1.0, (5, 256))
    stacked = transform(frames)
    assert stacked.shape == (5, 128)
    for row, frame in zip(stacked, frames):
        np.testing.assert_allclose(row, transform(frame), rtol=1e-6, atol=1e-6)


def test_non_power_of_two_is_rejected():
    with pytest.raises(ValueError):
        transform(np.zeros(1000))


def test_bit_reversal_order():
    assert bit_reversal_permutation(8).tolist() == [0, 4, 2, 6, 1, 5, 3, 7]
    order = bit_reversal_permutation(1024)
    np.testing.assert_array_equal(order[order], np.arange(1024))


def test_twiddles_rotate_around_unit_circle():
    twiddles = stage_twiddles(16)
    expected = np.exp(-2j * np.pi * np.arange(8) / 16)
    np.testing.assert_allclose(twiddles, expected, atol=1e-12)
