from functools import lru_cache

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy import signal


@lru_cache(maxsize=8)
def hamming_window(size: int) -> np.ndarray:
    # periodic form: 0.54 - 0.46 * cos(2*pi*k/size)
    window = signal.get_window("hamming", size, fftbins=True).astype(np.float64)
    window.setflags(write=False)
    return window


def frame(channel: np.ndarray, offset: int, size: int) -> np.ndarray:
    return channel[offset : offset + size]


def apply_window(raw_frame: np.ndarray) -> np.ndarray:
    raw = np.asarray(raw_frame, dtype=np.float64)
    return raw * hamming_window(raw.shape[-1])


def frame_count(length: int, fft_size: int, hop_size: int) -> int:
    return max(0, (length - fft_size) // hop_size)


def frame_block(channel: np.ndarray, start: int, stop: int, fft_size: int, hop_size: int) -> np.ndarray:
    """Windowed frames start..stop-1 stacked as a (stop - start, fft_size) array."""
    if stop <= start:
        return np.empty((0, fft_size), dtype=np.float64)
    span = channel[start * hop_size : (stop - 1) * hop_size + fft_size]
    frames = sliding_window_view(span, fft_size)[::hop_size]
    return apply_window(frames)
