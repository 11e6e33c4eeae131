import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from .config import FFT_SIZE, SpectrogramParams
from .fft import transform
from .utils import bin_frequency
from .windowing import frame_block, frame_count

log = logging.getLogger(__name__)


@dataclass
class Spectrogram:
    """Magnitude grid of shape (num_frames, freq_bins) and its global maximum."""

    magnitudes: np.ndarray
    max_magnitude: float
    sample_rate: int
    fft_size: int
    hop_size: int

    @property
    def num_frames(self) -> int:
        return int(self.magnitudes.shape[0])

    @property
    def freq_bins(self) -> int:
        return int(self.magnitudes.shape[1])

    @property
    def is_empty(self) -> bool:
        return self.num_frames == 0

    @property
    def normalization(self) -> float:
        return self.max_magnitude or 1.0

    def peak_frequencies(self) -> np.ndarray:
        """Frequency in Hz of the loudest bin of every time column."""
        peaks = np.argmax(self.magnitudes, axis=1) if self.num_frames else np.empty(0, dtype=int)
        return np.array([bin_frequency(int(b), self.freq_bins, self.sample_rate) for b in peaks])


class SpectrogramBuilder:
    """
    Frames, windows and transforms one channel.

    chunks() does the work in steps of at most params.frames_per_yield
    frames so callers can hand control back to their scheduler in between;
    build() and build_async() are the two drivers.
    """

    def __init__(self, channel: np.ndarray, sample_rate: int, params: SpectrogramParams = SpectrogramParams()):
        self._channel = np.asarray(channel, dtype=np.float32)
        if self._channel.ndim != 1:
            raise ValueError("channel must be a 1-D sample sequence")
        self._sample_rate = int(sample_rate)
        self._params = params
        self._num_frames = frame_count(len(self._channel), params.fft_size, params.hop_size)
        self._grid = np.zeros((self._num_frames, params.freq_bins), dtype=np.float32)
        self._max_magnitude = 0.0
        self._done = 0

    @property
    def num_frames(self) -> int:
        return self._num_frames

    @property
    def frames_done(self) -> int:
        return self._done

    def chunks(self) -> Iterator[int]:
        params = self._params
        while self._done < self._num_frames:
            start = self._done
            stop = min(start + params.frames_per_yield, self._num_frames)
            block = frame_block(self._channel, start, stop, params.fft_size, params.hop_size)
            magnitudes = transform(block)
            self._grid[start:stop] = magnitudes
            self._max_magnitude = max(self._max_magnitude, float(magnitudes.max()))
            self._done = stop
            yield stop

    def result(self) -> Spectrogram:
        if self._done < self._num_frames:
            raise RuntimeError(f"Spectrogram incomplete: {self._done}/{self._num_frames} frames")
        return Spectrogram(
            magnitudes=self._grid,
            max_magnitude=self._max_magnitude,
            sample_rate=self._sample_rate,
            fft_size=self._params.fft_size,
            hop_size=self._params.hop_size,
        )

    def build(self) -> Spectrogram:
        started = time.perf_counter()
        for _ in self.chunks():
            pass
        log.debug("Built %d frames in %.3fs", self._num_frames, time.perf_counter() - started)
        return self.result()

    async def build_async(self) -> Spectrogram:
        started = time.perf_counter()
        for _ in self.chunks():
            await asyncio.sleep(0)
        log.debug("Built %d frames in %.3fs (cooperative)", self._num_frames, time.perf_counter() - started)
        return self.result()


def build_spectrogram(channel: np.ndarray, sample_rate: int, fft_size: int = FFT_SIZE) -> Spectrogram:
    return SpectrogramBuilder(channel, sample_rate, SpectrogramParams(fft_size=fft_size)).build()


async def build_spectrogram_async(channel: np.ndarray, sample_rate: int, fft_size: int = FFT_SIZE) -> Spectrogram:
    return await SpectrogramBuilder(channel, sample_rate, SpectrogramParams(fft_size=fft_size)).build_async()
