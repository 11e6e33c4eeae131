"""
Radix-2 Cooley-Tukey FFT for real-valued frames.

Works on the last axis, so a single frame of shape (n,) and a stack of
frames of shape (frames, n) go through the same butterfly network. Only
the magnitudes of the lower half of the spectrum are returned; the upper
half mirrors it for real input.
"""
from functools import lru_cache

import numpy as np

from .config import is_power_of_two


@lru_cache(maxsize=16)
def bit_reversal_permutation(n: int) -> np.ndarray:
    """Index order that puts element i at its bit-reversed position."""
    order = np.arange(n)
    j = 0
    for i in range(n - 1):
        if i < j:
            order[i], order[j] = order[j], order[i]
        k = n >> 1
        while k <= j:
            j -= k
            k >>= 1
        j += k
    order.setflags(write=False)
    return order


@lru_cache(maxsize=32)
def stage_twiddles(length: int) -> np.ndarray:
    """W^k for k < length/2, W = exp(-2*pi*i/length), by repeated rotation."""
    half = length // 2
    angle = -2.0 * np.pi / length
    steps = np.full(half, complex(np.cos(angle), np.sin(angle)), dtype=np.complex128)
    steps[0] = 1.0
    twiddles = np.cumprod(steps)
    twiddles.setflags(write=False)
    return twiddles


def transform(samples) -> np.ndarray:
    """
    Magnitude spectrum of real input along the last axis.
    Returns float32 magnitudes of length n/2 (or |x| when n <= 1).
    """
    data = np.asarray(samples, dtype=np.float64)
    n = data.shape[-1]
    if n <= 1:
        return np.abs(data).astype(np.float32)
    if not is_power_of_two(n):
        raise ValueError(f"FFT length must be a power of two, got {n}")

    spectrum = data[..., bit_reversal_permutation(n)].astype(np.complex128)
    lead = spectrum.shape[:-1]

    length = 2
    while length <= n:
        half = length // 2
        blocks = spectrum.reshape(lead + (n // length, length))
        upper = blocks[..., :half].copy()
        lower = blocks[..., half:] * stage_twiddles(length)
        blocks[..., :half] = upper + lower
        blocks[..., half:] = upper - lower
        length *= 2

    return np.abs(spectrum[..., : n // 2]).astype(np.float32)
