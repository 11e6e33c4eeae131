import math
from decimal import ROUND_HALF_UP, Decimal

from .config import MAX_WIDTH, VIEWPORT_MARGIN


def hz_per_bin(sample_rate: int, n_fft: int) -> float:
    return float(sample_rate) / float(n_fft)


def bin_frequency(index: int, freq_bins: int, sample_rate: int) -> float:
    return index / float(freq_bins) * (sample_rate / 2.0)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def one_decimal(value: float) -> str:
    # exact halves round up, not to even
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_frequency(freq: float) -> str:
    rounded = round_half_up(freq)
    if rounded >= 1000:
        return f"{one_decimal(rounded / 1000)}kHz"
    return f"{rounded}Hz"


def format_seconds(seconds: float) -> str:
    return f"{one_decimal(seconds)}s"


def channel_description(channel_count: int) -> str:
    if channel_count == 1:
        return "Mono"
    if channel_count == 2:
        return "Stereo"
    return f"{channel_count} Channels"


def channel_label(index: int, channel_count: int) -> str:
    if channel_count == 2:
        return "Left Channel" if index == 0 else "Right Channel"
    return "Mono"


def clamp_width(viewport_width: int) -> int:
    width = min(int(viewport_width) - VIEWPORT_MARGIN, MAX_WIDTH)
    if width <= 0:
        raise ValueError(f"Viewport width {viewport_width} leaves no room for a spectrogram")
    return width
