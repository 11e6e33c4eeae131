import io
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .colors import intensity_to_rgb
from .config import DB_EPSILON, DB_RANGE, FREQ_LABEL_DIVISIONS, TIME_LABEL_DIVISIONS, RenderParams
from .spectrogram_engine import Spectrogram
from .utils import format_frequency, format_seconds

BACKGROUND = (0, 0, 0)
LABEL_FILL = (255, 255, 255, 204)
TITLE_FILL = (255, 255, 255, 230)
LABEL_X = 5
LABEL_BASELINE_OFFSET = 4
TITLE_POSITION = (10, 20)


@dataclass(frozen=True)
class AxisLabel:
    position: float  # pixels from the left (time) or from the top (frequency)
    value: float
    text: str


@dataclass
class RenderedChannel:
    image: Image.Image
    frequency_labels: List[AxisLabel] = field(default_factory=list)
    time_labels: List[AxisLabel] = field(default_factory=list)
    name: str = "Mono"

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()


def decibel_intensity(
    magnitudes: np.ndarray,
    max_magnitude: float,
    db_range: float = DB_RANGE,
    epsilon: float = DB_EPSILON,
) -> np.ndarray:
    """Magnitudes relative to max_magnitude in dB, mapped from [-db_range, 0] onto [0, 1]."""
    normalized = np.asarray(magnitudes, dtype=np.float64) / (max_magnitude or 1.0)
    db = 20.0 * np.log10(normalized + epsilon)
    return np.maximum(0.0, (db + db_range) / db_range)


def frequency_labels(sample_rate: int, height: int, divisions: int = FREQ_LABEL_DIVISIONS) -> List[AxisLabel]:
    nyquist = sample_rate / 2.0
    labels = []
    for i in range(divisions + 1):
        freq = i / divisions * nyquist
        y = height - i / divisions * height
        labels.append(AxisLabel(position=y, value=freq, text=format_frequency(freq)))
    return labels


def time_labels(duration: float, width: int, divisions: int = TIME_LABEL_DIVISIONS) -> List[AxisLabel]:
    labels = []
    for i in range(divisions + 1):
        seconds = i / divisions * duration
        labels.append(AxisLabel(position=i / divisions * width, value=seconds, text=format_seconds(seconds)))
    return labels


def _cell_owners(starts: np.ndarray, extent: int, size: int) -> np.ndarray:
    """
    For each pixel 0..size-1 along one axis, the index of the last-painted
    cell covering it (cells are painted in index order, each `extent` wide,
    starting at the non-decreasing `starts`), or -1 if none covers it.
    """
    pixels = np.arange(size)
    owner = np.searchsorted(starts, pixels, side="right") - 1
    covered = owner >= 0
    covered[covered] &= pixels[covered] < starts[owner[covered]] + extent
    return np.where(covered, owner, -1)


def _row_owners(y_starts: np.ndarray, extent: int, height: int) -> np.ndarray:
    """Highest frequency index whose cell covers each pixel row, or -1."""
    freq_bins = len(y_starts)
    ys = np.arange(height)
    # y_starts falls as f rises: the smallest start still reaching y belongs
    # to the highest f covering it
    ascending = y_starts[::-1]
    first = np.searchsorted(ascending, ys - extent, side="right")
    rows = np.full(height, -1, dtype=np.int64)
    inside = first < freq_bins
    inside[inside] &= ascending[first[inside]] <= ys[inside]
    rows[inside] = freq_bins - 1 - first[inside]
    return rows


def visible_cells(num_frames: int, freq_bins: int, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Which grid cell ends up on top at each pixel when cells are painted in
    t-major, f-minor order. Cell (t, f) covers ceil(width/num_frames)+1 by
    ceil(height/freq_bins)+1 pixels at x = floor(t * timeStep),
    y = height - floor((f + 1) * freqStep); low frequencies at the bottom.

    Returns (columns, rows): the frame index for every pixel column and the
    bin index for every pixel row, -1 where no cell reaches.
    """
    if num_frames == 0 or freq_bins == 0:
        return np.full(width, -1, dtype=np.int64), np.full(height, -1, dtype=np.int64)

    time_step = width / num_frames
    freq_step = height / freq_bins
    cell_w = math.ceil(time_step) + 1
    cell_h = math.ceil(freq_step) + 1

    x_starts = np.floor(np.arange(num_frames) * time_step).astype(np.int64)
    y_starts = height - np.floor((np.arange(freq_bins) + 1) * freq_step).astype(np.int64)
    return _cell_owners(x_starts, cell_w, width), _row_owners(y_starts, cell_h, height)


def _paint_visible(
    grid: np.ndarray, width: int, height: int, colorize: Callable[[np.ndarray], np.ndarray]
) -> np.ndarray:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:] = BACKGROUND
    columns, rows = visible_cells(grid.shape[0], grid.shape[1], width, height)
    col_ok = columns >= 0
    row_ok = rows >= 0
    if not col_ok.any() or not row_ok.any():
        return pixels
    # at most width x height cells are gathered and colored
    block = colorize(grid[np.ix_(columns[col_ok], rows[row_ok])])
    pixels[np.ix_(np.flatnonzero(row_ok), np.flatnonzero(col_ok))] = block.transpose(1, 0, 2)
    return pixels


def paint_cells(colors: np.ndarray, width: int, height: int) -> np.ndarray:
    """Rasterize a (num_frames, freq_bins, 3) color grid onto a height x width RGB array."""
    return _paint_visible(colors, width, height, lambda block: block)


def paint_spectrogram(
    spectrogram: Spectrogram, width: int, height: int, params: RenderParams = RenderParams()
) -> np.ndarray:
    """Same pixels as coloring the whole grid, but only the visible cells are converted."""

    def colorize(block: np.ndarray) -> np.ndarray:
        intensity = decibel_intensity(
            block, spectrogram.max_magnitude, db_range=params.db_range, epsilon=params.db_epsilon
        )
        return intensity_to_rgb(intensity)

    return _paint_visible(spectrogram.magnitudes, width, height, colorize)


def _font(size: int):
    return ImageFont.load_default(size=size)


def draw_overlays(
    image: Image.Image,
    labels: List[AxisLabel],
    title: Optional[str],
    params: RenderParams = RenderParams(),
) -> Image.Image:
    overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    label_font = _font(params.label_font_size)
    for label in labels:
        top = label.position - LABEL_BASELINE_OFFSET - params.label_font_size
        draw.text((LABEL_X, top), label.text, font=label_font, fill=LABEL_FILL)
    if title is not None:
        x, baseline = TITLE_POSITION
        draw.text((x, baseline - params.title_font_size), title, font=_font(params.title_font_size), fill=TITLE_FILL)
    return Image.alpha_composite(image.convert("RGBA"), overlay).convert("RGB")


def render_spectrogram(
    spectrogram: Spectrogram,
    width: int,
    height: int,
    *,
    duration: Optional[float] = None,
    title: Optional[str] = None,
    name: str = "Mono",
    params: RenderParams = RenderParams(),
) -> RenderedChannel:
    """
    Render one channel's grid into an RGB image with frequency labels drawn
    on the left edge. Time labels are returned for the caller to place.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Surface size must be positive, got {width}x{height}")

    pixels = paint_spectrogram(spectrogram, width, height, params)
    freq_axis = frequency_labels(spectrogram.sample_rate, height, params.freq_label_divisions)
    image = draw_overlays(Image.fromarray(pixels), freq_axis, title, params)

    if duration is None:
        covered = spectrogram.num_frames * spectrogram.hop_size
        duration = covered / float(spectrogram.sample_rate) if spectrogram.sample_rate else 0.0
    return RenderedChannel(
        image=image,
        frequency_labels=freq_axis,
        time_labels=time_labels(duration, width, params.time_label_divisions),
        name=name,
    )


def save_png(png_bytes: bytes, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(png_bytes)
    return output_path
