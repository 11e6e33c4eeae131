"""
Multi-channel driver: one spectrogram per channel (at most two), rendered in
channel order, then stacked into a single PNG for download.
"""
import asyncio
import io
import logging
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from .audio_loader import AudioBuffer
from .config import (
    CHANNEL_GAP,
    DEFAULT_TITLE,
    HEIGHT_MONO,
    HEIGHT_STEREO,
    MAX_CHANNELS,
    MAX_WIDTH,
    RenderParams,
    SpectrogramParams,
)
from .renderer import RenderedChannel, render_spectrogram
from .spectrogram_engine import Spectrogram, SpectrogramBuilder
from .utils import channel_label, clamp_width

log = logging.getLogger(__name__)


def channels_to_render(buffer: AudioBuffer) -> int:
    count = min(buffer.channel_count, MAX_CHANNELS)
    if buffer.channel_count > MAX_CHANNELS:
        log.warning("Only the first %d of %d channels are rendered", MAX_CHANNELS, buffer.channel_count)
    return count


def surface_size(channel_count: int, viewport_width: Optional[int] = None) -> Tuple[int, int]:
    width = MAX_WIDTH if viewport_width is None else clamp_width(viewport_width)
    height = HEIGHT_STEREO if channel_count == 2 else HEIGHT_MONO
    return width, height


def _render(
    spectrogram: Spectrogram,
    buffer: AudioBuffer,
    index: int,
    count: int,
    size: Tuple[int, int],
    file_name: Optional[str],
    render_params: RenderParams,
) -> RenderedChannel:
    width, height = size
    # the file name goes on the first channel only
    title = (file_name or DEFAULT_TITLE) if index == 0 else None
    return render_spectrogram(
        spectrogram,
        width,
        height,
        duration=buffer.duration,
        title=title,
        name=channel_label(index, count),
        params=render_params,
    )


def generate_spectrograms(
    buffer: AudioBuffer,
    file_name: Optional[str] = None,
    viewport_width: Optional[int] = None,
    params: SpectrogramParams = SpectrogramParams(),
    render_params: RenderParams = RenderParams(),
) -> List[RenderedChannel]:
    count = channels_to_render(buffer)
    size = surface_size(count, viewport_width)
    rendered = []
    for index in range(count):
        builder = SpectrogramBuilder(buffer.channel_data(index), buffer.sample_rate, params)
        spectrogram = builder.build()
        rendered.append(_render(spectrogram, buffer, index, count, size, file_name, render_params))
        log.debug("Rendered %s (%d frames)", rendered[-1].name, spectrogram.num_frames)
    return rendered


async def generate_spectrograms_async(
    buffer: AudioBuffer,
    file_name: Optional[str] = None,
    viewport_width: Optional[int] = None,
    params: SpectrogramParams = SpectrogramParams(),
    render_params: RenderParams = RenderParams(),
) -> List[RenderedChannel]:
    """Same output as generate_spectrograms, yielding to the event loop between frame chunks."""
    count = channels_to_render(buffer)
    size = surface_size(count, viewport_width)
    rendered = []
    for index in range(count):
        builder = SpectrogramBuilder(buffer.channel_data(index), buffer.sample_rate, params)
        spectrogram = await builder.build_async()
        rendered.append(_render(spectrogram, buffer, index, count, size, file_name, render_params))
        await asyncio.sleep(0)
    return rendered


def compose_channels(images: Sequence[Image.Image], gap: int = CHANNEL_GAP) -> Image.Image:
    """Stack channel images top to bottom on black, each followed by `gap` pixels."""
    if not images:
        raise ValueError("Nothing to compose")
    width = max(image.width for image in images)
    height = sum(image.height + gap for image in images)
    composite = Image.new("RGB", (width, height), (0, 0, 0))
    y_offset = 0
    for image in images:
        composite.paste(image, (0, y_offset))
        y_offset += image.height + gap
    return composite


def export_png(rendered: Sequence[RenderedChannel], gap: int = CHANNEL_GAP) -> bytes:
    composite = compose_channels([channel.image for channel in rendered], gap=gap)
    buffer = io.BytesIO()
    composite.save(buffer, format="PNG")
    log.info("Exported %dx%d composite of %d channel(s)", composite.width, composite.height, len(rendered))
    return buffer.getvalue()
