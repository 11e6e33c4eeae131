import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st

from specview.audio_loader import (
    AudioLoadingError,
    SupportsUpload,
    describe_buffer,
    is_supported_file,
    load_uploaded_file,
    upload_types,
)
from specview.config import EXPORT_FILENAME, MAX_WIDTH, VIEWPORT_MARGIN, load_config
from specview.pipeline import export_png, generate_spectrograms
from specview.renderer import RenderedChannel
from specview.utils import hz_per_bin

log = logging.getLogger(__name__)

CONFIG_PATH = ROOT / "specview.json"

st.set_page_config(page_title="Audio Spectrogram", layout="wide")


class _BytesUpload:
    def __init__(self, name: str, data: bytes):
        self.name = name
        self._data = data

    def getbuffer(self) -> bytes:
        return self._data


@st.cache_data(show_spinner=False)
def _cached_render(data: bytes, name: str, viewport_width: int) -> tuple:
    upload = _BytesUpload(name, data)
    buffer = load_uploaded_file(upload)
    params, render_params = load_config(CONFIG_PATH)
    rendered = generate_spectrograms(
        buffer, file_name=name, viewport_width=viewport_width, params=params, render_params=render_params
    )
    return describe_buffer(buffer), hz_per_bin(buffer.sample_rate, params.fft_size), rendered


def _reset():
    st.session_state["uploader_key"] = st.session_state.get("uploader_key", 0) + 1


def _show_time_labels(channel: RenderedChannel):
    columns = st.columns(len(channel.time_labels))
    for column, label in zip(columns, channel.time_labels):
        column.caption(label.text)


def _show_channels(rendered: List[RenderedChannel]):
    for channel in rendered:
        st.markdown(f"**{channel.name}**")
        st.image(channel.to_png(), width=channel.image.width)
        _show_time_labels(channel)


def main():
    st.title("Audio Spectrogram")
    st.caption("Hamming-windowed 2048-point FFT, 75% overlap, black-purple-red-orange-yellow intensity ramp.")

    with st.sidebar:
        viewport_width = st.slider(
            "Window width (px)",
            min_value=VIEWPORT_MARGIN + 200,
            max_value=MAX_WIDTH + VIEWPORT_MARGIN,
            value=MAX_WIDTH + VIEWPORT_MARGIN,
            step=50,
        )

    uploader_key = st.session_state.get("uploader_key", 0)
    uploaded: Optional[SupportsUpload] = st.file_uploader(
        "Drop an audio file here or click to browse", type=upload_types(), key=f"upload_{uploader_key}"
    )
    if not uploaded:
        st.info("Select an audio file to begin.")
        return
    if not is_supported_file(uploaded.name):
        st.error(f"Unsupported file type: {uploaded.name}")
        _reset()
        return

    start = time.perf_counter()
    try:
        with st.spinner("Computing spectrogram..."):
            description, resolution, rendered = _cached_render(bytes(uploaded.getbuffer()), uploaded.name, viewport_width)
    except AudioLoadingError as exc:
        log.warning("Decoding %s failed: %s", uploaded.name, exc)
        st.error(f"Error processing audio file: {exc}")
        _reset()
        return
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    st.subheader(uploaded.name)
    st.write(description)
    st.caption(f"Processed in {elapsed_ms:.0f} ms  •  FFT resolution {resolution:.2f} Hz/bin")

    _show_channels(rendered)

    col_download, col_remove = st.columns([1, 1])
    col_download.download_button("Download PNG", data=export_png(rendered), file_name=EXPORT_FILENAME, mime="image/png")
    if col_remove.button("Remove"):
        _reset()
        st.rerun()


if __name__ == "__main__":  # pragma: no cover
    main()
