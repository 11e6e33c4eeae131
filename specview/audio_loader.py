import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Protocol, Union

import numpy as np
import soundfile as sf

from .utils import channel_description

SUPPORTED_EXTENSIONS = (".wav", ".flac", ".ogg", ".mp3")


class SupportsUpload(Protocol):
    name: str

    def getbuffer(self) -> Any:
        ...


class AudioLoadingError(Exception):
    """Raised when an audio file cannot be decoded."""


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded PCM: samples has shape (channels, frames), float32, read-only."""

    samples: np.ndarray
    sample_rate: int

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.sample_rate) if self.sample_rate else 0.0

    def channel_data(self, index: int) -> np.ndarray:
        return self.samples[index]

    @classmethod
    def from_channels(cls, channels, sample_rate: int) -> "AudioBuffer":
        samples = np.atleast_2d(np.asarray(channels, dtype=np.float32)).copy()
        samples.setflags(write=False)
        return cls(samples=samples, sample_rate=int(sample_rate))


def upload_types() -> List[str]:
    """Extensions without the dot, as file pickers expect them."""
    return [extension.lstrip(".") for extension in SUPPORTED_EXTENSIONS]


def is_supported_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(SUPPORTED_EXTENSIONS)


def load_audio(source: Union[str, Path, io.BytesIO]) -> AudioBuffer:
    """
    Decode an audio file with soundfile, keeping every channel.
    Raises AudioLoadingError for anything soundfile cannot read.
    """
    try:
        data, sample_rate = sf.read(source, dtype="float32", always_2d=True)
    except Exception as exc:
        raise AudioLoadingError(str(exc)) from exc

    if data.shape[0] == 0:
        raise AudioLoadingError("Audio file contains no samples")
    return AudioBuffer.from_channels(data.T, sample_rate)


def load_uploaded_file(file_obj: SupportsUpload) -> AudioBuffer:
    """Decode a streamlit upload straight from memory."""
    return load_audio(io.BytesIO(bytes(file_obj.getbuffer())))


def describe_buffer(buffer: AudioBuffer) -> str:
    return (
        f"Duration: {buffer.duration:.2f}s | {channel_description(buffer.channel_count)}"
        f" | Sample Rate: {buffer.sample_rate}Hz"
    )
