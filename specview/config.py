import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

log = logging.getLogger(__name__)

FFT_SIZE = 2048
HOP_DIVISOR = 4
FRAMES_PER_YIELD = 50

DB_RANGE = 100.0
DB_EPSILON = 1e-10

MAX_CHANNELS = 2
MAX_WIDTH = 1800
VIEWPORT_MARGIN = 100
HEIGHT_MONO = 600
HEIGHT_STEREO = 350
CHANNEL_GAP = 50

FREQ_LABEL_DIVISIONS = 8
TIME_LABEL_DIVISIONS = 10
LABEL_FONT_SIZE = 12
TITLE_FONT_SIZE = 16

DEFAULT_TITLE = "Audio File"
EXPORT_FILENAME = "spectrogram.png"


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class SpectrogramParams:
    fft_size: int = FFT_SIZE
    frames_per_yield: int = FRAMES_PER_YIELD

    def __post_init__(self):
        if not is_power_of_two(self.fft_size) or self.fft_size < HOP_DIVISOR:
            raise ValueError(f"fft_size must be a power of two >= {HOP_DIVISOR}, got {self.fft_size}")
        if self.frames_per_yield < 1:
            raise ValueError("frames_per_yield must be at least 1")

    @property
    def hop_size(self) -> int:
        return self.fft_size // HOP_DIVISOR

    @property
    def freq_bins(self) -> int:
        return self.fft_size // 2

    @classmethod
    def from_dict(cls, data: Dict) -> "SpectrogramParams":
        return cls(
            fft_size=int(data.get("fft_size", FFT_SIZE)),
            frames_per_yield=int(data.get("frames_per_yield", FRAMES_PER_YIELD)),
        )


@dataclass(frozen=True)
class RenderParams:
    db_range: float = DB_RANGE
    db_epsilon: float = DB_EPSILON
    freq_label_divisions: int = FREQ_LABEL_DIVISIONS
    time_label_divisions: int = TIME_LABEL_DIVISIONS
    label_font_size: int = LABEL_FONT_SIZE
    title_font_size: int = TITLE_FONT_SIZE

    def __post_init__(self):
        if self.db_range <= 0:
            raise ValueError("db_range must be positive")
        if self.freq_label_divisions < 1 or self.time_label_divisions < 1:
            raise ValueError("label divisions must be at least 1")

    @classmethod
    def from_dict(cls, data: Dict) -> "RenderParams":
        return cls(
            db_range=float(data.get("db_range", DB_RANGE)),
            db_epsilon=float(data.get("db_epsilon", DB_EPSILON)),
            freq_label_divisions=int(data.get("freq_label_divisions", FREQ_LABEL_DIVISIONS)),
            time_label_divisions=int(data.get("time_label_divisions", TIME_LABEL_DIVISIONS)),
            label_font_size=int(data.get("label_font_size", LABEL_FONT_SIZE)),
            title_font_size=int(data.get("title_font_size", TITLE_FONT_SIZE)),
        )


def load_config(path: Union[str, Path]) -> Tuple[SpectrogramParams, RenderParams]:
    """
    Read spectrogram and render parameters from a JSON file.
    Missing files and missing sections fall back to the defaults.
    """
    path = Path(path)
    if not path.exists():
        log.info("Config file %s not found, using defaults", path)
        return SpectrogramParams(), RenderParams()
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Config root in {path} must be an object")
    return (
        SpectrogramParams.from_dict(raw.get("spectrogram", {})),
        RenderParams.from_dict(raw.get("render", {})),
    )


def save_config(
    path: Union[str, Path],
    spectrogram: SpectrogramParams = SpectrogramParams(),
    render: RenderParams = RenderParams(),
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump({"spectrogram": asdict(spectrogram), "render": asdict(render)}, f, indent=2)
    log.info("Config saved to %s", path)
    return path
