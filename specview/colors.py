from typing import Tuple

import numpy as np

# black -> purple -> red -> orange -> yellow
GRADIENT_STOPS = np.array(
    [
        (0, 0, 0),
        (160, 32, 240),
        (255, 0, 0),
        (255, 107, 0),
        (255, 255, 0),
    ],
    dtype=np.float64,
)
SEGMENT_WIDTH = 0.25
SEGMENT_COUNT = len(GRADIENT_STOPS) - 1


def intensity_to_rgb(intensity) -> np.ndarray:
    """
    Map normalized intensities to uint8 RGB with shape intensity.shape + (3,).
    Channel values are truncated, not rounded.
    """
    values = np.asarray(intensity, dtype=np.float64)
    segment = np.clip(np.floor(values / SEGMENT_WIDTH), 0, SEGMENT_COUNT - 1).astype(np.intp)
    t = (values - segment * SEGMENT_WIDTH) * SEGMENT_COUNT
    start = GRADIENT_STOPS[segment]
    delta = GRADIENT_STOPS[segment + 1] - start
    rgb = np.floor(start + delta * t[..., np.newaxis])
    return np.clip(rgb, 0, 255).astype(np.uint8)


def color_for(intensity: float) -> Tuple[int, int, int]:
    r, g, b = intensity_to_rgb(float(intensity))
    return int(r), int(g), int(b)
