import numpy as np
import pytest

from specview.colors import color_for, intensity_to_rgb


def test_gradient_endpoints():
    assert color_for(0.0) == (0, 0, 0)
    assert color_for(1.0) == (255, 255, 0)


@pytest.mark.parametrize(
    "intensity, expected",
    [
        (0.125, (80, 16, 120)),
        (0.25, (160, 32, 240)),
        (0.5, (255, 0, 0)),
        (0.625, (255, 53, 0)),
        (0.75, (255, 107, 0)),
    ],
)
def test_segment_colors(intensity, expected):
    assert color_for(intensity) == expected


@pytest.mark.parametrize("boundary", [0.25, 0.5, 0.75])
def test_continuous_at_segment_boundaries(boundary):
    below = np.array(color_for(np.nextafter(boundary, 0.0)))
    at = np.array(color_for(boundary))
    assert np.abs(below - at).max() <= 1


def test_channels_are_truncated():
    # t = 0.9988, so red is 159.8 before truncation
    assert color_for(0.2497) == (159, 31, 239)


def test_out_of_range_intensities_are_clamped():
    assert color_for(-0.5) == (0, 0, 0)
    assert color_for(1.7) == (255, 255, 0)


def test_vectorized_matches_scalar():
    values = np.linspace(0.0, 1.0, 101).reshape(101, 1)
    rgb = intensity_to_rgb(values)
    assert rgb.shape == (101, 1, 3)
    assert rgb.dtype == np.uint8
    for value, color in zip(values[:, 0], rgb[:, 0]):
        assert tuple(int(c) for c in color) == color_for(value)
