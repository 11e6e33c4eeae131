"""
Spectrogram viewer core.

Turns decoded PCM channels into Hamming-windowed FFT magnitude grids and
renders them as colored PIL images. Decoding, layout and download handling
live in the host modules (audio_loader, pipeline, app); the numeric core
never touches files.
"""
