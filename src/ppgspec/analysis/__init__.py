"""
Spectral analysis of multi-epoch PPG recordings.

Modules (leaves first): intervals, normalization, spectrogram, stitching,
event_windows, fwhm, bouts, beats.
"""
