"""
Test helper utilities for ppgspec testing.

This module provides reusable utilities for:
- Generating synthetic PPG signals and multi-epoch recordings
- Building spectrograms and spectra with known shapes
- Writing CSV inputs for CLI tests
"""
