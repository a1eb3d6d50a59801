"""
Positioning: stabilized GPS coordinates for visit submission

Provides:
- LocationSampler / acquire(): multi-sample averaging with retry and
  partial-failure semantics
- Position sources (the injected platform capability):
    - StaticSource: fixed coordinate
    - CSVFixSource: replay fixes (and errors) from CSV
    - SyntheticFixSource: Gaussian jitter around a point
    - UnsupportedSource: platform without positioning

Usage examples:
    from positioning.sampler import LocationSampler
    from positioning.sources import SyntheticFixSource
"""
