"""
Field Sales client test suite

Structure:
- unit/: Unit tests for individual components (sampler, sources, backend client,
  visit flow, config, CLI). No network, no real GPS, no real sleeping.
"""
