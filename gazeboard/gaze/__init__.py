"""Attention signal: sensor adapters and the debounced classifier."""
