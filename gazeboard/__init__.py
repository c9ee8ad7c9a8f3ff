"""
Gazeboard — single-switch scanning communication board.

Sustained upward gaze (or a switch press) → debounced begin/end events →
hierarchical menu scan → letters, words, requests and buffer actions.
Designed for users with locked-in syndrome who have one reliable signal.
"""

__version__ = "1.0.0"
__author__ = "Gazeboard Team"
