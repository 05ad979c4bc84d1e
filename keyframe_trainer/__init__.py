"""Keyframe tagging and gesture template training for skeleton recordings."""

__version__ = '0.3.0'
