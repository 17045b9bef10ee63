"""
recall - spaced-repetition scheduling core.

Subpackages:
- recall.sm2: pure SM-2 transition function and its persisted state
- recall.analytics: read-only learning statistics
"""

__version__ = "0.1.0"
