"""Draftsmith: outline structuring and spec-driven section drafting."""

__version__ = "0.1.0"
