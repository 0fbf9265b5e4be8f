from draftsmith.outline.engine import OutlineEngine

__all__ = ["OutlineEngine"]
