"""Phrasing rules, one module per family. Importing this package registers them all."""

from app.engine.rules import addition, background, fallback, modification, removal

__all__ = ["addition", "background", "fallback", "modification", "removal"]
