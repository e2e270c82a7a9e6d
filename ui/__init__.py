"""
ui/__init__.py

Presentation adapter: reads ValidationState snapshots, owns no logic.
"""

from .instructions import instruction_for
from .overlay import blank_canvas, debug_lines, draw_overlay

__all__ = ["instruction_for", "blank_canvas", "debug_lines", "draw_overlay"]
