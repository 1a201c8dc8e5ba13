"""Canvas module - career canvases and their link to a plan."""

from .linker import CanvasPlanLinker
from .models import Canvas
from .store import CanvasStore

__all__ = [
	"Canvas",
	"CanvasStore",
	"CanvasPlanLinker",
]
