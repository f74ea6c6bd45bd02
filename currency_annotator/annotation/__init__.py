"""
Text annotation and restoration of fragments
"""

from .fragment_store import FragmentStore
from .text_annotator import TextAnnotator
from .engine import ConversionEngine, EngineContext

__all__ = ["FragmentStore", "TextAnnotator", "ConversionEngine", "EngineContext"]
