from .debounce import DebouncedExtractor, ExtractionState
from .quick_add import AttachmentAnalyzer, AttachmentInput, DraftItem, QuickAddController
from .service import ExtractedItem, Extractor, ModelExtractor, ensure_title

__all__ = [
    "AttachmentAnalyzer",
    "AttachmentInput",
    "DebouncedExtractor",
    "DraftItem",
    "ExtractedItem",
    "ExtractionState",
    "Extractor",
    "ModelExtractor",
    "QuickAddController",
    "ensure_title",
]
