"""Notable Text Classifier -- Naive Bayes triage of documents found during ingest."""

__version__ = "0.1.0"

from .analyzer import NotabilityAnalyzer
from .classifier import (
    Categorizer,
    ClassificationMetrics,
    NaiveBayesModel,
    NaiveBayesTrainer,
    compute_metrics,
    load_categorizer,
)
from .config import ClassifierConfig
from .exceptions import (
    CorruptModelError,
    InitializationError,
    InitReaderError,
    ModelNotFoundError,
    NoTextExtractorFound,
    NotableClassifierError,
)
from .formats import SUPPORTED_FORMATS, FileTypeDetector, FormatGate
from .models import ClassificationResult, Label, SourceFile
from .pipeline import TokenPipeline
from .serialization import PlainTextModelReader, PlainTextModelWriter
from .store import ModelStore
from .tokenizer import SimpleTokenizer, Tokenizer

__all__ = [
    # Core
    "NotabilityAnalyzer",
    "ClassifierConfig",
    "SourceFile",
    "Label",
    "ClassificationResult",
    # Format gate
    "FormatGate",
    "FileTypeDetector",
    "SUPPORTED_FORMATS",
    # Tokens
    "TokenPipeline",
    "Tokenizer",
    "SimpleTokenizer",
    # Model
    "NaiveBayesModel",
    "NaiveBayesTrainer",
    "Categorizer",
    "load_categorizer",
    "ClassificationMetrics",
    "compute_metrics",
    # Persistence
    "ModelStore",
    "PlainTextModelReader",
    "PlainTextModelWriter",
    # Errors
    "NotableClassifierError",
    "InitializationError",
    "InitReaderError",
    "NoTextExtractorFound",
    "ModelNotFoundError",
    "CorruptModelError",
]
