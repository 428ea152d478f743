"""Post rendering and indexing pipeline."""

__version__ = "0.1.0"

# Domain entities
from postkit.domain.document import Document, DocumentSummary

# Errors
from postkit.errors import (
    DuplicateIdentifier,
    InvalidDocument,
    MalformedDocument,
    MissingRequiredField,
    PostkitError,
    UnparseableField,
    UnterminatedDirective,
    UnterminatedMetadata,
)

# Storage adapters
from postkit.storage.corpus import CorpusIndex
from postkit.storage.docstore import DocStore

# Pipeline components
from postkit.config import AppConfig, load_config
from postkit.pipeline.directives import DirectiveExpander
from postkit.pipeline.frontmatter import parse_front_matter, parse_source
from postkit.pipeline.pipeline import RenderPipeline, run_build

# CLI
from postkit.cli import main

__all__ = [
    # Domain
    "Document",
    "DocumentSummary",
    # Errors
    "PostkitError",
    "MalformedDocument",
    "UnterminatedMetadata",
    "MissingRequiredField",
    "UnterminatedDirective",
    "InvalidDocument",
    "DuplicateIdentifier",
    "UnparseableField",
    # Storage
    "CorpusIndex",
    "DocStore",
    # Pipeline
    "AppConfig",
    "load_config",
    "DirectiveExpander",
    "parse_front_matter",
    "parse_source",
    "RenderPipeline",
    "run_build",
    # CLI
    "main",
]
