"""Rendering pipeline components."""

from postkit.pipeline.builder import BuildSettings, build_document
from postkit.pipeline.directives import DirectiveExpander, expand
from postkit.pipeline.frontmatter import ParsedSource, compose_source, parse_front_matter, parse_source
from postkit.pipeline.pipeline import RenderPipeline, run_build
from postkit.pipeline.signature import compute_signature, should_process

__all__ = [
    # Stages
    "ParsedSource",
    "parse_source",
    "parse_front_matter",
    "compose_source",
    "DirectiveExpander",
    "expand",
    "BuildSettings",
    "build_document",
    # Orchestration
    "RenderPipeline",
    "run_build",
    # Functions
    "compute_signature",
    "should_process",
]
