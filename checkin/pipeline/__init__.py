"""Pipeline primitives exposed as a convenience import."""

from .jsonl import RunJournal
from .match import compile_patterns, filter_paths
from .plugins import PluginPipeline

__all__ = [
    "PluginPipeline",
    "RunJournal",
    "compile_patterns",
    "filter_paths",
]
