"""Prompt building and streaming test generation through Ollama."""

from .formatter import extract_code_block
from .generator import TestGenerator
from .ollama_client import ModelInfo, OllamaClient, StreamingChunk, StreamResult
from .prompt_builder import build_prompt

__all__ = [
    "ModelInfo",
    "OllamaClient",
    "StreamResult",
    "StreamingChunk",
    "TestGenerator",
    "build_prompt",
    "extract_code_block",
]
