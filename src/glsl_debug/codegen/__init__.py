"""Instrumented shader generation."""

from .visualization import (
    NO_POST_PROCESSING,
    NormalizeMode,
    TypeVisualizationRule,
    VISUALIZATION_RULES,
    VisualizationOptions,
)
from .code_generator import CodeGenerator, DefaultArguments

__all__ = [
    'NO_POST_PROCESSING',
    'NormalizeMode',
    'TypeVisualizationRule',
    'VISUALIZATION_RULES',
    'VisualizationOptions',
    'CodeGenerator',
    'DefaultArguments',
]
