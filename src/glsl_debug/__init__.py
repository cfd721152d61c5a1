"""
GLSL debug instrumentation.

Rewrites a shader so that its output color visualizes the value computed
on one chosen line.
"""

from .config import DebugConfig, DEFAULT_CONFIG
from .analyzer.structure import BraceBalanceError, InstrumentationError
from .codegen.visualization import NormalizeMode, VisualizationOptions
from .instrumentation.shader_debugger import ShaderDebugger, instrument

__all__ = [
    'DebugConfig',
    'DEFAULT_CONFIG',
    'InstrumentationError',
    'BraceBalanceError',
    'NormalizeMode',
    'VisualizationOptions',
    'ShaderDebugger',
    'instrument',
]
