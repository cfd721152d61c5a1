"""Structure analysis, statement classification and signature parsing."""

from .glsl_types import GLSLType
from .models import (
    DebugFunctionContext,
    DebugTarget,
    FunctionSignature,
    LoopSite,
    Parameter,
    ParameterMode,
    ParameterQualifier,
    VarInfo,
)
from .defaults import DefaultValueProvider
from .signature import SignatureParser
from .structure import BraceBalanceError, InstrumentationError, StructureAnalyzer
from .classifier import Assignment, Declaration, LineClassifier, NoMatch

__all__ = [
    'GLSLType',
    'DebugFunctionContext',
    'DebugTarget',
    'FunctionSignature',
    'LoopSite',
    'Parameter',
    'ParameterMode',
    'ParameterQualifier',
    'VarInfo',
    'DefaultValueProvider',
    'SignatureParser',
    'StructureAnalyzer',
    'InstrumentationError',
    'BraceBalanceError',
    'LineClassifier',
    'Declaration',
    'Assignment',
    'NoMatch',
]
