"""
Data model for shader debug instrumentation.

All values are immutable (frozen dataclasses) and derived fresh for each
instrumentation call; nothing here is cached between calls.

Line numbers are 0-indexed positions in the source's line sequence.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from .glsl_types import GLSLType


class ParameterQualifier(Enum):
    """Storage qualifier of a function parameter."""
    IN = 'in'
    OUT = 'out'
    INOUT = 'inout'


class ParameterMode(Enum):
    """How a debug input is fed when synthesizing a call."""
    UV = 'uv'          # swept across the screen
    CUSTOM = 'custom'  # fixed literal value


@dataclass(frozen=True)
class Parameter:
    """
    A function parameter together with the values it can be fed.

    Attributes:
        name: Parameter name
        type: GLSL type keyword as written in the signature
        qualifier: in / out / inout
        mode: Which value feeds the synthesized call
        default_value: Literal used in custom mode
        uv_value: Screen-coordinate derived value, None where not meaningful
        centered_uv_value: Centered screen-coordinate value, None where not meaningful
    """
    name: str
    type: str
    qualifier: ParameterQualifier = ParameterQualifier.IN
    mode: ParameterMode = ParameterMode.CUSTOM
    default_value: Optional[str] = None
    uv_value: Optional[str] = None
    centered_uv_value: Optional[str] = None

    @property
    def glsl_type(self) -> GLSLType:
        return GLSLType.parse(self.type)

    @property
    def is_output_only(self) -> bool:
        return self.qualifier == ParameterQualifier.OUT

    @property
    def value(self) -> Optional[str]:
        """Argument expression for the current mode."""
        if self.mode == ParameterMode.UV and self.uv_value is not None:
            return self.uv_value
        return self.default_value

    def with_mode(self, mode: ParameterMode) -> 'Parameter':
        return replace(self, mode=mode)


@dataclass(frozen=True)
class FunctionSignature:
    """
    A parsed function header.

    Attributes:
        name: Function name
        return_type: Return type keyword
        parameters: All parameters in declaration order, out parameters included
        start_line: Line of the header
        end_line: Line of the closing brace, None when the body is unterminated
    """
    name: str
    return_type: str
    parameters: Tuple[Parameter, ...] = ()
    start_line: int = 0
    end_line: Optional[int] = None

    @property
    def visible_parameters(self) -> Tuple[Parameter, ...]:
        """Parameters a caller can configure; write-only out parameters are hidden."""
        return tuple(p for p in self.parameters if not p.is_output_only)

    @property
    def returns_value(self) -> bool:
        return GLSLType.parse(self.return_type) != GLSLType.VOID


@dataclass(frozen=True)
class LoopSite:
    """
    A for/while loop inside a function.

    Indices are assigned in order of first encounter across the whole
    function, so index 0 is the first loop header in the body and nested
    loops always carry a larger index than the loops around them.

    Attributes:
        header_line: Line where the loop keyword appears
        header_text: 'for (...)' / 'while (...)' with whitespace collapsed
        index: Encounter order within the function
        end_line: Line holding the closing brace (or end of a braceless body)
        paren_close: (line, column) of the header's closing parenthesis
        brace: (line, column) of the body's opening brace, None for braceless loops
        body_end: (line, column) of the last character of the body
        keyword: (line, column) of the 'for' / 'while' keyword
        bare_body: The loop is itself the unbraced body of an if/else/for/while/do
    """
    header_line: int
    header_text: str
    index: int
    end_line: Optional[int] = None
    paren_close: Optional[Tuple[int, int]] = None
    brace: Optional[Tuple[int, int]] = None
    body_end: Optional[Tuple[int, int]] = None
    keyword: Optional[Tuple[int, int]] = None
    bare_body: bool = False

    @property
    def braced(self) -> bool:
        return self.brace is not None

    def contains(self, line: int, column: Optional[int] = None) -> bool:
        """
        True if line (or the position line:column) lies inside the loop body.

        With a column, positions are compared against the body's delimiters,
        so a statement sharing a line with the closing brace counts as inside.
        """
        if column is not None and self.paren_close is not None:
            position = (line, column)
            start = self.brace if self.braced else self.paren_close
            if self.body_end is None:
                return position > start
            if self.braced:
                return start < position < self.body_end
            return start < position <= self.body_end

        if self.end_line is None:
            return line > self.header_line
        if self.braced:
            return self.brace[0] < line < self.end_line
        if self.header_line == self.end_line:
            return line == self.header_line
        return self.header_line < line <= self.end_line


@dataclass(frozen=True)
class VarInfo:
    """A variable to visualize."""
    name: str
    type: str

    @property
    def glsl_type(self) -> GLSLType:
        return GLSLType.parse(self.type)


@dataclass(frozen=True)
class DebugTarget:
    """
    Everything the generator needs to know about the line being debugged.

    A missing function_signature means the line is at global scope, where
    nothing can be instrumented.
    """
    function_signature: Optional[FunctionSignature]
    enclosing_loops: Tuple[LoopSite, ...] = ()
    target_line: int = 0

    @property
    def is_valid(self) -> bool:
        return self.function_signature is not None


@dataclass(frozen=True)
class DebugFunctionContext:
    """
    Summary of the function around a line, for a debug panel.

    Attributes:
        function_name: Enclosing function
        return_type: Its return type
        parameters: Configurable (non-out) parameters with their default values
        is_function: False when the line is inside the entry point
        loops: Loops enclosing the line, outermost first
    """
    function_name: str
    return_type: str
    parameters: Tuple[Parameter, ...] = ()
    is_function: bool = True
    loops: Tuple[LoopSite, ...] = field(default_factory=tuple)
