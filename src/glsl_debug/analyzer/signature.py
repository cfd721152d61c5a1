"""
Function Signature Parser.

Extracts the return type, name and parameter list of a function header.
Headers may span several lines:

    vec2 sdCutHollowSphere( vec3 p, float r,
                            float h, float t )
    {

Parameters are split on top-level commas only, so array sizes or
macro-like expressions inside parentheses never split a parameter.
"""

import re
from typing import List, Optional, Sequence

from ..config import DebugConfig, DEFAULT_CONFIG
from .defaults import DefaultValueProvider
from .glsl_types import PRECISION_QUALIFIERS
from .models import FunctionSignature, Parameter, ParameterQualifier
from .source_text import find_closing_paren, split_top_level, strip_comments


# Optional qualifiers, return type, name, opening parenthesis
HEADER_PATTERN = re.compile(
    r'^\s*(?:(?:const|highp|mediump|lowp|precise)\s+)*'
    r'([A-Za-z_]\w*)\s+([A-Za-z_]\w*)\s*\('
)

# Words that can precede '(' at statement start without being a function
CONTROL_KEYWORDS = frozenset({
    'if', 'for', 'while', 'switch', 'return', 'else', 'do', 'case',
})

_PARAM_PATTERN = re.compile(
    r'^(?:(in|out|inout)\s+)?([A-Za-z_]\w*)\s+([A-Za-z_]\w*)\s*(\[[^\]]*\])?$'
)


class SignatureParser:
    """
    Parses function headers into FunctionSignature values.

    Usage:
        parser = SignatureParser()
        signature = parser.parse(lines, header_line)
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG):
        self.config = config
        self.values = DefaultValueProvider(config)

    def parse(
        self,
        lines: Sequence[str],
        header_line: int,
        end_line: Optional[int] = None,
    ) -> Optional[FunctionSignature]:
        """
        Parse the function header starting at header_line.

        Args:
            lines: Source lines
            header_line: Line holding the return type and name
            end_line: Line of the body's closing brace, if already known

        Returns:
            FunctionSignature, or None if the line is not a function header
        """
        code = strip_comments(lines)
        if not 0 <= header_line < len(code):
            return None

        match = HEADER_PATTERN.match(code[header_line])
        if not match:
            return None

        return_type, name = match.group(1), match.group(2)
        if return_type in CONTROL_KEYWORDS or name in CONTROL_KEYWORDS:
            return None

        params_text = self._parameter_text(code, header_line, match.end() - 1)
        if params_text is None:
            return None

        return FunctionSignature(
            name=name,
            return_type=return_type,
            parameters=tuple(self.parse_parameters(params_text)),
            start_line=header_line,
            end_line=end_line,
        )

    def parse_parameters(self, params_text: str) -> List[Parameter]:
        """
        Parse the text between a header's parentheses.

        Each parameter reads as '[qualifier] type name'; the qualifier
        defaults to 'in'. A lone 'void' means no parameters.

        Args:
            params_text: Parameter list without the surrounding parentheses

        Returns:
            Parameters in declaration order
        """
        if not params_text.strip() or params_text.strip() == 'void':
            return []

        parameters = []
        for token in split_top_level(params_text):
            parsed = self._parse_parameter(token)
            if parsed is not None:
                parameters.append(parsed)
        return parameters

    def _parse_parameter(self, token: str) -> Optional[Parameter]:
        words = [w for w in token.split() if w not in PRECISION_QUALIFIERS and w != 'const']
        match = _PARAM_PATTERN.match(' '.join(words))
        if not match:
            return None

        qualifier = ParameterQualifier(match.group(1) or 'in')
        type_name = match.group(2)
        if match.group(4):
            type_name += match.group(4).replace(' ', '')
        return self.values.make_parameter(match.group(3), type_name, qualifier)

    def _parameter_text(self, code: Sequence[str], header_line: int, open_col: int) -> Optional[str]:
        """Collect the parameter list, following it across lines if needed."""
        last = min(len(code), header_line + self.config.max_statement_lines)
        text = '\n'.join(code[header_line:last])
        close = find_closing_paren(text, open_col)
        if close == -1:
            return None
        return ' '.join(text[open_col + 1:close].split())
