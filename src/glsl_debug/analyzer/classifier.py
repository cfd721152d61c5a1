"""
Line Classifier.

Decides what the statement touching a target line does:

1. Declaration with initializer:  vec3 col = vec3(1.0);
2. Assignment (plain or compound): col = ...;  col.x *= 2.0;
3. Anything else:                  NoMatch

Matchers run in that order and the first one to recognize the statement
wins. A statement may span several lines; every line of it classifies to
the same result, and the result's end_line is the line carrying the
terminating ';' (where generated code gets inserted).

Assignments need the variable's type to build a visualization, so the
type is looked up in prior declarations (enclosing scopes only), then in
the function's parameters, then at global scope. An assignment whose type
cannot be resolved is NoMatch.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..config import DebugConfig, DEFAULT_CONFIG
from .glsl_types import TYPE_PATTERN, VARIABLE_TYPE_KEYWORDS
from .models import FunctionSignature, VarInfo
from .signature import CONTROL_KEYWORDS
from .source_text import strip_comments

logger = logging.getLogger(__name__)

RELATIONAL_OPERATORS = ('==', '!=', '<=', '>=')

_QUALIFIERS = r'(?:(?:const|highp|mediump|lowp|uniform|precise)\s+)*'

DECLARATION_PATTERN = re.compile(
    r'^\s*' + _QUALIFIERS + r'(' + TYPE_PATTERN + r')\s+([A-Za-z_]\w*)\s*=(?!=)(.*);$',
    re.DOTALL,
)

ASSIGNMENT_PATTERN = re.compile(
    r'^\s*([A-Za-z_]\w*)'                      # variable
    r'((?:\s*\.\s*[A-Za-z_]\w*|\s*\[[^\]]*\])*)'  # swizzle / member / index
    r'\s*([+\-*/]?=)(.*);$',
    re.DOTALL,
)

RETURN_PATTERN = re.compile(r'^\s*return\b(.*);$', re.DOTALL)

# 'if (...)', '} else if (...)', 'for (...)', 'while (...)' or a bare 'else'
_CONTROL_HEADER = re.compile(r'^(?:\}\s*)?(?:else\b\s*)?(?:(?:if|for|while)\s*\(.*\))?$')


def declaration_of(name: str) -> re.Pattern:
    """Pattern finding a declaration of name, with or without initializer."""
    return re.compile(
        r'(?<![\w.])(' + TYPE_PATTERN + r')\s+'
        r'(?:[A-Za-z_]\w*\s*(?:=[^,;()]*)?,\s*)*'
        + re.escape(name) + r'\s*(?:[=;,)\[]|$)'
    )


# ============================================================================
# Classification results
# ============================================================================

@dataclass(frozen=True)
class Statement:
    """A statement recovered around a target line, comments removed."""
    text: str
    start_line: int
    end_line: int
    end_column: int = -1


@dataclass(frozen=True)
class Declaration:
    """Declaration with initializer of a variable of a recognized type."""
    name: str
    type: str
    start_line: int
    end_line: int

    @property
    def var_info(self) -> VarInfo:
        return VarInfo(self.name, self.type)


@dataclass(frozen=True)
class Assignment:
    """Plain or compound assignment to a variable whose type was resolved."""
    name: str
    type: str
    start_line: int
    end_line: int
    operator: str = '='

    @property
    def var_info(self) -> VarInfo:
        return VarInfo(self.name, self.type)


@dataclass(frozen=True)
class NoMatch:
    """The line cannot be visualized."""
    reason: str = ''

    @property
    def var_info(self) -> None:
        return None


@dataclass(frozen=True)
class ReturnStatement:
    """A 'return <expr>;' statement."""
    expression: str
    start_line: int
    end_line: int


Classification = Union[Declaration, Assignment, NoMatch]


# ============================================================================
# Matchers
# ============================================================================

class DeclarationMatcher:
    """Matches '<type> <name> = <expr>;' where <type> is a recognized keyword."""
    name = 'declaration'

    def match(self, statement: Statement, classifier: 'LineClassifier', code, function) -> Optional[Declaration]:
        match = DECLARATION_PATTERN.match(statement.text)
        if not match:
            return None
        return Declaration(
            name=match.group(2),
            type=match.group(1),
            start_line=statement.start_line,
            end_line=statement.end_line,
        )


class AssignmentMatcher:
    """
    Matches '<name>[.member|[i]] <op> <expr>;' with op in = += -= *= /=.

    The whole variable is visualized even when only a component is written.
    """
    name = 'assignment'

    def match(self, statement: Statement, classifier: 'LineClassifier', code, function) -> Optional[Assignment]:
        match = ASSIGNMENT_PATTERN.match(statement.text)
        if not match:
            return None

        name, operator, rest = match.group(1), match.group(3), match.group(4)
        if name in CONTROL_KEYWORDS or name in VARIABLE_TYPE_KEYWORDS:
            return None
        # 'x == y' would otherwise read as '=' followed by '= y'
        if any((operator + rest.lstrip()[:1]).startswith(op) for op in RELATIONAL_OPERATORS):
            return None

        var_type = classifier.resolve_type(code, name, statement.start_line, function)
        if var_type is None:
            logger.debug("No declaration found for '%s'", name)
            return None

        return Assignment(
            name=name,
            type=var_type,
            start_line=statement.start_line,
            end_line=statement.end_line,
            operator=operator,
        )


class LineClassifier:
    """
    Classifies the statement touching a target line.

    Usage:
        classifier = LineClassifier()
        result = classifier.classify(lines, 10)
        if not isinstance(result, NoMatch):
            print(result.var_info)
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG, matchers: Optional[List] = None):
        self.config = config
        self.matchers = matchers if matchers is not None else [
            DeclarationMatcher(),
            AssignmentMatcher(),
        ]

    def classify(
        self,
        lines: Sequence[str],
        target_line: int,
        target_line_text: Optional[str] = None,
        function: Optional[FunctionSignature] = None,
    ) -> Classification:
        """
        Classify the statement at target_line.

        Args:
            lines: Source lines
            target_line: Line to classify
            target_line_text: Editor text of the line, used to correct line drift
            function: Enclosing function, bounds the type lookup

        Returns:
            Declaration, Assignment or NoMatch
        """
        target_line = self.resolve_target_line(lines, target_line, target_line_text)
        if target_line is None:
            return NoMatch('line out of range')

        code = strip_comments(lines)
        statement = self.find_statement(code, target_line)
        if statement is None:
            return NoMatch('no terminated statement')

        for matcher in self.matchers:
            result = matcher.match(statement, self, code, function)
            if result is not None:
                logger.debug("Line %d matched %s: %s", target_line, matcher.name, result)
                return result

        return NoMatch('not a declaration or assignment')

    def resolve_target_line(
        self,
        lines: Sequence[str],
        target_line: int,
        target_line_text: Optional[str] = None,
    ) -> Optional[int]:
        """
        Correct a target line that drifted from the text the editor shows.

        When lines[target_line] does not match target_line_text (ignoring
        surrounding whitespace), the nearest line that does match is used.
        Without any match the given line is kept if it is in range.

        Returns:
            Line index, or None when out of range and not found by text
        """
        in_range = 0 <= target_line < len(lines)
        if target_line_text is None or not target_line_text.strip():
            return target_line if in_range else None

        wanted = target_line_text.strip()
        if in_range and lines[target_line].strip() == wanted:
            return target_line

        candidates = [i for i, line in enumerate(lines) if line.strip() == wanted]
        if candidates:
            resolved = min(candidates, key=lambda i: (abs(i - target_line), i))
            logger.debug("Target line drifted from %d to %d", target_line, resolved)
            return resolved

        return target_line if in_range else None

    def find_return(self, lines: Sequence[str], target_line: int) -> Optional[ReturnStatement]:
        """
        Recognize a 'return <expr>;' statement touching target_line.

        Returns:
            ReturnStatement, or None for anything else (including a bare 'return;')
        """
        if not 0 <= target_line < len(lines):
            return None
        code = strip_comments(lines)
        statement = self.find_statement(code, target_line)
        if statement is None:
            return None
        match = RETURN_PATTERN.match(statement.text)
        if not match or not match.group(1).strip():
            return None
        return ReturnStatement(
            expression=' '.join(match.group(1).split()),
            start_line=statement.start_line,
            end_line=statement.end_line,
        )

    # ========================================================================
    # Statement spans
    # ========================================================================

    def find_statement(self, code: Sequence[str], line: int) -> Optional[Statement]:
        """
        Recover the full statement touching line.

        Walks backward while the previous line does not end a statement,
        then forward tracking parenthesis depth to the terminating ';'.

        Args:
            code: Comment-free source lines
            line: Any line of the statement

        Returns:
            Statement, or None for a blank line or if no ';' terminates
            it before a brace
        """
        if not code[line].strip():
            return None

        start = self._statement_start(code, line)
        end, end_col = self._statement_end(code, start)
        if end is None or end < line:
            return None

        parts = list(code[start:end])
        parts.append(code[end][:end_col + 1])
        text = ' '.join(part.strip() for part in parts)
        return Statement(text=text, start_line=start, end_line=end, end_column=end_col)

    def statement_end_line(self, lines: Sequence[str], line: int) -> Optional[int]:
        """Line carrying the ';' that terminates the statement touching line."""
        statement = self.find_statement(strip_comments(lines), line)
        return statement.end_line if statement is not None else None

    def statement_end_position(self, lines: Sequence[str], line: int) -> Optional[Tuple[int, int]]:
        """(line, column) of the ';' that terminates the statement touching line."""
        if not 0 <= line < len(lines):
            return None
        statement = self.find_statement(strip_comments(lines), line)
        if statement is None:
            return None
        return statement.end_line, statement.end_column

    def _statement_start(self, code: Sequence[str], line: int) -> int:
        start = line
        lowest = max(0, line - self.config.max_statement_lines)
        for prev in range(line - 1, lowest - 1, -1):
            text = code[prev].strip()
            if not text or text.startswith('#') or text[-1] in ';{}':
                break
            if _CONTROL_HEADER.match(text) and text.count('(') == text.count(')'):
                break
            start = prev
        return start

    def _statement_end(self, code: Sequence[str], start: int):
        depth = 0
        last = min(len(code), start + self.config.max_statement_lines)
        for i in range(start, last):
            for col, ch in enumerate(code[i]):
                if ch in '([':
                    depth += 1
                elif ch in ')]':
                    depth -= 1
                elif depth <= 0 and ch == ';':
                    return i, col
                elif depth <= 0 and ch in '{}':
                    return None, None
        return None, None

    # ========================================================================
    # Type resolution
    # ========================================================================

    def resolve_type(
        self,
        code: Sequence[str],
        name: str,
        before_line: int,
        function: Optional[FunctionSignature] = None,
    ) -> Optional[str]:
        """
        Find the declared type of name as seen from before_line.

        Searches, in order: declarations in enclosing scopes of the
        function body (closed sibling blocks are skipped), the function's
        parameters, then declarations at global scope.

        Args:
            code: Comment-free source lines
            name: Variable name
            before_line: First line of the statement using the variable
            function: Enclosing function, if known

        Returns:
            Type keyword, or None if no declaration is visible
        """
        pattern = declaration_of(name)
        body_start = function.start_line if function is not None else 0

        depth = 0
        for i in range(before_line - 1, body_start - 1, -1):
            line = code[i]
            if depth == 0:
                match = pattern.search(line)
                if match:
                    return match.group(1)
            for ch in reversed(line):
                if ch == '}':
                    depth += 1
                elif ch == '{':
                    depth = max(0, depth - 1)

        if function is not None:
            for parameter in function.parameters:
                if parameter.name == name:
                    return parameter.type

            depth = 0
            for i in range(0, function.start_line):
                line = code[i]
                if depth == 0:
                    match = pattern.search(line)
                    if match:
                        return match.group(1)
                depth = max(0, depth + line.count('{') - line.count('}'))

        return None
