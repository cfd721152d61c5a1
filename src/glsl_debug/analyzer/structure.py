"""
Structure Analyzer.

Recovers the coarse structure of a shader without parsing it: where each
function starts and ends, which for/while loops a line sits in, and how
many braces are still open at the end of a truncated function.

Design:
- Comments are blanked first (see source_text.strip_comments)
- Brace and parenthesis depth counting, no grammar
- Scans that cross line boundaries work on the flattened text

Usage:
    analyzer = StructureAnalyzer()
    function = analyzer.find_enclosing_function(lines, line)
    loops = analyzer.find_enclosing_loops(lines, function.start_line, line)
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from ..config import DebugConfig, DEFAULT_CONFIG
from .models import FunctionSignature, LoopSite
from .signature import CONTROL_KEYWORDS, HEADER_PATTERN, SignatureParser
from .source_text import FlatText, brace_delta, find_closing_paren, strip_comments

logger = logging.getLogger(__name__)

LOOP_KEYWORD = re.compile(r'(for|while)\s*\(')


class InstrumentationError(Exception):
    """Raised when the instrumentation engine detects an internal inconsistency."""
    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line is not None:
            super().__init__(f"{message} at line {line + 1}")
        else:
            super().__init__(message)


class BraceBalanceError(InstrumentationError):
    """
    Raised when lines close more braces than they open.

    Generated code is balanced, so from instrument() this means the input
    source itself has a stray '}'.
    """


def _next_significant(text: str, pos: int) -> int:
    """Index of the next non-whitespace character at or after pos, -1 if none."""
    while pos < len(text):
        if not text[pos].isspace():
            return pos
        pos += 1
    return -1


def _is_word_start(text: str, pos: int) -> bool:
    return pos == 0 or not (text[pos - 1].isalnum() or text[pos - 1] == '_')


def _previous_significant(text: str, pos: int) -> int:
    """Index of the last non-whitespace character before pos, -1 if none."""
    pos -= 1
    while pos >= 0 and text[pos].isspace():
        pos -= 1
    return pos


def _is_unbraced_body(text: str, pos: int) -> bool:
    """
    True if the statement starting at pos is the whole body of a preceding
    if (...), for (...), while (...), else or do.
    """
    prev = _previous_significant(text, pos)
    if prev == -1:
        return False

    if text[prev] == ')':
        depth = 0
        for open_pos in range(prev, -1, -1):
            if text[open_pos] == ')':
                depth += 1
            elif text[open_pos] == '(':
                depth -= 1
                if depth == 0:
                    break
        else:
            return False
        return re.search(r'(?<![\w.])(?:if|for|while)\s*$', text[:open_pos]) is not None

    return re.search(r'(?<![\w.])(?:else|do)$', text[:prev + 1]) is not None


class StructureAnalyzer:
    """
    Function, loop and brace structure of GLSL source lines.

    All methods take the source as a sequence of lines and never modify it.
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG):
        self.config = config
        self.signature_parser = SignatureParser(config)

    # ========================================================================
    # Functions
    # ========================================================================

    def find_functions(self, lines: Sequence[str]) -> List[FunctionSignature]:
        """
        Find every function definition at global scope.

        Prototypes (headers followed by ';') are skipped.

        Args:
            lines: Source lines

        Returns:
            Signatures in source order; end_line is None for a body that never closes
        """
        code = strip_comments(lines)
        flat = FlatText(code)
        functions = []
        depth = 0
        i = 0

        while i < len(code):
            line = code[i]
            if depth == 0:
                match = HEADER_PATTERN.match(line)
                if match and match.group(1) not in CONTROL_KEYWORDS and match.group(2) not in CONTROL_KEYWORDS:
                    brace_pos = self._find_body_brace(flat, flat.line_starts[i] + match.end() - 1)
                    if brace_pos is not None:
                        end_line = self._find_block_end(flat, brace_pos)
                        signature = self.signature_parser.parse(lines, i, end_line)
                        if signature is not None:
                            functions.append(signature)
                            if end_line is None:
                                break
                            i = end_line + 1
                            continue

            depth = max(0, depth + brace_delta(line))
            i += 1

        return functions

    def find_enclosing_function(self, lines: Sequence[str], line: int) -> Optional[FunctionSignature]:
        """
        Find the function whose header or body contains line.

        Args:
            lines: Source lines
            line: Target line

        Returns:
            FunctionSignature, or None when the line is at global scope
        """
        for function in self.find_functions(lines):
            end = function.end_line if function.end_line is not None else len(lines) - 1
            if function.start_line <= line <= end:
                return function
            if function.start_line > line:
                break
        return None

    def is_entry_point(self, signature: Optional[FunctionSignature]) -> bool:
        """True if the signature is the per-pixel entry point."""
        return signature is not None and signature.name == self.config.entry_point

    def _find_body_brace(self, flat: FlatText, open_paren: int) -> Optional[int]:
        close = find_closing_paren(flat.text, open_paren)
        if close == -1:
            return None
        after = _next_significant(flat.text, close + 1)
        if after == -1 or flat.text[after] != '{':
            return None
        return after

    def _find_block_end(self, flat: FlatText, brace_pos: int) -> Optional[int]:
        depth = 0
        for pos in range(brace_pos, len(flat.text)):
            ch = flat.text[pos]
            if ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    return flat.line_of(pos)
        return None

    # ========================================================================
    # Loops
    # ========================================================================

    def find_loops(self, lines: Sequence[str], function_start: int) -> List[LoopSite]:
        """
        Find all for/while loops in the function starting at function_start.

        Loops are indexed in order of first encounter. Braceless loops
        ('for (...) x += 1.0;') end at the first ';' at their own depth,
        or at the '}' that closes a braced body nested directly in them.
        The 'while (...)' tail of a do-while is not a loop header.

        Args:
            lines: Source lines
            function_start: Header line of the function

        Returns:
            LoopSite list ordered by index
        """
        code = strip_comments(lines)
        flat = FlatText(code[function_start:], function_start)
        text = flat.text

        records: List[Dict] = []
        braced_stack = []     # (record, depth inside its body)
        braceless_stack = []  # (record, depth of its header)
        awaiting_brace = None
        depth = 0
        paren = 0
        started = False
        pos = 0

        while pos < len(text):
            ch = text[pos]

            if ch == '{':
                depth += 1
                started = True
                if awaiting_brace is not None:
                    awaiting_brace['brace'] = flat.locate(pos)
                    braced_stack.append((awaiting_brace, depth))
                    awaiting_brace = None
            elif ch == '}':
                if braced_stack and braced_stack[-1][1] == depth:
                    record, _ = braced_stack.pop()
                    record['end_line'] = flat.line_of(pos)
                    record['body_end'] = flat.locate(pos)
                depth -= 1
                self._close_braceless(braceless_stack, depth, flat, pos)
                if started and depth <= 0:
                    break
            elif ch == '(':
                paren += 1
            elif ch == ')':
                paren -= 1
            elif ch == ';' and paren == 0:
                self._close_braceless(braceless_stack, depth, flat, pos)
            elif started and paren == 0 and ch in 'fw' and _is_word_start(text, pos):
                match = LOOP_KEYWORD.match(text, pos)
                if match:
                    close = find_closing_paren(text, match.end() - 1)
                    if close == -1:
                        break
                    after = _next_significant(text, close + 1)
                    if after != -1 and text[after] == ';':
                        # do { ... } while (cond);
                        pos = close + 1
                        continue

                    record = {
                        'header_line': flat.line_of(pos),
                        'header_text': ' '.join(text[pos:close + 1].split()),
                        'index': len(records),
                        'end_line': None,
                        'paren_close': flat.locate(close),
                        'brace': None,
                        'body_end': None,
                        'keyword': flat.locate(pos),
                        'bare_body': _is_unbraced_body(text, pos),
                    }
                    records.append(record)
                    if after != -1 and text[after] == '{':
                        awaiting_brace = record
                    else:
                        braceless_stack.append((record, depth))
                    pos = close + 1
                    continue

            pos += 1

        return [LoopSite(**record) for record in records]

    def _close_braceless(self, stack, depth: int, flat: FlatText, pos: int):
        while stack and stack[-1][1] == depth:
            record, _ = stack.pop()
            record['end_line'] = flat.line_of(pos)
            record['body_end'] = flat.locate(pos)

    def find_enclosing_loops(
        self,
        lines: Sequence[str],
        function_start: int,
        line: int,
        column: Optional[int] = None,
    ) -> List[LoopSite]:
        """
        Loops whose body contains line, outermost first.

        Loops that close before line are excluded, but still count toward
        the indices of the loops that follow them.

        Args:
            lines: Source lines
            function_start: Header line of the enclosing function
            line: Target line
            column: Column on line, e.g. of the ';' ending the target
                statement; compares positions instead of whole lines

        Returns:
            Enclosing LoopSite list
        """
        loops = [loop for loop in self.find_loops(lines, function_start) if loop.contains(line, column)]
        logger.debug("Line %d is inside %d loop(s)", line, len(loops))
        return loops

    # ========================================================================
    # Braces
    # ========================================================================

    def close_open_braces(self, lines: Sequence[str], function_start: int) -> List[str]:
        """
        Append one '}' line for every brace still open after function_start.

        Never removes braces. Braces before function_start are ignored.

        Args:
            lines: Source lines
            function_start: First line to count from

        Returns:
            New list of lines

        Raises:
            BraceBalanceError: If more braces are closed than opened
        """
        code = strip_comments(lines)
        depth = sum(brace_delta(line) for line in code[function_start:])
        if depth < 0:
            raise BraceBalanceError(
                f"{-depth} more closing than opening brace(s)", function_start
            )
        return list(lines) + ['}'] * depth
