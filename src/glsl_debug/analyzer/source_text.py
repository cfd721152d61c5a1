"""
Source text helpers shared by the analyzers and the code generator.

Comments are blanked rather than removed so that every line index in the
stripped copy still refers to the same line of the original source.
"""

import re
from typing import List, Sequence, Tuple


def strip_comments(lines: Sequence[str]) -> List[str]:
    """
    Blank out // and /* */ comments, preserving line count.

    Args:
        lines: Source lines

    Returns:
        New list of lines with comment text removed
    """
    result = []
    in_block = False

    for line in lines:
        out = []
        i = 0
        while i < len(line):
            if in_block:
                end = line.find('*/', i)
                stop = len(line) if end == -1 else end + 2
                # Blanked, not dropped: columns must match the original line
                out.append(' ' * (stop - i))
                in_block = end == -1
                i = stop
                continue

            if line.startswith('//', i):
                break
            if line.startswith('/*', i):
                in_block = True
                out.append('  ')
                i += 2
                continue

            out.append(line[i])
            i += 1

        result.append(''.join(out).rstrip())

    return result


def indent_of(line: str) -> str:
    """Leading whitespace of a line."""
    match = re.match(r'^(\s*)', line)
    return match.group(1) if match else ''


def brace_delta(code: str) -> int:
    """Net count of '{' minus '}' in a (comment-free) line."""
    return code.count('{') - code.count('}')


def find_closing_paren(text: str, open_pos: int) -> int:
    """
    Find the parenthesis matching the one at open_pos.

    Args:
        text: Text to scan
        open_pos: Index of an opening '('

    Returns:
        Index of the matching ')', or -1 if unbalanced
    """
    depth = 0
    for pos in range(open_pos, len(text)):
        ch = text[pos]
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                return pos
    return -1


def split_top_level(text: str, separator: str = ',') -> List[str]:
    """
    Split on separators that are not nested inside parentheses or brackets.

    Example:
        split_top_level('vec2 p, float f(1, 2)') -> ['vec2 p', ' float f(1, 2)']
    """
    parts = []
    depth = 0
    current = []

    for ch in text:
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
        if ch == separator and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(ch)

    parts.append(''.join(current))
    return parts


class FlatText:
    """
    A range of lines joined into one string with position lookups.

    Structural scans that cross line boundaries (loop headers split over
    lines, braceless loop bodies) work on the flat text and translate
    positions back to (line, column) pairs.
    """

    def __init__(self, lines: Sequence[str], first_line: int = 0):
        self.first_line = first_line
        self.text = '\n'.join(lines)
        self.line_starts = []
        offset = 0
        for line in lines:
            self.line_starts.append(offset)
            offset += len(line) + 1

    def locate(self, pos: int) -> Tuple[int, int]:
        """Translate a flat position into an absolute (line, column) pair."""
        low, high = 0, len(self.line_starts) - 1
        while low < high:
            mid = (low + high + 1) // 2
            if self.line_starts[mid] <= pos:
                low = mid
            else:
                high = mid - 1
        return self.first_line + low, pos - self.line_starts[low]

    def line_of(self, pos: int) -> int:
        return self.locate(pos)[0]
