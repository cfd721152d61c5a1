"""
Debug Code Generator.

Produces the instrumented shader variants:

1. Entry point, in place: the entry point is cut after the target
   statement (or after the outermost loop around it) and the value is
   written to the color output.
2. Helper function: the function is kept untouched; a truncated copy
   named '_dbg_<name>' returns the value, and a synthetic entry point
   calls it with default arguments.
3. Full function: a synthetic entry point calls the helper unchanged and
   visualizes its return value.
4. One-liner: a bare statement wrapped in a minimal entry point.

Values computed inside loops are carried out by a shadow variable that is
declared before the outermost loop and assigned right after the target
statement, so after the loops finish it holds the value from the last
executed iteration.

Every variant ends with close_open_braces, so output is always balanced
from the instrumented function onward.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..analyzer.classifier import LineClassifier
from ..analyzer.models import FunctionSignature, LoopSite, ParameterQualifier, VarInfo
from ..analyzer.source_text import indent_of, strip_comments
from ..analyzer.structure import StructureAnalyzer
from ..config import DebugConfig, DEFAULT_CONFIG
from .visualization import (
    NO_POST_PROCESSING,
    VisualizationOptions,
    post_processing_lines,
    visualization_lines,
)

logger = logging.getLogger(__name__)

_HEADER_NAME = re.compile(
    r'^(\s*(?:(?:const|highp|mediump|lowp|precise)\s+)*)([A-Za-z_]\w*)(\s+)([A-Za-z_]\w*)(\s*\()'
)


@dataclass(frozen=True)
class DefaultArguments:
    """
    Arguments for a synthesized call.

    Attributes:
        setup: Statements to run before the call (coordinates, storage locals)
        args: Argument expressions in parameter order
    """
    setup: Tuple[str, ...] = ()
    args: Tuple[str, ...] = ()

    @property
    def call_arguments(self) -> str:
        return ', '.join(self.args)


class CodeGenerator:
    """
    Generates instrumented shader source.

    All methods return new line lists or strings; inputs are never
    modified.

    Usage:
        generator = CodeGenerator()
        generator.return_statement_for_var('vec3', 'col')
        # '  fragColor = vec4(col, 1.0); // Debug: visualize vec3 as RGB'
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG):
        self.config = config
        self.structure = StructureAnalyzer(config)
        self.classifier = LineClassifier(config)

    # ========================================================================
    # Visualization
    # ========================================================================

    def return_statement_for_var(
        self,
        var_type: str,
        var_name: str,
        output_variable: Optional[str] = None,
        options: VisualizationOptions = NO_POST_PROCESSING,
    ) -> str:
        """
        Statement(s) writing a variable into the color output, indented.

        Args:
            var_type: GLSL type keyword
            var_name: Variable (or expression) to visualize
            output_variable: Color output, defaults to the configured one
            options: Normalization and thresholding

        Returns:
            Indented statement; two lines joined by '\\n' with a step edge
        """
        return '\n'.join(self._visualization(var_type, var_name, output_variable, options))

    def _visualization(self, var_type, var_name, output_variable=None, options=NO_POST_PROCESSING) -> List[str]:
        output = output_variable or self.config.output_variable
        return [
            self.config.indent + line
            for line in visualization_lines(var_type, var_name, output, options)
        ]

    # ========================================================================
    # Braces and loops
    # ========================================================================

    def close_open_braces(self, lines: Sequence[str], function_start: int) -> List[str]:
        return self.structure.close_open_braces(lines, function_start)

    def cap_loop_iterations(
        self,
        lines: Sequence[str],
        function_start: int,
        caps_by_loop_index: Optional[Mapping[int, int]],
    ) -> List[str]:
        """
        Bound the iterations of selected loops.

        For each loop whose index is in caps_by_loop_index, a counter
        '_dbgIter<index>' is declared right before the loop header and the
        first statement of the body increments it and breaks once it
        exceeds the cap. Braceless loops get braces. A loop that is itself
        the unbraced body of an if/else/for/while is wrapped together with
        its counter in '{ ... }'. Loops not in the mapping are left as they
        are.

        Args:
            lines: Source lines
            function_start: Header line of the function holding the loops
            caps_by_loop_index: Loop index -> maximum iterations

        Returns:
            New list of lines

        Raises:
            ValueError: If a loop index or cap is negative
        """
        if not caps_by_loop_index:
            return list(lines)

        for index, cap in caps_by_loop_index.items():
            if index < 0 or cap < 0:
                raise ValueError(f"Invalid loop cap {index}: {cap}")

        code = strip_comments(lines)
        before: Dict[int, List[str]] = {}
        after: Dict[int, List[str]] = {}
        inline: Dict[int, List[Tuple[int, str]]] = {}

        for loop in self.structure.find_loops(lines, function_start):
            cap = caps_by_loop_index.get(loop.index)
            if cap is None:
                continue

            counter = f'{self.config.iteration_counter_prefix}{loop.index}'
            guard = f'if (++{counter} > {cap}) break;'
            header_indent = indent_of(lines[loop.header_line])
            declaration = f'int {counter} = 0;'
            keyword_line, keyword_col = loop.keyword or (loop.header_line, len(header_indent))

            if loop.bare_body:
                # Counter and loop together stay the body of the outer statement
                inline.setdefault(keyword_line, []).append((keyword_col, f'{{ {declaration} '))
                if loop.body_end is not None:
                    end_line, end_col = loop.body_end
                    inline.setdefault(end_line, []).append((end_col + 1, ' }'))
            elif code[keyword_line][:keyword_col].strip():
                inline.setdefault(keyword_line, []).append((keyword_col, f'{declaration} '))
            else:
                before.setdefault(loop.header_line, []).append(f'{header_indent}{declaration}')

            if loop.braced:
                brace_line, brace_col = loop.brace
                if code[brace_line][brace_col + 1:].strip():
                    inline.setdefault(brace_line, []).append((brace_col + 1, f' {guard}'))
                else:
                    after.setdefault(brace_line, []).insert(
                        0, f'{header_indent}{self.config.indent}{guard}'
                    )
            else:
                paren_line, paren_col = loop.paren_close
                inline.setdefault(paren_line, []).append((paren_col + 1, f' {{ {guard}'))
                if loop.body_end is not None:
                    end_line, end_col = loop.body_end
                    inline.setdefault(end_line, []).append((end_col + 1, ' }'))

            logger.debug("Capped loop %d (%s) at %d iterations", loop.index, loop.header_text, cap)

        result = []
        for i, line in enumerate(lines):
            result.extend(before.get(i, []))
            # Right to left; edits sharing a column end up in insertion order
            edits = sorted(enumerate(inline.get(i, [])), key=lambda item: (item[1][0], item[0]), reverse=True)
            for _, (col, text) in edits:
                line = line[:col] + text + line[col:]
            result.append(line)
            result.extend(after.get(i, []))
        return result

    def insert_shadow_variable(
        self,
        lines: Sequence[str],
        target_line: int,
        var_info: VarInfo,
        enclosing_loops: Sequence[LoopSite],
    ) -> Tuple[List[str], Optional[str]]:
        """
        Carry a loop-local value out of the loops around it.

        Declares '<type> _dbgShadow;' before the outermost enclosing loop and
        inserts '_dbgShadow = <name>;' right after the target statement,
        on the same line when more code follows it there (e.g. the loop's
        closing brace). If the outermost loop is the unbraced body of an
        if/else/for/while, the declaration opens a block around it; that
        block is left open for close_open_braces after truncation. Without
        enclosing loops the value is readable directly and nothing changes.

        Args:
            lines: Source lines
            target_line: Line ending the target statement
            var_info: Variable to carry out
            enclosing_loops: Loops around the target, outermost first

        Returns:
            (new lines, shadow variable name or None)
        """
        if not enclosing_loops:
            return list(lines), None

        shadow = self.config.shadow_variable
        outermost = min(enclosing_loops, key=lambda loop: loop.header_line)
        declaration = f'{var_info.type} {shadow};'
        assignment = f'{shadow} = {var_info.name};'
        code = strip_comments(lines)
        result = list(lines)

        end = self.classifier.statement_end_position(lines, target_line)
        if end is not None and end[0] == target_line and code[target_line][end[1] + 1:].strip():
            line = result[target_line]
            result[target_line] = f'{line[:end[1] + 1]} {assignment}{line[end[1] + 1:]}'
        else:
            result.insert(target_line + 1, f'{indent_of(lines[target_line])}{assignment}')

        header_indent = indent_of(lines[outermost.header_line])
        keyword_line, keyword_col = outermost.keyword or (outermost.header_line, len(header_indent))
        line = result[keyword_line]
        if outermost.bare_body:
            result[keyword_line] = f'{line[:keyword_col]}{{ {declaration} {line[keyword_col:]}'
        elif code[keyword_line][:keyword_col].strip():
            result[keyword_line] = f'{line[:keyword_col]}{declaration} {line[keyword_col:]}'
        else:
            result.insert(outermost.header_line, f'{header_indent}{declaration}')
        return result, shadow

    # ========================================================================
    # Parameters and calls
    # ========================================================================

    def generate_default_parameters(
        self,
        signature: FunctionSignature,
        custom_parameters: Optional[Mapping[int, str]] = None,
    ) -> DefaultArguments:
        """
        Arguments for calling a function without a real call site.

        Each configurable parameter gets its custom override (keyed by its
        position among the configurable parameters) or its mode's value.
        out parameters, and parameters whose type has no value, are passed
        a declared local '_dbgOut<position>'. inout parameters need an
        assignable argument too, so theirs is initialized with the value.
        The uv / centeredUv setup is emitted only when an argument uses it.

        Args:
            signature: Function to call
            custom_parameters: Visible parameter index -> argument expression

        Returns:
            DefaultArguments
        """
        custom_parameters = custom_parameters or {}
        storage = []
        args = []
        values = []
        visible_index = 0

        for position, parameter in enumerate(signature.parameters):
            value = None
            if parameter.qualifier != ParameterQualifier.OUT:
                value = custom_parameters.get(visible_index, parameter.value)
                visible_index += 1

            if value is None or parameter.qualifier == ParameterQualifier.INOUT:
                local = f'{self.config.out_argument_prefix}{position}'
                if value is None:
                    storage.append(f'{parameter.type} {local};')
                else:
                    storage.append(f'{parameter.type} {local} = {value};')
                    values.append(value)
                args.append(local)
            else:
                values.append(value)
                args.append(value)

        setup = []
        if any(re.search(r'\buv\b', value) for value in values):
            setup.append(self.config.uv_setup)
        if any(re.search(r'\bcenteredUv\b', value) for value in values):
            setup.append(self.config.centered_uv_setup)
        setup.extend(storage)

        return DefaultArguments(setup=tuple(setup), args=tuple(args))

    def _wrapper_entry_point(
        self,
        callee: str,
        signature: FunctionSignature,
        result_type: str,
        custom_parameters: Optional[Mapping[int, str]],
        options: VisualizationOptions,
    ) -> List[str]:
        """Synthetic entry point calling callee and visualizing its result."""
        arguments = self.generate_default_parameters(signature, custom_parameters)
        result = self.config.result_variable
        indent = self.config.indent

        body = [indent + statement for statement in arguments.setup]
        body.append(f'{indent}{result_type} {result} = {callee}({arguments.call_arguments});')
        body.extend(self._visualization(result_type, result, options=options))
        return [self.config.entry_point_header] + body + ['}']

    def _kept_prefix(self, lines: Sequence[str], signature: FunctionSignature) -> List[str]:
        """Lines before the function, without an entry point defined there."""
        prefix = list(lines[:signature.start_line])
        for function in self.structure.find_functions(lines):
            if (function.name == self.config.entry_point and function.end_line is not None
                    and function.end_line < signature.start_line):
                del prefix[function.start_line:function.end_line + 1]
                break
        return prefix

    def _function_lines(self, lines: Sequence[str], signature: FunctionSignature) -> List[str]:
        end = signature.end_line if signature.end_line is not None else len(lines) - 1
        return self.close_open_braces(list(lines[signature.start_line:end + 1]), 0)

    # ========================================================================
    # Variants
    # ========================================================================

    def wrap_one_liner_for_debugging(
        self,
        line_text: str,
        var_info: VarInfo,
        options: VisualizationOptions = NO_POST_PROCESSING,
    ) -> str:
        """
        Wrap a bare statement in a minimal entry point.

        Args:
            line_text: Statement, e.g. 'vec3 col = vec3(1.0);'
            var_info: Variable the statement defines

        Returns:
            Shader source
        """
        statement = line_text.strip()
        body = []
        if re.search(r'\buv\b', statement) and var_info.name != 'uv':
            body.append(self.config.indent + self.config.uv_setup)
        body.append(self.config.indent + statement)
        body.extend(self._visualization(var_info.type, var_info.name, options=options))

        wrapper = [self.config.entry_point_header] + body + ['}']
        return '\n'.join(self.close_open_braces(wrapper, 0))

    def instrument_entry_point(
        self,
        lines: Sequence[str],
        signature: FunctionSignature,
        statement_end: int,
        var_info: VarInfo,
        enclosing_loops: Sequence[LoopSite] = (),
        loop_caps: Optional[Mapping[int, int]] = None,
        options: VisualizationOptions = NO_POST_PROCESSING,
    ) -> str:
        """
        Instrument the entry point in place.

        The entry point is cut after statement_end, or after the outermost
        enclosing loop's closing brace, and the value (or its shadow) is
        written to the entry point's color output. Source after the entry
        point is kept.

        Args:
            lines: Source lines
            signature: The entry point
            statement_end: Line ending the target statement
            var_info: Variable to visualize
            enclosing_loops: Loops around the target, outermost first
            loop_caps: Loop index -> maximum iterations
            options: Visualization post-processing

        Returns:
            Shader source
        """
        cut = self._cut_line(lines, statement_end, enclosing_loops)
        section, shadow = self.insert_shadow_variable(lines[:cut + 1], statement_end, var_info, enclosing_loops)
        section = self.cap_loop_iterations(section, signature.start_line, loop_caps)

        closed = self.close_open_braces(section, signature.start_line)
        output = self._output_variable(signature)
        visualization = self._visualization(var_info.type, shadow or var_info.name, output, options)
        result = section + visualization + closed[len(section):]

        if signature.end_line is not None:
            result.extend(lines[signature.end_line + 1:])
        return '\n'.join(self.close_open_braces(result, signature.start_line))

    def wrap_function_for_debugging(
        self,
        lines: Sequence[str],
        signature: FunctionSignature,
        target_line: int,
        var_info: VarInfo,
        enclosing_loops: Sequence[LoopSite] = (),
        loop_caps: Optional[Mapping[int, int]] = None,
        custom_parameters: Optional[Mapping[int, str]] = None,
        options: VisualizationOptions = NO_POST_PROCESSING,
        statement_end: Optional[int] = None,
    ) -> str:
        """
        Debug a variable inside a helper function.

        Output layout:
            <source before the function, minus any entry point>
            <the function, unchanged>
            <var_type> _dbg_<name>(<same parameters>) {   // truncated copy
                ... up to the target statement or outermost loop ...
                return <var or shadow>;
            }
            void mainImage(...) { <defaults>; <var_type> result = _dbg_<name>(...); <visualize> }

        When var_info is the return variable, the 'return <expr>;' at
        target_line becomes '<type> _dbgReturn = <expr>;' in the copy.

        Args:
            lines: Source lines
            signature: The helper function
            target_line: Line inside the function
            var_info: Variable to visualize
            enclosing_loops: Loops around the target, outermost first
            loop_caps: Loop index -> maximum iterations (applied to the copy)
            custom_parameters: Visible parameter index -> argument expression
            options: Visualization post-processing
            statement_end: Line ending the target statement, found if omitted

        Returns:
            Shader source
        """
        original = list(lines)
        working = list(lines)
        if statement_end is None:
            statement_end = self.classifier.statement_end_line(working, target_line)
            if statement_end is None:
                statement_end = target_line

        if var_info.name == self.config.return_variable:
            returned = self.classifier.find_return(working, target_line)
            if returned is not None:
                start = returned.start_line
                working[start] = re.sub(
                    r'\breturn\b', f'{var_info.type} {var_info.name} =', working[start], count=1
                )

        cut = self._cut_line(working, statement_end, enclosing_loops)
        section, shadow = self.insert_shadow_variable(working[:cut + 1], statement_end, var_info, enclosing_loops)
        section = self.cap_loop_iterations(section, signature.start_line, loop_caps)

        debug_copy = section[signature.start_line:]
        copy_name = f'{self.config.debug_copy_prefix}{signature.name}'
        debug_copy[0] = _HEADER_NAME.sub(
            lambda m: f'{m.group(1)}{var_info.type}{m.group(3)}{copy_name}{m.group(5)}',
            debug_copy[0], count=1,
        )
        closed = self.close_open_braces(debug_copy, 0)
        debug_copy = debug_copy + [f'{self.config.indent}return {shadow or var_info.name};'] + closed[len(debug_copy):]

        output = self._kept_prefix(original, signature)
        function_start = len(output)
        output.extend(self._function_lines(original, signature))
        output.append('')
        output.extend(debug_copy)
        output.append('')
        output.extend(self._wrapper_entry_point(copy_name, signature, var_info.type, custom_parameters, options))
        return '\n'.join(self.close_open_braces(output, function_start))

    def wrap_full_function_for_debugging(
        self,
        lines: Sequence[str],
        signature: FunctionSignature,
        loop_caps: Optional[Mapping[int, int]] = None,
        custom_parameters: Optional[Mapping[int, str]] = None,
        options: VisualizationOptions = NO_POST_PROCESSING,
    ) -> str:
        """
        Run a whole helper function and visualize its return value.

        Args:
            lines: Source lines
            signature: The helper function, must return a value
            loop_caps: Loop index -> maximum iterations
            custom_parameters: Visible parameter index -> argument expression
            options: Visualization post-processing

        Returns:
            Shader source
        """
        end = signature.end_line if signature.end_line is not None else len(lines) - 1
        section = self.cap_loop_iterations(list(lines[:end + 1]), signature.start_line, loop_caps)

        output = self._kept_prefix(lines, signature)
        function_start = len(output)
        output.extend(self.close_open_braces(section[signature.start_line:], 0))
        output.append('')
        output.extend(self._wrapper_entry_point(
            signature.name, signature, signature.return_type, custom_parameters, options
        ))
        return '\n'.join(self.close_open_braces(output, function_start))

    def apply_output_post_processing(self, source: str, options: VisualizationOptions) -> Optional[str]:
        """
        Apply normalization / thresholding to the entry point's final color.

        Args:
            source: Shader source
            options: Post-processing to apply

        Returns:
            Modified source, or None if options do nothing or there is no entry point
        """
        if options.is_identity:
            return None

        lines = source.split('\n')
        entry = next(
            (f for f in self.structure.find_functions(lines) if f.name == self.config.entry_point),
            None,
        )
        if entry is None or entry.end_line is None:
            return None

        output = self._output_variable(entry)
        post = [self.config.indent + line for line in post_processing_lines(output, options)]

        closing = lines[entry.end_line]
        brace_col = closing.rfind('}')
        head = closing[:brace_col]
        replacement = ([head] if head.strip() else []) + post + [closing[brace_col:] if head.strip() else closing]
        return '\n'.join(lines[:entry.end_line] + replacement + lines[entry.end_line + 1:])

    # ========================================================================
    # Helpers
    # ========================================================================

    def _cut_line(self, lines: Sequence[str], statement_end: int, enclosing_loops: Sequence[LoopSite]) -> int:
        """Last line kept when truncating: end of the outermost loop or of the statement."""
        if not enclosing_loops:
            return statement_end
        outermost = min(enclosing_loops, key=lambda loop: loop.header_line)
        if outermost.end_line is None:
            return len(lines) - 1
        return max(outermost.end_line, statement_end)

    def _output_variable(self, signature: FunctionSignature) -> str:
        """The entry point's own color output, e.g. 'O' in mainImage(out vec4 O, vec2 U)."""
        for parameter in signature.parameters:
            if parameter.qualifier == ParameterQualifier.OUT and parameter.type == 'vec4':
                return parameter.name
        return self.config.output_variable
