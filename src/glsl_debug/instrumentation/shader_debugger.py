"""
Shader Debugger.

Turns (shader source, target line) into a shader whose output color shows
the value computed on that line, or None when the line holds nothing that
can be visualized.

Design:
- Pure function of its inputs: every call splits the source, analyzes it
  and generates a new string; no state survives between calls
- "Cannot instrument" is None, never an exception
- BraceBalanceError propagates: it reports input that closes more
  braces than it opens, e.g. a stray '}' after a function

Paths:
    entry point            -> truncated in place, value written to its output
    helper, variable line  -> truncated debug copy + synthetic entry point
    helper, return line    -> same, return expression captured in _dbgReturn
    helper, header line    -> whole function called, return value visualized
    global scope           -> None

Usage:
    debugger = ShaderDebugger()
    modified = debugger.instrument(source, target_line=12, loop_caps={0: 20})
    if modified is not None:
        compile_and_run(modified)
"""

import logging
from typing import Mapping, Optional, Tuple

from ..analyzer.classifier import Declaration, LineClassifier, NoMatch
from ..analyzer.models import DebugFunctionContext, DebugTarget, FunctionSignature, LoopSite, VarInfo
from ..analyzer.source_text import strip_comments
from ..analyzer.structure import StructureAnalyzer
from ..codegen.code_generator import CodeGenerator
from ..codegen.visualization import NO_POST_PROCESSING, VisualizationOptions
from ..config import DebugConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class ShaderDebugger:
    """
    Orchestrates analysis and code generation for one target line.
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG):
        self.config = config
        self.structure = StructureAnalyzer(config)
        self.classifier = LineClassifier(config)
        self.generator = CodeGenerator(config)

    def instrument(
        self,
        source: str,
        target_line: int,
        target_line_text: Optional[str] = None,
        loop_caps: Optional[Mapping[int, int]] = None,
        custom_parameters: Optional[Mapping[int, str]] = None,
        options: Optional[VisualizationOptions] = None,
    ) -> Optional[str]:
        """
        Instrument source so its output visualizes the value on target_line.

        Args:
            source: Full shader source
            target_line: 0-indexed line to debug
            target_line_text: Text the editor shows on that line, corrects line drift
            loop_caps: Loop index -> maximum iterations
            custom_parameters: Visible parameter index -> argument expression
            options: Visualization post-processing

        Returns:
            Instrumented, brace-balanced source, or None if nothing can be visualized

        Raises:
            ValueError: If a loop cap or loop index is negative
            BraceBalanceError: If the input source itself closes more braces
                than it opens after the target function (a stray '}')
        """
        options = options or NO_POST_PROCESSING
        lines = source.split('\n')

        line = self.classifier.resolve_target_line(lines, target_line, target_line_text)
        if line is None:
            logger.debug("Target line %d is out of range", target_line)
            return None

        function = self.structure.find_enclosing_function(lines, line)
        if function is None:
            logger.debug("Line %d is at global scope", line)
            return None
        logger.debug("Line %d is in function '%s'", line, function.name)

        classification = self.classifier.classify(lines, line, function=function)
        statement_end = getattr(classification, 'end_line', None)
        var_info = classification.var_info

        if isinstance(classification, NoMatch):
            if self.structure.is_entry_point(function):
                logger.debug("Nothing to visualize on line %d: %s", line, classification.reason)
                return None

            returned = self.classifier.find_return(lines, line)
            if returned is not None and function.returns_value:
                var_info = VarInfo(self.config.return_variable, function.return_type)
                statement_end = returned.end_line
            elif self._in_header(lines, function, line):
                if not function.returns_value:
                    logger.debug("Function '%s' returns void", function.name)
                    return None
                logger.debug("Path: full function '%s'", function.name)
                return self.generator.wrap_full_function_for_debugging(
                    lines, function, loop_caps, custom_parameters, options,
                )
            else:
                logger.debug("Nothing to visualize on line %d: %s", line, classification.reason)
                return None

        target = DebugTarget(
            function_signature=function,
            enclosing_loops=self._enclosing_loops(lines, function, line),
            target_line=line,
        )
        logger.debug("Visualizing %s %s", var_info.type, var_info.name)

        if self.structure.is_entry_point(function):
            logger.debug("Path: entry point in place")
            return self.generator.instrument_entry_point(
                lines, function, statement_end, var_info,
                target.enclosing_loops, loop_caps, options,
            )

        logger.debug("Path: helper function '%s'", function.name)
        return self.generator.wrap_function_for_debugging(
            lines, function, line, var_info,
            enclosing_loops=target.enclosing_loops,
            loop_caps=loop_caps,
            custom_parameters=custom_parameters,
            options=options,
            statement_end=statement_end,
        )

    def extract_function_context(self, source: str, target_line: int) -> Optional[DebugFunctionContext]:
        """
        Describe the function around target_line for a debug panel.

        Returns:
            DebugFunctionContext, or None at global scope
        """
        lines = source.split('\n')
        function = self.structure.find_enclosing_function(lines, target_line)
        if function is None:
            return None

        return DebugFunctionContext(
            function_name=function.name,
            return_type=function.return_type,
            parameters=function.visible_parameters,
            is_function=not self.structure.is_entry_point(function),
            loops=self._enclosing_loops(lines, function, target_line),
        )

    def instrument_one_liner(
        self,
        line_text: str,
        options: Optional[VisualizationOptions] = None,
    ) -> Optional[str]:
        """
        Wrap a bare declaration, e.g. 'vec3 col = vec3(1.0);', in an entry point.

        Returns:
            Shader source, or None if the text is not a declaration
        """
        classification = self.classifier.classify([line_text], 0)
        if not isinstance(classification, Declaration):
            return None
        return self.generator.wrap_one_liner_for_debugging(
            line_text, classification.var_info, options or NO_POST_PROCESSING,
        )

    def apply_output_post_processing(self, source: str, options: VisualizationOptions) -> Optional[str]:
        return self.generator.apply_output_post_processing(source, options)

    def _in_header(self, lines, function: FunctionSignature, line: int) -> bool:
        """True if line is part of the function header, up to the body brace."""
        if line < function.start_line:
            return False
        code = strip_comments(lines)
        return not any('{' in text for text in code[function.start_line:line])

    def _enclosing_loops(self, lines, function: FunctionSignature, line: int) -> Tuple[LoopSite, ...]:
        """Loops around the statement touching line, located by its terminating ';'."""
        position = self.classifier.statement_end_position(lines, line)
        if position is None:
            loops = self.structure.find_enclosing_loops(lines, function.start_line, line)
        else:
            loops = self.structure.find_enclosing_loops(lines, function.start_line, *position)
        return tuple(loops)


def instrument(
    source: str,
    target_line: int,
    target_line_text: Optional[str] = None,
    loop_caps: Optional[Mapping[int, int]] = None,
) -> Optional[str]:
    """Instrument with the default configuration."""
    return ShaderDebugger().instrument(source, target_line, target_line_text, loop_caps)
