"""
Debug Instrumentation Configuration.

Holds the names the instrumentation engine reads from and writes into the
shader: the per-pixel entry point, its built-in inputs, and the reserved
identifiers used for synthesized helper variables.

Usage:
    config = DebugConfig(entry_point='main', output_variable='outColor')
    debugger = ShaderDebugger(config)
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DebugConfig:
    """
    Immutable configuration shared by all instrumentation components.

    Attributes:
        entry_point: Name of the per-pixel entry function
        output_variable: Color output written by the synthesized entry point
        coord_variable: Pixel coordinate input of the entry point
        resolution_uniform: Viewport resolution uniform
        texture_inputs: Bound texture inputs, first one is the sampler default
        shadow_variable: Name of the loop shadow variable
        iteration_counter_prefix: Prefix of loop cap counters (suffixed by loop index)
        return_variable: Variable that captures a rewritten return expression
        debug_copy_prefix: Prefix of the truncated debug copy of a helper function
        out_argument_prefix: Prefix of locals passed to out/unsupported parameters
        result_variable: Variable holding the helper call result in the wrapper
        indent: Indentation of synthesized statements
        max_statement_lines: Bound on multi-line statement span scans
    """
    entry_point: str = 'mainImage'
    output_variable: str = 'fragColor'
    coord_variable: str = 'fragCoord'
    resolution_uniform: str = 'iResolution'
    texture_inputs: Tuple[str, ...] = ('iChannel0', 'iChannel1', 'iChannel2', 'iChannel3')
    shadow_variable: str = '_dbgShadow'
    iteration_counter_prefix: str = '_dbgIter'
    return_variable: str = '_dbgReturn'
    debug_copy_prefix: str = '_dbg_'
    out_argument_prefix: str = '_dbgOut'
    result_variable: str = 'result'
    indent: str = '  '
    max_statement_lines: int = 64

    @property
    def entry_point_header(self) -> str:
        """Header line of a synthesized entry point."""
        return (
            f'void {self.entry_point}(out vec4 {self.output_variable}, '
            f'in vec2 {self.coord_variable}) {{'
        )

    @property
    def uv_setup(self) -> str:
        """Statement declaring normalized screen coordinates."""
        return f'vec2 uv = {self.coord_variable} / {self.resolution_uniform}.xy;'

    @property
    def centered_uv_setup(self) -> str:
        """Statement declaring coordinates centered on the viewport, aspect corrected."""
        return (
            f'vec2 centeredUv = (2.0 * {self.coord_variable} - {self.resolution_uniform}.xy) '
            f'/ {self.resolution_uniform}.y;'
        )


DEFAULT_CONFIG = DebugConfig()
