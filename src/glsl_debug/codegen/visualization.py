"""
Visualization rules: how a typed value becomes an output color.

    float      -> grayscale (R = G = B = value)
    vec2       -> (x, y, 0)
    vec3       -> RGB
    vec4       -> passed through
    mat2/3/4   -> first column, zero-filled to RGB, alpha 1
    otherwise  -> flat magenta

Magenta is not an error: it is the visible marker for "this type has no
color mapping", and the rest of the instrumented shader still runs.

Optional post-processing remaps values that fall outside 0..1:
    soft: v / (|v| + 1) * 0.5 + 0.5   (0 -> gray, sign visible)
    abs:  |v| / (|v| + 1)             (0 -> black, magnitude visible)
and a step edge thresholds the final color to black/white.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..analyzer.glsl_types import GLSLType


class NormalizeMode(Enum):
    OFF = 'off'
    SOFT = 'soft'
    ABS = 'abs'


@dataclass(frozen=True)
class VisualizationOptions:
    """
    Post-processing applied to the visualized value.

    Attributes:
        normalize: Range remapping for float/vector values
        step_edge: Threshold; when set the color becomes step(edge, color)
    """
    normalize: NormalizeMode = NormalizeMode.OFF
    step_edge: Optional[float] = None

    @property
    def is_identity(self) -> bool:
        return self.normalize == NormalizeMode.OFF and self.step_edge is None


NO_POST_PROCESSING = VisualizationOptions()


@dataclass(frozen=True)
class TypeVisualizationRule:
    """
    Output statement template for one type.

    Attributes:
        template: Statement with {out} (color output) and {v} (value) placeholders
        comment: Trailing comment describing the mapping
        known: False for the magenta fallback
        components: Vector width that soft/abs normalization applies to, 0 for none
    """
    template: str
    comment: str
    known: bool = True
    components: int = 0


UNSUPPORTED_RULE = TypeVisualizationRule(
    '{out} = vec4(1.0, 0.0, 1.0, 1.0);', 'unknown type', known=False,
)

_RULES: Dict[GLSLType, TypeVisualizationRule] = {
    GLSLType.FLOAT: TypeVisualizationRule(
        '{out} = vec4(vec3({v}), 1.0);', 'visualize float as grayscale', components=1),
    GLSLType.VEC2: TypeVisualizationRule(
        '{out} = vec4({v}, 0.0, 1.0);', 'visualize vec2 (RG channels)', components=2),
    GLSLType.VEC3: TypeVisualizationRule(
        '{out} = vec4({v}, 1.0);', 'visualize vec3 as RGB', components=3),
    GLSLType.VEC4: TypeVisualizationRule(
        '{out} = {v};', 'visualize vec4 directly', components=4),
    GLSLType.MAT2: TypeVisualizationRule(
        '{out} = vec4({v}[0], 0.0, 1.0);', 'visualize mat2 first column'),
    GLSLType.MAT3: TypeVisualizationRule(
        '{out} = vec4({v}[0], 1.0);', 'visualize mat3 first column'),
    GLSLType.MAT4: TypeVisualizationRule(
        '{out} = vec4({v}[0].xyz, 1.0);', 'visualize mat4 first column'),
}

# Every variant has an entry; the ones without a color mapping share the fallback.
VISUALIZATION_RULES: Dict[GLSLType, TypeVisualizationRule] = {
    glsl_type: _RULES.get(glsl_type, UNSUPPORTED_RULE) for glsl_type in GLSLType
}


def rule_for(type_name: str) -> TypeVisualizationRule:
    return VISUALIZATION_RULES[GLSLType.parse(type_name)]


def _soft(expr: str, width: int) -> str:
    one = '1.0' if width == 1 else f'vec{width}(1.0)'
    return f'({expr} / (abs({expr}) + {one}) * 0.5 + 0.5)'


def _abs(expr: str, width: int) -> str:
    one = '1.0' if width == 1 else f'vec{width}(1.0)'
    return f'(abs({expr}) / (abs({expr}) + {one}))'


def _normalized_statement(rule: TypeVisualizationRule, name: str, mode: NormalizeMode) -> Optional[str]:
    remap = _soft if mode == NormalizeMode.SOFT else _abs
    width = rule.components
    if width == 1:
        return f'{{out}} = vec4(vec3({remap(name, 1)}), 1.0);'
    if width == 2:
        return f'{{out}} = vec4({remap(name, 2)}, 0.0, 1.0);'
    if width == 3:
        return f'{{out}} = vec4({remap(name, 3)}, 1.0);'
    if width == 4:
        return f'{{out}} = vec4({remap(name + ".rgb", 3)}, 1.0);'
    return None


def visualization_lines(
    var_type: str,
    var_name: str,
    output: str = 'fragColor',
    options: VisualizationOptions = NO_POST_PROCESSING,
) -> List[str]:
    """
    Statements that write var_name into the output color.

    Args:
        var_type: GLSL type keyword of the value
        var_name: Expression to visualize
        output: Color output variable
        options: Normalization and thresholding

    Returns:
        One statement, two when a step edge is set (no indentation)
    """
    rule = rule_for(var_type)
    statement = rule.template
    comment = rule.comment

    if options.normalize != NormalizeMode.OFF:
        normalized = _normalized_statement(rule, var_name, options.normalize)
        if normalized is not None:
            statement = normalized
            comment = f'{options.normalize.value} normalized {var_type}'

    lines = [statement.format(out=output, v=var_name) + f' // Debug: {comment}']

    if options.step_edge is not None:
        edge = f'{options.step_edge:.4f}'
        lines.append(
            f'{output} = vec4(step(vec3({edge}), {output}.rgb), 1.0); // Debug: step threshold'
        )
    return lines


def post_processing_lines(output: str, options: VisualizationOptions) -> List[str]:
    """Statements applying options to an already written output color."""
    lines = []
    if options.normalize == NormalizeMode.SOFT:
        lines.append(f'{output}.rgb = {output}.rgb / (abs({output}.rgb) + vec3(1.0)) * 0.5 + 0.5;')
    elif options.normalize == NormalizeMode.ABS:
        lines.append(f'{output}.rgb = abs({output}.rgb) / (abs({output}.rgb) + vec3(1.0));')
    if options.step_edge is not None:
        edge = f'{options.step_edge:.4f}'
        lines.append(f'{output} = vec4(step(vec3({edge}), {output}.rgb), 1.0);')
    return lines
