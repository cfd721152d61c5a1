"""
Default Value Provider.

Supplies the argument expressions used when the engine has to call a
function on its own: a fixed representative literal, a value swept
across the screen (uv), and the same sweep centered on the viewport.

vec2 inputs default to the screen sweep since they are usually
positions; every other type defaults to its literal.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..config import DebugConfig, DEFAULT_CONFIG
from .glsl_types import GLSLType
from .models import Parameter, ParameterMode, ParameterQualifier


@dataclass(frozen=True)
class DefaultValues:
    """Values a parameter of one type can be fed."""
    default: Optional[str]
    uv: Optional[str]
    centered_uv: Optional[str]
    mode: ParameterMode = ParameterMode.CUSTOM


def _sweep(template: str) -> tuple:
    """Expand a template over both coordinate sources."""
    return template.format(c='uv'), template.format(c='centeredUv')


_DEFAULT_VALUES: Dict[GLSLType, DefaultValues] = {
    GLSLType.FLOAT: DefaultValues('0.5', *_sweep('{c}.x')),
    GLSLType.VEC2: DefaultValues('vec2(0.5)', *_sweep('{c}'), mode=ParameterMode.UV),
    GLSLType.VEC3: DefaultValues('vec3(0.5)', *_sweep('vec3({c}, 0.0)')),
    GLSLType.VEC4: DefaultValues('vec4(0.5)', *_sweep('vec4({c}, 0.0, 1.0)')),
    GLSLType.INT: DefaultValues('1', *_sweep('int({c}.x * 10.0)')),
    GLSLType.UINT: DefaultValues('1u', *_sweep('uint({c}.x * 10.0)')),
    GLSLType.BOOL: DefaultValues('true', 'uv.x > 0.5', None),
    GLSLType.IVEC2: DefaultValues('ivec2(1)', *_sweep('ivec2({c} * 10.0)')),
    GLSLType.IVEC3: DefaultValues('ivec3(1)', *_sweep('ivec3({c} * 10.0, 0)')),
    GLSLType.IVEC4: DefaultValues('ivec4(1)', *_sweep('ivec4({c} * 10.0, 0, 1)')),
    GLSLType.UVEC2: DefaultValues('uvec2(1u)', *_sweep('uvec2({c} * 10.0)')),
    GLSLType.UVEC3: DefaultValues('uvec3(1u)', *_sweep('uvec3({c} * 10.0, 0.0)')),
    GLSLType.UVEC4: DefaultValues('uvec4(1u)', *_sweep('uvec4({c} * 10.0, 0.0, 1.0)')),
    GLSLType.BVEC2: DefaultValues('bvec2(true)', *_sweep('greaterThan({c}, vec2(0.5))')),
    GLSLType.BVEC3: DefaultValues('bvec3(true)', *_sweep('bvec3({c}.x > 0.5)')),
    GLSLType.BVEC4: DefaultValues('bvec4(true)', *_sweep('bvec4({c}.x > 0.5)')),
    GLSLType.MAT2: DefaultValues('mat2(1.0)', *_sweep('mat2({c}.x)')),
    GLSLType.MAT3: DefaultValues('mat3(1.0)', *_sweep('mat3({c}.x)')),
    GLSLType.MAT4: DefaultValues('mat4(1.0)', *_sweep('mat4({c}.x)')),
    # Samplers: filled in from the configured texture inputs
    GLSLType.SAMPLER2D: DefaultValues(None, None, None),
    GLSLType.SAMPLER3D: DefaultValues(None, None, None),
    GLSLType.SAMPLERCUBE: DefaultValues(None, None, None),
    # No value can be fed; callers declare local storage instead
    GLSLType.VOID: DefaultValues(None, None, None),
    GLSLType.UNSUPPORTED: DefaultValues(None, None, None),
}


class DefaultValueProvider:
    """
    Per-type default, uv-derived and centered-uv-derived values.

    Usage:
        provider = DefaultValueProvider()
        provider.default_value('vec3')   # 'vec3(0.5)'
        provider.uv_value('float')       # 'uv.x'
    """

    def __init__(self, config: DebugConfig = DEFAULT_CONFIG):
        self.config = config

    def values_for(self, type_name: str) -> DefaultValues:
        glsl_type = GLSLType.parse(type_name)
        values = _DEFAULT_VALUES[glsl_type]

        if glsl_type.is_sampler:
            texture = self.config.texture_inputs[0] if self.config.texture_inputs else None
            return DefaultValues(texture, None, None)

        if glsl_type == GLSLType.BOOL:
            # Left half false, right half true
            centered = (
                f'{self.config.coord_variable}.x > '
                f'0.5 * {self.config.resolution_uniform}.x'
            )
            return DefaultValues(values.default, values.uv, centered)

        return values

    def default_value(self, type_name: str) -> Optional[str]:
        return self.values_for(type_name).default

    def uv_value(self, type_name: str) -> Optional[str]:
        return self.values_for(type_name).uv

    def centered_uv_value(self, type_name: str) -> Optional[str]:
        return self.values_for(type_name).centered_uv

    def default_mode(self, type_name: str) -> ParameterMode:
        return self.values_for(type_name).mode

    def make_parameter(
        self,
        name: str,
        type_name: str,
        qualifier: ParameterQualifier = ParameterQualifier.IN,
    ) -> Parameter:
        """
        Build a Parameter carrying the values for its type.

        Args:
            name: Parameter name
            type_name: GLSL type keyword
            qualifier: Storage qualifier

        Returns:
            Parameter in its type's default mode
        """
        values = self.values_for(type_name)
        return Parameter(
            name=name,
            type=type_name,
            qualifier=qualifier,
            mode=values.mode,
            default_value=values.default,
            uv_value=values.uv,
            centered_uv_value=values.centered_uv,
        )
