"""
GLSL type variants recognized by the debug instrumentation engine.

Every type the engine knows about is a member of GLSLType. Anything else
(structs, arrays, image types) parses to GLSLType.UNSUPPORTED, which the
visualization and default-value tables handle explicitly.
"""

from enum import Enum
from typing import FrozenSet


class GLSLType(Enum):
    """Closed set of GLSL types plus an explicit unsupported case."""
    FLOAT = 'float'
    INT = 'int'
    UINT = 'uint'
    BOOL = 'bool'
    VEC2 = 'vec2'
    VEC3 = 'vec3'
    VEC4 = 'vec4'
    IVEC2 = 'ivec2'
    IVEC3 = 'ivec3'
    IVEC4 = 'ivec4'
    UVEC2 = 'uvec2'
    UVEC3 = 'uvec3'
    UVEC4 = 'uvec4'
    BVEC2 = 'bvec2'
    BVEC3 = 'bvec3'
    BVEC4 = 'bvec4'
    MAT2 = 'mat2'
    MAT3 = 'mat3'
    MAT4 = 'mat4'
    SAMPLER2D = 'sampler2D'
    SAMPLER3D = 'sampler3D'
    SAMPLERCUBE = 'samplerCube'
    VOID = 'void'
    UNSUPPORTED = '<unsupported>'

    @classmethod
    def parse(cls, name: str) -> 'GLSLType':
        """
        Map a type keyword to its variant.

        Args:
            name: Type keyword as written in source (precision qualifiers allowed)

        Returns:
            Matching GLSLType, or GLSLType.UNSUPPORTED
        """
        name = name.strip()
        for qualifier in ('highp ', 'mediump ', 'lowp '):
            name = name.replace(qualifier, '')
        try:
            return cls(name.strip())
        except ValueError:
            return cls.UNSUPPORTED

    @property
    def keyword(self) -> str:
        return self.value

    @property
    def is_sampler(self) -> bool:
        return self in (GLSLType.SAMPLER2D, GLSLType.SAMPLER3D, GLSLType.SAMPLERCUBE)


# Keywords a variable declaration may start with.
VARIABLE_TYPE_KEYWORDS: FrozenSet[str] = frozenset(
    t.value for t in GLSLType if t not in (GLSLType.VOID, GLSLType.UNSUPPORTED)
)

# Alternation used inside regular expressions, longest first so that
# 'vec2' never shadows 'ivec2' at the same position.
TYPE_PATTERN = '|'.join(sorted(VARIABLE_TYPE_KEYWORDS, key=len, reverse=True))

PRECISION_QUALIFIERS = ('highp', 'mediump', 'lowp')
