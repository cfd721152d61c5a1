"""
Unit tests for CodeGenerator.

Tests:
- Loop iteration caps (braced, braceless, selective, invalid)
- Shadow variable insertion
- Default parameters and custom overrides
- One-liner wrapping
- Helper function wrapping and full-function mode
- Output post-processing
"""

import pytest
from src.glsl_debug.analyzer.models import VarInfo
from src.glsl_debug.analyzer.signature import SignatureParser
from src.glsl_debug.analyzer.structure import StructureAnalyzer
from src.glsl_debug.codegen.code_generator import CodeGenerator
from src.glsl_debug.codegen.visualization import NormalizeMode, VisualizationOptions


@pytest.fixture
def generator():
    """Create code generator."""
    return CodeGenerator()


@pytest.fixture
def analyzer():
    """Create structure analyzer."""
    return StructureAnalyzer()


@pytest.fixture
def parser():
    """Create signature parser."""
    return SignatureParser()


TWO_LOOPS = [
    'float f() {',
    '  float a = 0.0;',
    '  for (int i = 0; i < 10; i++) {',
    '    a += 1.0;',
    '  }',
    '  for (int j = 0; j < 10; j++) {',
    '    a += 2.0;',
    '  }',
    '  return a;',
    '}',
]


# ============================================================================
# 1. Loop Caps
# ============================================================================

def test_cap_only_selected_loop(generator):
    """Test {0: 5} caps loop 0 and leaves loop 1 untouched."""
    result = generator.cap_loop_iterations(TWO_LOOPS, 0, {0: 5})
    assert result == [
        'float f() {',
        '  float a = 0.0;',
        '  int _dbgIter0 = 0;',
        '  for (int i = 0; i < 10; i++) {',
        '    if (++_dbgIter0 > 5) break;',
        '    a += 1.0;',
        '  }',
        '  for (int j = 0; j < 10; j++) {',
        '    a += 2.0;',
        '  }',
        '  return a;',
        '}',
    ]


def test_cap_both_loops(generator):
    """Test each capped loop gets its own counter."""
    result = '\n'.join(generator.cap_loop_iterations(TWO_LOOPS, 0, {0: 5, 1: 3}))
    assert 'if (++_dbgIter0 > 5) break;' in result
    assert 'if (++_dbgIter1 > 3) break;' in result
    assert result.count('int _dbgIter') == 2


def test_cap_empty_mapping_is_copy(generator):
    """Test no caps returns an equal copy."""
    result = generator.cap_loop_iterations(TWO_LOOPS, 0, {})
    assert result == TWO_LOOPS
    assert result is not TWO_LOOPS
    assert generator.cap_loop_iterations(TWO_LOOPS, 0, None) == TWO_LOOPS


def test_cap_unknown_index_ignored(generator):
    """Test caps for loops that do not exist change nothing."""
    assert generator.cap_loop_iterations(TWO_LOOPS, 0, {7: 5}) == TWO_LOOPS


def test_cap_negative_raises(generator):
    """Test negative caps and indices are rejected."""
    with pytest.raises(ValueError):
        generator.cap_loop_iterations(TWO_LOOPS, 0, {0: -1})
    with pytest.raises(ValueError):
        generator.cap_loop_iterations(TWO_LOOPS, 0, {-1: 5})


def test_cap_brace_with_code_on_same_line(generator):
    """Test the guard is inserted right after an inline brace."""
    lines = [
        'float f() {',
        '  float a = 0.0;',
        '  while (a < 1.0) { a += 0.1; }',
        '  return a;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {0: 8})
    assert result[2] == '  int _dbgIter0 = 0;'
    assert result[3] == '  while (a < 1.0) { if (++_dbgIter0 > 8) break; a += 0.1; }'


def test_cap_braceless_loop(generator):
    """Test braceless loops are wrapped in braces."""
    lines = [
        'float f() {',
        '  float s = 0.0;',
        '  for (int i = 0; i < 4; i++) s += 1.0;',
        '  return s;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {0: 3})
    assert result[2] == '  int _dbgIter0 = 0;'
    assert result[3] == '  for (int i = 0; i < 4; i++) { if (++_dbgIter0 > 3) break; s += 1.0; }'


def test_cap_braceless_loop_body_on_next_line(generator):
    """Test braceless loop spanning two lines."""
    lines = [
        'float f() {',
        '  float s = 0.0;',
        '  for (int i = 0; i < 4; i++)',
        '    s += 1.0;',
        '  return s;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {0: 2})
    assert result[3] == '  for (int i = 0; i < 4; i++) { if (++_dbgIter0 > 2) break;'
    assert result[4] == '    s += 1.0; }'


def test_cap_nested_inner_only(generator):
    """Test capping the inner loop of a nest."""
    lines = [
        'float f() {',
        '  float d = 0.0;',
        '  for (int i = 0; i < 10; i++) {',
        '    for (int j = 0; j < 5; j++) {',
        '      d += 1.0;',
        '    }',
        '  }',
        '  return d;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {1: 2})
    assert result[3] == '    int _dbgIter1 = 0;'
    assert result[5] == '      if (++_dbgIter1 > 2) break;'
    assert '_dbgIter0' not in '\n'.join(result)


def test_cap_loop_nested_in_braceless_loop(generator):
    """Test a capped loop that is the unbraced body of another loop stays inside it."""
    lines = [
        'float f() {',
        '  float s = 0.0;',
        '  for (int i = 0; i < 4; i++)',
        '    for (int j = 0; j < 4; j++)',
        '      s += 1.0;',
        '  return s;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {1: 2})
    assert result == [
        'float f() {',
        '  float s = 0.0;',
        '  for (int i = 0; i < 4; i++)',
        '    { int _dbgIter1 = 0; for (int j = 0; j < 4; j++) { if (++_dbgIter1 > 2) break;',
        '      s += 1.0; } }',
        '  return s;',
        '}',
    ]


def test_cap_loop_as_if_body(generator):
    """Test a capped loop that is the unbraced body of an if keeps the condition."""
    lines = [
        'float f() {',
        '  float s = 0.0;',
        '  if (s < 1.0) while (s < 2.0) s += 0.5;',
        '  return s;',
        '}',
    ]
    result = generator.cap_loop_iterations(lines, 0, {0: 5})
    assert len(result) == len(lines)
    assert result[2] == (
        '  if (s < 1.0) { int _dbgIter0 = 0; while (s < 2.0) { if (++_dbgIter0 > 5) break; s += 0.5; } }'
    )


# ============================================================================
# 2. Shadow Variable
# ============================================================================

NESTED = [
    'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
    '  float t = 0.0;',
    '  for (int i = 0; i < 10; i++) {',
    '    for (int j = 0; j < 5; j++) {',
    '      float d = float(i + j);',
    '      t += d;',
    '    }',
    '  }',
    '  fragColor = vec4(vec3(t), 1.0);',
    '}',
]


def test_shadow_no_loops_is_noop(generator):
    """Test no enclosing loops leaves the source unchanged."""
    result, shadow = generator.insert_shadow_variable(NESTED, 1, VarInfo('t', 'float'), [])
    assert result == NESTED
    assert shadow is None


def test_shadow_nested_loops(generator, analyzer):
    """Test one declaration before the outermost loop and one assignment."""
    loops = analyzer.find_enclosing_loops(NESTED, 0, 4)
    result, shadow = generator.insert_shadow_variable(NESTED, 4, VarInfo('d', 'float'), loops)
    assert shadow == '_dbgShadow'
    assert result[2] == '  float _dbgShadow;'
    assert result[3] == NESTED[2]
    assert result[5] == NESTED[4]
    assert result[6] == '      _dbgShadow = d;'
    text = '\n'.join(result)
    assert text.count('float _dbgShadow;') == 1
    assert text.count('_dbgShadow = d;') == 1


def test_shadow_does_not_modify_input(generator, analyzer):
    """Test the input list is left as is."""
    original = list(NESTED)
    loops = analyzer.find_enclosing_loops(NESTED, 0, 4)
    generator.insert_shadow_variable(NESTED, 4, VarInfo('d', 'float'), loops)
    assert NESTED == original


def test_shadow_assignment_before_closing_brace(generator, analyzer):
    """Test the assignment stays inside the loop when the brace shares the line."""
    lines = [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  for (int i = 0; i < 3; i++) {',
        '    float t = float(i); }',
    ]
    loops = analyzer.find_enclosing_loops(lines, 0, 2, 22)
    result, shadow = generator.insert_shadow_variable(lines, 2, VarInfo('t', 'float'), loops)
    assert shadow == '_dbgShadow'
    assert result == [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  float _dbgShadow;',
        '  for (int i = 0; i < 3; i++) {',
        '    float t = float(i); _dbgShadow = t; }',
    ]


def test_shadow_loop_as_if_body(generator, analyzer):
    """Test the declaration opens a block instead of becoming the if body."""
    lines = [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  float s = 0.0;',
        '  if (fragCoord.x > 1.0)',
        '    for (int i = 0; i < 4; i++)',
        '      s += 1.0;',
    ]
    loops = analyzer.find_enclosing_loops(lines, 0, 4)
    result, _ = generator.insert_shadow_variable(lines, 4, VarInfo('s', 'float'), loops)
    assert result[2:] == [
        '  if (fragCoord.x > 1.0)',
        '    { float _dbgShadow; for (int i = 0; i < 4; i++)',
        '      s += 1.0;',
        '      _dbgShadow = s;',
    ]


# ============================================================================
# 3. Default Parameters
# ============================================================================

def test_default_parameters_uv(generator, parser):
    """Test vec2 parameter sweeps uv and declares it."""
    signature = parser.parse(['float sdf(vec2 p) {'], 0)
    arguments = generator.generate_default_parameters(signature)
    assert arguments.args == ('uv',)
    assert arguments.setup == ('vec2 uv = fragCoord / iResolution.xy;',)


def test_default_parameters_literals_need_no_setup(generator, parser):
    """Test literal arguments emit no coordinate setup."""
    signature = parser.parse(['float f(float r, vec3 c, int n, bool b) {'], 0)
    arguments = generator.generate_default_parameters(signature)
    assert arguments.args == ('0.5', 'vec3(0.5)', '1', 'true')
    assert arguments.setup == ()


def test_default_parameters_custom_override(generator, parser):
    """Test custom values replace defaults by visible index."""
    signature = parser.parse(['float sdf(vec2 p, float r) {'], 0)
    arguments = generator.generate_default_parameters(signature, {1: '0.25'})
    assert arguments.call_arguments == 'uv, 0.25'


def test_default_parameters_centered_uv(generator, parser):
    """Test centered coordinates get their own setup."""
    signature = parser.parse(['float sdf(vec2 p) {'], 0)
    arguments = generator.generate_default_parameters(signature, {0: 'centeredUv * 2.0'})
    assert arguments.setup == (
        'vec2 centeredUv = (2.0 * fragCoord - iResolution.xy) / iResolution.y;',
    )


def test_default_parameters_out_storage(generator, parser):
    """Test out parameters are passed a declared local."""
    signature = parser.parse(['float march(vec3 ro, out vec3 hit, float r) {'], 0)
    arguments = generator.generate_default_parameters(signature, {1: '2.0'})
    assert arguments.args == ('vec3(0.5)', '_dbgOut1', '2.0')
    assert 'vec3 _dbgOut1;' in arguments.setup


def test_default_parameters_inout_local(generator, parser):
    """Test inout parameters are passed an initialized local, never a literal."""
    signature = parser.parse(['void shade(inout vec3 col, float k) {'], 0)
    arguments = generator.generate_default_parameters(signature)
    assert arguments.args == ('_dbgOut0', '0.5')
    assert arguments.setup == ('vec3 _dbgOut0 = vec3(0.5);',)


def test_default_parameters_inout_uv_and_override(generator, parser):
    """Test inout locals keep the uv setup and take custom values."""
    signature = parser.parse(['float march(inout vec2 p, inout float d) {'], 0)
    arguments = generator.generate_default_parameters(signature, {1: '2.0'})
    assert arguments.call_arguments == '_dbgOut0, _dbgOut1'
    assert arguments.setup == (
        'vec2 uv = fragCoord / iResolution.xy;',
        'vec2 _dbgOut0 = uv;',
        'float _dbgOut1 = 2.0;',
    )


def test_default_parameters_unsupported_type_storage(generator, parser):
    """Test struct parameters are passed a declared local."""
    signature = parser.parse(['float shade(Ray r, float t) {'], 0)
    arguments = generator.generate_default_parameters(signature)
    assert arguments.args == ('_dbgOut0', '0.5')
    assert arguments.setup == ('Ray _dbgOut0;',)


def test_default_parameters_sampler(generator, parser):
    """Test samplers are passed the first texture input."""
    signature = parser.parse(['vec4 sample(sampler2D tex, vec2 uv) {'], 0)
    arguments = generator.generate_default_parameters(signature)
    assert arguments.args == ('iChannel0', 'uv')


# ============================================================================
# 4. One-liner
# ============================================================================

def test_one_liner_vec3(generator):
    """Test bare statement wrapped in a synthetic entry point."""
    result = generator.wrap_one_liner_for_debugging('vec3 col = vec3(1.0);', VarInfo('col', 'vec3'))
    assert result.split('\n') == [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  vec3 col = vec3(1.0);',
        '  fragColor = vec4(col, 1.0); // Debug: visualize vec3 as RGB',
        '}',
    ]


def test_one_liner_declares_uv_when_used(generator):
    """Test uv setup precedes a statement that reads uv."""
    result = generator.wrap_one_liner_for_debugging('float d = length(uv);', VarInfo('d', 'float'))
    lines = result.split('\n')
    assert lines[1] == '  vec2 uv = fragCoord / iResolution.xy;'
    assert lines[2] == '  float d = length(uv);'


# ============================================================================
# 5. Helper Functions
# ============================================================================

SDF = """float sdf(vec2 p) {
  float d = length(p) - 0.5;
  return d;
}

void mainImage(out vec4 fragColor, in vec2 fragCoord) {
  vec2 uv = fragCoord / iResolution.xy;
  fragColor = vec4(vec3(sdf(uv)), 1.0);
}""".split('\n')


def test_wrap_function_keeps_original(generator, analyzer):
    """Test original function kept verbatim, debug copy and entry point appended."""
    signature = analyzer.find_enclosing_function(SDF, 1)
    result = generator.wrap_function_for_debugging(SDF, signature, 1, VarInfo('d', 'float'))
    assert result.split('\n') == [
        'float sdf(vec2 p) {',
        '  float d = length(p) - 0.5;',
        '  return d;',
        '}',
        '',
        'float _dbg_sdf(vec2 p) {',
        '  float d = length(p) - 0.5;',
        '  return d;',
        '}',
        '',
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  vec2 uv = fragCoord / iResolution.xy;',
        '  float result = _dbg_sdf(uv);',
        '  fragColor = vec4(vec3(result), 1.0); // Debug: visualize float as grayscale',
        '}',
    ]


def test_wrap_function_rewrites_return(generator, analyzer):
    """Test a return expression is captured in the debug copy."""
    lines = ['vec3 getColor(vec2 uv) {', '  return vec3(uv, 0.5);', '}']
    signature = analyzer.find_enclosing_function(lines, 1)
    result = generator.wrap_function_for_debugging(lines, signature, 1, VarInfo('_dbgReturn', 'vec3'))
    assert '  vec3 _dbgReturn = vec3(uv, 0.5);' in result
    assert '  return _dbgReturn;' in result
    assert '  return vec3(uv, 0.5);' in result
    assert 'vec3 result = _dbg_getColor(uv);' in result


def test_wrap_function_changes_debug_copy_return_type(generator, analyzer):
    """Test the debug copy returns the debugged variable's type."""
    lines = [
        'float shade(vec3 n) {',
        '  vec3 l = normalize(vec3(1.0));',
        '  return dot(n, l);',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 1)
    result = generator.wrap_function_for_debugging(lines, signature, 1, VarInfo('l', 'vec3'))
    assert 'vec3 _dbg_shade(vec3 n) {' in result
    assert 'vec3 result = _dbg_shade(vec3(0.5));' in result
    assert 'fragColor = vec4(result, 1.0);' in result


def test_wrap_function_in_loop_uses_shadow(generator, analyzer):
    """Test loop-local variable leaves the debug copy through the shadow."""
    lines = [
        'float march(vec2 p) {',
        '  float d = 0.0;',
        '  for (int i = 0; i < 100; i++) {',
        '    d += 0.01;',
        '    float stepSize = d * 0.1;',
        '  }',
        '  return d;',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 4)
    loops = analyzer.find_enclosing_loops(lines, 0, 4)
    result = generator.wrap_function_for_debugging(
        lines, signature, 4, VarInfo('stepSize', 'float'), loops, {0: 20},
    )
    output = result.split('\n')
    debug_copy = output[output.index('float _dbg_march(vec2 p) {'):]
    assert debug_copy[:10] == [
        'float _dbg_march(vec2 p) {',
        '  float d = 0.0;',
        '  float _dbgShadow;',
        '  int _dbgIter0 = 0;',
        '  for (int i = 0; i < 100; i++) {',
        '    if (++_dbgIter0 > 20) break;',
        '    d += 0.01;',
        '    float stepSize = d * 0.1;',
        '    _dbgShadow = stepSize;',
        '  }',
    ]
    assert debug_copy[10:12] == ['  return _dbgShadow;', '}']
    assert output[:8] == lines


def test_wrap_function_drops_entry_point_before(generator, analyzer):
    """Test an entry point defined before the helper is not duplicated."""
    lines = [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  fragColor = vec4(0.0);',
        '}',
        '',
        'float helper(float x) {',
        '  float y = x * 2.0;',
        '  return y;',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 5)
    result = generator.wrap_function_for_debugging(lines, signature, 5, VarInfo('y', 'float'))
    assert result.count('void mainImage') == 1
    assert 'fragColor = vec4(0.0);' not in result
    assert 'float result = _dbg_helper(0.5);' in result


def test_wrap_function_keeps_prior_helpers(generator, analyzer):
    """Test functions defined before the target stay available."""
    lines = [
        'float sq(float x) {',
        '  return x * x;',
        '}',
        '',
        'float f(float a) {',
        '  float b = sq(a);',
        '  return b;',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 5)
    result = generator.wrap_function_for_debugging(lines, signature, 5, VarInfo('b', 'float'))
    assert result.startswith('float sq(float x) {\n  return x * x;\n}')


def test_wrap_full_function(generator, analyzer):
    """Test full-function mode calls the helper unchanged."""
    lines = ['vec3 getColor(vec2 uv) {', '  return vec3(uv, 0.5);', '}']
    signature = analyzer.find_enclosing_function(lines, 0)
    result = generator.wrap_full_function_for_debugging(lines, signature)
    assert result.split('\n') == [
        'vec3 getColor(vec2 uv) {',
        '  return vec3(uv, 0.5);',
        '}',
        '',
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  vec2 uv = fragCoord / iResolution.xy;',
        '  vec3 result = getColor(uv);',
        '  fragColor = vec4(result, 1.0); // Debug: visualize vec3 as RGB',
        '}',
    ]


def test_wrap_full_function_with_cap(generator, analyzer):
    """Test loop caps apply to the called function."""
    lines = [
        'float march(vec2 p) {',
        '  float t = 0.0;',
        '  for (int i = 0; i < 64; i++) {',
        '    t += 0.1;',
        '  }',
        '  return t;',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 0)
    result = generator.wrap_full_function_for_debugging(lines, signature, loop_caps={0: 4})
    assert 'if (++_dbgIter0 > 4) break;' in result
    assert 'float result = march(uv);' in result


# ============================================================================
# 6. Entry Point
# ============================================================================

def test_instrument_entry_point_keeps_following_functions(generator, analyzer):
    """Test source after the entry point is re-appended."""
    lines = [
        'void mainImage(out vec4 O, in vec2 U) {',
        '  vec2 p = U / iResolution.xy;',
        '  O = vec4(p, 0.0, 1.0);',
        '}',
        '',
        'float unused() {',
        '  return 1.0;',
        '}',
    ]
    signature = analyzer.find_enclosing_function(lines, 1)
    result = generator.instrument_entry_point(lines, signature, 1, VarInfo('p', 'vec2'))
    assert result.split('\n') == [
        'void mainImage(out vec4 O, in vec2 U) {',
        '  vec2 p = U / iResolution.xy;',
        '  O = vec4(p, 0.0, 1.0); // Debug: visualize vec2 (RG channels)',
        '}',
        '',
        'float unused() {',
        '  return 1.0;',
        '}',
    ]


# ============================================================================
# 7. Post-processing
# ============================================================================

def test_apply_output_post_processing(generator):
    """Test remap inserted before the entry point's closing brace."""
    source = '\n'.join([
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  fragColor = vec4(1.0);',
        '}',
    ])
    result = generator.apply_output_post_processing(
        source, VisualizationOptions(normalize=NormalizeMode.SOFT)
    )
    assert result.split('\n') == [
        'void mainImage(out vec4 fragColor, in vec2 fragCoord) {',
        '  fragColor = vec4(1.0);',
        '  fragColor.rgb = fragColor.rgb / (abs(fragColor.rgb) + vec3(1.0)) * 0.5 + 0.5;',
        '}',
    ]


def test_apply_output_post_processing_identity(generator):
    """Test no options means no result."""
    assert generator.apply_output_post_processing('void mainImage() {\n}', VisualizationOptions()) is None


def test_apply_output_post_processing_no_entry_point(generator):
    """Test source without an entry point."""
    options = VisualizationOptions(step_edge=0.5)
    assert generator.apply_output_post_processing('float f() {\n  return 1.0;\n}', options) is None
