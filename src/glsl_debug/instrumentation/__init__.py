from .shader_debugger import ShaderDebugger, instrument

__all__ = ['ShaderDebugger', 'instrument']
