"""
modsys: a CommonJS-style package resolver and module loader.

Packages are discovered under node_modules/, module bodies are loaded
asynchronously through a pluggable translate/analyze/compile pipeline, and
linked on demand with require/exports semantics.
"""

from .module_system import (
    ExtensionPipeline,
    Module,
    ModuleState,
    Package,
    ResolutionContext,
    Resource,
)
from .shared.errors import (
    CaseConflictFault,
    IOFault,
    LinkError,
    LoadError,
    ModuleSystemError,
    ParseFault,
    RedirectCycleFault,
    RequireError,
    UnknownDependencyFault,
)

__all__ = [
    'ExtensionPipeline',
    'Module',
    'ModuleState',
    'Package',
    'ResolutionContext',
    'Resource',
    'CaseConflictFault',
    'IOFault',
    'LinkError',
    'LoadError',
    'ModuleSystemError',
    'ParseFault',
    'RedirectCycleFault',
    'RequireError',
    'UnknownDependencyFault',
]
