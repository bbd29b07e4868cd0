"""Module system: identifier algebra, package registry, load scheduling, linking."""

from .module_info import Module, ModuleState, Resource
from .context import ResolutionContext
from .pipeline import ExtensionPipeline
from .module_loader import ModuleLoader
from .linker import ModuleLinker
from .package import Package

__all__ = [
    'Module',
    'ModuleState',
    'Resource',
    'ResolutionContext',
    'ExtensionPipeline',
    'ModuleLoader',
    'ModuleLinker',
    'Package',
]
