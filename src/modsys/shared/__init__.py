"""Shared error types."""

from .errors import (
    ModuleSystemError,
    IOFault,
    ParseFault,
    UnknownDependencyFault,
    RedirectCycleFault,
    CaseConflictFault,
    RequireError,
    LinkError,
    LoadError,
)

__all__ = [
    'ModuleSystemError',
    'IOFault',
    'ParseFault',
    'UnknownDependencyFault',
    'RedirectCycleFault',
    'CaseConflictFault',
    'RequireError',
    'LinkError',
    'LoadError',
]
