"""
Error Taxonomy

Load-phase faults are captured on the failing Module and surfaced lazily,
wrapped in RequireError, when something requires that module. Structural
faults (case conflicts, redirect cycles) are raised at the point of
detection.

Node Pattern: Module._load error propagation
"""

from typing import Optional, Sequence, Tuple


class ModuleSystemError(Exception):
    """Base exception for all module system errors"""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class IOFault(ModuleSystemError):
    """Raised when a backing resource cannot be read"""
    def __init__(self, location, reason: str):
        super().__init__(f'Can\'t read "{location}" because {reason}')
        self.location = location
        self.reason = reason


class ParseFault(ModuleSystemError):
    """Raised when structured-data text (a descriptor or json module) is malformed"""
    def __init__(self, filename: str, reason: str):
        super().__init__(f'Can\'t parse "{filename}" because {reason}')
        self.filename = filename
        self.reason = reason


class UnknownDependencyFault(ModuleSystemError):
    """Raised when a cross-package id names a package that was never declared"""
    def __init__(self, name: str, package_name: str, referrer: Optional[str] = None):
        via = f' via "{referrer}"' if referrer else ""
        super().__init__(
            f'Can\'t get dependency "{name}" in package named "{package_name}"{via}'
        )
        self.name = name
        self.package_name = package_name
        self.referrer = referrer


class RedirectCycleFault(ModuleSystemError):
    """Raised when following redirects revisits a module key"""
    def __init__(self, key: str, chain: Sequence[str]):
        path = " -> ".join(list(chain) + [key])
        super().__init__(f'Redirect cycle detected at "{key}": {path}')
        self.key = key
        self.chain = list(chain)


class CaseConflictFault(ModuleSystemError):
    """Raised when one registry key is reached through two filename spellings"""
    def __init__(self, existing: str, requested: str):
        super().__init__(
            "Can't refer to single module with multiple case conventions: "
            f'"{existing}" and "{requested}"'
        )
        self.existing = existing
        self.requested = requested


class RequireError(ModuleSystemError):
    """
    Raised by require() with call-site context.

    When a captured fault is the reason, it is available as `cause` and is
    also chained as __cause__ by the raiser.
    """
    def __init__(
        self,
        module_id: str,
        package_name: str,
        referrer: Optional[str] = None,
        cause: Optional[BaseException] = None,
        reason: Optional[str] = None,
    ):
        if reason is None:
            reason = str(cause) if cause is not None else "of an unknown failure"
        via = f' via "{referrer}"' if referrer else ""
        super().__init__(
            f'Can\'t require module "{module_id}"{via} in "{package_name}" because {reason}'
        )
        self.module_id = module_id
        self.package_name = package_name
        self.referrer = referrer
        self.cause = cause


class LinkError(RequireError):
    """Raised when a module has neither a factory nor exports at require time"""
    pass


class LoadError(ModuleSystemError):
    """
    Raised by import_module() when any module in the loaded closure failed.

    `failures` holds (filename, error) pairs in discovery order.
    """
    def __init__(self, module_id: str, failures: Sequence[Tuple[str, BaseException]]):
        self.module_id = module_id
        self.failures = list(failures)
        details = "; ".join(f'"{filename}": {error}' for filename, error in self.failures)
        count = len(self.failures)
        super().__init__(
            f'Can\'t import "{module_id}" because {count} module'
            f'{"s" if count != 1 else ""} failed to load: {details}'
        )
