"""
Module Linker

Synchronous require(): given a loaded module, runs its factory exactly once
and returns the cached exports.

The exports object is created before the factory runs, so two modules that
require each other at top level each see the other's partially populated
exports instead of re-entering the factory.
"""

import logging
from typing import Any, Callable, Optional, TYPE_CHECKING

from . import identifier
from .module_info import Module, ModuleState
from ..shared.errors import LinkError, RequireError

if TYPE_CHECKING:
    from .package import Package

logger = logging.getLogger(__name__)


class ModuleLinker:
    """
    Linker bound to one package.

    require() must only be called once the corresponding load has finished.
    """

    def __init__(self, package: "Package"):
        self.package = package

    def require(self, rel: str, abs: Optional[str] = None) -> Any:
        """
        Return the exports of a loaded module, running its factory on first use.

        Raises:
            UnknownDependencyFault: If an absolute id names an undeclared package
            CaseConflictFault: If the id spells a known module differently
            RedirectCycleFault: If the id's redirects form a cycle
            RequireError: If the module failed to load or its factory failed
            LinkError: If the module has no factory and no exports
        """
        package = self.package
        if identifier.is_absolute(rel):
            system = package.get_system(identifier.head(rel), abs)
            return system.linker.require_internal_module(identifier.tail(rel), abs)
        return self.require_internal_module(identifier.resolve(rel, abs), abs)

    def require_internal_module(self, id: str, abs: Optional[str] = None) -> Any:
        package = self.package
        module = package.lookup_exact(id)
        self._check_error(module, abs)
        module = package.follow_redirects(module)
        self._check_error(module, abs)

        if module.exports is not None:
            return module.exports

        owner = module.package
        if module.is_loading:
            raise LinkError(module.id, owner.display_name, abs, reason="its load has not finished")
        if module.factory is None:
            raise LinkError(
                module.id, owner.display_name, abs,
                reason="no factory or exports were created by the module",
            )
        return owner.linker._execute(module)

    def _check_error(self, module: Module, abs: Optional[str]) -> None:
        if module.error is not None:
            raise RequireError(
                module.id, module.package.display_name, abs, cause=module.error,
            ) from module.error

    def _execute(self, module: Module) -> Any:
        module.require = self.make_require(module.id)
        module.exports = {}
        logger.debug(f"Linking {module.filename}")
        try:
            module.factory(module.require, module.exports, module, module.filename, module.dirname)
        except Exception as e:
            module.error = e
            module.state = ModuleState.ERRORED
            raise
        module.state = ModuleState.LINKED
        return module.exports

    def make_require(self, abs: str) -> Callable[[str], Any]:
        """require() function scoped to the module `abs`"""
        package = self.package

        def require(rel: str) -> Any:
            return package.require(rel, abs)

        def resolve(rel: str) -> str:
            return package.lookup(rel, abs).filename

        require.main = package.context.main
        require.resolve = resolve
        return require
