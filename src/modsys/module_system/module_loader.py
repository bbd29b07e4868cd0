"""
Module Loader

Asynchronous load scheduler: fetches a module's text, runs it through the
pipeline (translate -> analyze -> load dependencies -> compile) and recurses
into every dependency, crossing into dependency packages for absolute ids.

Each Module is loaded at most once. A module whose load has already started
is treated as available: a request for it returns immediately instead of
waiting, which is what lets cyclic graphs settle. import_module() waits for
the whole closure before linking.

Faults are captured on the failing Module and never retried. They do not
fault the modules that depend on it.
"""

import asyncio
import logging
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

from . import identifier
from . import pipeline
from .module_info import Module, ModuleState
from ..shared.errors import (
    CaseConflictFault,
    LoadError,
    ModuleSystemError,
    RedirectCycleFault,
    UnknownDependencyFault,
)

if TYPE_CHECKING:
    from .package import Package

logger = logging.getLogger(__name__)


class ModuleLoader:
    """
    Load scheduler bound to one package.

    Node Pattern: Module._load, split into an async load phase and a
    synchronous link phase (see linker.py)
    """

    def __init__(self, package: "Package"):
        self.package = package

    async def load(self, rel: str, abs: Optional[str] = None) -> None:
        """
        Load a module and its transitive dependencies.

        An absolute id whose head is not a declared dependency is treated as
        unreachable and skipped.
        """
        package = self.package
        if identifier.is_absolute(rel):
            name = identifier.head(rel)
            if name not in package.dependencies:
                logger.debug(f'Skipping "{rel}": "{name}" is not a dependency of {package.display_name}')
                return
            system = await package.load_system(name)
            await system.loader.load_internal_module(identifier.tail(rel), abs)
            return
        await self.load_internal_module(rel, abs)

    async def load_internal_module(self, rel: str, abs: Optional[str] = None) -> None:
        try:
            module = self.package.lookup_internal_module(rel, abs)
        except (CaseConflictFault, RedirectCycleFault) as e:
            # Already captured on the module by lookup
            logger.debug(f'Not loading "{rel}": {e}')
            return

        if module.load_task is not None:
            return
        module.load_task = asyncio.ensure_future(self._run_pipeline(module))
        await module.load_task

    async def _run_pipeline(self, module: Module) -> None:
        package = self.package
        try:
            if module.factory is None and module.exports is None and module.text is None:
                module.state = ModuleState.FETCHING
                module.text = await package.context.read(module.location)
            await pipeline.translate(package.pipelines, module)
            await pipeline.analyze(package.pipelines, module)
            module.state = ModuleState.LOADING_DEPENDENCIES
            await self._load_dependencies(module)
            await pipeline.compile(package.pipelines, module)
        except Exception as e:
            module.error = e
            module.state = ModuleState.ERRORED
            logger.debug(f"Failed to load {module.filename}: {e}")
            return
        module.state = ModuleState.LOADED
        logger.debug(f"Loaded {module.filename}")

    async def _load_dependencies(self, module: Module) -> None:
        """Load every dependency; all of them settle before the first failure is raised"""
        results = await asyncio.gather(
            *(self.load(dependency, module.id) for dependency in module.dependencies),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def import_module(self, rel: str, abs: Optional[str] = None, main: bool = True) -> Any:
        """
        Load a module's closure, then link it and return its exports.

        The first import with `main` set records its module as the main
        module of the context. Pipeline stages import with `main` unset.

        Raises:
            UnknownDependencyFault: If an absolute id names an undeclared
                                    package (raised before any I/O)
            LoadError: If any module in the closure failed to load
            RequireError: If linking fails
        """
        package = self.package
        if identifier.is_absolute(rel):
            name = identifier.head(rel)
            if name not in package.dependencies:
                raise UnknownDependencyFault(name, package.display_name, abs)

        await self.load(rel, abs)
        module = package.lookup(rel, abs)
        failures = await self.settle(module)
        if failures:
            raise LoadError(module.filename, failures) from failures[0][1]

        if main and package.context.main is None:
            package.context.main = module
        return package.require(rel, abs)

    async def settle(self, module: Module) -> List[Tuple[str, BaseException]]:
        """
        Wait for every load in the closure of `module` and collect load faults.

        Loads started by a concurrent import may still be running when this
        import's own load returns; those are awaited here.
        """
        failures: List[Tuple[str, BaseException]] = []
        seen = set()
        stack = [module]
        current_task = asyncio.current_task()
        while stack:
            current = stack.pop()
            if current.key in seen:
                continue
            seen.add(current.key)
            if current.is_loading and current.load_task is not current_task:
                await current.load_task
            if current.error is not None:
                failures.append((current.filename, current.error))
            for dependency in current.dependencies:
                try:
                    target = current.package.lookup(dependency, current.id)
                except (CaseConflictFault, RedirectCycleFault) as e:
                    failures.append((f"{dependency} from {current.filename}", e))
                    continue
                except ModuleSystemError:
                    # Undeclared or unconstructed packages were skipped or
                    # faulted the referring module during load
                    continue
                stack.append(target)
        return failures
