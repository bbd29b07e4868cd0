"""
Package (System)

One unit of dependency: a root project or one nested dependency. A Package
owns its declared dependency set, its pipeline table and its redirects, and
shares the module, resource and package registries of its ResolutionContext
with every other package of the tree.

Loading is delegated to ModuleLoader and linking to ModuleLinker; this class
holds identity, lookup and nested-package construction.

Node Pattern: npm package layout (node_modules/<name>/package.json)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Set, Union

from . import identifier
from . import pipeline
from .context import ResolutionContext
from .linker import ModuleLinker
from .module_info import Module, ModuleState, Resource
from .module_loader import ModuleLoader
from .pipeline import ExtensionPipeline
from ..compiler.builtins import compile_json, compile_python
from ..frontend.dependency_scanner import scan_dependencies
from ..shared.errors import (
    CaseConflictFault,
    LinkError,
    ParseFault,
    RedirectCycleFault,
    UnknownDependencyFault,
)
from ..utils.config import (
    BUILTIN_EXTENSIONS,
    DEFAULT_EXTENSION,
    DEFAULT_MAIN,
    DEPENDENCY_DIRECTORY,
    DESCRIPTOR_FILENAME,
    JSON_EXTENSION,
    ROOT_ID,
)

logger = logging.getLogger(__name__)


def _capture(module: Module, fault: BaseException) -> None:
    if module.error is None:
        module.error = fault
        module.state = ModuleState.ERRORED


class Package:
    """
    A package and its view of the shared registries.

    Args:
        location: Base location all package-relative ids resolve against
        descriptor: Parsed descriptor (package.json) contents
        context: Shared registries (a fresh context when None)
        build_system: Package supplying translator/analyzer/compiler modules
                      (this package when None)
        name: Name the package was requested by, when nested
        parent: Package that declared this one as a dependency
    """

    def __init__(
        self,
        location: Union[Path, str],
        descriptor: Optional[Mapping[str, Any]] = None,
        context: Optional[ResolutionContext] = None,
        build_system: Optional["Package"] = None,
        name: Optional[str] = None,
        parent: Optional["Package"] = None,
    ):
        descriptor = dict(descriptor or {})
        self.name: str = descriptor.get("name") or name or ""
        self.location = Path(location)
        self.descriptor = descriptor
        self.context = context if context is not None else ResolutionContext()
        self.build_system = build_system
        self.parent = parent
        self.dependencies: Set[str] = set()
        self.pipelines: Dict[str, ExtensionPipeline] = {
            DEFAULT_EXTENSION: ExtensionPipeline(analyze=scan_dependencies, compile=compile_python),
            JSON_EXTENSION: ExtensionPipeline(compile=compile_json),
        }
        self.loader = ModuleLoader(self)
        self.linker = ModuleLinker(self)

        self.context.systems[self.name] = self
        if name is not None and name != self.name:
            logger.warning(f'Package loaded by name "{name}" bears name "{self.name}"')
            self.context.systems.setdefault(name, self)

        # Pipelines first: they decide how every id below is normalized
        self.add_translators(descriptor.get("translators") or {})
        self.add_analyzers(descriptor.get("analyzers") or {})
        self.add_compilers(descriptor.get("compilers") or {})
        self.add_dependencies(descriptor.get("dependencies") or {})
        self.add_dependencies(descriptor.get("devDependencies") or {})
        self.add_redirect(ROOT_ID, descriptor.get("main") or DEFAULT_MAIN)
        if self.context.browser:
            self._overlay_browser(descriptor.get("browser"))
        self.add_redirects(descriptor.get("redirects") or {})

    @classmethod
    async def load_package(
        cls,
        location: Union[Path, str],
        context: Optional[ResolutionContext] = None,
        build_system: Optional["Package"] = None,
    ) -> "Package":
        """
        Construct a root package by reading its descriptor.

        Raises:
            IOFault: If the descriptor cannot be read
            ParseFault: If the descriptor is not a JSON object
        """
        context = context if context is not None else ResolutionContext()
        descriptor = await cls.read_descriptor(context, Path(location))
        return cls(location, descriptor, context=context, build_system=build_system)

    @staticmethod
    async def read_descriptor(context: ResolutionContext, location: Path) -> Dict[str, Any]:
        descriptor_location = location / DESCRIPTOR_FILENAME
        text = await context.read(descriptor_location)
        try:
            descriptor = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseFault(str(descriptor_location), str(e)) from e
        if not isinstance(descriptor, dict):
            raise ParseFault(str(descriptor_location), "the descriptor is not an object")
        return descriptor

    @property
    def display_name(self) -> str:
        return self.name or str(self.location)

    def __repr__(self) -> str:
        return f"Package(name={self.name!r}, location={str(self.location)!r})"

    # ------------------------------------------------------------------
    # Loading and linking
    # ------------------------------------------------------------------

    async def load(self, rel: str, abs: Optional[str] = None) -> None:
        """Load a module and its transitive dependencies without executing them"""
        await self.loader.load(rel, abs)

    async def import_module(self, rel: str, abs: Optional[str] = None) -> Any:
        """Load a module's closure, then link it and return its exports"""
        return await self.loader.import_module(rel, abs)

    def require(self, rel: str, abs: Optional[str] = None) -> Any:
        """Link an already loaded module and return its exports"""
        return self.linker.require(rel, abs)

    # ------------------------------------------------------------------
    # Dependency packages
    # ------------------------------------------------------------------

    def add_dependencies(self, dependencies: Union[Mapping[str, Any], Iterable[str]]) -> None:
        """Declare dependency names (mapping keys are names, values are ignored)"""
        self.dependencies.update(dependencies)

    def get_build_system(self) -> "Package":
        return self.build_system if self.build_system is not None else self

    def get_system(self, name: str, abs: Optional[str] = None) -> "Package":
        """
        Return a dependency package that has already been loaded.

        Raises:
            UnknownDependencyFault: If `name` is not a declared dependency
            LinkError: If the dependency has not been loaded yet
        """
        if name not in self.dependencies:
            raise UnknownDependencyFault(name, self.display_name, abs)
        system = self.context.systems.get(name)
        if system is None:
            raise LinkError(
                name, self.display_name, abs,
                reason=f'dependency "{name}" has not been loaded',
            )
        return system

    async def load_system(self, name: str) -> "Package":
        """
        Return the dependency package `name`, constructing it at most once.

        Raises:
            UnknownDependencyFault: If `name` is not a declared dependency
        """
        if name not in self.dependencies:
            raise UnknownDependencyFault(name, self.display_name)
        return await self._load_system_memoized(name)

    async def _load_system_memoized(self, name: str) -> "Package":
        system = self.context.systems.get(name)
        if system is not None:
            return system
        task = self.context.system_tasks.get(name)
        if task is None:
            task = asyncio.ensure_future(self._construct_system(name))
            self.context.system_tasks[name] = task
        return await task

    async def _construct_system(self, name: str) -> "Package":
        location = identifier.resolve_location(self.location / DEPENDENCY_DIRECTORY, name)
        logger.debug(f'Loading package "{name}" from {location}')
        pending = [self.read_descriptor(self.context, location)]
        build = self.build_system
        if build is not None and build is not self:
            # Build tooling resolves its own copy of the dependency. In a shared
            # context the memoized task for `name` is this one.
            if build.context is self.context:
                pending.append(build._construct_system(name))
            else:
                pending.append(build._load_system_memoized(name))
        results = await asyncio.gather(*pending)
        descriptor = results[0]
        build_system = results[1] if len(results) > 1 else None
        system = type(self)(
            location,
            descriptor,
            context=self.context,
            build_system=build_system,
            name=name,
            parent=self,
        )
        logger.debug(f'Loaded package "{system.display_name}"')
        return system

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def get_resource(self, rel: str, abs: Optional[str] = None) -> Resource:
        """Resource for an id; cross-package ids need their package loaded"""
        if identifier.is_absolute(rel):
            system = self.get_system(identifier.head(rel), abs)
            return system.get_internal_resource(identifier.tail(rel))
        return self.get_internal_resource(identifier.resolve(rel, abs))

    async def locate_resource(self, rel: str, abs: Optional[str] = None) -> Resource:
        """Resource for an id, loading the owning dependency package when needed"""
        if identifier.is_absolute(rel):
            system = await self.load_system(identifier.head(rel))
            return system.get_internal_resource(identifier.tail(rel))
        return self.get_internal_resource(identifier.resolve(rel, abs))

    def get_internal_resource(self, id: str) -> Resource:
        filename = self.filename_for(id)
        key = filename.lower()
        resource = self.context.resources.get(key)
        if resource is None:
            resource = Resource(
                id=id,
                filename=filename,
                dirname=identifier.dirname(filename),
                key=key,
                location=identifier.resolve_location(self.location, id),
                package=self,
            )
            self.context.resources[key] = resource
        return resource

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def filename_for(self, id: str) -> str:
        # "/id" for an unnamed root, distinct from any dependency's "name/id"
        return f"{self.name}/{id}"

    def normalize_identifier(self, id: str) -> str:
        """Append the default extension unless some pipeline handles the id as-is"""
        if id == ROOT_ID:
            return id
        extension = identifier.extension(id)
        if extension in BUILTIN_EXTENSIONS:
            return id
        handler = self.pipelines.get(extension)
        if handler is not None and handler.produces_modules():
            return id
        return f"{id}.{DEFAULT_EXTENSION}"

    def lookup(self, rel: str, abs: Optional[str] = None) -> Module:
        """Canonical Module for an id, crossing into a loaded dependency when absolute"""
        if identifier.is_absolute(rel):
            system = self.get_system(identifier.head(rel), abs)
            return system.lookup_internal_module(identifier.tail(rel), abs)
        return self.lookup_internal_module(rel, abs)

    def lookup_internal_module(self, rel: str, abs: Optional[str] = None) -> Module:
        return self.follow_redirects(self.lookup_exact(rel, abs))

    def lookup_exact(self, rel: str, abs: Optional[str] = None) -> Module:
        """
        Module bound to an id, created on a registry miss. Redirects are not followed.

        The registry is case-insensitive for lookup but case-sensitive for
        identity.

        Raises:
            CaseConflictFault: If the key is already bound to another spelling
        """
        id = self.normalize_identifier(identifier.resolve(rel, abs))
        filename = self.filename_for(id)
        key = filename.lower()
        module = self.context.modules.get(key)
        if module is None:
            resource = self.get_internal_resource(id)
            module = Module(
                id=id,
                key=key,
                filename=filename,
                dirname=identifier.dirname(filename),
                extension=identifier.extension(id),
                location=resource.location,
                resource=resource,
                package=self,
            )
            self.context.modules[key] = module
        elif module.filename != filename:
            fault = CaseConflictFault(module.filename, filename)
            _capture(module, fault)
            raise fault
        return module

    def follow_redirects(self, module: Module) -> Module:
        """
        Follow a redirect chain to the first non-redirected Module.

        Raises:
            RedirectCycleFault: If the chain revisits a key; the fault is also
                                captured on the module the chain started from
        """
        start = module
        chain = []
        while module.redirect is not None:
            if module.key in chain:
                fault = RedirectCycleFault(module.key, chain)
                _capture(start, fault)
                raise fault
            chain.append(module.key)
            module = module.package.lookup_exact(module.redirect)
        return module

    # ------------------------------------------------------------------
    # Redirects
    # ------------------------------------------------------------------

    def add_redirects(self, redirects: Mapping[str, str]) -> None:
        for source, target in redirects.items():
            self.add_redirect(source, target)

    def add_redirect(self, source: str, target: str) -> None:
        """Alias `source` to `target`; both resolve from the package root"""
        source = self.normalize_identifier(identifier.resolve(source))
        target = self.normalize_identifier(identifier.resolve(target, source))
        self.lookup_exact(source).redirect = target
        logger.debug(f'Redirect "{self.filename_for(source)}" -> "{self.filename_for(target)}"')

    def _overlay_browser(self, browser: Any) -> None:
        if isinstance(browser, str):
            self.add_redirect(ROOT_ID, browser)
        elif isinstance(browser, Mapping):
            for source, target in browser.items():
                if not isinstance(target, str):
                    logger.debug(f'Ignoring browser overlay for "{source}": {target!r}')
                    continue
                self.add_redirect(source, target)

    # ------------------------------------------------------------------
    # Pipeline tables
    # ------------------------------------------------------------------

    def _pipeline(self, extension: str) -> ExtensionPipeline:
        return self.pipelines.setdefault(extension, ExtensionPipeline())

    def add_translators(self, translators: Mapping[str, str]) -> None:
        for extension, id in translators.items():
            self.add_translator(extension, id)

    def add_translator(self, extension: str, id: str) -> None:
        self._pipeline(extension).translate = pipeline.make_translator(self, id)

    def add_analyzers(self, analyzers: Mapping[str, str]) -> None:
        for extension, id in analyzers.items():
            self.add_analyzer(extension, id)

    def add_analyzer(self, extension: str, id: str) -> None:
        self._pipeline(extension).analyze = pipeline.make_analyzer(self, id)

    def add_compilers(self, compilers: Mapping[str, str]) -> None:
        for extension, id in compilers.items():
            self.add_compiler(extension, id)

    def add_compiler(self, extension: str, id: str) -> None:
        self._pipeline(extension).compile = pipeline.make_compiler(self, id)
