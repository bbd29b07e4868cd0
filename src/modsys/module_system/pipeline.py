"""
Pipeline Dispatch

Each file extension maps to an ExtensionPipeline: a capability record with
optional translate, analyze and compile functions. Dispatch looks up the
module's current extension and runs the stage when its preconditions hold;
otherwise the stage is a no-op.

Stages declared in a package descriptor name a module id. The function is
imported lazily from the package's build package the first time the stage
runs.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, TYPE_CHECKING

from .module_info import Module, ModuleState
from ..utils.config import DEFAULT_EXTENSION

if TYPE_CHECKING:
    from .package import Package

logger = logging.getLogger(__name__)

# Translator: (module) -> None, rewrites module.text
# Analyzer:   (text) -> sequence of dependency ids
# Compiler:   (module) -> None, sets module.factory or module.exports
# Any of them may return an awaitable.
Stage = Callable[..., Any]


@dataclass
class ExtensionPipeline:
    """Capabilities registered for one extension"""
    translate: Optional[Stage] = None
    analyze: Optional[Stage] = None
    compile: Optional[Stage] = None

    def produces_modules(self) -> bool:
        """True when modules with this extension can be translated or compiled"""
        return self.translate is not None or self.compile is not None


async def _settle(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def translate(pipelines: Dict[str, ExtensionPipeline], module: Module) -> None:
    pipeline = pipelines.get(module.extension)
    if module.text is None or pipeline is None or pipeline.translate is None:
        return
    module.state = ModuleState.TRANSLATING
    await _settle(pipeline.translate(module))
    # Translation always yields the default compiled form
    module.extension = DEFAULT_EXTENSION
    logger.debug(f"Translated {module.filename}")


async def analyze(pipelines: Dict[str, ExtensionPipeline], module: Module) -> None:
    pipeline = pipelines.get(module.extension)
    if module.text is None or pipeline is None or pipeline.analyze is None:
        return
    module.state = ModuleState.ANALYZING
    dependencies = await _settle(pipeline.analyze(module.text))
    for dependency in dependencies or ():
        if dependency not in module.dependencies:
            module.dependencies.append(dependency)
    logger.debug(f"Analyzed {module.filename}: {len(module.dependencies)} dependencies")


async def compile(pipelines: Dict[str, ExtensionPipeline], module: Module) -> None:
    if module.factory is not None or module.exports is not None or module.redirect is not None:
        return
    pipeline = pipelines.get(module.extension)
    if pipeline is None or pipeline.compile is None:
        return
    module.state = ModuleState.COMPILING
    await _settle(pipeline.compile(module))
    logger.debug(f"Compiled {module.filename}")


def _expect_callable(function: Any, id: str, kind: str) -> Callable:
    if not callable(function):
        raise TypeError(
            f'{kind} module "{id}" must export a function, got {type(function).__name__}'
        )
    return function


def make_translator(package: "Package", id: str) -> Stage:
    """Translator that imports its implementation from the build package"""
    async def translate_module(module: Module) -> None:
        function = await package.get_build_system().loader.import_module(id, main=False)
        await _settle(_expect_callable(function, id, "Translator")(module))
    return translate_module


def make_analyzer(package: "Package", id: str) -> Stage:
    """Analyzer that imports its implementation from the build package"""
    async def analyze_text(text: str) -> Sequence[str]:
        function = await package.get_build_system().loader.import_module(id, main=False)
        return await _settle(_expect_callable(function, id, "Analyzer")(text))
    return analyze_text


def make_compiler(package: "Package", id: str) -> Stage:
    """Compiler that imports its implementation from the build package"""
    async def compile_module(module: Module) -> None:
        function = await package.get_build_system().loader.import_module(id, main=False)
        await _settle(_expect_callable(function, id, "Compiler")(module))
    return compile_module
