"""
Module System Types

Mutable records shared by the load scheduler and the linker.
These types carry lifecycle state only; the algorithms live in
module_loader.py and linker.py.

Node Pattern: lib/internal/modules/cjs/loader.js Module
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .package import Package


class ModuleState(Enum):
    """Lifecycle of a Module, from first lookup to execution"""
    UNRESOLVED = "unresolved"
    FETCHING = "fetching"
    TRANSLATING = "translating"
    ANALYZING = "analyzing"
    LOADING_DEPENDENCIES = "loading dependencies"
    COMPILING = "compiling"
    LOADED = "loaded"
    ERRORED = "errored"
    LINKED = "linked"


@dataclass(eq=False)
class Resource:
    """
    Location handle for a loadable artifact, independent of module semantics.

    Created once per distinct id within a package and cached by key in the
    shared resource registry.
    """
    id: str
    filename: str
    dirname: str
    key: str
    location: Path
    package: Optional["Package"] = field(default=None, repr=False)

    def __str__(self) -> str:
        return f"Resource({self.filename})"


# Factory calling convention: (require, exports, module, filename, dirname)
Factory = Callable[[Callable[[str], Any], Any, "Module", str, str], None]


@dataclass(eq=False)
class Module:
    """
    One identified, loadable source unit within a package.

    Identity:
    - id: id relative to the owning package ("lib/a.py")
    - filename: case-preserving "name/id" used in diagnostics
    - key: lowercase filename, the registry key

    `exports` is None until the linker runs the factory (or a compiler
    assigns exports directly); any other value, including an empty dict,
    means linked or linking.
    """
    id: str
    key: str
    filename: str
    dirname: str
    extension: str
    location: Path
    resource: Optional[Resource] = field(default=None, repr=False)
    package: Optional["Package"] = field(default=None, repr=False)
    text: Optional[str] = field(default=None, repr=False)
    dependencies: List[str] = field(default_factory=list)
    redirect: Optional[str] = None
    factory: Optional[Factory] = field(default=None, repr=False)
    exports: Any = field(default=None, repr=False)
    error: Optional[BaseException] = None
    load_task: Optional["asyncio.Future"] = field(default=None, repr=False)
    require: Optional[Callable[[str], Any]] = field(default=None, repr=False)
    state: ModuleState = ModuleState.UNRESOLVED

    @property
    def is_loading(self) -> bool:
        return self.load_task is not None and not self.load_task.done()

    def __str__(self) -> str:
        """Human-readable representation"""
        return f"Module({self.filename}, {self.state.value})"
