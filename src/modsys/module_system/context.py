"""
Resolution Context

The registries shared by every Package of one resolution tree. Sharing a
single context is what collapses diamond dependencies to one Module and one
Package each. Construct one per run and hand it to the root Package; nested
packages inherit it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, TYPE_CHECKING, Union

from .module_info import Module, Resource
from ..utils.config import DEFAULT_FILE_ENCODING
from ..utils.io_utils import read_resource

if TYPE_CHECKING:
    from .package import Package

logger = logging.getLogger(__name__)

Reader = Callable[[Path, str], Awaitable[str]]


@dataclass
class ResolutionContext:
    """
    Shared, mutable registries for a package tree.

    Args:
        source_overlay: Optional in-memory resources (location -> text);
                        when set, reads are served from the overlay before
                        falling back to the reader.
        reader: Async callable (location, encoding) -> text. Defaults to
                reading the filesystem.
        browser: Apply descriptor `browser` overlays as redirects.
    """
    source_overlay: Dict[Path, str] = field(default_factory=dict)
    reader: Optional[Reader] = None
    browser: bool = False
    modules: Dict[str, Module] = field(default_factory=dict)  # by lower(name/id)
    resources: Dict[str, Resource] = field(default_factory=dict)  # by lower(name/id)
    systems: Dict[str, "Package"] = field(default_factory=dict)  # by package name
    system_tasks: Dict[str, "asyncio.Future"] = field(default_factory=dict)  # by package name
    main: Optional[Module] = None

    def __post_init__(self):
        self.source_overlay = {Path(k): v for k, v in self.source_overlay.items()}

    def add_source(self, location: Union[Path, str], text: str) -> None:
        """Register an in-memory resource"""
        self.source_overlay[Path(location)] = text

    async def read(self, location: Union[Path, str], encoding: str = DEFAULT_FILE_ENCODING) -> str:
        """
        Read a resource, preferring the in-memory overlay.

        Raises:
            IOFault: If the resource is missing or unreadable
        """
        location = Path(location)
        if location in self.source_overlay:
            return self.source_overlay[location]
        logger.debug(f"Reading {location}")
        if self.reader is not None:
            return await self.reader(location, encoding)
        return await read_resource(location, encoding)
