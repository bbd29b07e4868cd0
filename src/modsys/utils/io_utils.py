"""
Centralized file I/O utilities.

- Single place for encoding handling
- Use Path.read_text() consistently (no raw open/read)
- Async reads run the blocking read in a worker thread
"""

import asyncio
from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING
from ..shared.errors import IOFault


def read_source_file(path: Union[Path, str], encoding: str = DEFAULT_FILE_ENCODING) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=encoding)


async def read_resource(location: Union[Path, str], encoding: str = DEFAULT_FILE_ENCODING) -> str:
    """Read a resource without blocking the event loop; failures become IOFault."""
    try:
        return await asyncio.to_thread(read_source_file, location, encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise IOFault(location, str(e)) from e
