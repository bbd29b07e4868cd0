"""
Dependency Scanner

Built-in analyzer for the default extension: finds require("...") call
sites in module text. Uses a Lark lexer so that comments and the contents of
string literals are never mistaken for calls.
"""

import ast
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lark import Lark

logger = logging.getLogger(__name__)

REQUIRE_NAME = "require"


@lru_cache(maxsize=1)
def _lexer() -> Lark:
    """Build the token grammar once per process."""
    grammar_path = Path(__file__).parent / "dependencies.lark"
    return Lark.open(
        str(grammar_path),
        start='start',
        parser='lalr',
        lexer='basic',
    )


def _literal(token) -> Optional[str]:
    """Decode a string token; None for bytes and f-strings."""
    try:
        value = ast.literal_eval(token.value)
    except (ValueError, SyntaxError):
        return None
    return value if isinstance(value, str) else None


def scan_dependencies(text: str) -> List[str]:
    """
    Return the ids passed to require() in first-seen order, without duplicates.

    Attribute calls (`loader.require("x")`) and calls whose argument is not a
    single string literal are ignored.
    """
    tokens = list(_lexer().lex(text))
    dependencies: List[str] = []
    for index in range(len(tokens) - 3):
        token = tokens[index]
        if token.type != 'NAME' or token.value != REQUIRE_NAME:
            continue
        if index > 0 and tokens[index - 1].type == 'DOT':
            continue
        if (tokens[index + 1].type, tokens[index + 2].type, tokens[index + 3].type) != ('LPAR', 'STRING', 'RPAR'):
            continue
        dependency = _literal(tokens[index + 2])
        if dependency is not None and dependency not in dependencies:
            dependencies.append(dependency)
    logger.debug(f"Found {len(dependencies)} require() call sites")
    return dependencies
