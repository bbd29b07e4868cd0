"""Compiler: built-in compilers for the default and structured-data extensions."""

from .builtins import compile_python, compile_json

__all__ = ['compile_python', 'compile_json']
