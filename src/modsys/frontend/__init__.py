"""Frontend: source scanning for the built-in analyzer."""

from .dependency_scanner import scan_dependencies

__all__ = ['scan_dependencies']
