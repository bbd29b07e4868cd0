"""
Configuration constants for package layout and the built-in pipeline
"""

# Module identifiers
DEFAULT_EXTENSION = "py"  # Appended to ids whose extension has no pipeline
JSON_EXTENSION = "json"
BUILTIN_EXTENSIONS = (DEFAULT_EXTENSION, JSON_EXTENSION)
ROOT_ID = ""  # Id of a package's main module (redirected to `main`)
DEFAULT_MAIN = "index"

# Package layout
DESCRIPTOR_FILENAME = "package.json"
DEPENDENCY_DIRECTORY = "node_modules"

# File I/O
DEFAULT_FILE_ENCODING = "utf-8"

# Logging
LOG_LEVEL_ENV_VAR = "MODSYS_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
