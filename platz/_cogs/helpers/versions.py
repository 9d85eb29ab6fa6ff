"""
Detecting the library's own version.

The codebase does not contain the version directly, as it would require
code changes on every release. The releases depend on tagging rather
than in-code version bumps (versions belong to the versioning system,
not to the codebase).

The version is determined only once at startup when the code is loaded,
and is then used in the ``User-Agent`` header of every outgoing request.
"""
import importlib.metadata

DISTRIBUTION = 'platz-client'

version: str | None = None

try:
    version = importlib.metadata.version(DISTRIBUTION)
except importlib.metadata.PackageNotFoundError:
    pass  # running from a source tree, not installed.

user_agent: str = f'platz/{version or "unknown"}'
