"""
Exceptions raised while building a native library
"""

from pathlib import Path
from typing import Optional


class LibraryBuildError(Exception):
    """Base class for every fatal build failure"""


class MissingRequirementError(LibraryBuildError):
    """A required external tool is not on PATH"""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Could not find `{tool}`")


class ConfigurationError(LibraryBuildError):
    """The library's Configure step exited with a nonzero status"""

    def __init__(self, artifact: str, returncode: Optional[int] = None):
        self.artifact = artifact
        self.returncode = returncode
        super().__init__(f"Could not configure {artifact} (exit code {returncode})")


class CompilationError(LibraryBuildError):
    """make / nmake exited with a nonzero status"""

    def __init__(self, artifact: str, returncode: Optional[int] = None):
        self.artifact = artifact
        self.returncode = returncode
        super().__init__(f"Could not compile {artifact} (exit code {returncode})")


class ToolchainNotFoundError(LibraryBuildError):
    """A platform toolchain component (NDK, MSVC, nmake) could not be located"""

    def __init__(self, component: str, detail: str = ""):
        self.component = component
        message = f"Could not find {component}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class BuildDirectoryError(LibraryBuildError):
    """A path in the build tree could not be created or removed"""

    def __init__(self, path: Path, reason: str = "", action: str = "create"):
        self.path = Path(path)
        message = f"Could not {action} {self.path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnsupportedPlatformError(LibraryBuildError):
    """The host is not one of the supported targets"""


__all__ = [
    "LibraryBuildError",
    "MissingRequirementError",
    "ConfigurationError",
    "CompilationError",
    "ToolchainNotFoundError",
    "BuildDirectoryError",
    "UnsupportedPlatformError",
]
