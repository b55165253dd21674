"""
Library Builder
Drives the native build of third-party C libraries into a private build tree
Supports macOS, Linux, Windows (MSVC) and Android
"""

__version__ = "1.0.0"

from .builders import BaseBuilder, BuildOrchestrator, OpenSSLBuilder, libcrypto, libopenssl, libssl
from .errors import LibraryBuildError
from .models import LibraryCompilationContext, LibraryOptions, LibraryType, GitLocation, PathLocation
from .platform import LibraryTarget
from .main import BuildSystem

__all__ = [
    "BuildSystem",
    "BaseBuilder",
    "BuildOrchestrator",
    "OpenSSLBuilder",
    "libopenssl",
    "libcrypto",
    "libssl",
    "LibraryBuildError",
    "LibraryCompilationContext",
    "LibraryOptions",
    "LibraryType",
    "GitLocation",
    "PathLocation",
    "LibraryTarget",
    "__version__",
]
