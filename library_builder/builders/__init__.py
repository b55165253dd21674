"""
Library descriptors and the machinery that builds them
"""

from .base_builder import BaseBuilder
from .driver import BuildDriver, BuildState
from .openssl_builder import (
    OpenSSLBuilder,
    LibraryArtefact,
    compiler_identifier,
    libopenssl,
    libssl,
    libcrypto,
)
from .orchestrator import BuildOrchestrator, BuildReport

__all__ = [
    "BaseBuilder",
    "BuildDriver",
    "BuildState",
    "OpenSSLBuilder",
    "LibraryArtefact",
    "compiler_identifier",
    "libopenssl",
    "libssl",
    "libcrypto",
    "BuildOrchestrator",
    "BuildReport",
]
