"""
Base builder class that all library descriptors inherit from
"""

import copy
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Any, Sequence

from ..errors import BuildDirectoryError, MissingRequirementError
from ..models import (
    CompiledLibraryName,
    LibraryCompilationContext,
    LibraryLocation,
    LibraryOptions,
    LibraryType,
)
from ..platform import EnvironmentOverlay
from ..utils import default_logger
from .driver import BuildDriver


class BaseBuilder(ABC):
    """Abstract base class for all library descriptors"""

    def __init__(self,
                 source_location: LibraryLocation,
                 release_location: Optional[LibraryLocation] = None,
                 options: Optional[LibraryOptions] = None,
                 logger: Any = None,
                 dry_run: bool = False):
        """
        Initialize base builder

        Args:
            source_location: Where the library sources come from
            release_location: Where prebuilt releases are published, if anywhere
            options: Build options owned by this descriptor
            logger: Logger instance
            dry_run: If True, don't actually run commands
        """
        self.source_location = source_location
        self._release_location = release_location
        self.options = options.model_copy() if options else LibraryOptions()
        self.logger = logger or default_logger()
        self.dry_run = dry_run

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name()!r}, {self.options.library_type.value})"

    # Identity

    @abstractmethod
    def name(self) -> str:
        """Artifact name, also the name of the build directory"""

    def location(self) -> LibraryLocation:
        return self.source_location

    def release_location(self) -> LibraryLocation:
        """Release location, or the source location when none was given"""
        return self._release_location or self.source_location

    def compiled_library_name(self) -> CompiledLibraryName:
        return CompiledLibraryName.matching(self.name())

    def dependencies(self) -> Optional[List["BaseBuilder"]]:
        return None

    def source_name(self) -> str:
        """Directory name of the sources under the sources root"""
        return self.name()

    # Options

    def be_static(self) -> "BaseBuilder":
        self.options.library_type = LibraryType.STATIC
        return self

    def be_shared(self) -> "BaseBuilder":
        self.options.library_type = LibraryType.SHARED
        return self

    def clone_library(self) -> "BaseBuilder":
        """Independent copy sharing no mutable state with this descriptor"""
        clone = copy.copy(self)
        clone.options = self.options.model_copy(deep=True)
        return clone

    # Layout

    def source_directory(self, context: LibraryCompilationContext) -> Path:
        return context.sources_root / self.source_name()

    def build_directory(self, context: LibraryCompilationContext) -> Path:
        return context.build_root / self.name()

    def native_library_prefix(self, context: LibraryCompilationContext) -> Path:
        return self.build_directory(context) / "build"

    def compiled_library_directories(self, context: LibraryCompilationContext) -> List[Path]:
        """
        Directories holding the compiled shared libraries

        Windows loads DLLs from the binary search path, so bin is reported there.
        """
        prefix = self.native_library_prefix(context)
        if context.is_unix():
            return [prefix / "lib"]
        if context.is_windows():
            return [prefix / "bin"]
        return []

    def native_library_include_headers(self, context: LibraryCompilationContext) -> List[Path]:
        include = self.native_library_prefix(context) / "include"
        return [include] if include.exists() else []

    def native_library_linker_libraries(self, context: LibraryCompilationContext) -> List[Path]:
        lib = self.native_library_prefix(context) / "lib"
        return [lib] if lib.exists() else []

    def pkg_config_directory(self, context: LibraryCompilationContext) -> Optional[Path]:
        pkgconfig = self.native_library_prefix(context) / "lib" / "pkgconfig"
        return pkgconfig if pkgconfig.exists() else None

    def compiled_library(self, context: LibraryCompilationContext) -> Optional[Path]:
        """First file in the compiled library directories matching the artifact name"""
        name = self.compiled_library_name()
        for directory in self.compiled_library_directories(context):
            if not directory.is_dir():
                continue
            for candidate in sorted(directory.iterdir()):
                if candidate.is_file() and name.matches(candidate.name, context.target, self.options.is_static()):
                    return candidate
        return None

    # Requirements

    def required_tools(self, context: LibraryCompilationContext) -> Sequence[str]:
        return ()

    def ensure_requirements(self, context: LibraryCompilationContext):
        """
        Check that every required external tool is on PATH

        Raises:
            MissingRequirementError: naming the first tool that is missing
        """
        for tool in self.required_tools(context):
            found = shutil.which(tool)
            if not found:
                raise MissingRequirementError(tool)
            self.logger.debug(f"Found {tool}: {found}")

    # Process spawning

    def make_directory(self, path: Path):
        """Create a directory and its parents, failing with BuildDirectoryError"""
        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would create: {path}")
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildDirectoryError(path, e.strerror or str(e)) from e

    def run_command(self,
                    cmd: List[str],
                    cwd: Path,
                    environment: Optional[EnvironmentOverlay] = None) -> subprocess.CompletedProcess:
        """
        Run a command with logging and wait for it to exit

        Args:
            cmd: Command and arguments
            cwd: Working directory
            environment: Overlay describing the child's environment, None inherits ours

        Returns:
            CompletedProcess instance, the caller inspects returncode
        """
        cmd = [str(c) for c in cmd]
        cmd_str = " ".join(cmd)
        self.logger.debug(f"Running: {cmd_str}")
        self.logger.debug(f"  in: {cwd}")

        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would run: {cmd_str}")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        env = None
        if environment is not None and not environment.is_empty():
            env = environment.apply()
            if environment.inherit:
                for key, value in environment.variables:
                    self.logger.debug(f"  env: {key}={value}")
            else:
                self.logger.debug(f"  env: {len(env)} captured variables")

        try:
            result = subprocess.run(cmd, cwd=cwd, env=env, check=False)
        except OSError as e:
            self.logger.error(f"Command failed to start: {cmd_str} ({e})")
            return subprocess.CompletedProcess(cmd, 127, "", str(e))

        if result.returncode != 0:
            self.logger.error(f"Command failed with exit code {result.returncode}: {cmd_str}")
        return result

    # Build steps

    @abstractmethod
    def configure(self, context: LibraryCompilationContext):
        """Configure the build unless it is already configured"""

    @abstractmethod
    def install(self, context: LibraryCompilationContext):
        """Build and install into the native prefix"""

    def compile(self, context: LibraryCompilationContext) -> Path:
        """
        Run the whole build and return the native prefix

        Raises:
            LibraryBuildError: on any fatal failure
        """
        return BuildDriver(self, context, self.logger).run()

    def clean(self, context: LibraryCompilationContext) -> bool:
        """Remove this artifact's build directory"""
        build_dir = self.build_directory(context)
        self.logger.info(f"Cleaning {self.name()}...")
        if not build_dir.exists():
            return False

        self.logger.debug(f"Removing {build_dir}")
        if not self.dry_run:
            shutil.rmtree(build_dir)
        return True
