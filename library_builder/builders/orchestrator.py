"""
Build orchestrator that builds several libraries against one context
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional

from ..models import LibraryCompilationContext
from ..utils import default_logger
from .base_builder import BaseBuilder


@dataclass
class BuildReport:
    """Outcome of building a list of libraries"""

    built: Dict[str, Path] = field(default_factory=dict)
    failed: Dict[str, Exception] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed and not self.skipped


class BuildOrchestrator:
    """Orchestrates the build process for all libraries"""

    def __init__(self,
                 libraries: List[BaseBuilder],
                 context: LibraryCompilationContext,
                 logger: Any = None,
                 continue_on_error: bool = False,
                 parallel: bool = False,
                 max_workers: Optional[int] = None):
        """
        Initialize build orchestrator

        Args:
            libraries: Library descriptors in build order
            context: Compilation context shared by every library
            logger: Logger instance
            continue_on_error: Keep building the remaining libraries after a failure
            parallel: Build the libraries in a thread pool
            max_workers: Pool size, defaults to one worker per library
        """
        names = [library.name() for library in libraries]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Libraries share a build directory: {', '.join(duplicates)}")

        self.libraries = list(libraries)
        self.context = context
        self.logger = logger or default_logger()
        self.continue_on_error = continue_on_error
        self.parallel = parallel
        self.max_workers = max_workers

    def get_library(self, name: str) -> BaseBuilder:
        for library in self.libraries:
            if library.name() == name:
                return library
        raise ValueError(f"Unknown library: {name}")

    def build(self, library: BaseBuilder) -> Path:
        return library.compile(self.context)

    def build_all(self) -> BuildReport:
        """
        Build every library

        Returns:
            BuildReport with the native prefix of each built library
        """
        if self.parallel and len(self.libraries) > 1:
            report = self._build_parallel()
        else:
            report = self._build_sequential()

        if report.success:
            self.logger.success("All libraries built successfully!")
        else:
            self.logger.error(f"Failed to build: {', '.join(report.failed)}")
        return report

    def _build_sequential(self) -> BuildReport:
        report = BuildReport()
        total = len(self.libraries)
        for index, library in enumerate(self.libraries):
            name = library.name()
            self.logger.info(f"[{index + 1}/{total}] Building {name}...")
            try:
                report.built[name] = self.build(library)
            except Exception as e:
                report.failed[name] = e
                if not self.continue_on_error:
                    report.skipped = [lib.name() for lib in self.libraries[index + 1:]]
                    if report.skipped:
                        self.logger.error(f"Build failed for {name}, stopping")
                    break
                self.logger.warning(f"Build failed for {name}, continuing...")
        return report

    def _build_unless_stopped(self, library: BaseBuilder, stop: threading.Event) -> Optional[Path]:
        """Build in a worker thread, returning None if an earlier build already stopped the run"""
        if stop.is_set():
            return None
        try:
            return self.build(library)
        except Exception:
            if not self.continue_on_error:
                stop.set()
            raise

    def _build_parallel(self) -> BuildReport:
        report = BuildReport()
        max_workers = max(1, min(self.max_workers or len(self.libraries), len(self.libraries)))
        self.logger.info(f"Building {len(self.libraries)} libraries with {max_workers} workers")

        stop = threading.Event()
        skipped = set()
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self._build_unless_stopped, library, stop): library.name()
                for library in self.libraries
            }
            for future in as_completed(futures):
                name = futures[future]
                if future.cancelled():
                    skipped.add(name)
                    continue
                try:
                    prefix = future.result()
                except Exception as e:
                    report.failed[name] = e
                    if not self.continue_on_error:
                        for pending in futures:
                            pending.cancel()
                    continue
                if prefix is None:
                    skipped.add(name)
                else:
                    report.built[name] = prefix

        report.skipped = [library.name() for library in self.libraries if library.name() in skipped]
        if report.skipped:
            self.logger.error(f"Build failed, skipped {', '.join(report.skipped)}")
        return report

    def clean_all(self) -> bool:
        """
        Remove the build directory of every library

        Returns:
            True if at least one directory was removed
        """
        removed = False
        for library in self.libraries:
            if library.clean(self.context):
                removed = True
        return removed

    def get_build_info(self, library: BaseBuilder) -> Dict[str, Any]:
        """
        Get build information for a library

        Returns:
            Dictionary with the output directories of the library
        """
        context = self.context
        pkg_config = library.pkg_config_directory(context)
        compiled = library.compiled_library(context)
        return {
            "name": library.name(),
            "target": str(context.target),
            "profile": context.profile(),
            "library_type": library.options.library_type.value,
            "source_directory": str(library.source_directory(context)),
            "prefix": str(library.native_library_prefix(context)),
            "compiled_library_directories": [str(p) for p in library.compiled_library_directories(context)],
            "include_headers": [str(p) for p in library.native_library_include_headers(context)],
            "linker_libraries": [str(p) for p in library.native_library_linker_libraries(context)],
            "pkg_config_directory": str(pkg_config) if pkg_config else None,
            "compiled_library": str(compiled) if compiled else None,
        }
