#!/usr/bin/env python3
"""
Main entry point for the library builder
Builds OpenSSL's crypto and ssl libraries for the host or a chosen target
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from .builders import BuildOrchestrator, BuildReport, libcrypto, libssl
from .config import ConfigLoader
from .errors import LibraryBuildError
from .models import LibraryCompilationContext
from .platform import LibraryTarget, PlatformDetector
from .utils import Logger


LIBRARY_FACTORIES = {
    "crypto": libcrypto,
    "ssl": libssl,
}


class BuildSystem:
    """Main build system class"""

    def __init__(self,
                 sources_root: Union[str, Path] = "target/src",
                 build_root: Union[str, Path] = "target",
                 target: Optional[LibraryTarget] = None,
                 debug: bool = False,
                 artifacts: Optional[List[str]] = None,
                 static: Optional[bool] = None,
                 parallel: Optional[bool] = None,
                 continue_on_error: Optional[bool] = None,
                 binary_version: Optional[str] = None,
                 config_dir: Optional[Path] = None,
                 verbose: bool = False,
                 log_file: Optional[str] = None,
                 dry_run: bool = False,
                 logger: Optional[Logger] = None):
        """
        Initialize the build system

        Args:
            sources_root: Directory holding the materialized sources, created if missing
            build_root: Directory receiving every artifact's build directory
            target: Target platform, defaults to the host
            debug: Build the debug profile
            artifacts: Artifacts to process, defaults to the configured build order
            static: Build static libraries, None reads build.yaml
            parallel: Build artifacts concurrently, None reads build.yaml
            continue_on_error: Keep going after a failure, None reads build.yaml
            binary_version: Release tag of prebuilt binaries
            config_dir: Directory containing build.yaml
            verbose: Enable verbose output
            log_file: Optional log file path
            dry_run: Log commands instead of running them

        Raises:
            UnsupportedPlatformError: if no target is given and the host is not supported
        """
        self.logger = logger or Logger(verbose=verbose, log_file=log_file)
        self.config = ConfigLoader(config_dir)
        self.dry_run = dry_run

        self.target = target or LibraryTarget.for_current_platform()
        self.logger.info(f"Target: {self.target}")

        self.sources_root = Path(sources_root)
        if not self.sources_root.exists():
            self.logger.debug(f"Creating sources root {self.sources_root}")
            self.sources_root.mkdir(parents=True, exist_ok=True)

        self.context = LibraryCompilationContext.new(
            self.sources_root,
            build_root,
            self.target,
            debug,
            android_target_api=self.config.android_target_api(),
        )

        if static is None:
            static = bool(self.config.get_option("static", False))
        if parallel is None:
            parallel = bool(self.config.get_option("parallel", False))
        if continue_on_error is None:
            continue_on_error = bool(self.config.get_option("continue_on_error", False))

        names = artifacts or self.config.get_build_order()
        self.libraries = [self._make_library(name, binary_version, static) for name in names]

        self.orchestrator = BuildOrchestrator(
            self.libraries,
            self.context,
            logger=self.logger,
            continue_on_error=continue_on_error,
            parallel=parallel,
            max_workers=self.config.get_option("max_workers"),
        )

    def _make_library(self, name: str, binary_version: Optional[str], static: bool):
        factory = LIBRARY_FACTORIES.get(name)
        if factory is None:
            raise ValueError(f"Unknown artifact: {name}. Available: {', '.join(LIBRARY_FACTORIES)}")
        library = factory(binary_version, logger=self.logger, dry_run=self.dry_run)
        return library.be_static() if static else library.be_shared()

    def build_all(self) -> BuildReport:
        self.logger.info(f"Build order: {' -> '.join(lib.name() for lib in self.libraries)}")
        report = self.orchestrator.build_all()
        for prefix in report.built.values():
            self.logger.raw(f"Compiled {prefix}")
        return report

    def clean(self) -> None:
        self.logger.info("Cleaning build artifacts...")
        if not self.orchestrator.clean_all():
            self.logger.info("Nothing to clean")

    def library_info(self) -> List[Dict[str, Any]]:
        return [self.orchestrator.get_build_info(library) for library in self.libraries]

    def show_info(self) -> None:
        """Show build system information"""
        from . import __version__

        platform_info = PlatformDetector().detect()
        print(f"\nLibrary Builder v{__version__}")
        print(f"{'='*50}")
        print(f"Host: {platform_info['platform']} ({platform_info['arch']})")
        print(f"Target: {self.target}")
        print(f"Profile: {self.context.profile()}")
        print(f"Sources Root: {self.context.sources_root}")
        print(f"Build Root: {self.context.build_root}")
        print(f"\nLibraries ({len(self.libraries)}):")
        print(json.dumps(self.library_info(), indent=2))


def main(argv: Optional[List[str]] = None):
    """Command-line interface"""
    parser = argparse.ArgumentParser(
        description="Library Builder - builds native libraries into a private build tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s build                            # Build crypto and ssl for this host
  %(prog)s build --artifact ssl --static    # Build a static libssl
  %(prog)s build --target aarch64-linux-android
  %(prog)s clean                            # Remove the build directories
  %(prog)s info                             # Show output directories
        """
    )

    parser.add_argument(
        "command",
        choices=["build", "clean", "info"],
        help="Command to execute"
    )

    parser.add_argument(
        "--artifact",
        action="append",
        choices=sorted(LIBRARY_FACTORIES),
        help="Specific artifact to process (can be used multiple times)"
    )

    parser.add_argument(
        "--target",
        choices=[t.value for t in LibraryTarget],
        help="Target platform (default: this host)"
    )

    parser.add_argument(
        "--sources-root",
        type=Path,
        default=Path("target/src"),
        help="Directory holding the library sources (default: target/src)"
    )

    parser.add_argument(
        "--build-root",
        type=Path,
        default=Path("target"),
        help="Directory receiving the build directories (default: target)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Build the debug profile"
    )

    parser.add_argument(
        "--static",
        action="store_true",
        default=None,
        help="Build static libraries"
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Build artifacts concurrently"
    )

    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        default=None,
        help="Keep building after a failed artifact"
    )

    parser.add_argument(
        "--binary-version",
        help="Release tag of the prebuilt binaries"
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory containing build.yaml"
    )

    parser.add_argument(
        "--log-file",
        help="Also write the log to this file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log commands instead of running them"
    )

    args = parser.parse_args(argv)

    # Initialize build system
    try:
        bs = BuildSystem(
            sources_root=args.sources_root,
            build_root=args.build_root,
            target=LibraryTarget(args.target) if args.target else None,
            debug=args.debug,
            artifacts=args.artifact,
            static=args.static,
            parallel=args.parallel,
            continue_on_error=args.continue_on_error,
            binary_version=args.binary_version,
            config_dir=args.config_dir,
            verbose=args.verbose,
            log_file=args.log_file,
            dry_run=args.dry_run,
        )
    except (LibraryBuildError, FileNotFoundError, ValueError) as e:
        print(f"Error initializing build system: {e}", file=sys.stderr)
        sys.exit(1)

    # Execute command
    try:
        if args.command == "build":
            report = bs.build_all()
            sys.exit(0 if report.success else 1)

        elif args.command == "clean":
            bs.clean()

        elif args.command == "info":
            bs.show_info()

    except KeyboardInterrupt:
        print("\nBuild interrupted by user", file=sys.stderr)
        sys.exit(130)
    except (LibraryBuildError, OSError) as e:
        bs.logger.error(f"Build system error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
