"""
State machine driving a single artifact through its build
"""

from enum import Enum
from pathlib import Path
from typing import Any

from ..models import LibraryCompilationContext


class BuildState(str, Enum):
    IDLE = "idle"
    REQUIREMENTS_CHECKED = "requirements_checked"
    CONFIGURED = "configured"
    COMPILED = "compiled"
    DONE = "done"
    FAILED = "failed"


# Each step is only legal from the state listed here
_PRECONDITIONS = {
    BuildState.REQUIREMENTS_CHECKED: BuildState.IDLE,
    BuildState.CONFIGURED: BuildState.REQUIREMENTS_CHECKED,
    BuildState.COMPILED: BuildState.CONFIGURED,
    BuildState.DONE: BuildState.COMPILED,
}


class BuildDriver:
    """
    Drives one library descriptor against one compilation context

    Idle -> RequirementsChecked -> Configured -> Compiled -> Done, with
    Failed reachable from every step. A failed driver stays failed; build
    again with a fresh driver.
    """

    def __init__(self, library: Any, context: LibraryCompilationContext, logger: Any = None):
        self.library = library
        self.context = context
        self.logger = logger or library.logger
        self.state = BuildState.IDLE

    def _advance(self, new_state: BuildState, step):
        expected = _PRECONDITIONS[new_state]
        if self.state is not expected:
            raise RuntimeError(
                f"Cannot move {self.library.name()} to {new_state.value} from {self.state.value}"
            )
        try:
            step()
        except Exception:
            self.state = BuildState.FAILED
            raise
        self.logger.debug(f"{self.library.name()}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def check_requirements(self):
        self._advance(BuildState.REQUIREMENTS_CHECKED,
                      lambda: self.library.ensure_requirements(self.context))

    def configure(self):
        self._advance(BuildState.CONFIGURED, lambda: self.library.configure(self.context))

    def compile(self):
        self._advance(BuildState.COMPILED, lambda: self.library.install(self.context))

    def finish(self) -> Path:
        self._advance(BuildState.DONE, lambda: None)
        return self.library.native_library_prefix(self.context)

    def run(self) -> Path:
        """
        Run every step in order

        Returns:
            The native prefix of the built artifact

        Raises:
            LibraryBuildError: the first fatal failure, after moving to FAILED.
                Any other exception also moves the driver to FAILED first.
        """
        name = self.library.name()
        self.logger.info(f"Building {name} for {self.context.target} ({self.context.profile()})...")
        try:
            self.check_requirements()
            self.configure()
            self.compile()
            prefix = self.finish()
        except Exception as e:
            self.logger.error(f"Failed to build {name}: {e}")
            raise
        self.logger.success(f"Successfully built {name} into {prefix}")
        return prefix
