"""
Configuration management for the library builder
"""

import os
import yaml
from pathlib import Path
from typing import List, Any, Optional, Union

from ..models import DEFAULT_ANDROID_TARGET_API

ANDROID_API_VARIABLE = "LIBRARY_BUILDER_ANDROID_API"

PACKAGED_CONFIG_DIR = Path(__file__).parent


class ConfigLoader:
    """Loads and manages build configuration"""

    def __init__(self, config_dir: Optional[Union[str, Path]] = None, environ=None):
        """
        Initialize configuration loader

        Args:
            config_dir: Directory containing build.yaml, defaults to the packaged one
            environ: Environment for overrides, defaults to os.environ
        """
        self.config_dir = Path(config_dir) if config_dir else PACKAGED_CONFIG_DIR
        self.environ = os.environ if environ is None else environ

        build_file = self.config_dir / "build.yaml"
        if not build_file.exists():
            raise FileNotFoundError(f"Build config not found: {build_file}")

        with open(build_file, 'r') as f:
            self.build_config = yaml.safe_load(f) or {}

    def get_option(self, key: str, default: Any = None) -> Any:
        """
        Get a build option

        Args:
            key: Option key
            default: Default value if not found

        Returns:
            Option value
        """
        options = self.build_config.get("build_options") or {}
        return options.get(key, default)

    def get_build_order(self) -> List[str]:
        """Artifact names in the order they are built"""
        return list(self.build_config.get("build_order") or ["crypto", "ssl"])

    def android_target_api(self) -> int:
        """Android API level, LIBRARY_BUILDER_ANDROID_API wins over the file"""
        override = self.environ.get(ANDROID_API_VARIABLE)
        if override:
            try:
                return int(override)
            except ValueError:
                raise ValueError(f"{ANDROID_API_VARIABLE} must be an integer, got {override!r}") from None
        return int(self.get_option("android_target_api", DEFAULT_ANDROID_TARGET_API))


__all__ = ["ConfigLoader", "ANDROID_API_VARIABLE"]
