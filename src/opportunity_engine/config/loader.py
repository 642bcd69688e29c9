"""
Configuration Loader - YAML Files, Profiles and Environment Overrides.

Resolution order (later wins):
    1. ``config/default.yaml`` (or the path given)
    2. ``config/profiles/<profile>.yaml``; the profile comes from the
       argument or ``OPPORTUNITY_ENGINE_PROFILE``
    3. ``OPPORTUNITY_ENGINE__<SECTION>__<KEY>`` environment variables,
       e.g. ``OPPORTUNITY_ENGINE__GATEWAY__API_KEY``

The merged dictionary is validated by EngineConfig.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from opportunity_engine.config.models import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "default.yaml"
PROFILE_ENV_VAR = "OPPORTUNITY_ENGINE_PROFILE"
ENV_PREFIX = "OPPORTUNITY_ENGINE__"


class ConfigLoader:
    """Builds an EngineConfig from YAML, an optional profile and the environment."""

    def __init__(
        self,
        base_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize config loader.

        Args:
            base_path: Root for relative config paths and ``config/profiles``
            environ: Environment to read overrides from (``os.environ``
                if omitted)
        """
        self._base_path = base_path or Path(".")
        self._environ = os.environ if environ is None else environ

    def load(
        self,
        config_path: Union[str, Path, None] = None,
        profile: Optional[str] = None,
    ) -> EngineConfig:
        """
        Load, merge and validate configuration.

        Args:
            config_path: YAML file (``config/default.yaml`` if omitted)
            profile: Profile merged on top of the file

        Raises:
            FileNotFoundError: If the file or profile doesn't exist
            pydantic.ValidationError: If the merged config is invalid
        """
        path = self._resolve_path(config_path or DEFAULT_CONFIG_PATH)
        config_dict = self._load_yaml(path)

        profile = profile or self._environ.get(PROFILE_ENV_VAR)
        if profile:
            config_dict = self._merge_configs(config_dict, self._load_profile(profile))

        overrides = self._env_overrides()
        if overrides:
            config_dict = self._merge_configs(config_dict, overrides)

        logger.debug(f"Loaded config from {path} (profile={profile or 'none'})")
        return EngineConfig.model_validate(config_dict)

    def load_from_dict(self, config_dict: Dict[str, Any]) -> EngineConfig:
        """Validate an already-parsed dictionary. No profile or env overrides."""
        return EngineConfig.model_validate(config_dict)

    def _resolve_path(self, path: Union[str, Path]) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._base_path / p

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _load_profile(self, profile: str) -> Dict[str, Any]:
        profile_path = self._base_path / "config" / "profiles" / f"{profile}.yaml"
        if not profile_path.exists():
            raise FileNotFoundError(f"Profile not found: {profile}")
        return self._load_yaml(profile_path)

    def _env_overrides(self) -> Dict[str, Any]:
        """Nested dict from ``OPPORTUNITY_ENGINE__A__B=value`` variables."""
        overrides: Dict[str, Any] = {}
        for name, raw in self._environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            keys = [k.lower() for k in name[len(ENV_PREFIX):].split("__") if k]
            if not keys:
                continue
            node = overrides
            for key in keys[:-1]:
                node = node.setdefault(key, {})
            # YAML scalars: "false" -> False, "3" -> 3, "null" -> None
            node[keys[-1]] = yaml.safe_load(raw) if raw else raw
        return overrides

    def _merge_configs(self, base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge overlay into base."""
        result = dict(base)
        for key, value in overlay.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result


def load_config(
    config_path: Union[str, Path, None] = None,
    profile: Optional[str] = None,
    base_path: Optional[Path] = None,
) -> EngineConfig:
    """Convenience wrapper around ConfigLoader.load()."""
    return ConfigLoader(base_path=base_path).load(config_path, profile)
