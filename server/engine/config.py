"""
Configuration management for the empty-body analysis engine.

This module provides configuration loading with sensible defaults for
limits, severities, and other engine settings.
"""

import copy
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = [".emptybody.yml", ".emptybody.yaml", "emptybody.yml", "emptybody.yaml"]


@dataclass
class EngineConfig:
    """Configuration for the engine."""

    # Rule execution settings
    enabled_rules: List[str]
    max_findings_per_file: int = 50
    max_total_findings: int = 1000

    # Findings below this severity are dropped ("info", "warn", "error")
    severity_threshold: str = "info"

    # Severity overrides (issue kind or rule id -> severity)
    rule_severities: Dict[str, str] = None

    # Language-specific settings
    language_configs: Dict[str, Dict[str, Any]] = None

    # Rule-specific configuration
    rule_configs: Dict[str, Dict[str, Any]] = None

    # Directory names skipped in addition to the built-in exclusions
    exclude_dirs: List[str] = None

    def __post_init__(self):
        if self.language_configs is None:
            object.__setattr__(self, 'language_configs', {})
        if self.rule_severities is None:
            object.__setattr__(self, 'rule_severities', {})
        if self.rule_configs is None:
            object.__setattr__(self, 'rule_configs', {})
        if self.exclude_dirs is None:
            object.__setattr__(self, 'exclude_dirs', [])


DEFAULTS: Dict[str, Any] = {
    "enabled_rules": ["*"],
    "max_findings_per_file": 50,
    "max_total_findings": 1000,
    "severity_threshold": "info",
    "rule_severities": {},
    "language_configs": {
        "php": {
            "extensions": [".php", ".phtml", ".inc"],
        }
    },
    "rule_configs": {},
    "exclude_dirs": [],
}

_EXPECTED_TYPES = {
    "enabled_rules": list,
    "max_findings_per_file": int,
    "max_total_findings": int,
    "severity_threshold": str,
    "rule_severities": dict,
    "language_configs": dict,
    "rule_configs": dict,
    "exclude_dirs": list,
}


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to config file (YAML). If None, uses defaults.

    Returns:
        EngineConfig instance
    """
    merged_config = copy.deepcopy(DEFAULTS)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to load config from %s: %s. Using default configuration.", config_path, e)
            return EngineConfig(**merged_config)

        if not isinstance(file_config, dict):
            logger.warning("Config file %s must contain a mapping. Using default configuration.", config_path)
            return EngineConfig(**merged_config)

        for key, value in file_config.items():
            if key not in _EXPECTED_TYPES:
                logger.warning("Unknown config key '%s' in %s", key, config_path)
                continue
            if not isinstance(value, _EXPECTED_TYPES[key]) or isinstance(value, bool):
                logger.warning("Config key '%s' in %s has the wrong type; keeping default", key, config_path)
                continue

            if key in ("language_configs", "rule_configs"):
                # Deep merge one level down
                for name, section in value.items():
                    if isinstance(section, dict) and name in merged_config[key]:
                        merged_config[key][name].update(section)
                    else:
                        merged_config[key][name] = section
            elif key == "rule_severities":
                merged_config[key].update(value)
            else:
                merged_config[key] = value

    return EngineConfig(**merged_config)


def get_default_config() -> EngineConfig:
    """Get default configuration without loading from file."""
    return load_config(None)


def save_config(config: EngineConfig, config_path: str) -> None:
    """
    Save configuration to file.

    Args:
        config: EngineConfig to save
        config_path: Path where to save the config
    """
    config_dict = {
        "enabled_rules": config.enabled_rules,
        "max_findings_per_file": config.max_findings_per_file,
        "max_total_findings": config.max_total_findings,
        "severity_threshold": config.severity_threshold,
        "rule_severities": config.rule_severities,
        "rule_configs": config.rule_configs,
        "language_configs": config.language_configs,
        "exclude_dirs": config.exclude_dirs,
    }

    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)


def find_config_file(start_path: str = ".") -> Optional[str]:
    """
    Find configuration file by walking up the directory tree.

    Looks for .emptybody.yml, .emptybody.yaml, emptybody.yml and
    emptybody.yaml, in that order, in each directory.

    Args:
        start_path: Directory (or file) to start searching from

    Returns:
        Path to config file or None if not found
    """
    current_path = os.path.abspath(start_path)
    if os.path.isfile(current_path):
        current_path = os.path.dirname(current_path)

    while True:
        for config_name in CONFIG_FILE_NAMES:
            config_path = os.path.join(current_path, config_name)
            if os.path.exists(config_path):
                return config_path

        parent_path = os.path.dirname(current_path)
        if parent_path == current_path:
            # Reached the root directory
            break
        current_path = parent_path

    return None


def get_rule_severity(rule_id: str, config: EngineConfig, default_severity: str = "info") -> str:
    """
    Get the configured severity for an issue kind or rule, falling back to default.

    Args:
        rule_id: Issue kind (e.g., "EmptyPublicMethod") or rule id (e.g., "deadcode.empty_body")
        config: Engine configuration
        default_severity: Fallback severity if not configured

    Returns:
        Severity level ("info", "warn", or "error")
    """
    if config.rule_severities and rule_id in config.rule_severities:
        return config.rule_severities[rule_id]
    return default_severity
