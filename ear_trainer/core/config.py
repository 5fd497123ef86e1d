"""Configuration management for the ear trainer."""

from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "training": {
        "notes_per_turn": 1,
        "max_interval": 5,
        "repetitions_required": 3,
        "total_sequences": 10,
        "volume_threshold": 0.01,
        "instrument": "guitar",
    },
    "detection": {
        "sample_rate": 44100,
        "frame_size": 4096,
        "history_size": 5,
        "min_stable_count": 3,
        "stability_bound": 5.0,
        "match_tolerance": 0.05,
        "min_frequency": 80.0,
        "max_frequency": 1200.0,
        "spectral_interval": 0.05,
        "degraded_interval": 0.15,
        "estimators": ["yin", "yinfft", "amdf"],
    },
}


class ConfigManager:
    """Loads, updates and persists the JSON configuration sections."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use
                ``~/.config/ear_trainer``
        """
        if config_dir is None:
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "ear_trainer")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        self.configs: Dict[str, Dict[str, Any]] = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if not config_file.exists():
            config = copy.deepcopy(default_config)
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError("top-level JSON value is not an object")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return copy.deepcopy(default_config)

        logger.info(f"Loaded configuration from {config_file}")
        for key, value in default_config.items():
            config.setdefault(key, copy.deepcopy(value))
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of a configuration section (empty if unknown)."""
        return copy.deepcopy(self.configs.get(name, {}))

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = copy.deepcopy(self.default_configs[name])
        return self.save_config(name, self.configs[name])
