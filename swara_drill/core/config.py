"""Configuration management for Swara Drill components."""

from dataclasses import dataclass
from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from .. import constants as c
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "pitch": {
        "threshold": c.YIN_THRESHOLD,
        "min_frequency": c.MIN_FREQUENCY,
        "max_frequency": c.MAX_FREQUENCY,
        "silence_threshold": c.SILENCE_THRESHOLD,
        "min_confidence": c.SIGNAL_MIN_CONFIDENCE,
    },
    "segmenter": {
        "silence_duration_ms": c.UTTERANCE_SILENCE_DURATION_MS,
        "min_duration_ms": c.MIN_UTTERANCE_DURATION_MS,
    },
    "evaluator": {
        "use_curve_comparison": False,
        "stability_threshold_semitones": c.STABILITY_THRESHOLD_SEMITONES,
        "length_tolerance_ms": c.LENGTH_TOLERANCE_MS,
        "timing_tolerance_ms": c.TIMING_TOLERANCE_MS,  # null = unbounded
        "cents_feedback": "exact",
        "detailed_length_feedback": False,
    },
    "director": {
        "mode": "sargam",
        "tonic": 261.63,
        "policy": "countdown",
        "attempt_count": c.ATTEMPT_COUNT,
        "tempo_bpm": c.DEFAULT_TEMPO_BPM,
        "replay_delay_ms": c.REPLAY_DELAY_MS,
        "gap_ms": c.TARGET_NOTE_GAP_MS,
    },
    "session": {
        "live_checks": True,
        "live_check_interval_ms": c.LIVE_CHECK_INTERVAL_MS,
        "max_history": c.MAX_HISTORY,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frames_per_buffer": 4096,  # analysis window
        "capture_block_size": 512,
        "channels": 1,
    },
}


class ConfigManager:
    """Configuration manager for Swara Drill components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/swara_drill by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "swara_drill")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        # Load existing configurations or create default ones
        self.configs = {}
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

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
                if not isinstance(config, dict):
                    raise ValueError("top-level JSON value must be an object")
                logger.info(f"Loaded configuration from {config_file}")

                # Ensure all default keys are present
                for key, value in default_config.items():
                    if key not in config:
                        config[key] = value

                return config
            except (OSError, ValueError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return default_config.copy()
        else:
            config = default_config.copy()
            self.save_config(name, config)
            return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dictionary

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
        """Get configuration by name.

        Args:
            name: Configuration name

        Returns:
            Configuration dictionary
        """
        return self.configs.get(name, {}).copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

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

        Args:
            name: Configuration name

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])


@dataclass
class DrillSettings:
    """All configuration sections, as plain dictionaries."""

    pitch: Dict[str, Any]
    segmenter: Dict[str, Any]
    evaluator: Dict[str, Any]
    director: Dict[str, Any]
    session: Dict[str, Any]
    audio_input: Dict[str, Any]

    @classmethod
    def defaults(cls) -> "DrillSettings":
        return cls(**copy.deepcopy(DEFAULT_CONFIGS))

    @classmethod
    def from_manager(cls, manager: ConfigManager) -> "DrillSettings":
        return cls(**{name: manager.get_config(name) for name in DEFAULT_CONFIGS})
