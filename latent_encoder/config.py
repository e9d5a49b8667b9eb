"""
Configuration system for the conditional latent encoder.

This module provides the training configuration dataclass with validation
and YAML loading support. Defaults reproduce the CelebA run used to train
the attribute-conditioned encoder.

CRITICAL: NO FALLBACKS POLICY
- Invalid values raise clear errors (ValueError, TypeError)
- Unknown keys in YAML files are rejected by the dataclass constructor
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any
import yaml
import os


@dataclass
class EncoderConfig:
    """
    Resolved hyperparameters for training the encoder.

    Instances are validated on construction, so a config object that exists
    is always usable by the trainer.
    """

    # Run identity
    name: str = 'encoder_c_celeba_conditionY_v2'

    # Data
    batch_size: int = 64
    split: float = 0.66  # Fraction of samples used for training

    # Architecture
    n_conv_layers: int = 4
    nf: int = 32  # Filters in the first conv block

    # Optimization
    n_epochs: int = 15
    lr: float = 0.0001
    beta1: float = 0.1  # First-moment decay of Adam
    beta2: float = 0.999

    # Monitoring
    display: int = 1  # 0 = off, 1 = train/test error, 2 = error + batch images
    eval_interval: int = 20
    progress_bar: bool = True

    # Paths
    output_path: str = 'checkpoints'
    dataset_path: str = 'celebA/c_noTest_AnetY_generatedDataset'

    # Device / reproducibility
    device: str = 'cpu'
    seed: int = 42

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self):
        """
        Validate all configuration parameters.

        Raises:
            ValueError: If any parameter has an invalid value
            TypeError: If any parameter has an invalid type
        """
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("config.name is required and must be a non-empty string.")

        # Integer parameters that must be positive
        for key in ('batch_size', 'n_conv_layers', 'nf', 'n_epochs', 'eval_interval'):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"config.{key} must be an integer, got {type(value).__name__}")
            if value <= 0:
                raise ValueError(f"config.{key} must be positive, got {value}")

        # Validate split
        if isinstance(self.split, bool) or not isinstance(self.split, (int, float)):
            raise TypeError(f"config.split must be a number, got {type(self.split).__name__}")
        if not 0 < self.split < 1:
            raise ValueError(f"config.split must be in (0, 1), got {self.split}")

        # Validate learning rate
        if isinstance(self.lr, bool) or not isinstance(self.lr, (int, float)):
            raise TypeError(f"config.lr must be a number, got {type(self.lr).__name__}")
        if self.lr <= 0:
            raise ValueError(f"config.lr must be positive, got {self.lr}")

        # Validate Adam moment decays
        for key in ('beta1', 'beta2'):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"config.{key} must be a number, got {type(value).__name__}")
            if not 0 <= value < 1:
                raise ValueError(f"config.{key} must be in [0, 1), got {value}")

        # Validate display mode
        if self.display not in (0, 1, 2):
            raise ValueError(f"config.display must be 0, 1 or 2, got {self.display}")

        if not isinstance(self.seed, int):
            raise TypeError(f"config.seed must be an integer, got {type(self.seed).__name__}")

        if not self.output_path:
            raise ValueError("config.output_path is required but not provided.")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def save_yaml(self, filepath: str):
        """Save config to YAML file."""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, filepath: str):
        """Load config from YAML file."""
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Config file not found: {filepath}")

        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            raise ValueError(f"Config file is empty: {filepath}")

        return cls(**config_dict)


def get_config(**overrides) -> EncoderConfig:
    """
    Get the default configuration with optional overrides.

    Example:
        >>> config = get_config(batch_size=32, lr=0.0002)
        >>> config.batch_size
        32
    """
    config_dict = asdict(EncoderConfig())
    config_dict.update(overrides)
    return EncoderConfig(**config_dict)


def load_config(filepath: str, **overrides) -> EncoderConfig:
    """
    Load configuration from YAML file with optional overrides.

    Args:
        filepath: Path to YAML config file
        **overrides: Optional parameter overrides (None values are ignored)

    Returns:
        Configuration object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is empty or holds invalid values
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        raise ValueError(f"Config file is empty: {filepath}")

    config_dict.update({k: v for k, v in overrides.items() if v is not None})
    return EncoderConfig(**config_dict)
