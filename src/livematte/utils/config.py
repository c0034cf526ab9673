"""Configuration management for LiveMatte."""

import logging
from pathlib import Path
from typing import Optional, Dict, Any, Tuple, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from livematte.core import BackgroundKind


logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).parent.parent.parent.parent


class PipelineConfig(BaseModel):
    """Configuration for the frame processing pipeline."""
    inference_width: int = Field(default=1280, gt=0)
    inference_height: int = Field(default=720, gt=0)
    # An inference running longer than this is treated as a failure.
    # None waits forever.
    inference_timeout_seconds: Optional[float] = Field(default=2.0, gt=0)
    stats_log_interval: int = 300  # processed frames between stats lines, 0 = off


class ModelConfig(BaseModel):
    """Configuration for the matting model."""
    backend: str = "rvm"
    hub_repo: str = "PeterL1n/RobustVideoMatting"
    variant: str = "mobilenetv3"  # or resnet50
    device: str = "cpu"  # cpu, cuda, or mps
    downsample_ratio: float = Field(default=0.25, gt=0, le=1)


class BackgroundConfig(BaseModel):
    """Configuration for background selection."""
    initial: str = "White"
    assets_dir: str = "assets"  # relative paths are resolved against the repo root
    assets: Dict[str, str] = Field(default_factory=lambda: {
        "LakeView": "lake_view.ppm",
        "DimBar": "dim_bar.ppm",
    })
    custom_file: Optional[str] = None
    green: Tuple[int, int, int] = (153, 255, 120)
    black: Tuple[int, int, int] = (0, 0, 0)
    white: Tuple[int, int, int] = (255, 255, 255)
    screen_refresh_interval: float = Field(default=0.05, gt=0)
    screen_monitor: int = 1
    screen_region: Optional[Tuple[int, int, int, int]] = None  # left, top, w, h

    @field_validator("initial")
    @classmethod
    def validate_initial(cls, v: str) -> str:
        """Normalise the initial background name; unknown names mean White."""
        kind = BackgroundKind.parse(v)
        if kind == BackgroundKind.WHITE and v.strip().lower() != "white":
            logger.warning(f"Unknown background {v!r}, using White")
        return kind.value

    @field_validator("green", "black", "white")
    @classmethod
    def validate_color(cls, v: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(c < 0 or c > 255 for c in v):
            raise ValueError(f"Color components must be 0-255, got {v}")
        return v

    def assets_path(self) -> Path:
        """Directory holding the bundled background images."""
        path = Path(self.assets_dir)
        if not path.is_absolute():
            path = REPO_ROOT / path
        return path


class CaptureConfig(BaseModel):
    """Configuration for the camera."""
    device: Union[int, str] = 0
    fps: float = 30.0
    width: Optional[int] = 1280
    height: Optional[int] = 720


class DisplayConfig(BaseModel):
    """Configuration for the preview window."""
    window_name: str = "LiveMatte"
    show_status: bool = True


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: str = "INFO"
    log_to_file: bool = False
    log_directory: str = "logs"
    max_log_size_mb: int = 100
    backup_count: int = 5


class LiveMatteConfig(BaseModel):
    """Root configuration for LiveMatte."""

    # System settings
    project_name: str = "LiveMatte"
    version: str = "0.1.0"
    debug_mode: bool = False

    # Sub-configurations
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    background: BackgroundConfig = Field(default_factory=BackgroundConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def setup_logging(self) -> None:
        """Configure logging based on config."""
        level_name = "DEBUG" if self.debug_mode else self.logging.level.upper()
        log_level = getattr(logging, level_name)

        handlers = []

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

        # File handler
        if self.logging.log_to_file:
            log_dir = Path(self.logging.log_directory)
            log_dir.mkdir(exist_ok=True, parents=True)

            from logging.handlers import RotatingFileHandler
            file_handler = RotatingFileHandler(
                log_dir / "livematte.log",
                maxBytes=self.logging.max_log_size_mb * 1024 * 1024,
                backupCount=self.logging.backup_count
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        logging.basicConfig(
            level=log_level,
            handlers=handlers,
            force=True
        )

        logger.info(f"Logging configured: level={level_name}")


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> LiveMatteConfig:
    """Load configuration from YAML file with optional overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default.yaml
        overrides: Dictionary of config overrides (nested keys with dots)

    Returns:
        Validated LiveMatteConfig instance

    Example:
        >>> config = load_config("config/default.yaml")
        >>> config = load_config(overrides={"model.device": "cuda"})
    """
    # Find config file
    if config_path is None:
        # Look for default.yaml in config/ directory
        config_path = REPO_ROOT / "config" / "default.yaml"
    else:
        config_path = Path(config_path)

    # Load YAML
    config_dict = {}
    if config_path.exists():
        logger.info(f"Loading config from {config_path}")
        with open(config_path) as f:
            config_dict = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Config file not found: {config_path}, using defaults")

    # Apply overrides
    if overrides:
        config_dict = _apply_overrides(config_dict, overrides)

    # Create and validate config
    config = LiveMatteConfig(**config_dict)
    config.setup_logging()

    return config


def _apply_overrides(
    config_dict: Dict[str, Any],
    overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """Apply nested overrides to config dictionary.

    Example:
        overrides = {"pipeline.inference_timeout_seconds": 1.0}
        -> config_dict["pipeline"]["inference_timeout_seconds"] = 1.0
    """
    for key, value in overrides.items():
        keys = key.split(".")
        d = config_dict
        for k in keys[:-1]:
            d = d.setdefault(k, {})
        d[keys[-1]] = value
    return config_dict
