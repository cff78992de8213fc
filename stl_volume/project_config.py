"""
JSON-based project configuration for stl_volume.

Configuration hierarchy (later overrides earlier):
1. Built-in defaults (dataclasses below)
2. .stlvolume.json found by find_config_file()
3. CLI arguments

Example .stlvolume.json:
{
    "analysis": {
        "chunk_size": 65536,
        "workers": 4,
        "compute_thickness": true,
        "max_thickness_distance": 50.0
    },
    "discovery": {
        "pattern": "*.stl",
        "recursive": true
    },
    "report": {
        "format": "table",
        "volume_divisor": 1000000.0,
        "precision": 2
    },
    "batch": {
        "parallel": true
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from stl_volume.analysis import DEFAULT_CHUNK_SIZE, AnalysisOptions
from stl_volume.geometry.thickness import DEFAULT_MAX_DISTANCE, OutlierLimits

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".stlvolume.json"

REPORT_FORMATS = ("table", "csv", "json")


@dataclass
class AnalysisConfig:
    """Per-mesh measurement settings."""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    workers: int = 1
    warn_negative_volume: bool = True
    compute_thickness: bool = False
    max_thickness_distance: float = DEFAULT_MAX_DISTANCE
    thickness_min: float = 0.0
    thickness_max: Optional[float] = None  # None = unbounded

    def to_options(self) -> AnalysisOptions:
        """Build the analyzer options this section describes."""
        upper = float('inf') if self.thickness_max is None else self.thickness_max
        return AnalysisOptions(
            chunk_size=self.chunk_size,
            workers=self.workers,
            warn_negative_volume=self.warn_negative_volume,
            compute_thickness=self.compute_thickness,
            max_thickness_distance=self.max_thickness_distance,
            thickness_limits=OutlierLimits(min=self.thickness_min, max=upper),
        )


@dataclass
class DiscoveryConfig:
    """Which files a directory argument expands to."""
    pattern: str = "*.stl"
    recursive: bool = False


@dataclass
class ReportConfig:
    """Report output settings."""
    format: str = "table"
    volume_divisor: float = 1e6  # mm^3 -> dm^3
    precision: int = 2
    filename_width: int = 40


@dataclass
class BatchConfig:
    """Multi-file processing settings."""
    parallel: bool = False
    max_workers: Optional[int] = None  # None = executor default


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create configuration from a dictionary.

        Unknown sections and keys are ignored with a debug message.
        """
        config = cls()

        for section in fields(cls):
            values = data.get(section.name)
            if not isinstance(values, dict):
                continue
            target = getattr(config, section.name)
            for key, value in values.items():
                if key.startswith('_'):
                    continue
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.debug("Ignoring unknown config key %s.%s", section.name, key)

        if config.report.format not in REPORT_FORMATS:
            logger.warning(
                "Unknown report format %r, using 'table'", config.report.format
            )
            config.report.format = "table"

        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        """Create configuration from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    input_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find configuration file using search hierarchy.

    Search order:
    1. Explicit config path (if provided)
    2. .stlvolume.json in the input directory (or the input file's directory)
    3. .stlvolume.json in current working directory
    4. ~/.stlvolume.json

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    if input_path:
        input_path = Path(input_path)
        input_dir = input_path if input_path.is_dir() else input_path.parent
        candidate = input_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate

    cwd_config = Path.cwd() / CONFIG_FILENAME
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / CONFIG_FILENAME
    if home_config.exists():
        return home_config

    return None


def load_config(
    input_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration with fallback to defaults."""
    config_path = find_config_file(input_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Write a documented sample configuration file."""
    sample: Dict[str, Any] = {
        "_comment": "stl_volume configuration",
        "_version": "1.0",
    }
    descriptions = {
        "analysis": "Volume accumulation and optional thickness sampling",
        "discovery": "Glob pattern applied to directory arguments",
        "report": "Output format; volumes are divided by volume_divisor",
        "batch": "Analyze several files concurrently",
    }
    for section, values in ProjectConfig().to_dict().items():
        sample[section] = {"_comment": descriptions[section], **values}

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
