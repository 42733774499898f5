"""PatScope configuration management."""

from pydantic import BaseModel, Field
from typing import Optional
import yaml
import os

DEFAULT_CONFIG_PATH = "configs/default.yaml"


class ClaimRulesConfig(BaseModel):
    """Validation thresholds for claim text."""
    min_text_length: int = Field(default=10, ge=1)
    max_text_length: int = Field(default=50000, ge=1)


class EnumerationConfig(BaseModel):
    """Configuration for exemplary compound enumeration."""
    default_max_count: int = Field(default=10, ge=1)


class CoverageConfig(BaseModel):
    """Configuration for molecule coverage analysis."""
    # Cap on molecules analysed per run; None analyses the whole sample
    max_sample_size: Optional[int] = Field(default=None, ge=1)


class ChemistryConfig(BaseModel):
    """Configuration for the chemistry backend."""
    use_rdkit: bool = True


class EngineConfig(BaseModel):
    """Main configuration for the structural analysis engine."""
    claims: ClaimRulesConfig = Field(default_factory=ClaimRulesConfig)
    enumeration: EnumerationConfig = Field(default_factory=EnumerationConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    chemistry: ChemistryConfig = Field(default_factory=ChemistryConfig)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "EngineConfig":
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file. Falls back to the
                PATSCOPE_CONFIG environment variable, then the default path.

        Returns:
            Loaded configuration, or defaults when the file does not exist.
        """
        if config_path is None:
            config_path = os.environ.get("PATSCOPE_CONFIG", DEFAULT_CONFIG_PATH)
        if os.path.exists(config_path):
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


DEFAULT_CONFIG = EngineConfig()
