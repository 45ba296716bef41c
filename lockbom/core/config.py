"""Configuration management for lockbom."""
import os
from dataclasses import dataclass
from dataclasses import field


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').lower() == 'true'


@dataclass
class OutputConfig:
    """SBOM output settings."""
    default_format: str = 'cyclonedx-1-5'
    supported_formats: list[str] = field(
        default_factory=lambda: ['cyclonedx-1-4', 'cyclonedx-1-5'],
    )
    property_prefix: str = 'osv-scanner'

    @property
    def pretty(self) -> bool:
        """Pretty printing is only enabled while running the test-suite."""
        return _env_flag('LOCKBOM_TESTING') or 'PYTEST_CURRENT_TEST' in os.environ


@dataclass
class ExtractionConfig:
    max_parent_depth: int = 10
    verbosity_levels: list[str] = field(
        default_factory=lambda: ['error', 'warn', 'info', 'verbose', 'debug'],
    )

    @property
    def debug(self) -> bool:
        """Verbose position tracing, toggled through the `debug` env var."""
        return _env_flag('debug')


@dataclass
class LockbomConfig:
    output: OutputConfig = field(default_factory=OutputConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    env: str = field(default_factory=lambda: os.getenv('ENV', 'development'))

    @property
    def is_production(self) -> bool:
        return self.env == 'production'

    @classmethod
    def load(cls) -> 'LockbomConfig':
        return cls()


_config: LockbomConfig | None = None


def get_config() -> LockbomConfig:
    global _config
    if _config is None:
        _config = LockbomConfig.load()
    return _config
