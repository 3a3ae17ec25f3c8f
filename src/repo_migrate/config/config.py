"""Configuration management for the repository migration orchestrator."""

from typing import Optional, Dict, Any
from pathlib import Path
import os

from pydantic import BaseModel, Field, validator
import yaml
from dotenv import load_dotenv

from ..models.auth import AuthContext, AuthTier


class IdentityProviderConfig(BaseModel):
    """Configuration for the identity and license provider."""

    url: str = Field(
        default='https://api.github.com', description='Identity provider API URL'
    )
    timeout: int = Field(default=30, description='Request timeout in seconds')
    seat_path: str = Field(
        default='/user/copilot_seat', description='License seat endpoint path'
    )
    license_ttl_seconds: int = Field(
        default=300, description='Seconds a license result stays cached'
    )
    error_ttl_seconds: int = Field(
        default=60, description='Seconds a failed license check stays cached'
    )
    cli_path: Optional[str] = Field(
        default=None, description='Path to the migration CLI executable'
    )

    @validator('url')
    def validate_url(cls, v):
        """Validate provider URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @validator('seat_path')
    def validate_seat_path(cls, v):
        """Seat path must be absolute."""
        if not v.startswith('/'):
            raise ValueError('seat_path must start with /')
        return v

    @validator('timeout', 'license_ttl_seconds', 'error_ttl_seconds')
    def validate_positive(cls, v):
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError('Durations must be positive')
        return v


class PlanningConfig(BaseModel):
    """Wave planning and pilot selection settings."""

    default_wave_size: int = Field(default=10, description='Default wave size')
    max_wave_size: int = Field(default=100, description='Maximum wave size')
    max_passes: int = Field(default=100, description='Maximum planning passes')
    default_pilot_count: int = Field(default=10, description='Default pilot count')
    max_pilot_count: int = Field(default=50, description='Maximum pilot count')
    pilot_max_complexity: int = Field(
        default=5, description='Highest complexity score eligible for pilots'
    )

    @validator(
        'default_wave_size',
        'max_wave_size',
        'max_passes',
        'default_pilot_count',
        'max_pilot_count',
    )
    def validate_positive(cls, v):
        """Validate sizes are positive."""
        if v <= 0:
            raise ValueError('Planning sizes must be positive')
        return v


class OrchestratorConfig(BaseModel):
    """Orchestrator execution settings."""

    max_workers: int = Field(default=8, description='Maximum concurrent operations')

    @validator('max_workers')
    def validate_max_workers(cls, v):
        """Validate max workers is positive."""
        if v <= 0:
            raise ValueError('Max workers must be positive')
        return v


class SessionConfig(BaseModel):
    """Caller session settings."""

    timeout_minutes: int = Field(default=30, description='Session lifetime in minutes')


class StorageConfig(BaseModel):
    """State storage settings."""

    state_file: str = Field(
        default='migration-state.yaml', description='YAML state file path'
    )


class OperatorConfig(BaseModel):
    """Identity used for commands issued from the command line."""

    user_login: str = Field(default='operator', description='Operator login')
    user_id: Optional[str] = Field(default=None, description='Operator user ID')
    tier: str = Field(default=AuthTier.ADMIN, description='Operator permission tier')

    @validator('tier')
    def validate_tier(cls, v):
        """Validate tier name."""
        valid_tiers = [AuthTier.ADMIN, AuthTier.SELF_SERVICE, AuthTier.READ_ONLY]
        if v.lower() not in valid_tiers:
            raise ValueError(f'Tier must be one of: {valid_tiers}')
        return v.lower()

    def to_auth_context(self) -> AuthContext:
        """Build the auth context for this operator."""
        if self.tier == AuthTier.ADMIN:
            return AuthContext.admin(self.user_login, self.user_id)
        if self.tier == AuthTier.SELF_SERVICE:
            return AuthContext.self_service(self.user_login, self.user_id)
        return AuthContext.read_only(self.user_login, self.user_id)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @validator('level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the migration orchestrator."""

    identity_provider: IdentityProviderConfig = Field(
        default_factory=IdentityProviderConfig, description='Identity provider'
    )
    planning: PlanningConfig = Field(
        default_factory=PlanningConfig, description='Planning settings'
    )
    orchestrator: OrchestratorConfig = Field(
        default_factory=OrchestratorConfig, description='Orchestrator settings'
    )
    sessions: SessionConfig = Field(
        default_factory=SessionConfig, description='Session settings'
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description='Storage settings'
    )
    operator: OperatorConfig = Field(
        default_factory=OperatorConfig, description='Command line operator'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'  # Don't allow extra fields

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        config_data = {
            'identity_provider': {
                'url': os.getenv('REPO_MIGRATE_IDP_URL'),
                'timeout': _int_env('REPO_MIGRATE_IDP_TIMEOUT'),
                'seat_path': os.getenv('REPO_MIGRATE_SEAT_PATH'),
                'cli_path': os.getenv('REPO_MIGRATE_CLI_PATH'),
            },
            'planning': {
                'default_wave_size': _int_env('REPO_MIGRATE_WAVE_SIZE'),
                'pilot_max_complexity': _int_env('REPO_MIGRATE_PILOT_MAX_COMPLEXITY'),
            },
            'orchestrator': {
                'max_workers': _int_env('REPO_MIGRATE_MAX_WORKERS'),
            },
            'sessions': {
                'timeout_minutes': _int_env('REPO_MIGRATE_SESSION_TIMEOUT'),
            },
            'storage': {
                'state_file': os.getenv('REPO_MIGRATE_STATE_FILE'),
            },
            'operator': {
                'user_login': os.getenv('REPO_MIGRATE_OPERATOR'),
                'tier': os.getenv('REPO_MIGRATE_OPERATOR_TIER'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.dict(), f, default_flow_style=False, indent=2, sort_keys=False
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'identity_provider': {
                'url': 'https://api.github.com',
                'timeout': 30,
                'seat_path': '/user/copilot_seat',
                'license_ttl_seconds': 300,
                'error_ttl_seconds': 60,
            },
            'planning': {
                'default_wave_size': 10,
                'max_wave_size': 100,
                'max_passes': 100,
                'default_pilot_count': 10,
                'max_pilot_count': 50,
                'pilot_max_complexity': 5,
            },
            'orchestrator': {
                'max_workers': 8,
            },
            'sessions': {
                'timeout_minutes': 30,
            },
            'storage': {
                'state_file': 'migration-state.yaml',
            },
            'operator': {
                'user_login': 'operator',
                'tier': 'admin',
            },
            'logging': {
                'level': 'INFO',
                'file': 'migration.log',
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )


def _int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None
