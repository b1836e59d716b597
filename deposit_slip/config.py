"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pathlib import Path
from pydantic_settings import BaseSettings


# Fixed storage coordinates
DATABASE_NAME = "bank"
COLLECTION_NAME = "deposits"

DEFAULT_STATIC_DIR = str(Path(__file__).parent / "static")


class DepositSlipConfig(BaseSettings):
    """Deposit slip service configuration"""
    
    # Storage configuration
    storage_type: str = "postgresql"  # postgresql or memory
    database_url: str = "postgresql://localhost:5432/bank"
    database_pool_size: int = 10
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # Client assets
    static_dir: str = DEFAULT_STATIC_DIR
    
    class Config:
        env_prefix = "DEPOSIT_SLIP_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = DepositSlipConfig()


def get_config() -> DepositSlipConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> DepositSlipConfig:
    """Reload configuration from environment"""
    global config
    config = DepositSlipConfig()
    return config
