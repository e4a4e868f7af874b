"""
Configuration for the marshaller
"""

import os
from dataclasses import dataclass
from typing import Optional

from .pvdata import ScalarType


@dataclass
class MarshallerConfig:
    """Configuration for marshalling"""

    # Accessor discovery
    attribute_fallback: bool = False  # Read/write attributes when no get/set method exists

    # Scalar widths for plain Python numbers
    default_int_type: ScalarType = ScalarType.LONG
    default_float_type: ScalarType = ScalarType.DOUBLE

    # Per-class field plan cache
    cache_type_plans: bool = True
    type_plan_cache_size: int = 256

    # Package logger level; None leaves the level to the application
    log_level: Optional[str] = None

    @classmethod
    def _parse_bool_env(cls, key: str, default: str = "false") -> bool:
        """Parse boolean from environment variable"""
        return os.getenv(key, default).lower() == "true"

    @classmethod
    def _parse_scalar_type_env(cls, key: str, default: ScalarType) -> ScalarType:
        name = os.getenv(key)
        if not name:
            return default
        return ScalarType(name.lower())

    @classmethod
    def _parse_log_level_env(cls, key: str) -> Optional[str]:
        level = os.getenv(key)
        return level.upper() if level else None

    @classmethod
    def from_env(cls) -> "MarshallerConfig":
        """Create configuration from environment variables"""
        return cls(
            attribute_fallback=cls._parse_bool_env("PVMARSHALLER_ATTRIBUTE_FALLBACK"),
            default_int_type=cls._parse_scalar_type_env(
                "PVMARSHALLER_INT_TYPE", ScalarType.LONG
            ),
            default_float_type=cls._parse_scalar_type_env(
                "PVMARSHALLER_FLOAT_TYPE", ScalarType.DOUBLE
            ),
            cache_type_plans=cls._parse_bool_env("PVMARSHALLER_CACHE_PLANS", "true"),
            type_plan_cache_size=int(os.getenv("PVMARSHALLER_CACHE_SIZE", "256")),
            log_level=cls._parse_log_level_env("PVMARSHALLER_LOG_LEVEL"),
        )


_default_config: Optional[MarshallerConfig] = None


def get_default_config() -> MarshallerConfig:
    """Get the default configuration instance"""
    global _default_config
    if _default_config is None:
        _default_config = MarshallerConfig.from_env()
    return _default_config


def set_default_config(config: MarshallerConfig) -> None:
    """Set the default configuration instance"""
    global _default_config
    _default_config = config
