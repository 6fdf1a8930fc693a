"""
Milvus Python Client - Configuration

Copyright 2025 Milvus Client Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ClientConfig(BaseModel):
    """Complete client configuration"""

    # Connection settings
    host: str = Field(default="127.0.0.1", description="Milvus server host")
    port: int = Field(default=19530, ge=0, le=65535, description="Milvus server port")

    # Connect phase: poll the channel every poll_interval_ms until ready or the budget runs out
    connect_timeout_ms: int = Field(default=10000, ge=0)
    poll_interval_ms: int = Field(default=100, ge=1)

    # Disconnect phase: how long to wait for in-flight calls to drain (seconds)
    drain_timeout: float = Field(default=60.0, gt=0)

    # -1 means unlimited
    max_receive_message_length: int = Field(default=-1, ge=-1)

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO)
    enable_debug_logging: bool = False

    @field_validator('host')
    def validate_host(cls, v: str) -> str:
        """Validate host"""
        v = v.strip()
        if not v:
            raise ValueError("Host cannot be empty")
        return v

    @field_validator('log_level', mode='before')
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """Create configuration from environment variables"""
        config_dict: Dict[str, Any] = {}

        if host := os.getenv("MILVUS_HOST"):
            config_dict["host"] = host
        if port := os.getenv("MILVUS_PORT"):
            config_dict["port"] = int(port)
        if connect_timeout := os.getenv("MILVUS_CONNECT_TIMEOUT_MS"):
            config_dict["connect_timeout_ms"] = int(connect_timeout)
        if poll_interval := os.getenv("MILVUS_POLL_INTERVAL_MS"):
            config_dict["poll_interval_ms"] = int(poll_interval)
        if drain_timeout := os.getenv("MILVUS_DRAIN_TIMEOUT"):
            config_dict["drain_timeout"] = float(drain_timeout)

        # Logging
        if log_level := os.getenv("MILVUS_LOG_LEVEL"):
            config_dict["log_level"] = log_level.upper()
        if debug := os.getenv("MILVUS_DEBUG"):
            config_dict["enable_debug_logging"] = debug.lower() in ("true", "1", "yes")

        config_dict.update(overrides)
        return cls(**config_dict)

    def get_channel_options(self) -> List[Tuple[str, Any]]:
        """Get gRPC channel options"""
        return [
            ("grpc.max_receive_message_length", self.max_receive_message_length),
        ]

    def get_logging_level(self) -> int:
        if self.enable_debug_logging:
            return logging.DEBUG
        return getattr(logging, LogLevel(self.log_level).value)


# Default configuration instance
DEFAULT_CONFIG = ClientConfig()


def load_config(config_file: Optional[str] = None, **kwargs) -> ClientConfig:
    """Load configuration from multiple sources with precedence:
    1. Explicit parameters
    2. Configuration file
    3. Environment variables
    4. Defaults
    """
    config_dict: Dict[str, Any] = {}

    if config_file:
        config_dict.update(load_config_file(config_file))

    config_dict.update({key: value for key, value in kwargs.items() if value is not None})

    return ClientConfig.from_env(**config_dict)


def load_config_file(file_path: str) -> dict:
    """Load configuration from file (JSON or YAML)"""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    content = path.read_text()

    if file_path.endswith(('.yml', '.yaml')):
        try:
            import yaml
        except ImportError:
            raise ImportError("PyYAML is required to load YAML configuration files")
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {file_path}")
    return data
