"""
Milvus Python Client - Exception Classes

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

from typing import Any, Dict, Optional


class MilvusClientError(Exception):
    """Base exception for all Milvus client errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"Error Code: {self.error_code}")
        return " | ".join(parts)


class ConnectError(MilvusClientError):
    """Base class for failures while establishing a connection"""

    def __init__(self, message: str, error_code: str = "CONNECT_FAILED", **kwargs) -> None:
        super().__init__(message, error_code=error_code, **kwargs)


class AlreadyConnectedError(ConnectError):
    """A live channel already exists; disconnect it first"""

    def __init__(self, target: Optional[str] = None, **kwargs) -> None:
        message = "Channel is not shutdown or terminated"
        if target:
            message = f"{message}: {target}"
        super().__init__(message, error_code="ALREADY_CONNECTED", **kwargs)
        self.target = target


class PortOutOfRangeError(ConnectError):
    """Port outside [0, 65535]"""

    def __init__(self, port: int, **kwargs) -> None:
        super().__init__(f"Port {port} out of range", error_code="PORT_OUT_OF_RANGE", **kwargs)
        self.port = port


class ConnectTimeoutError(ConnectError):
    """Channel did not become ready within the connect timeout"""

    def __init__(self, target: str, timeout_ms: int, **kwargs) -> None:
        message = f"Connect timeout: {target} not ready after {timeout_ms} ms"
        super().__init__(message, error_code="CONNECT_TIMEOUT", **kwargs)
        self.target = target
        self.timeout_ms = timeout_ms


class ConnectFailedError(ConnectError):
    """Unexpected failure while setting up the channel"""

    def __init__(
        self,
        message: str = "Connect failed",
        cause: Optional[BaseException] = None,
        **kwargs
    ) -> None:
        super().__init__(message, error_code="CONNECT_FAILED", **kwargs)
        self.cause = cause


class ConfigurationError(MilvusClientError):
    """Client configuration error"""

    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
