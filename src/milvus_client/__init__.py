"""
Milvus Python Client SDK

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

from .client import MilvusClient, connect
from .config import ClientConfig, LogLevel, load_config
from .connection import ConnectionManager
from .transport import ConnectivityState
from .models import (
    ConnectParam,
    CreateIndexParam,
    DateRange,
    DescribeIndexResponse,
    DescribeTableResponse,
    GetTableRowCountResponse,
    HasTableResponse,
    Index,
    IndexType,
    InsertParam,
    InsertResponse,
    MetricType,
    QueryResult,
    Response,
    SearchInFilesParam,
    SearchParam,
    SearchResponse,
    ShowTablesResponse,
    Status,
    TableSchema,
)
from .exceptions import (
    MilvusClientError,
    ConnectError,
    AlreadyConnectedError,
    PortOutOfRangeError,
    ConnectTimeoutError,
    ConnectFailedError,
    ConfigurationError,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "MilvusClient",
    "connect",
    "ConnectionManager",
    "ConnectivityState",
    "ClientConfig",
    "LogLevel",
    "load_config",

    # Parameters
    "ConnectParam",
    "TableSchema",
    "MetricType",
    "Index",
    "IndexType",
    "CreateIndexParam",
    "InsertParam",
    "DateRange",
    "SearchParam",
    "SearchInFilesParam",

    # Results
    "Status",
    "Response",
    "HasTableResponse",
    "DescribeTableResponse",
    "ShowTablesResponse",
    "GetTableRowCountResponse",
    "DescribeIndexResponse",
    "InsertResponse",
    "SearchResponse",
    "QueryResult",

    # Exceptions
    "MilvusClientError",
    "ConnectError",
    "AlreadyConnectedError",
    "PortOutOfRangeError",
    "ConnectTimeoutError",
    "ConnectFailedError",
    "ConfigurationError",
]
