"""
Milvus Python Client - Synchronous Client

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

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import ValidationError

from . import protocol as pb2
from .config import ClientConfig, load_config
from .connection import ChannelFactory, ConnectionManager
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
from .transport import CallOutcome

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

SERVER_STATUS_COMMAND = "OK"
SERVER_VERSION_COMMAND = "version"

R = TypeVar("R", bound=Response)


def requires_connection(result_cls: Type[Response]):
    """Return CLIENT_NOT_CONNECTED with the zero payload instead of calling"""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if not self.is_connected():
                logger.warning("You are not connected to Milvus server")
                return result_cls(status=Status.CLIENT_NOT_CONNECTED)
            return method(self, *args, **kwargs)
        return wrapper
    return decorator


def _row_records(vectors: List[List[float]]) -> list:
    return [pb2.RowRecord(vector_data=row) for row in vectors]


def _range(date_range: DateRange):
    return pb2.Range(
        start_value=date_range.start_date.strftime(DATE_FORMAT),
        end_value=date_range.end_date.strftime(DATE_FORMAT),
    )


def _search_request(search_param: SearchParam):
    return pb2.SearchParam(
        table_name=search_param.table_name,
        query_record_array=_row_records(search_param.query_vectors),
        query_range_array=[_range(r) for r in search_param.date_ranges],
        topk=search_param.top_k,
        nprobe=search_param.nprobe,
    )


def _query_results(reply) -> Dict[str, Any]:
    return {
        "query_results_list": [
            [QueryResult(vector_id=hit.id, distance=hit.distance) for hit in topk.query_result_arrays]
            for topk in reply.topk_query_result
        ]
    }


class MilvusClient:
    """
    Synchronous Milvus client.

    Every operation checks the connection first, builds the wire request,
    makes one blocking call and maps the reply to a result object. Failures
    are reported through the result's status, never raised:

    * the server's own error code and reason, passed through unchanged
    * RPC_ERROR when the call itself fails in transport
    * CLIENT_NOT_CONNECTED when the channel is not ready

    Example:
        >>> client = MilvusClient()
        >>> client.connect(host="localhost", port=19530)
        >>> client.create_table(TableSchema(table_name="demo", dimension=128))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        channel_factory: Optional[ChannelFactory] = None,
        **kwargs
    ) -> None:
        """Initialize Milvus client

        Args:
            config: Client configuration object
            channel_factory: Callable(target, options=...) returning a grpc.Channel;
                defaults to grpc.insecure_channel
            **kwargs: Additional configuration parameters
        """
        if config is None:
            config = load_config(**kwargs)

        self.config = config
        self._setup_logging()
        self._connection = ConnectionManager(config, channel_factory=channel_factory)

    def _setup_logging(self) -> None:
        logging.getLogger("milvus_client").setLevel(self.config.get_logging_level())

    # Connection

    def connect(self, connect_param: Optional[ConnectParam] = None, **kwargs) -> Response:
        """Connect to the server; arguments default to the client config

        Raises:
            ConnectError: see ConnectionManager.connect
        """
        if connect_param is None:
            params = {
                "host": self.config.host,
                "port": self.config.port,
                "timeout": self.config.connect_timeout_ms,
            }
            params.update({key: value for key, value in kwargs.items() if value is not None})
            connect_param = ConnectParam(**params)

        return self._connection.connect(connect_param.host, connect_param.port, connect_param.timeout)

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    def disconnect(self) -> Response:
        return self._connection.disconnect()

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_connected():
            self.disconnect()

    # Dispatch and reply interpretation

    def _dispatch(self, method_name: str, request) -> Optional[CallOutcome]:
        dispatcher = self._connection.dispatcher
        if dispatcher is None:
            return None
        return dispatcher.call(method_name, request)

    def _interpret(
        self,
        operation: str,
        outcome: Optional[CallOutcome],
        result_cls: Type[R],
        extract: Optional[Callable[[Any], Dict[str, Any]]] = None,
    ) -> R:
        """Map a call outcome to exactly one result.

        Payload fields are only filled on success; every other branch leaves
        the result class defaults (empty list, False, 0, None).
        """
        if outcome is None:
            logger.warning(f"{operation}: connection closed before the call was issued")
            return result_cls(status=Status.CLIENT_NOT_CONNECTED)

        if not outcome.ok:
            logger.error(f"{operation} RPC failed: {outcome.fault}")
            return result_cls(status=Status.RPC_ERROR, message=outcome.fault.describe())

        status = pb2.reply_status(outcome.reply)
        if status.error_code == pb2.SUCCESS:
            try:
                payload = extract(outcome.reply) if extract else {}
                return result_cls(status=Status.SUCCESS, **payload)
            except ValidationError as e:
                reasons = "; ".join(
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
                )
                logger.error(f"{operation} returned a malformed reply: {reasons}")
                return result_cls(status=Status.UNKNOWN, message=f"Malformed reply: {reasons}")

        logger.error(f"{operation} failed: {status.reason}")
        return result_cls(status=Status(status.error_code), message=status.reason)

    # Tables

    @requires_connection(Response)
    def create_table(self, table_schema: TableSchema) -> Response:
        request = pb2.TableSchema(
            table_name=table_schema.table_name,
            dimension=table_schema.dimension,
            index_file_size=table_schema.index_file_size,
            metric_type=int(table_schema.metric_type),
        )
        response = self._interpret("createTable", self._dispatch("CreateTable", request), Response)
        if response.ok():
            logger.info(f"Created table `{table_schema.table_name}` successfully!")
        return response

    @requires_connection(HasTableResponse)
    def has_table(self, table_name: str) -> HasTableResponse:
        request = pb2.TableName(table_name=table_name)
        response = self._interpret(
            "hasTable",
            self._dispatch("HasTable", request),
            HasTableResponse,
            lambda reply: {"has_table": reply.bool_reply},
        )
        if response.ok():
            logger.info(f"hasTable `{table_name}` = {response.has_table}")
        return response

    @requires_connection(Response)
    def drop_table(self, table_name: str) -> Response:
        request = pb2.TableName(table_name=table_name)
        response = self._interpret("dropTable", self._dispatch("DropTable", request), Response)
        if response.ok():
            logger.info(f"Dropped table `{table_name}` successfully!")
        return response

    @requires_connection(DescribeTableResponse)
    def describe_table(self, table_name: str) -> DescribeTableResponse:
        request = pb2.TableName(table_name=table_name)

        def extract(reply):
            return {
                "table_schema": TableSchema(
                    table_name=reply.table_name,
                    dimension=reply.dimension,
                    index_file_size=reply.index_file_size,
                    metric_type=MetricType(reply.metric_type),
                )
            }

        response = self._interpret(
            "describeTable", self._dispatch("DescribeTable", request), DescribeTableResponse, extract
        )
        if response.ok():
            logger.info(f"Describe table `{table_name}` returned: {response.table_schema}")
        return response

    @requires_connection(ShowTablesResponse)
    def show_tables(self) -> ShowTablesResponse:
        request = pb2.Command(cmd="")
        response = self._interpret(
            "showTables",
            self._dispatch("ShowTables", request),
            ShowTablesResponse,
            lambda reply: {"table_names": list(reply.table_names)},
        )
        if response.ok():
            logger.info(f"Current tables: {response.table_names}")
        return response

    @requires_connection(GetTableRowCountResponse)
    def get_table_row_count(self, table_name: str) -> GetTableRowCountResponse:
        request = pb2.TableName(table_name=table_name)
        response = self._interpret(
            "countTable",
            self._dispatch("CountTable", request),
            GetTableRowCountResponse,
            lambda reply: {"table_row_count": reply.table_row_count},
        )
        if response.ok():
            logger.info(f"Table `{table_name}` has {response.table_row_count} rows")
        return response

    @requires_connection(Response)
    def preload_table(self, table_name: str) -> Response:
        request = pb2.TableName(table_name=table_name)
        response = self._interpret("preloadTable", self._dispatch("PreloadTable", request), Response)
        if response.ok():
            logger.info(f"Preloaded table `{table_name}` successfully!")
        return response

    # Indexes

    @requires_connection(Response)
    def create_index(self, create_index_param: CreateIndexParam) -> Response:
        index = create_index_param.index
        request = pb2.IndexParam(
            table_name=create_index_param.table_name,
            index=pb2.Index(index_type=int(index.index_type), nlist=index.nlist),
        )
        response = self._interpret("createIndex", self._dispatch("CreateIndex", request), Response)
        if response.ok():
            logger.info(f"Created index for table `{create_index_param.table_name}` successfully!")
        return response

    @requires_connection(DescribeIndexResponse)
    def describe_index(self, table_name: str) -> DescribeIndexResponse:
        request = pb2.TableName(table_name=table_name)

        def extract(reply):
            return {
                "index": Index(index_type=IndexType(reply.index.index_type), nlist=reply.index.nlist)
            }

        response = self._interpret(
            "describeIndex", self._dispatch("DescribeIndex", request), DescribeIndexResponse, extract
        )
        if response.ok():
            logger.info(f"Describe index for table `{table_name}` returned: {response.index}")
        return response

    @requires_connection(Response)
    def drop_index(self, table_name: str) -> Response:
        request = pb2.TableName(table_name=table_name)
        response = self._interpret("dropIndex", self._dispatch("DropIndex", request), Response)
        if response.ok():
            logger.info(f"Dropped index for table `{table_name}` successfully!")
        return response

    # Vectors

    @requires_connection(InsertResponse)
    def insert(self, insert_param: InsertParam) -> InsertResponse:
        request = pb2.InsertParam(
            table_name=insert_param.table_name,
            row_record_array=_row_records(insert_param.vectors),
            row_id_array=insert_param.vector_ids,
        )
        response = self._interpret(
            "insert",
            self._dispatch("Insert", request),
            InsertResponse,
            lambda reply: {"vector_ids": list(reply.vector_id_array)},
        )
        if response.ok():
            logger.info(
                f"Inserted {len(response.vector_ids)} vectors to table "
                f"`{insert_param.table_name}` successfully!"
            )
        return response

    @requires_connection(SearchResponse)
    def search(self, search_param: SearchParam) -> SearchResponse:
        request = _search_request(search_param)
        response = self._interpret("search", self._dispatch("Search", request), SearchResponse, _query_results)
        if response.ok():
            logger.info(
                f"Search completed successfully! Returned results for "
                f"{len(response.query_results_list)} queries"
            )
        return response

    @requires_connection(SearchResponse)
    def search_in_files(self, search_in_files_param: SearchInFilesParam) -> SearchResponse:
        request = pb2.SearchInFilesParam(
            file_id_array=search_in_files_param.file_ids,
            search_param=_search_request(search_in_files_param.search_param),
        )
        response = self._interpret(
            "searchInFiles", self._dispatch("SearchInFiles", request), SearchResponse, _query_results
        )
        if response.ok():
            logger.info(f"Search in files {search_in_files_param.file_ids} completed successfully!")
        return response

    @requires_connection(Response)
    def delete_by_range(self, table_name: str, date_range: DateRange) -> Response:
        request = pb2.DeleteByRangeParam(range=_range(date_range), table_name=table_name)
        response = self._interpret("deleteByRange", self._dispatch("DeleteByRange", request), Response)
        if response.ok():
            logger.info(
                f"Deleted vectors from table `{table_name}` in range "
                f"{date_range.start_date}..{date_range.end_date} successfully!"
            )
        return response

    # Server commands

    def get_server_status(self) -> Response:
        return self._command(SERVER_STATUS_COMMAND)

    def get_server_version(self) -> Response:
        return self._command(SERVER_VERSION_COMMAND)

    @requires_connection(Response)
    def _command(self, command: str) -> Response:
        request = pb2.Command(cmd=command)
        response = self._interpret(
            f"command `{command}`",
            self._dispatch("Cmd", request),
            Response,
            lambda reply: {"message": reply.string_reply},
        )
        if response.ok():
            logger.info(f"Command `{command}`: {response.message}")
        return response


def connect(
    host: Optional[str] = None,
    port: Optional[Union[int, str]] = None,
    timeout: Optional[int] = None,
    config: Optional[ClientConfig] = None,
    **kwargs
) -> MilvusClient:
    """Create a client and connect it in one step"""
    client = MilvusClient(config=config, **kwargs)
    client.connect(host=host, port=port, timeout=timeout)
    return client
