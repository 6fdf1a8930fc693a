"""
Milvus Python Client - Wire Protocol

Message classes and the service method table for the ``milvus.grpc``
protocol. The descriptor is assembled at import time and the message
classes are produced by the protobuf runtime, so no protoc step is needed.

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

from typing import Dict, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "milvus.grpc"
SERVICE = "MilvusService"
SERVICE_NAME = f"{PACKAGE}.{SERVICE}"
FILE_NAME = "milvus_client/milvus.proto"

ERROR_CODES = (
    ("SUCCESS", 0),
    ("UNEXPECTED_ERROR", 1),
    ("CONNECT_FAILED", 2),
    ("PERMISSION_DENIED", 3),
    ("TABLE_NOT_EXISTS", 4),
    ("ILLEGAL_ARGUMENT", 5),
    ("ILLEGAL_RANGE", 6),
    ("ILLEGAL_DIMENSION", 7),
    ("ILLEGAL_INDEX_TYPE", 8),
    ("ILLEGAL_TABLE_NAME", 9),
    ("ILLEGAL_TOPK", 10),
    ("ILLEGAL_ROWRECORD", 11),
    ("ILLEGAL_VECTOR_ID", 12),
    ("ILLEGAL_SEARCH_RESULT", 13),
    ("FILE_NOT_FOUND", 14),
    ("META_FAILED", 15),
    ("CACHE_FAILED", 16),
    ("CANNOT_CREATE_FOLDER", 17),
    ("CANNOT_CREATE_FILE", 18),
    ("CANNOT_DELETE_FOLDER", 19),
    ("CANNOT_DELETE_FILE", 20),
    ("BUILD_INDEX_ERROR", 21),
    ("ILLEGAL_NLIST", 22),
    ("ILLEGAL_METRIC_TYPE", 23),
    ("OUT_OF_MEMORY", 24),
)

SUCCESS = 0

# (message name, fields in tag order as "type name"); a "repeated " prefix marks lists
_MESSAGES = (
    ("Status", ("ErrorCode error_code", "string reason")),
    ("TableName", ("string table_name",)),
    ("TableNameList", ("Status status", "repeated string table_names")),
    ("TableSchema", (
        "Status status",
        "string table_name",
        "int64 dimension",
        "int64 index_file_size",
        "int32 metric_type",
    )),
    ("Range", ("string start_value", "string end_value")),
    ("RowRecord", ("repeated float vector_data",)),
    ("InsertParam", (
        "string table_name",
        "repeated RowRecord row_record_array",
        "repeated int64 row_id_array",
    )),
    ("VectorIds", ("Status status", "repeated int64 vector_id_array")),
    ("SearchParam", (
        "string table_name",
        "repeated RowRecord query_record_array",
        "repeated Range query_range_array",
        "int64 topk",
        "int64 nprobe",
    )),
    ("SearchInFilesParam", ("repeated string file_id_array", "SearchParam search_param")),
    ("QueryResult", ("int64 id", "double distance")),
    ("TopKQueryResult", ("repeated QueryResult query_result_arrays",)),
    ("TopKQueryResultList", ("Status status", "repeated TopKQueryResult topk_query_result")),
    ("StringReply", ("Status status", "string string_reply")),
    ("BoolReply", ("Status status", "bool bool_reply")),
    ("TableRowCount", ("Status status", "int64 table_row_count")),
    ("Command", ("string cmd",)),
    ("Index", ("int32 index_type", "int32 nlist")),
    ("IndexParam", ("Status status", "string table_name", "Index index")),
    ("DeleteByRangeParam", ("Range range", "string table_name")),
)

# rpc name -> (request message, reply message)
_METHODS = (
    ("CreateTable", "TableSchema", "Status"),
    ("HasTable", "TableName", "BoolReply"),
    ("DescribeTable", "TableName", "TableSchema"),
    ("CountTable", "TableName", "TableRowCount"),
    ("ShowTables", "Command", "TableNameList"),
    ("DropTable", "TableName", "Status"),
    ("CreateIndex", "IndexParam", "Status"),
    ("DescribeIndex", "TableName", "IndexParam"),
    ("DropIndex", "TableName", "Status"),
    ("Insert", "InsertParam", "VectorIds"),
    ("Search", "SearchParam", "TopKQueryResultList"),
    ("SearchInFiles", "SearchInFilesParam", "TopKQueryResultList"),
    ("Cmd", "Command", "StringReply"),
    ("DeleteByRange", "DeleteByRangeParam", "Status"),
    ("PreloadTable", "TableName", "Status"),
)

_FieldProto = descriptor_pb2.FieldDescriptorProto

_SCALAR_TYPES = {
    "string": _FieldProto.TYPE_STRING,
    "bool": _FieldProto.TYPE_BOOL,
    "int32": _FieldProto.TYPE_INT32,
    "int64": _FieldProto.TYPE_INT64,
    "float": _FieldProto.TYPE_FLOAT,
    "double": _FieldProto.TYPE_DOUBLE,
}


def _qualified(name: str) -> str:
    return f".{PACKAGE}.{name}"


def _add_field(message: descriptor_pb2.DescriptorProto, number: int, spec: str) -> None:
    label = _FieldProto.LABEL_OPTIONAL
    if spec.startswith("repeated "):
        label = _FieldProto.LABEL_REPEATED
        spec = spec[len("repeated "):]
    type_name, name = spec.split()

    field = message.field.add(name=name, number=number, label=label)
    if type_name in _SCALAR_TYPES:
        field.type = _SCALAR_TYPES[type_name]
    elif type_name == "ErrorCode":
        field.type = _FieldProto.TYPE_ENUM
        field.type_name = _qualified(type_name)
    else:
        field.type = _FieldProto.TYPE_MESSAGE
        field.type_name = _qualified(type_name)


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    """Assemble the FileDescriptorProto for the service"""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=FILE_NAME,
        package=PACKAGE,
        syntax="proto3",
    )

    error_code = file_proto.enum_type.add(name="ErrorCode")
    for name, number in ERROR_CODES:
        error_code.value.add(name=name, number=number)

    for message_name, fields in _MESSAGES:
        message = file_proto.message_type.add(name=message_name)
        for number, spec in enumerate(fields, start=1):
            _add_field(message, number, spec)

    service = file_proto.service.add(name=SERVICE)
    for method_name, request_name, reply_name in _METHODS:
        service.method.add(
            name=method_name,
            input_type=_qualified(request_name),
            output_type=_qualified(reply_name),
        )

    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(build_file_descriptor().SerializeToString())


def _message(name: str):
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.{name}"))


Status = _message("Status")
TableName = _message("TableName")
TableNameList = _message("TableNameList")
TableSchema = _message("TableSchema")
Range = _message("Range")
RowRecord = _message("RowRecord")
InsertParam = _message("InsertParam")
VectorIds = _message("VectorIds")
SearchParam = _message("SearchParam")
SearchInFilesParam = _message("SearchInFilesParam")
QueryResult = _message("QueryResult")
TopKQueryResult = _message("TopKQueryResult")
TopKQueryResultList = _message("TopKQueryResultList")
StringReply = _message("StringReply")
BoolReply = _message("BoolReply")
TableRowCount = _message("TableRowCount")
Command = _message("Command")
Index = _message("Index")
IndexParam = _message("IndexParam")
DeleteByRangeParam = _message("DeleteByRangeParam")

ErrorCode = _POOL.FindEnumTypeByName(f"{PACKAGE}.ErrorCode")

METHODS: Dict[str, Tuple[type, type]] = {
    method_name: (_message(request_name), _message(reply_name))
    for method_name, request_name, reply_name in _METHODS
}


def method_path(method_name: str) -> str:
    """Full gRPC path, e.g. /milvus.grpc.MilvusService/Insert"""
    return f"/{SERVICE_NAME}/{method_name}"


def reply_status(reply):
    """Return the embedded Status of a reply; bare Status replies are their own status"""
    if reply.DESCRIPTOR.full_name == f"{PACKAGE}.Status":
        return reply
    return reply.status
