"""
Milvus Python Client - Data Models

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

from datetime import date, datetime
from enum import IntEnum
from typing import Any, List, Optional, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class Status(IntEnum):
    """Outcome of a client call.

    Non-negative values are the service's error codes, passed through
    verbatim. Negative values are produced by the client itself.
    """
    UNKNOWN = -3
    CLIENT_NOT_CONNECTED = -2
    RPC_ERROR = -1
    SHUTDOWN_TIMEOUT = -4

    SUCCESS = 0
    UNEXPECTED_ERROR = 1
    CONNECT_FAILED = 2
    PERMISSION_DENIED = 3
    TABLE_NOT_EXISTS = 4
    ILLEGAL_ARGUMENT = 5
    ILLEGAL_RANGE = 6
    ILLEGAL_DIMENSION = 7
    ILLEGAL_INDEX_TYPE = 8
    ILLEGAL_TABLE_NAME = 9
    ILLEGAL_TOPK = 10
    ILLEGAL_ROWRECORD = 11
    ILLEGAL_VECTOR_ID = 12
    ILLEGAL_SEARCH_RESULT = 13
    FILE_NOT_FOUND = 14
    META_FAILED = 15
    CACHE_FAILED = 16
    CANNOT_CREATE_FOLDER = 17
    CANNOT_CREATE_FILE = 18
    CANNOT_DELETE_FOLDER = 19
    CANNOT_DELETE_FILE = 20
    BUILD_INDEX_ERROR = 21
    ILLEGAL_NLIST = 22
    ILLEGAL_METRIC_TYPE = 23
    OUT_OF_MEMORY = 24

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class MetricType(IntEnum):
    """Distance metric of a table"""
    INVALID = 0
    L2 = 1
    IP = 2

    @classmethod
    def _missing_(cls, value):
        return cls.INVALID


class IndexType(IntEnum):
    """Supported index types"""
    INVALID = 0
    FLAT = 1
    IVFLAT = 2
    IVF_SQ8 = 3
    MIX_NSG = 4

    @classmethod
    def _missing_(cls, value):
        return cls.INVALID


def _to_rows(v: Any) -> Any:
    """Normalize a numpy matrix or a list of numpy rows to list of lists"""
    if isinstance(v, np.ndarray):
        if v.ndim != 2:
            raise ValueError("Vector array must be 2-dimensional")
        return v.astype(np.float32).tolist()
    if isinstance(v, (list, tuple)):
        return [row.astype(np.float32).tolist() if isinstance(row, np.ndarray) else row for row in v]
    return v


# Domain parameters

class ConnectParam(BaseModel):
    """Where and how long to try connecting"""
    host: str = "127.0.0.1"
    port: Union[int, str] = 19530
    timeout: int = Field(default=10000, ge=0, description="Connect timeout in milliseconds")


class TableSchema(BaseModel):
    """Table definition"""
    table_name: str = Field(..., min_length=1)
    dimension: int = Field(..., gt=0)
    index_file_size: int = Field(default=1024, gt=0, description="Index file size in MB")
    metric_type: MetricType = MetricType.L2


class Index(BaseModel):
    """Index definition"""
    index_type: IndexType = IndexType.FLAT
    nlist: int = Field(default=16384, gt=0)


class CreateIndexParam(BaseModel):
    table_name: str = Field(..., min_length=1)
    index: Index = Field(default_factory=Index)


class InsertParam(BaseModel):
    """Rows to insert, with optional explicit ids aligned by position"""
    table_name: str = Field(..., min_length=1)
    vectors: List[List[float]]
    vector_ids: List[int] = Field(default_factory=list)

    @field_validator('vectors', mode='before')
    def normalize_vectors(cls, v: Any) -> Any:
        return _to_rows(v)

    @field_validator('vector_ids', mode='before')
    def normalize_ids(cls, v: Any) -> Any:
        if isinstance(v, np.ndarray):
            return v.astype(np.int64).tolist()
        return v

    @model_validator(mode='after')
    def validate_ids_aligned(self) -> "InsertParam":
        if self.vector_ids and len(self.vector_ids) != len(self.vectors):
            raise ValueError(
                f"Got {len(self.vector_ids)} vector ids for {len(self.vectors)} vectors"
            )
        return self


class DateRange(BaseModel):
    """Inclusive calendar date range; time of day is dropped"""
    start_date: date
    end_date: date

    @field_validator('start_date', 'end_date', mode='before')
    def truncate_datetime(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        return v


class SearchParam(BaseModel):
    """Similarity search request"""
    table_name: str = Field(..., min_length=1)
    query_vectors: List[List[float]]
    date_ranges: List[DateRange] = Field(default_factory=list)
    top_k: int = Field(default=1024, gt=0)
    nprobe: int = Field(default=20, gt=0)

    @field_validator('query_vectors', mode='before')
    def normalize_vectors(cls, v: Any) -> Any:
        return _to_rows(v)


class SearchInFilesParam(BaseModel):
    """Search restricted to the given index files"""
    file_ids: List[str]
    search_param: SearchParam


# Results

class Response(BaseModel):
    """Status of a call plus an optional reason"""
    status: Status = Status.SUCCESS
    message: str = ""

    def ok(self) -> bool:
        return self.status == Status.SUCCESS

    def __str__(self) -> str:
        return f'Response {{code = {self.status.name}, message = "{self.message}"}}'


class HasTableResponse(Response):
    has_table: bool = False


class DescribeTableResponse(Response):
    table_schema: Optional[TableSchema] = None


class ShowTablesResponse(Response):
    table_names: List[str] = Field(default_factory=list)


class GetTableRowCountResponse(Response):
    table_row_count: int = 0


class DescribeIndexResponse(Response):
    index: Optional[Index] = None


class InsertResponse(Response):
    vector_ids: List[int] = Field(default_factory=list)


class QueryResult(BaseModel):
    """One ranked hit"""
    vector_id: int
    distance: float


class SearchResponse(Response):
    """One ordered list of hits per query vector, in query order"""
    query_results_list: List[List[QueryResult]] = Field(default_factory=list)

    def to_numpy(self):
        """Return (ids, distances) as 2-D arrays; rows are padded with -1 / nan"""
        width = max((len(hits) for hits in self.query_results_list), default=0)
        ids = np.full((len(self.query_results_list), width), -1, dtype=np.int64)
        distances = np.full((len(self.query_results_list), width), np.nan, dtype=np.float32)
        for row, hits in enumerate(self.query_results_list):
            for col, hit in enumerate(hits):
                ids[row, col] = hit.vector_id
                distances[row, col] = hit.distance
        return ids, distances
