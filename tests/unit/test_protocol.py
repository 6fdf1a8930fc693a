"""
Unit tests for the wire protocol module.
"""

from milvus_client import protocol as pb2


class TestDescriptor:

    def test_service_methods(self):
        file_proto = pb2.build_file_descriptor()
        service = file_proto.service[0]

        assert file_proto.package == "milvus.grpc"
        assert service.name == "MilvusService"
        assert len(service.method) == 15
        assert set(pb2.METHODS) == {method.name for method in service.method}

    def test_method_path(self):
        assert pb2.method_path("Insert") == "/milvus.grpc.MilvusService/Insert"

    def test_method_table_types(self):
        request_cls, reply_cls = pb2.METHODS["SearchInFiles"]
        assert request_cls.DESCRIPTOR.full_name == "milvus.grpc.SearchInFilesParam"
        assert reply_cls.DESCRIPTOR.full_name == "milvus.grpc.TopKQueryResultList"


class TestMessages:

    def test_insert_param_encoding(self):
        message = pb2.InsertParam(
            table_name="demo",
            row_record_array=[pb2.RowRecord(vector_data=[1.0, 2.5])],
            row_id_array=[7],
        )

        decoded = pb2.InsertParam.FromString(message.SerializeToString())

        assert decoded.table_name == "demo"
        assert list(decoded.row_record_array[0].vector_data) == [1.0, 2.5]
        assert list(decoded.row_id_array) == [7]

    def test_default_status_is_success(self):
        assert pb2.Status().error_code == pb2.SUCCESS
        assert pb2.VectorIds().status.error_code == pb2.SUCCESS

    def test_reply_status(self):
        bare = pb2.Status(error_code=4, reason="missing")
        nested = pb2.BoolReply(status=bare, bool_reply=True)

        assert pb2.reply_status(bare) is bare
        assert pb2.reply_status(nested).reason == "missing"
