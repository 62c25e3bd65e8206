import os
import tempfile

import pytest
from google.protobuf import descriptor_pb2 as d2
from google.protobuf import descriptor_pool

from protospec.compat import check_compatibility
from protospec.decoder import decode_document
from protospec.descriptor import (
    DescriptorError,
    from_file_descriptor,
    load_descriptor_set,
    to_file_descriptor,
)
from protospec.parser import parse_proto_text

FDP = d2.FieldDescriptorProto

DOC = {
    "syntax": "proto3",
    "package": "shop.v1",
    "imports": ["google/protobuf/timestamp.proto"],
    "enums": [{"name": "Status", "values": [
        {"name": "STATUS_UNSPECIFIED", "number": 0},
        {"name": "PAID", "number": 1},
    ]}],
    "messages": [{
        "name": "Order",
        "fields": [
            {"type": "string", "name": "id", "number": 1},
            {"type": "Line", "name": "lines", "number": 2, "repeated": True},
            {"type": "int64", "name": "total", "number": 3, "optional": True},
            {"type": "Status", "name": "status", "number": 4},
        ],
        "nestedMessages": [{"name": "Line", "fields": [{"type": "int32", "name": "qty", "number": 1}]}],
    }],
    "services": [{"name": "Orders", "methods": [
        {"name": "Watch", "inputType": "Order", "outputType": "Order", "streaming": {"output": True}},
    ]}],
}


def _compiled_file() -> d2.FileDescriptorProto:
    """Shape of what protoc emits for a small proto3 file."""
    fdp = d2.FileDescriptorProto(name="shop/order.proto", package="shop", syntax="proto3")
    msg = fdp.message_type.add(name="Order")
    msg.field.add(name="id", number=1, type=FDP.TYPE_STRING, label=FDP.LABEL_OPTIONAL)
    msg.field.add(name="status", number=2, type=FDP.TYPE_ENUM, type_name=".shop.Status",
                  label=FDP.LABEL_OPTIONAL)
    msg.field.add(name="counts", number=3, type=FDP.TYPE_MESSAGE, type_name=".shop.Order.CountsEntry",
                  label=FDP.LABEL_REPEATED)
    entry = msg.nested_type.add(name="CountsEntry")
    entry.options.map_entry = True
    enum = fdp.enum_type.add(name="Status")
    enum.value.add(name="STATUS_UNSPECIFIED", number=0)
    svc = fdp.service.add(name="Orders")
    svc.method.add(name="Get", input_type=".shop.Order", output_type=".shop.Order")
    return fdp


class TestToFileDescriptor:
    def test_structure(self):
        fdp = to_file_descriptor(decode_document(DOC), "shop/order.proto")
        assert fdp.name == "shop/order.proto"
        assert fdp.package == "shop.v1"
        assert list(fdp.dependency) == ["google/protobuf/timestamp.proto"]
        order = fdp.message_type[0]
        assert order.field[0].type == FDP.TYPE_STRING
        assert order.field[1].label == FDP.LABEL_REPEATED
        assert order.field[1].type_name == "Line"
        assert order.field[2].proto3_optional is True
        assert order.nested_type[0].name == "Line"
        assert fdp.service[0].method[0].server_streaming is True

    def test_round_trip(self):
        doc = decode_document(DOC)
        assert from_file_descriptor(to_file_descriptor(doc)) == doc

    def test_proto3_optional_gets_synthetic_oneof(self):
        fdp = to_file_descriptor(decode_document(DOC))
        order = fdp.message_type[0]
        assert [o.name for o in order.oneof_decl] == ["_total"]
        assert order.field[2].oneof_index == 0
        assert not order.field[0].HasField("oneof_index")

    def test_accepted_by_descriptor_pool(self):
        data = dict(DOC, imports=[])
        fdp = to_file_descriptor(decode_document(data), "shop/order.proto")
        pool = descriptor_pool.DescriptorPool()
        pool.AddSerializedFile(fdp.SerializeToString())
        order = pool.FindMessageTypeByName("shop.v1.Order")
        assert order.fields_by_name["total"].containing_oneof.name == "_total"
        assert order.fields_by_name["lines"].message_type.full_name == "shop.v1.Order.Line"


class TestFromFileDescriptor:
    def test_compiled_file(self):
        doc = from_file_descriptor(_compiled_file())
        assert doc.syntax == "proto3"
        assert doc.package == "shop"
        order = doc.messages[0]
        assert order.fields[1].type == "Status"
        assert order.fields[2].repeated is True
        # synthetic map entry types are dropped
        assert order.nested_messages == []
        method = doc.services[0].methods[0]
        assert (method.input_type, method.output_type) == ("Order", "Order")

    def test_references_are_shortened_to_their_scope(self):
        fdp = d2.FileDescriptorProto(name="shop/order.proto", package="shop", syntax="proto3")
        order = fdp.message_type.add(name="Order")
        order.nested_type.add(name="Line").field.add(
            name="parent", number=1, type=FDP.TYPE_MESSAGE, type_name=".shop.Order",
            label=FDP.LABEL_OPTIONAL)
        order.field.add(name="lines", number=1, type=FDP.TYPE_MESSAGE, type_name=".shop.Order.Line",
                        label=FDP.LABEL_REPEATED)
        order.field.add(name="at", number=2, type=FDP.TYPE_MESSAGE,
                        type_name=".google.protobuf.Timestamp", label=FDP.LABEL_OPTIONAL)
        other = fdp.message_type.add(name="Other")
        other.field.add(name="line", number=1, type=FDP.TYPE_MESSAGE, type_name=".shop.Order.Line",
                        label=FDP.LABEL_OPTIONAL)

        doc = from_file_descriptor(fdp)
        order_msg, other_msg = doc.messages
        assert [f.type for f in order_msg.fields] == ["Line", "google.protobuf.Timestamp"]
        assert order_msg.nested_messages[0].fields[0].type == "Order"
        assert other_msg.fields[0].type == "Order.Line"

    def test_compiled_file_matches_parsed_source(self):
        source = parse_proto_text("""\
syntax = "proto3";

package shop;

enum Status {
  STATUS_UNSPECIFIED = 0;
}

message Order {
  message Line {
    int32 qty = 1;
  }

  string id = 1;
  Status status = 2;
  repeated Line lines = 3;
}

service Orders {
  rpc Get(Order) returns (Order);
}
""")
        fdp = d2.FileDescriptorProto(name="shop/order.proto", package="shop", syntax="proto3")
        fdp.enum_type.add(name="Status").value.add(name="STATUS_UNSPECIFIED", number=0)
        order = fdp.message_type.add(name="Order")
        order.nested_type.add(name="Line").field.add(
            name="qty", number=1, type=FDP.TYPE_INT32, label=FDP.LABEL_OPTIONAL)
        order.field.add(name="id", number=1, type=FDP.TYPE_STRING, label=FDP.LABEL_OPTIONAL)
        order.field.add(name="status", number=2, type=FDP.TYPE_ENUM, type_name=".shop.Status",
                        label=FDP.LABEL_OPTIONAL)
        order.field.add(name="lines", number=3, type=FDP.TYPE_MESSAGE, type_name=".shop.Order.Line",
                        label=FDP.LABEL_REPEATED)
        fdp.service.add(name="Orders").method.add(
            name="Get", input_type=".shop.Order", output_type=".shop.Order")

        compiled = from_file_descriptor(fdp)
        assert check_compatibility(source, compiled) == []
        assert compiled == source

    def test_proto2_syntax_default(self):
        fdp = d2.FileDescriptorProto(name="legacy.proto")
        msg = fdp.message_type.add(name="Legacy")
        msg.field.add(name="id", number=1, type=FDP.TYPE_INT32, label=FDP.LABEL_OPTIONAL)
        doc = from_file_descriptor(fdp)
        assert doc.syntax == "proto2"
        assert doc.messages[0].fields[0].optional is True


class TestLoadDescriptorSet:
    def setup_method(self):
        fds = d2.FileDescriptorSet()
        dep = fds.file.add(name="google/protobuf/empty.proto", package="google.protobuf", syntax="proto3")
        dep.message_type.add(name="Empty")
        fds.file.add().CopyFrom(_compiled_file())
        fd, self.path = tempfile.mkstemp(suffix=".pb")
        os.write(fd, fds.SerializeToString())
        os.close(fd)

    def teardown_method(self):
        os.unlink(self.path)

    def test_defaults_to_last_file(self):
        assert load_descriptor_set(self.path).package == "shop"

    def test_select_by_name(self):
        assert load_descriptor_set(self.path, "empty.proto").package == "google.protobuf"
        assert load_descriptor_set(self.path, "shop/order.proto").package == "shop"

    def test_missing_file(self):
        with pytest.raises(DescriptorError, match="Could not locate"):
            load_descriptor_set(self.path, "nope.proto")

    def test_garbage_input(self):
        fd, path = tempfile.mkstemp(suffix=".pb")
        os.write(fd, b"\xff\xff\xff\xff")
        os.close(fd)
        try:
            with pytest.raises(DescriptorError):
                load_descriptor_set(path)
        finally:
            os.unlink(path)
