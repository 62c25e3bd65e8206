from .proto_parser import ProtoParseError, parse_proto_file, parse_proto_text

__all__ = ["ProtoParseError", "parse_proto_file", "parse_proto_text"]
