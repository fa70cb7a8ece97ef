from src.inference.gateway import InferenceError, InferenceGateway
from src.inference.response_parser import (
    ParseFallback,
    ParseOk,
    ParseResult,
    parse_json_array,
    parse_json_object,
)

__all__ = [
    "InferenceGateway",
    "InferenceError",
    "ParseOk",
    "ParseFallback",
    "ParseResult",
    "parse_json_object",
    "parse_json_array",
]
