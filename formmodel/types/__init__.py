"""formmodel 共享类型定义."""

from .structures import (
    JsonValue,
    LoggerExtra,
    MutablePayloadDict,
    PayloadMapping,
    PayloadValue,
    ScalarValue,
    StructlogEventDict,
)

__all__ = [
    "JsonValue",
    "LoggerExtra",
    "MutablePayloadDict",
    "PayloadMapping",
    "PayloadValue",
    "ScalarValue",
    "StructlogEventDict",
]
