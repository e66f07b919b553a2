"""Core flowspec functionality: IR, type analysis, reconstruction, extraction, schema."""

from . import ir
from .compiler import CompiledSource, compile_source, compile_sources, inherit_ids, inherit_slice_ids
from .errors import (
    ErrorContext,
    FlowSpecError,
    ParseError,
    SchemaError,
    ValidationError,
)
from .gwt import build_command_gwt_mapping, build_query_gwt_mapping
from .ids import add_auto_ids, generate_token, has_all_ids
from .model_builder import ParsedFlow, build_flow, parse_narratives, parse_slices
from .reconstruct import analyze_code_usage, find_code_boundaries, sort_type_declarations
from .schema import dumps_schema, loads_schema, to_model, to_schema
from .separator import extract_flow_code, split_source
from .specs import flatten_client_specs
from .type_decls import TypeDeclaration, collect_type_declarations

__all__ = [
    "ir",
    "FlowSpecError",
    "ParseError",
    "ValidationError",
    "SchemaError",
    "ErrorContext",
    "CompiledSource",
    "compile_source",
    "compile_sources",
    "TypeDeclaration",
    "collect_type_declarations",
    "extract_flow_code",
    "split_source",
    "find_code_boundaries",
    "sort_type_declarations",
    "analyze_code_usage",
    "flatten_client_specs",
    "build_query_gwt_mapping",
    "build_command_gwt_mapping",
    "generate_token",
    "add_auto_ids",
    "has_all_ids",
    "ParsedFlow",
    "build_flow",
    "parse_narratives",
    "parse_slices",
    "inherit_ids",
    "inherit_slice_ids",
    "to_schema",
    "to_model",
    "dumps_schema",
    "loads_schema",
]
