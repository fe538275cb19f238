"""Reference normalization and extraction."""

from .extractor import ExtractedReference, extract_references, infer_reference_type, unwrap_definition
from .normalizer import (
    DEFAULT_DOMAIN,
    DEFAULT_VERSION,
    ExplicitRef,
    PathRef,
    classify_reference,
    infer_type_from_path,
    normalize_reference,
    resolve_reference,
)

__all__ = [
    "DEFAULT_DOMAIN",
    "DEFAULT_VERSION",
    "ExplicitRef",
    "PathRef",
    "ExtractedReference",
    "classify_reference",
    "resolve_reference",
    "normalize_reference",
    "infer_type_from_path",
    "infer_reference_type",
    "extract_references",
    "unwrap_definition",
]
