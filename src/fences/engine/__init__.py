"""Layer-resolution and boundary-verification engine."""

from fences.engine.import_resolver import (
    is_relative_specifier,
    resolve_import,
    strip_quotes,
)
from fences.engine.layers import (
    GlobMatcher,
    LayerDef,
    glob_match,
    is_excluded,
    layers_from_mapping,
    match_layer,
)
from fences.engine.package_namer import normalize_path, to_package
from fences.engine.policy import (
    ConfigError,
    MissingBaseDirError,
    Policy,
    PolicyShapeError,
    UndeclaredLayerReference,
    find_policy_file,
    load_policy,
    policy_from_dict,
    validate_policy,
)
from fences.engine.syntax import (
    SyntaxNode,
    TreeSitterNode,
    parse_file,
    parse_source,
    supported_extensions,
)
from fences.engine.walker import (
    FORBIDDEN_IMPORT,
    UNCLASSIFIED_FILE,
    UNMATCHED_IMPORT,
    BoundaryWalker,
    ImportEdge,
    Violation,
    WalkState,
    check_file,
)

__all__ = [
    "FORBIDDEN_IMPORT",
    "UNCLASSIFIED_FILE",
    "UNMATCHED_IMPORT",
    "BoundaryWalker",
    "ConfigError",
    "GlobMatcher",
    "ImportEdge",
    "LayerDef",
    "MissingBaseDirError",
    "Policy",
    "PolicyShapeError",
    "SyntaxNode",
    "TreeSitterNode",
    "UndeclaredLayerReference",
    "Violation",
    "WalkState",
    "check_file",
    "find_policy_file",
    "glob_match",
    "is_excluded",
    "is_relative_specifier",
    "layers_from_mapping",
    "load_policy",
    "match_layer",
    "normalize_path",
    "parse_file",
    "parse_source",
    "policy_from_dict",
    "resolve_import",
    "strip_quotes",
    "supported_extensions",
    "to_package",
    "validate_policy",
]
