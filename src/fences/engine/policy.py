"""Layer policy: parse fences.yml, validate, and expose a read-only snapshot."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

import yaml

from fences.engine.layers import LayerDef, layers_from_mapping
from fences.engine.package_namer import normalize_path

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

POLICY_FILENAMES: tuple[str, ...] = ("fences.yml", ".fences.yml")
TSCONFIG_FILENAME = "tsconfig.json"

# tsconfig.json is JSONC: comments and trailing commas are dropped, strings kept.
_JSONC_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)
_JSONC_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(?=\s*[}\]])')

_KNOWN_KEYS: frozenset[str] = frozenset(
    {"layers", "rules", "allowlist", "excluded", "debug", "base_dir"}
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Fatal policy configuration error; aborts the whole run."""


class PolicyShapeError(ConfigError):
    """The policy document does not have the expected structure."""


class MissingBaseDirError(ConfigError):
    """No base directory was configured or discoverable."""


class UndeclaredLayerReference(ConfigError):
    """The allow-list names layers that the layer table does not declare."""

    def __init__(self, names: tuple[str, ...]) -> None:
        self.names = names
        joined = ", ".join(f"'{n}'" for n in names)
        super().__init__(f"Layer used in rules, but not defined in layers: {joined}")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Policy:
    """Immutable policy snapshot shared by every file check in a run."""

    base_dir: str
    layers: tuple[LayerDef, ...] = ()
    rules: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    excluded: tuple[str, ...] = ()
    debug: int = 0

    @property
    def layer_names(self) -> tuple[str, ...]:
        return tuple(layer.name for layer in self.layers)

    def allowed_targets(self, layer: str) -> tuple[str, ...] | None:
        """Return the layers *layer* may import from, or ``None`` if it has no entry."""
        return self.rules.get(layer)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_policy(policy: Policy) -> list[str]:
    """Check the policy for internal consistency.

    Every layer named in the allow-list, as a key or inside a list, must be
    declared in the layer table; otherwise :class:`UndeclaredLayerReference`
    is raised naming all offenders.  Softer problems come back as warning
    strings (an empty list when all is well).
    """
    declared = set(policy.layer_names)

    used: list[str] = []
    for source, targets in policy.rules.items():
        used.append(source)
        used.extend(targets)

    undeclared = sorted({name for name in used if name not in declared})
    if undeclared:
        raise UndeclaredLayerReference(tuple(undeclared))

    warnings: list[str] = []
    for layer in policy.layers:
        if not layer.patterns:
            warnings.append(f"Layer '{layer.name}' has no patterns and can never match")
    for source, targets in policy.rules.items():
        if source in targets:
            warnings.append(
                f"Layer '{source}' lists itself in rules (same-layer imports are always allowed)"
            )
        duplicates = sorted({t for t in targets if targets.count(t) > 1})
        for dup in duplicates:
            warnings.append(f"Layer '{source}' lists '{dup}' more than once in rules")

    for warning in warnings:
        logger.warning(warning)
    return warnings


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _parse_string_list(raw: object, context: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"{context} must be a list of strings"
        raise PolicyShapeError(msg)
    items: list[str] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, str):
            msg = f"{context}[{idx}] must be a string, got {item!r}"
            raise PolicyShapeError(msg)
        items.append(item)
    return tuple(items)


def _parse_string_table(raw: object, context: str) -> dict[str, tuple[str, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"'{context}' must be a mapping of names to lists"
        raise PolicyShapeError(msg)
    table: dict[str, tuple[str, ...]] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            msg = f"'{context}' keys must be strings, got {key!r}"
            raise PolicyShapeError(msg)
        table[key] = _parse_string_list(value, f"{context}.{key}")
    return table


def _strip_jsonc(text: str) -> str:
    """Turn JSON-with-comments into plain JSON."""

    def keep_strings(match: re.Match[str]) -> str:
        return match.group(1) or ""

    text = _JSONC_COMMENT.sub(keep_strings, text)
    return _JSONC_TRAILING_COMMA.sub(keep_strings, text)


def _base_dir_from_tsconfig(directory: Path) -> str | None:
    """Read ``compilerOptions.baseUrl`` from a tsconfig.json in *directory*."""
    tsconfig = directory / TSCONFIG_FILENAME
    if not tsconfig.is_file():
        return None
    try:
        data = json.loads(_strip_jsonc(tsconfig.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", tsconfig, exc)
        return None
    if not isinstance(data, dict):
        return None
    options = data.get("compilerOptions")
    if not isinstance(options, dict):
        return None
    base_url = options.get("baseUrl")
    if not isinstance(base_url, str) or not base_url:
        return None
    return str((directory / base_url).resolve())


def policy_from_dict(data: object, *, config_dir: Path | None = None) -> Policy:
    """Build a :class:`Policy` from an already-parsed policy document.

    Relative ``base_dir`` values and the tsconfig.json fallback are resolved
    against *config_dir*.  The base directory is always made absolute with
    symlinks expanded, matching the resolved paths the linter collects.

    Raises
    ------
    PolicyShapeError
        When the document is structurally invalid.
    MissingBaseDirError
        When no base directory can be determined.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "policy must be a YAML mapping"
        raise PolicyShapeError(msg)

    unknown = sorted(str(k) for k in data if k not in _KNOWN_KEYS)
    if unknown:
        msg = f"unknown policy keys: {', '.join(unknown)}"
        raise PolicyShapeError(msg)

    if "rules" in data and "allowlist" in data:
        msg = "use either 'rules' or 'allowlist', not both"
        raise PolicyShapeError(msg)
    rules_key = "allowlist" if "allowlist" in data else "rules"

    layers = _parse_string_table(data.get("layers"), "layers")
    rules = _parse_string_table(data.get(rules_key), rules_key)
    excluded = _parse_string_list(data.get("excluded"), "excluded")

    debug_raw = data.get("debug", 0)
    if debug_raw is None:
        debug_raw = 0
    if isinstance(debug_raw, bool) or not isinstance(debug_raw, int) or debug_raw < 0:
        msg = f"'debug' must be a non-negative integer, got {debug_raw!r}"
        raise PolicyShapeError(msg)

    base_raw = data.get("base_dir")
    base_dir: str | None
    if base_raw is None:
        base_dir = _base_dir_from_tsconfig(config_dir) if config_dir is not None else None
    elif isinstance(base_raw, str) and base_raw.strip():
        base_path = Path(base_raw)
        if not base_path.is_absolute() and config_dir is not None:
            base_path = config_dir / base_path
        base_dir = str(base_path.resolve())
    else:
        msg = f"'base_dir' must be a non-empty string, got {base_raw!r}"
        raise PolicyShapeError(msg)

    if base_dir is None:
        msg = (
            "base directory is not configured: set 'base_dir' in the policy "
            "or 'compilerOptions.baseUrl' in tsconfig.json"
        )
        raise MissingBaseDirError(msg)

    return Policy(
        base_dir=normalize_path(base_dir),
        layers=layers_from_mapping(layers),
        rules=MappingProxyType(rules),
        excluded=excluded,
        debug=debug_raw,
    )


def load_policy(policy_path: Path) -> Policy:
    """Parse a fences.yml file into a :class:`Policy`.

    The policy is only parsed here; call :func:`validate_policy` before
    checking any file.
    """
    try:
        with policy_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        msg = f"cannot read {policy_path}: {exc}"
        raise PolicyShapeError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"{policy_path.name} is not valid YAML: {exc}"
        raise PolicyShapeError(msg) from exc

    return policy_from_dict(data, config_dir=policy_path.parent.resolve())


def find_policy_file(project_root: Path) -> Path | None:
    """Return the first policy file present in *project_root*, if any."""
    for name in POLICY_FILENAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None
