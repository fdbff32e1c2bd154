"""Variable Registry: the static catalog of climate variables.

The registry is loaded once from a declarative JSON source and is read-only
afterwards. Its group hierarchy is the shape of the ``properties`` struct, so
the same walk drives aggregate generation, table provisioning and the
rebuilding of flat aggregate rows into nested records.

Declarative source::

    {
      "lists": {"months": ["01", ...]},
      "definitions": {"bioclim": {"children": {...}}},
      "tree": <node>
    }

A node is a leaf (``{"kind": "numeric"}``), a reference (``{"$ref": name}``)
or a group. A group's children are, in order: its ``children`` mapping, the
children of every definition named in ``include``, and one ``node`` per label
of ``each`` (a list name or a literal list).
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from worldclim_query.errors import SchemaError
from worldclim_query.settings import S

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"

# Output columns of an aggregate row besides the variables themselves.
_RESERVED_KEYS = frozenset({"count", "distance"})

_BUNDLED_CATALOG = os.path.join(os.path.dirname(os.path.abspath(__file__)), "worldclim.json")


class VariableKind(str, Enum):
    numeric = "numeric"
    elevation = "elevation"
    identifier = "identifier"


@dataclass(frozen=True)
class ClimateVariable:
    path: Tuple[str, ...]
    kind: VariableKind
    aggregable: bool

    @property
    def name(self) -> str:
        return self.path[-1]

    @property
    def flat_key(self) -> str:
        return PATH_SEPARATOR.join(self.path)


@dataclass(frozen=True)
class VariableGroup:
    label: str
    path: Tuple[str, ...]
    children: Tuple[Union["VariableGroup", ClimateVariable], ...]

    def has_aggregable(self) -> bool:
        for child in self.children:
            if isinstance(child, ClimateVariable):
                if child.aggregable:
                    return True
            elif child.has_aggregable():
                return True
        return False


class VariableRegistry:
    def __init__(self, root: VariableGroup, name: str = "", description: str = ""):
        self.root = root
        self.name = name
        self.description = description
        self._leaves = tuple(_iter_leaves(root))

        seen: Dict[str, ClimateVariable] = {}
        # DuckDB column aliases are case-insensitive.
        folded: Dict[str, str] = {}
        for leaf in self._leaves:
            key = leaf.flat_key
            if key in seen:
                raise SchemaError(f"Variable path '{key}' is declared more than once.")
            if key.lower() in _RESERVED_KEYS:
                raise SchemaError(f"Variable path '{key}' collides with a reserved output column.")
            if key.lower() in folded:
                raise SchemaError(
                    f"Variable paths '{folded[key.lower()]}' and '{key}' differ only in case."
                )
            seen[key] = leaf
            folded[key.lower()] = key
        self._by_key = seen

    @classmethod
    def from_source(cls, source: Mapping[str, Any]) -> "VariableRegistry":
        if not isinstance(source, Mapping):
            raise SchemaError("Registry source must be an object.")
        if "tree" not in source:
            raise SchemaError("Registry source must define a 'tree'.")
        builder = _Builder(source.get("lists") or {}, source.get("definitions") or {})
        root = builder.group("", (), source["tree"])
        return cls(
            root,
            name=str(source.get("name") or ""),
            description=str(source.get("description") or ""),
        )

    def leaves(self) -> Tuple[ClimateVariable, ...]:
        return self._leaves

    def walk(self, aggregable_only: bool = False) -> Iterator[Tuple[str, ClimateVariable]]:
        """Yield ``(flat_key, variable)`` in declaration order; a fresh generator per call."""
        for leaf in self._leaves:
            if aggregable_only and not leaf.aggregable:
                continue
            yield leaf.flat_key, leaf

    def get(self, flat_key: str) -> Optional[ClimateVariable]:
        return self._by_key.get(flat_key)

    def __len__(self) -> int:
        return len(self._leaves)

    def __contains__(self, flat_key: object) -> bool:
        return flat_key in self._by_key

    def flatten(self, nested: Mapping[str, Any]) -> Dict[str, Any]:
        """Nested properties record -> ``{flat_key: value}``; absent leaves are skipped."""
        out: Dict[str, Any] = {}
        for key, leaf in self.walk():
            node: Any = nested
            for label in leaf.path:
                if not isinstance(node, Mapping) or label not in node:
                    break
                node = node[label]
            else:
                out[key] = node
        return out

    def unflatten(self, flat: Mapping[str, Any], aggregable_only: bool = False) -> Dict[str, Any]:
        """``{flat_key: value}`` -> nested record shaped like the group hierarchy.

        Every selected leaf is present; missing values rebuild as None.
        """
        return _rebuild(self.root, flat, aggregable_only)


def _iter_leaves(group: VariableGroup) -> Iterator[ClimateVariable]:
    for child in group.children:
        if isinstance(child, ClimateVariable):
            yield child
        else:
            yield from _iter_leaves(child)


def _rebuild(group: VariableGroup, flat: Mapping[str, Any], aggregable_only: bool) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for child in group.children:
        if isinstance(child, ClimateVariable):
            if aggregable_only and not child.aggregable:
                continue
            out[child.name] = flat.get(child.flat_key)
        else:
            if aggregable_only and not child.has_aggregable():
                continue
            out[child.label] = _rebuild(child, flat, aggregable_only)
    return out


class _Builder:
    def __init__(self, lists: Mapping[str, Any], definitions: Mapping[str, Any]):
        if not isinstance(lists, Mapping) or not isinstance(definitions, Mapping):
            raise SchemaError("'lists' and 'definitions' must be objects.")
        self.lists = lists
        self.definitions = definitions
        self._resolving: List[str] = []

    def _label(self, label: Any, path: Tuple[str, ...]) -> str:
        s = str(label).strip() if label is not None else ""
        where = PATH_SEPARATOR.join(path) or "<root>"
        if not s:
            raise SchemaError(f"Empty label under '{where}'.")
        if PATH_SEPARATOR in s:
            raise SchemaError(f"Label '{s}' under '{where}' contains '{PATH_SEPARATOR}'.")
        return s

    def _deref(self, node: Any) -> Any:
        seen = list(self._resolving)
        while isinstance(node, Mapping) and "$ref" in node:
            name = str(node["$ref"])
            if name not in self.definitions:
                raise SchemaError(f"Undefined reference '{name}'.")
            if name in seen:
                raise SchemaError(f"Reference cycle through '{name}'.")
            seen.append(name)
            node = self.definitions[name]
        return node

    def _labels(self, each: Any, path: Tuple[str, ...]) -> List[str]:
        if isinstance(each, str):
            if each not in self.lists:
                raise SchemaError(f"Undefined list '{each}'.")
            each = self.lists[each]
        if not isinstance(each, list):
            raise SchemaError(f"'each' under '{PATH_SEPARATOR.join(path)}' must be a list.")
        return [self._label(v, path) for v in each]

    def node(self, label: str, path: Tuple[str, ...], raw: Any) -> Union[VariableGroup, ClimateVariable]:
        ref = raw.get("$ref") if isinstance(raw, Mapping) else None
        if ref is not None:
            self._deref(raw)
            self._resolving.append(str(ref))
            try:
                return self.node(label, path, self.definitions[str(ref)])
            finally:
                self._resolving.pop()

        if not isinstance(raw, Mapping):
            raise SchemaError(f"Node '{PATH_SEPARATOR.join(path)}' must be an object.")
        if "kind" in raw:
            return self.leaf(path, raw)
        return self.group(label, path, raw)

    def leaf(self, path: Tuple[str, ...], raw: Mapping[str, Any]) -> ClimateVariable:
        try:
            kind = VariableKind(raw["kind"])
        except (TypeError, ValueError):
            raise SchemaError(
                f"Variable '{PATH_SEPARATOR.join(path)}' has unknown kind '{raw['kind']}'."
            ) from None
        aggregable = raw.get("aggregable", kind is not VariableKind.identifier)
        if not isinstance(aggregable, bool):
            raise SchemaError(f"Variable '{PATH_SEPARATOR.join(path)}' aggregable must be boolean.")
        return ClimateVariable(path=path, kind=kind, aggregable=aggregable)

    def group(self, label: str, path: Tuple[str, ...], raw: Any) -> VariableGroup:
        raw = self._deref(raw)
        if not isinstance(raw, Mapping):
            raise SchemaError(f"Group '{PATH_SEPARATOR.join(path) or '<root>'}' must be an object.")

        entries: List[Tuple[str, Any]] = []
        for child_label, child in (raw.get("children") or {}).items():
            entries.append((self._label(child_label, path), child))

        for name in raw.get("include") or []:
            if name not in self.definitions:
                raise SchemaError(f"Undefined include '{name}'.")
            if name in self._resolving:
                raise SchemaError(f"Reference cycle through '{name}'.")
            included = self._deref(self.definitions[name])
            if not isinstance(included, Mapping) or "kind" in included:
                raise SchemaError(f"Include '{name}' must name a group definition.")
            self._resolving.append(name)
            try:
                sub = self.group(label, path, included)
            finally:
                self._resolving.pop()
            entries.extend((c.label if isinstance(c, VariableGroup) else c.name, _Built(c)) for c in sub.children)

        if "each" in raw:
            if "node" not in raw:
                raise SchemaError(f"Group '{PATH_SEPARATOR.join(path)}' uses 'each' without 'node'.")
            for child_label in self._labels(raw["each"], path):
                entries.append((child_label, raw["node"]))

        children: List[Union[VariableGroup, ClimateVariable]] = []
        labels: Dict[str, bool] = {}
        for child_label, child in entries:
            child_path = path + (child_label,)
            if child_label in labels:
                raise SchemaError(
                    f"Variable path '{PATH_SEPARATOR.join(child_path)}' is declared more than once."
                )
            labels[child_label] = True
            if isinstance(child, _Built):
                children.append(child.value)
            else:
                children.append(self.node(child_label, child_path, child))

        if not children:
            raise SchemaError(f"Group '{PATH_SEPARATOR.join(path) or '<root>'}' has no children.")
        return VariableGroup(label=label, path=path, children=tuple(children))


@dataclass(frozen=True)
class _Built:
    value: Union[VariableGroup, ClimateVariable]


_REGISTRY: Optional[VariableRegistry] = None


def _resolve_registry_path(path: Optional[str]) -> str:
    registry_path = path or S.variable_registry_path or _BUNDLED_CATALOG
    if os.path.isabs(registry_path):
        return registry_path
    return os.path.join(os.getcwd(), registry_path)


def read_registry(path: Optional[str] = None) -> VariableRegistry:
    """Build a registry from a JSON file without touching the process-wide one."""
    registry_path = _resolve_registry_path(path)
    if not os.path.exists(registry_path):
        raise SchemaError(f"Variable registry not found at {registry_path}")
    with open(registry_path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaError(f"Variable registry at {registry_path} is not valid JSON: {e}") from e
    registry = VariableRegistry.from_source(data)
    logger.info("Loaded %d climate variables from %s", len(registry), registry_path)
    return registry


def load_registry() -> VariableRegistry:
    """Return the process-wide registry, loading it on first use."""
    global _REGISTRY
    if _REGISTRY is not None:
        return _REGISTRY
    _REGISTRY = read_registry()
    return _REGISTRY
