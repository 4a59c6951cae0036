"""Normalizer that turns raw ``describe()`` output into AST nodes."""

import logging
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from ..core.types import NodeType, Presence, RefScope, UNSUPPORTED_JOI_TYPES
from ..errors import (
    MalformedDescriptionError,
    RecursionLimitExceeded,
    UnsupportedFeatureError,
)
from .ast import (
    Case,
    DescriptionNode,
    Flags,
    Guard,
    Meta,
    Reference,
    Rule,
    is_identifier,
    join_path,
)
from .reference import ReferenceParser


logger = logging.getLogger(__name__)

# Joi keys that change validation but have no Zod equivalent.
UNSUPPORTED_KEYS = {
    "dependencies": "object key dependencies",
    "patterns": "object key patterns",
    "renames": "object key renames",
    "ordered": "ordered array items",
}

CONTAINER_KEYS = {
    "keys": NodeType.OBJECT,
    "items": NodeType.ARRAY,
    "matches": NodeType.ALTERNATIVES,
}

SCALAR_TYPES = (str, int, float, Decimal, bool, type(None))

_MISSING = object()


def _truthy_condition(path: str) -> DescriptionNode:
    # Joi's implicit `is`: anything but the falsy values
    return DescriptionNode(
        type=NodeType.ANY,
        flags=Flags(presence=Presence.REQUIRED),
        invalids=(None, False, 0, ""),
        path=path,
    )


class DescriptionNormalizer:
    """Validates a raw description tree and converts it to DescriptionNode."""

    def __init__(self, max_depth: int = 64):
        self.max_depth = max_depth
        self.references = ReferenceParser()

    def normalize(self, raw: Any) -> DescriptionNode:
        """Normalize a raw tree, a live schema object or an existing node."""
        if isinstance(raw, DescriptionNode):
            return raw
        if not isinstance(raw, Mapping):
            describe = getattr(raw, "describe", None)
            if callable(describe):
                logger.debug("Introspecting %s via describe()", type(raw).__name__)
                raw = describe()
        return self._node(raw, "", 0)

    def _node(self, raw: Any, path: str, depth: int) -> DescriptionNode:
        if depth >= self.max_depth:
            raise RecursionLimitExceeded(self.max_depth, path)
        if not isinstance(raw, Mapping):
            raise MalformedDescriptionError(
                f"Expected a description object, got {type(raw).__name__}", path
            )

        type_name = raw.get("type")
        if not isinstance(type_name, str):
            raise MalformedDescriptionError("Missing or invalid 'type'", path)
        if type_name in UNSUPPORTED_JOI_TYPES:
            raise UnsupportedFeatureError(type_name, path, f"Joi type '{type_name}' has no Zod counterpart")
        try:
            node_type = NodeType(type_name)
        except ValueError:
            raise MalformedDescriptionError(f"Unknown type '{type_name}'", path)

        for key, feature in UNSUPPORTED_KEYS.items():
            if raw.get(key):
                raise UnsupportedFeatureError(feature, join_path(path, key))

        for key, owner in CONTAINER_KEYS.items():
            if key in raw and node_type != owner:
                raise MalformedDescriptionError(
                    f"'{key}' is only valid on {owner.value} nodes", join_path(path, key)
                )

        raw_flags = self._mapping(raw.get("flags"), join_path(path, "flags"))
        flags = self._flags(raw_flags, node_type, join_path(path, "flags"))
        if node_type == NodeType.FORBIDDEN:
            flags = Flags(presence=Presence.FORBIDDEN)

        rules = self._rules(raw.get("rules"), join_path(path, "rules"))
        if raw_flags.get("integer") is True and not any(r.name == "integer" for r in rules):
            rules = (Rule("integer"),) + rules

        valids = self._literals(raw.get("valids"), join_path(path, "valids"))
        allow = self._literals(raw.get("allow"), join_path(path, "allow"))
        if raw_flags.get("only"):
            valids = valids + allow
            allow = ()
        invalids = (
            self._literals(raw.get("invalids"), join_path(path, "invalids"))
            + self._literals(raw.get("invalid"), join_path(path, "invalid"))
        )

        keys = None
        if "keys" in raw:
            keys = self._keys(raw["keys"], join_path(path, "keys"), depth)

        items = ()
        if "items" in raw:
            items = tuple(
                self._node(item, join_path(path, "items", i), depth + 1)
                for i, item in enumerate(self._sequence(raw["items"], join_path(path, "items")))
            )

        matches: tuple[DescriptionNode, ...] = ()
        guards: tuple[Guard, ...] = ()
        if "matches" in raw:
            matches, guards = self._matches(raw["matches"], join_path(path, "matches"), depth)
        elif node_type == NodeType.ALTERNATIVES:
            raise MalformedDescriptionError("Alternatives require 'matches'", path)

        if "whens" in raw:
            whens_path = join_path(path, "whens")
            guards = guards + tuple(
                self._guard(when, join_path(whens_path, i), depth)
                for i, when in enumerate(self._sequence(raw["whens"], whens_path))
            )

        meta = self._meta(raw, path)

        return DescriptionNode(
            type=node_type,
            flags=flags,
            rules=rules,
            valids=valids,
            allow=allow,
            invalids=invalids,
            keys=keys,
            items=items,
            matches=matches,
            guards=guards,
            meta=meta,
            path=path,
        )

    def _mapping(self, raw: Any, path: str) -> Mapping:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise MalformedDescriptionError(f"Expected an object, got {type(raw).__name__}", path)
        return raw

    def _sequence(self, raw: Any, path: str) -> list:
        if not isinstance(raw, (list, tuple)):
            raise MalformedDescriptionError(f"Expected a list, got {type(raw).__name__}", path)
        return list(raw)

    def _optional_str(self, raw: Mapping, key: str, path: str) -> str | None:
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            raise MalformedDescriptionError(f"'{key}' must be a string", join_path(path, key))
        return value

    def _flags(self, raw: Mapping, node_type: NodeType, path: str) -> Flags:
        presence = None
        if raw.get("presence") is not None:
            try:
                presence = Presence(raw["presence"])
            except ValueError:
                raise MalformedDescriptionError(
                    f"Unknown presence '{raw['presence']}'", join_path(path, "presence")
                )

        has_default = "default" in raw
        default = raw.get("default")
        if has_default:
            self._check_literal(default, join_path(path, "default"), nested=True)

        strip = raw.get("strip")
        if strip is not None and not isinstance(strip, bool):
            raise MalformedDescriptionError("'strip' must be a boolean", join_path(path, "strip"))
        if raw.get("result") == "strip":
            strip = True

        unknown = raw.get("unknown")
        if unknown is not None and not isinstance(unknown, bool):
            raise MalformedDescriptionError("'unknown' must be a boolean", join_path(path, "unknown"))

        match = raw.get("match")
        if node_type == NodeType.ALTERNATIVES and match not in (None, "any"):
            raise UnsupportedFeatureError(
                "alternatives match mode", join_path(path, "match"), f"match '{match}'"
            )

        return Flags(
            presence=presence,
            has_default=has_default,
            default=default,
            label=self._optional_str(raw, "label", path),
            description=self._optional_str(raw, "description", path),
            strip=strip,
            unknown=unknown,
        )

    def _rules(self, raw: Any, path: str) -> tuple[Rule, ...]:
        if raw is None:
            return ()
        rules = []
        for i, entry in enumerate(self._sequence(raw, path)):
            rule_path = join_path(path, i)
            if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
                raise MalformedDescriptionError("Rule must be an object with a 'name'", rule_path)
            args = entry.get("args")
            if args is None:
                args = ()
            elif isinstance(args, Mapping):
                args = tuple(args.values())
            elif isinstance(args, (list, tuple)):
                args = tuple(args)
            else:
                raise MalformedDescriptionError("Rule 'args' must be a list or object", join_path(rule_path, "args"))
            rules.append(Rule(name=entry["name"], args=args))
        return tuple(rules)

    def _check_literal(self, value: Any, path: str, nested: bool = False) -> None:
        if isinstance(value, float) and not math.isfinite(value):
            raise MalformedDescriptionError(f"{value!r} cannot be written as a literal", path)
        if isinstance(value, Decimal) and not value.is_finite():
            raise MalformedDescriptionError(f"{value} cannot be written as a literal", path)
        if isinstance(value, SCALAR_TYPES):
            return
        if isinstance(value, Mapping) and ("ref" in value or "special" in value or "override" in value):
            raise UnsupportedFeatureError("dynamic value", path, "references and special values cannot be inlined")
        if nested and isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                self._check_literal(item, join_path(path, i), nested)
            return
        if nested and isinstance(value, Mapping):
            for key, item in value.items():
                if not isinstance(key, str):
                    raise MalformedDescriptionError("Literal object keys must be strings", path)
                self._check_literal(item, join_path(path, key), nested)
            return
        raise MalformedDescriptionError(f"{type(value).__name__} cannot be written as a literal", path)

    def _literals(self, raw: Any, path: str) -> tuple:
        if raw is None:
            return ()
        values = self._sequence(raw, path)
        for i, value in enumerate(values):
            self._check_literal(value, join_path(path, i))
        return tuple(values)

    def _keys(self, raw: Any, path: str, depth: int) -> tuple[tuple[str, DescriptionNode], ...]:
        if raw is None:
            return None
        raw = self._mapping(raw, path)
        keys = []
        for name, child in raw.items():
            if not isinstance(name, str):
                raise MalformedDescriptionError(f"Property name {name!r} is not a string", path)
            keys.append((name, self._node(child, join_path(path, name), depth + 1)))
        return tuple(keys)

    def _matches(
        self, raw: Any, path: str, depth: int
    ) -> tuple[tuple[DescriptionNode, ...], tuple[Guard, ...]]:
        branches = []
        guards = []
        for i, entry in enumerate(self._sequence(raw, path)):
            entry_path = join_path(path, i)
            if not isinstance(entry, Mapping):
                raise MalformedDescriptionError("Match must be an object", entry_path)
            if "schema" in entry:
                branches.append(self._node(entry["schema"], join_path(entry_path, "schema"), depth + 1))
            elif "type" in entry:
                branches.append(self._node(entry, entry_path, depth + 1))
            else:
                guards.append(self._guard(entry, entry_path, depth))
        if branches and guards:
            raise MalformedDescriptionError("Alternatives cannot mix plain and conditional matches", path)
        if not branches and not guards:
            raise MalformedDescriptionError("Alternatives require at least one match", path)
        return tuple(branches), tuple(guards)

    def _reference(self, raw: Any, path: str) -> Reference:
        if isinstance(raw, str):
            return self.references.parse(raw, path)
        raw = self._mapping(raw, path)
        segments = raw.get("path")
        if not isinstance(segments, (list, tuple)) or not all(isinstance(s, str) for s in segments):
            raise MalformedDescriptionError("Reference 'path' must be a list of strings", join_path(path, "path"))

        ancestor = raw.get("ancestor", 1)
        scope = RefScope.VALUE
        if ancestor == "root":
            scope, ancestor = RefScope.ROOT, 0
        elif not isinstance(ancestor, int) or isinstance(ancestor, bool):
            raise MalformedDescriptionError("Reference 'ancestor' must be an integer", join_path(path, "ancestor"))

        ref_type = raw.get("type", "value")
        if ref_type in ("global", "local"):
            scope, ancestor = RefScope(ref_type), 0
        elif ref_type != "value":
            raise UnsupportedFeatureError("reference", path, f"reference type '{ref_type}'")
        return Reference(path=tuple(segments), ancestor=ancestor, scope=scope)

    def _guard(self, raw: Any, path: str, depth: int) -> Guard:
        raw = self._mapping(raw, path)
        if "ref" in raw:
            ref_raw, ref_path = raw["ref"], join_path(path, "ref")
        elif "referenceKey" in raw:
            ref_raw, ref_path = raw["referenceKey"], join_path(path, "referenceKey")
        else:
            raise UnsupportedFeatureError("conditional", path, "schema conditions without a reference")
        reference = self._reference(ref_raw, ref_path)

        otherwise = None
        if "switch" in raw:
            switch_path = join_path(path, "switch")
            cases = []
            for i, case in enumerate(self._sequence(raw["switch"], switch_path)):
                case_path = join_path(switch_path, i)
                case = self._mapping(case, case_path)
                cases.append(self._case(case, case_path, depth))
                if case.get("otherwise") is not None:
                    otherwise = self._node(case["otherwise"], join_path(case_path, "otherwise"), depth + 1)
            if not cases:
                raise MalformedDescriptionError("'switch' must not be empty", switch_path)
        else:
            cases = [self._case(raw, path, depth)]

        if raw.get("otherwise") is not None:
            otherwise = self._node(raw["otherwise"], join_path(path, "otherwise"), depth + 1)

        if otherwise is None and all(case.then is None for case in cases):
            raise MalformedDescriptionError("Conditional needs 'then' or 'otherwise'", path)
        return Guard(reference=reference, cases=tuple(cases), otherwise=otherwise, path=path)

    def _case(self, raw: Mapping, path: str, depth: int) -> Case:
        if raw.get("not") is True and "is" in raw:
            # described form of when(ref, {not}): the schema sits under `is`
            negate, key = True, "is"
        elif "is" in raw and "not" in raw:
            raise MalformedDescriptionError("Conditional cannot have both 'is' and 'not'", path)
        else:
            negate = "not" in raw
            key = "not" if negate else "is"
        condition = self._condition(raw.get(key, _MISSING), join_path(path, key), depth)
        then = None
        if raw.get("then") is not None:
            then = self._node(raw["then"], join_path(path, "then"), depth + 1)
        return Case(condition=condition, negate=negate, then=then)

    def _condition(self, raw: Any, path: str, depth: int) -> DescriptionNode:
        if raw is _MISSING:
            return _truthy_condition(path)
        if isinstance(raw, Mapping) and "type" in raw:
            return self._node(raw, path, depth + 1)
        # plain values compile to a required allow-list, as Joi.compile does
        values = tuple(raw) if isinstance(raw, (list, tuple)) else (raw,)
        for i, value in enumerate(values):
            self._check_literal(value, join_path(path, i) if isinstance(raw, (list, tuple)) else path)
        return DescriptionNode(
            type=NodeType.ANY,
            flags=Flags(presence=Presence.REQUIRED),
            valids=values,
            path=path,
        )

    def _meta(self, raw: Mapping, path: str) -> Meta:
        entries = []
        if raw.get("metas") is not None:
            metas_path = join_path(path, "metas")
            for i, entry in enumerate(self._sequence(raw["metas"], metas_path)):
                entries.append((self._mapping(entry, join_path(metas_path, i)), join_path(metas_path, i)))
        if raw.get("metadata") is not None:
            entries.append((self._mapping(raw["metadata"], join_path(path, "metadata")), join_path(path, "metadata")))

        class_name = None
        for entry, entry_path in entries:
            if "className" not in entry:
                continue
            class_name = entry["className"]
            if not isinstance(class_name, str) or not is_identifier(class_name):
                raise MalformedDescriptionError(
                    f"className {class_name!r} is not a valid identifier", join_path(entry_path, "className")
                )
        return Meta(class_name=class_name)
