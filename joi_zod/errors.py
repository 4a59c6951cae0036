"""Exceptions raised while compiling a description tree."""


class SchemaCompileError(Exception):
    """Base exception for compilation errors.

    ``path`` is the dot/bracket path from the root description node to the
    offending subtree; the empty string is the root itself.
    """

    def __init__(self, message: str, path: str = ""):
        self.path = path
        self.reason = message
        super().__init__(f"{message} (at {path or '<root>'})")


class MalformedDescriptionError(SchemaCompileError):
    """The input tree does not have the expected shape."""
    pass


class DeclarationConflictError(MalformedDescriptionError):
    """Two different schemas were given the same className."""
    pass


class UnsupportedRuleError(SchemaCompileError):
    """A rule with no entry in the rule table."""

    def __init__(self, node_type: str, rule_name: str, path: str = ""):
        self.node_type = node_type
        self.rule_name = rule_name
        super().__init__(f"Unsupported rule '{rule_name}' for type '{node_type}'", path)


class UnsupportedFeatureError(SchemaCompileError):
    """A structural feature with no equivalent in the target library."""

    def __init__(self, feature: str, path: str = "", detail: str | None = None):
        self.feature = feature
        message = f"Unsupported feature '{feature}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, path)


class RecursionLimitExceeded(SchemaCompileError):
    """The tree is deeper than the configured limit (or cyclic)."""

    def __init__(self, limit: int, path: str = ""):
        self.limit = limit
        super().__init__(f"Description nested deeper than {limit} levels", path)
