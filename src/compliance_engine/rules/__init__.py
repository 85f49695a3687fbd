"""Rule pack management utilities."""

from .rule_pack_manager import (
    RulePack,
    RulePackError,
    RulePackManager,
    RuleSpec,
    import_rule,
    parse_level,
)

__all__ = [
    "RulePack",
    "RulePackManager",
    "RulePackError",
    "RuleSpec",
    "import_rule",
    "parse_level",
]
