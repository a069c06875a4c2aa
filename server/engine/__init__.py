"""
Empty-body analysis engine package.

This package provides a Tree-sitter based engine that outlines PHP files,
builds a project-wide symbol table and runs rules over function-like
declarations.
"""

from .types import (
    Finding, RuleMeta, Rule, Requires, NodeKind, Visibility,
    FunctionLikeNode, ParamInfo, Emission, ContractViolation, SymbolContractError,
    LanguageAdapter, Severity, NodeRange
)

from .registry import (
    register_rule, register_adapter, get_adapter, get_rule,
    get_all_rules, get_rules_for_language, get_rules_for_node_kind, get_enabled_rules,
    get_all_adapters, list_supported_languages, clear
)

from .config import (
    EngineConfig, load_config, get_default_config, save_config, find_config_file, get_rule_severity
)

__all__ = [
    # Types
    "Finding", "RuleMeta", "Rule", "Requires", "NodeKind", "Visibility",
    "FunctionLikeNode", "ParamInfo", "Emission", "ContractViolation", "SymbolContractError",
    "LanguageAdapter", "Severity", "NodeRange",

    # Registry
    "register_rule", "register_adapter", "get_adapter", "get_rule",
    "get_all_rules", "get_rules_for_language", "get_rules_for_node_kind", "get_enabled_rules",
    "get_all_adapters", "list_supported_languages", "clear",

    # Config
    "EngineConfig", "load_config", "get_default_config", "save_config", "find_config_file", "get_rule_severity"
]
