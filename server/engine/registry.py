"""
Registry for rules and language adapters.

This module provides a central registry to register and discover rules
and language adapters. Rules declare the node kinds they want to see; the
registry indexes them so the traversal can hand each node to the rules
interested in it.
"""

import fnmatch
import importlib
import logging
import os
import pkgutil
from collections import defaultdict
from typing import Dict, List, Optional

from .types import LanguageAdapter, NodeKind, Rule

logger = logging.getLogger(__name__)


class Registry:
    """Central registry for rules and adapters."""

    def __init__(self):
        self._rules: List[Rule] = []
        self._adapters: Dict[str, LanguageAdapter] = {}
        self._rule_index: Dict[str, Rule] = {}  # id -> rule
        self._rules_by_kind: Dict[NodeKind, List[Rule]] = defaultdict(list)

    def register_rule(self, rule: Rule) -> str:
        """Register a rule and return its identity for the rest of the run."""
        rule_id = rule.meta.id
        if rule_id in self._rule_index:
            # Skip duplicate registration silently to avoid import noise
            return rule_id

        self._rules.append(rule)
        self._rule_index[rule_id] = rule
        for kind in getattr(rule, 'node_kinds', ()):
            self._rules_by_kind[kind].append(rule)
        return rule_id

    def register_adapter(self, language: str, adapter: LanguageAdapter) -> None:
        """Register a language adapter. Silently skips if already registered."""
        if language in self._adapters:
            return
        self._adapters[language] = adapter

    def get_adapter(self, language: str) -> Optional[LanguageAdapter]:
        """Get adapter for a language."""
        return self._adapters.get(language)

    def get_adapter_for_file(self, file_path: str) -> Optional[LanguageAdapter]:
        """Get adapter for a file based on its extension."""
        ext = os.path.splitext(file_path)[1].lower()

        for adapter in self._adapters.values():
            if ext in adapter.file_extensions:
                return adapter
        return None

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        """Get rule by id."""
        return self._rule_index.get(rule_id)

    def get_all_rules(self) -> List[Rule]:
        """Get all registered rules."""
        return self._rules.copy()

    def get_rules(self, filter_ids: Optional[List[str]] = None) -> List[Rule]:
        """Get rules, optionally filtered by IDs."""
        if filter_ids is None:
            return self.get_all_rules()

        rules = []
        for rule_id in filter_ids:
            rule = self.get_rule(rule_id)
            if rule:
                rules.append(rule)
            else:
                logger.warning("Rule '%s' not found", rule_id)
        return rules

    def get_rule_ids(self) -> List[str]:
        """Get all registered rule IDs."""
        return list(self._rule_index.keys())

    def get_rules_for_language(self, language: str) -> List[Rule]:
        """Get all rules that support a specific language."""
        return [rule for rule in self._rules if language in rule.meta.langs]

    def get_rules_for_node_kind(self, kind: NodeKind) -> List[Rule]:
        """Get the rules that asked to visit nodes of ``kind``."""
        return list(self._rules_by_kind.get(kind, []))

    def get_enabled_rules(self, enabled_patterns: List[str], language: str) -> List[Rule]:
        """Get rules for a language enabled by id patterns ("*" means all)."""
        language_rules = self.get_rules_for_language(language)

        if not enabled_patterns:
            return []
        if enabled_patterns == ["*"]:
            return language_rules

        enabled_rules = []
        for rule in language_rules:
            for pattern in enabled_patterns:
                if fnmatch.fnmatch(rule.meta.id, pattern):
                    enabled_rules.append(rule)
                    break  # Don't add the same rule multiple times
        return enabled_rules

    def get_all_adapters(self) -> Dict[str, LanguageAdapter]:
        """Get all registered adapters."""
        return self._adapters.copy()

    def list_supported_languages(self) -> List[str]:
        """List all supported languages."""
        return list(self._adapters.keys())

    def discover_rules(self, entry_packages: List[str]) -> int:
        """
        Auto-discover and register rules from packages.

        Args:
            entry_packages: List of package names to discover from

        Returns:
            Number of rules discovered and registered
        """
        initial_count = len(self._rules)

        for package_name in entry_packages:
            try:
                package = importlib.import_module(package_name)
            except ImportError as e:
                logger.warning("Could not import package %s: %s", package_name, e)
                continue

            self._extract_rules_from_module(package, package_name)
            if hasattr(package, '__path__'):
                for _, modname, _ in pkgutil.walk_packages(package.__path__, package.__name__ + "."):
                    try:
                        module = importlib.import_module(modname)
                    except ImportError as e:
                        logger.warning("Failed to import %s: %s", modname, e)
                        continue
                    self._extract_rules_from_module(module, modname)

        return len(self._rules) - initial_count

    def _extract_rules_from_module(self, module, module_name: str) -> None:
        """Register every rule listed in a module's RULES list."""
        rules = getattr(module, 'RULES', None)
        if not isinstance(rules, list):
            return
        for rule in rules:
            # If it's a class, instantiate it
            if isinstance(rule, type):
                rule = rule()
            if not (hasattr(rule, 'meta') and hasattr(rule, 'check')):
                logger.warning("Ignoring non-rule %r in %s.RULES", rule, module_name)
                continue
            self.register_rule(rule)

    def clear(self) -> None:
        """Clear all registered rules and adapters (mainly for testing)."""
        self._rules.clear()
        self._adapters.clear()
        self._rule_index.clear()
        self._rules_by_kind.clear()


# Global registry instance
_global_registry = Registry()


# Convenience functions that operate on the global registry
def register_rule(rule: Rule) -> str:
    """Register a rule in the global registry."""
    return _global_registry.register_rule(rule)


def register_adapter(language: str, adapter: LanguageAdapter) -> None:
    """Register a language adapter in the global registry."""
    _global_registry.register_adapter(language, adapter)


def get_adapter(language: str) -> Optional[LanguageAdapter]:
    """Get adapter for a language from the global registry."""
    return _global_registry.get_adapter(language)


def get_adapter_for_file(file_path: str) -> Optional[LanguageAdapter]:
    """Get adapter for a file based on its extension from the global registry."""
    return _global_registry.get_adapter_for_file(file_path)


def get_rule(rule_id: str) -> Optional[Rule]:
    """Get rule by id from the global registry."""
    return _global_registry.get_rule(rule_id)


def get_all_rules() -> List[Rule]:
    """Get all registered rules from the global registry."""
    return _global_registry.get_all_rules()


def get_rules(filter_ids: Optional[List[str]] = None) -> List[Rule]:
    """Get rules, optionally filtered by IDs."""
    return _global_registry.get_rules(filter_ids)


def get_rule_ids() -> List[str]:
    """Get all registered rule IDs."""
    return _global_registry.get_rule_ids()


def get_rules_for_language(language: str) -> List[Rule]:
    """Get all rules that support a specific language from the global registry."""
    return _global_registry.get_rules_for_language(language)


def get_rules_for_node_kind(kind: NodeKind) -> List[Rule]:
    """Get the rules interested in a node kind from the global registry."""
    return _global_registry.get_rules_for_node_kind(kind)


def get_enabled_rules(enabled_patterns: List[str], language: str) -> List[Rule]:
    """Get rules enabled by patterns for a specific language."""
    return _global_registry.get_enabled_rules(enabled_patterns, language)


def get_all_adapters() -> Dict[str, LanguageAdapter]:
    """Get all registered adapters from the global registry."""
    return _global_registry.get_all_adapters()


def list_supported_languages() -> List[str]:
    """List all supported languages from the global registry."""
    return _global_registry.list_supported_languages()


def discover_rules(entry_packages: List[str]) -> int:
    """Auto-discover and register rules from packages."""
    return _global_registry.discover_rules(entry_packages)


def clear() -> None:
    """Clear the global registry (mainly for testing)."""
    _global_registry.clear()


def get_registry() -> Registry:
    """Get the global registry instance (for advanced usage)."""
    return _global_registry
