"""
Core types for the empty-body analysis engine.

This module provides shared dataclasses and types used across the engine,
adapters, and rules.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Protocol, Tuple, Union
from abc import ABC, abstractmethod


# Type aliases for clarity
Severity = Literal["info", "warn", "error"]
Priority = Literal["P0", "P1", "P2"]
Tier = Literal[0, 1, 2]
NodeRange = Tuple[int, int]  # (start_byte, end_byte) 0-based

SEVERITY_ORDER = {"info": 0, "warn": 1, "error": 2}


class NodeKind(Enum):
    """Function-like node shapes delivered to rules by the traversal."""
    METHOD = "method"
    FUNCTION = "function"
    CLOSURE = "closure"


class Visibility(Enum):
    PRIVATE = "private"
    PROTECTED = "protected"
    PUBLIC = "public"


@dataclass(frozen=True)
class Finding:
    """A finding represents an issue detected by a rule."""
    rule: str
    message: str
    file: str
    start_byte: int
    end_byte: int
    severity: Severity
    issue: Optional[str] = None
    line: Optional[int] = None
    meta: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RuleMeta:
    """Metadata about a rule.

    Attributes:
        id: Unique rule identifier (e.g., "deadcode.empty_body")
        category: Rule category for grouping
        tier: Analysis tier (0=syntax, 1=scopes, 2=project symbols)
        priority: P0/P1/P2 priority level
        description: Human-readable description
        langs: List of supported languages
    """
    id: str
    category: str
    tier: Tier
    priority: Priority
    description: str = ""
    langs: List[str] = None

    def __post_init__(self):
        if self.langs is None:
            object.__setattr__(self, 'langs', [])


@dataclass(frozen=True)
class Requires:
    """Represents requirements that a rule needs to run."""
    syntax: bool = True
    scopes: bool = False    # Tier 1
    symbols: bool = False   # Tier 2: project-wide symbol table


@dataclass(frozen=True)
class ParamInfo:
    """A parameter of a function-like declaration."""
    name: str
    modifiers: Tuple[str, ...] = ()
    is_promoted: bool = False


@dataclass(frozen=True)
class FunctionLikeNode:
    """A method, function or closure as seen by rules.

    ``statements`` is None when the declaration has no statement block at all
    (abstract and interface methods); otherwise it holds the node types of the
    statements in the block.
    """
    kind: NodeKind
    line: int
    statements: Optional[Tuple[str, ...]]
    params: Tuple[ParamInfo, ...] = ()
    name: str = ""
    class_name: Optional[str] = None
    start_byte: int = 0
    end_byte: int = 0

    @property
    def has_body(self) -> bool:
        return self.statements is not None

    @property
    def is_empty(self) -> bool:
        return self.statements is not None and len(self.statements) == 0


class FunctionLikeSymbol(Protocol):
    """Read-only view of a resolved method or function."""
    is_overridden_by_another: bool
    is_override: bool
    is_deprecated: bool

    def representation_for_issue(self) -> str:
        ...


class SymbolLookup(Protocol):
    """Capability used by rules to resolve the node currently being visited."""

    def get_function_like_in_scope(self) -> Optional[FunctionLikeSymbol]:
        ...


@dataclass(frozen=True)
class Emission:
    """A rule decided to report an issue."""
    issue_kind: str
    line: int
    args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ContractViolation:
    """Resolution returned something other than the symbol kind the node requires."""
    node_kind: NodeKind
    expected: str
    actual: str
    line: int

    def describe(self) -> str:
        return (f"Expected {self.expected} for {self.node_kind.value} node "
                f"on line {self.line}, got {self.actual}")


CheckResult = Union[Emission, ContractViolation, None]


class SymbolContractError(AssertionError):
    """Raised when the host resolves a node to the wrong kind of symbol."""

    def __init__(self, violation: ContractViolation):
        super().__init__(violation.describe())
        self.violation = violation


class Rule(Protocol):
    """Protocol for all rules in the engine.

    Rules are stateless: ``check`` is a pure function of the node and the
    symbol it resolves to.
    """
    meta: RuleMeta
    requires: Requires
    node_kinds: Tuple[NodeKind, ...]

    def check(self, node: FunctionLikeNode, lookup: SymbolLookup) -> CheckResult:
        """Decide whether ``node`` should be reported.

        Returns:
            An Emission, a ContractViolation, or None when nothing is reported
        """
        ...


class LanguageAdapter(ABC):
    """Abstract base class for language adapters."""

    @property
    @abstractmethod
    def language_id(self) -> str:
        """Return the language identifier (e.g., 'php')."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> Tuple[str, ...]:
        """Return supported file extensions (e.g., ('.php',))."""
        pass

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse text and return a Tree-sitter tree."""
        pass

    @abstractmethod
    def list_files(self, paths: List[str]) -> List[str]:
        """List all files matching this adapter's extensions in the given paths."""
        pass

    @abstractmethod
    def node_text(self, text: str, start_byte: int, end_byte: int) -> str:
        """Extract text between byte offsets."""
        pass

    @abstractmethod
    def enclosing_function(self, tree: Any, byte_offset: int) -> Optional[Dict[str, Any]]:
        """Find the function enclosing the given byte offset."""
        pass

    @abstractmethod
    def byte_to_linecol(self, text: str, byte: int) -> Tuple[int, int]:
        """Convert byte offset to (line, column) 1-based."""
        pass

    @abstractmethod
    def line_col_to_byte(self, text: str, line: int, col: int) -> int:
        """Convert (line, column) 1-based to byte offset."""
        pass

    @abstractmethod
    def get_source_slice(self, text: str, node_range: NodeRange) -> str:
        """Get source text for a node range (start_byte, end_byte)."""
        pass


# Info dataclasses for adapter outlines
@dataclass(frozen=True)
class ClassLikeInfo:
    """A class, interface, trait, enum or anonymous class declaration."""
    fq_name: str          # display name, e.g. "Ns\\Foo" or "class@anonymous"
    key: str              # lookup key (lowercase fq name, unique for anonymous classes)
    kind: str             # "class"|"interface"|"trait"|"enum"
    range: NodeRange
    parent: Optional[str] = None          # lowercase fq name
    interfaces: Tuple[str, ...] = ()      # lowercase fq names
    traits: Tuple[str, ...] = ()          # lowercase fq names


@dataclass(frozen=True)
class FunctionLikeDecl:
    """A function-like declaration plus what the symbol table needs to know about it."""
    node: FunctionLikeNode
    fq_name: str
    class_key: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    is_deprecated: bool = False
    is_static: bool = False
    is_abstract: bool = False


@dataclass
class FileOutline:
    """Declarations found in one file, in source order."""
    file_path: str
    namespace: str = ""
    class_likes: List[ClassLikeInfo] = field(default_factory=list)
    declarations: List[FunctionLikeDecl] = field(default_factory=list)

    def function_likes(self) -> List[FunctionLikeNode]:
        return [decl.node for decl in self.declarations]
