"""AST nodes for query expressions."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from treeq.query_language.paths import PathSegment


@dataclass(frozen=True, slots=True)
class Expr:
    """Base AST expression type."""


type Evaluator = Callable[[Expr, object], object]


@dataclass(frozen=True, slots=True)
class Identity(Expr):
    """Identity expression returning the input unchanged."""


@dataclass(frozen=True, slots=True)
class Group(Expr):
    """Parenthesized expression."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class NumberLiteral(Expr):
    """Numeric literal expression."""

    value: int | float


@dataclass(frozen=True, slots=True)
class StringLiteral(Expr):
    """String literal expression, quoted or a bare word."""

    value: str


@dataclass(frozen=True, slots=True)
class BoolLiteral(Expr):
    """Boolean literal expression."""

    value: bool


@dataclass(frozen=True, slots=True)
class NullLiteral(Expr):
    """Null literal expression."""


@dataclass(frozen=True, slots=True)
class PathQuery(Expr):
    """Path traversal such as `.users[0].name`."""

    segments: tuple[PathSegment, ...]


@dataclass(frozen=True, slots=True)
class Pipe(Expr):
    """Pipeline feeding each stage the previous stage's result."""

    stages: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Conditional(Expr):
    """Conditional `if <condition> then <then> [elif ...] [else <else>] end`."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr | None


@dataclass(frozen=True, slots=True)
class TryCatch(Expr):
    """Error recovery `try <body> [catch <handler>]`."""

    body: Expr
    handler: Expr | None


@dataclass(frozen=True, slots=True)
class Alternative(Expr):
    """Default operator `<left> // <right>`."""

    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class OptionalExpr(Expr):
    """Error-suppressing suffix `<expr>?`."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class WithEntries(Expr):
    """Per-entry object transform `with_entries(<expr>)`."""

    transform: Expr


@dataclass(frozen=True, slots=True)
class Delete(Expr):
    """Path removal `del(<path>)`."""

    path: PathQuery


@dataclass(frozen=True, slots=True)
class Assignment(Expr):
    """Single-path assignment `<path> = <value>`."""

    target: PathQuery
    value: Expr


@dataclass(frozen=True, slots=True)
class ArraySlice(Expr):
    """Slice of the input array `[start:end]`."""

    start: int | None
    end: int | None


@dataclass(frozen=True, slots=True)
class Fold(Expr):
    """Collect the results of a subquery into an array, `[<expr>]` or `[]`."""

    expr: Expr | None


@dataclass(frozen=True, slots=True)
class ArrayConstruct(Expr):
    """Array built from comma-separated element expressions."""

    items: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class ObjectConstruct(Expr):
    """Object built from `key: value` entries in order."""

    entries: tuple[tuple[str, Expr], ...]


@dataclass(frozen=True, slots=True)
class FunctionCall(Expr):
    """Function invocation, with or without parenthesized arguments."""

    name: str
    arguments: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class BinaryOp(Expr):
    """Arithmetic operation `+ - * / %`."""

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Comparison(Expr):
    """Comparison operation `== != >= <= > <`."""

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class LogicalOp(Expr):
    """Short-circuiting `and` / `or`."""

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Not(Expr):
    """Prefix negation `not <expr>`."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Negate(Expr):
    """Unary minus `-<expr>`."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Invalid(Expr):
    """Sub-query that failed to parse where failures are recoverable."""

    message: str
