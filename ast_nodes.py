from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

BINARY_OPERATORS = frozenset({
    '|', '&', '==', '!=', '<', '<=', '>', '>=', '+', '-', '*', '/',
})
UNARY_OPERATORS = frozenset({'-', '!'})
ASSIGNMENT_OPERATORS = frozenset({'=', '+=', '-=', '*=', '/='})
DECLARATION_KINDS = frozenset({'let', 'const'})


@dataclass(frozen=True)
class Node:
    """Base class for all AST nodes. Positions never take part in equality."""
    line: int = field(default=0, compare=False, repr=False, kw_only=True)
    column: int = field(default=0, compare=False, repr=False, kw_only=True)


@dataclass(frozen=True)
class Expr(Node):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Identifier(Expr):
    name: str


@dataclass(frozen=True)
class Literal(Expr):
    """Number (float), String, Boolean or Null (None)."""
    value: Union[float, str, bool, None]


@dataclass(frozen=True)
class ArrayLiteral(Expr):
    elements: Tuple[Expr, ...]


@dataclass(frozen=True)
class Assignment(Expr):
    target: Expr
    operator: str
    value: Expr

    def __post_init__(self):
        if self.operator not in ASSIGNMENT_OPERATORS:
            raise ValueError(f"Unknown assignment operator {self.operator!r}")


@dataclass(frozen=True)
class Conditional(Expr):
    condition: Expr
    then_branch: Expr
    else_branch: Expr


@dataclass(frozen=True)
class Binary(Expr):
    operator: str
    left: Expr
    right: Expr

    def __post_init__(self):
        if self.operator not in BINARY_OPERATORS:
            raise ValueError(f"Unknown binary operator {self.operator!r}")


@dataclass(frozen=True)
class Unary(Expr):
    operator: str
    operand: Expr

    def __post_init__(self):
        if self.operator not in UNARY_OPERATORS:
            raise ValueError(f"Unknown unary operator {self.operator!r}")


@dataclass(frozen=True)
class Index(Expr):
    target: Expr
    index: Expr


@dataclass(frozen=True)
class Member(Expr):
    target: Expr
    name: str


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    arguments: Tuple[Expr, ...]


@dataclass(frozen=True)
class Grouping(Expr):
    """Parenthesised expression; kept so source can be printed back faithfully."""
    inner: Expr


@dataclass(frozen=True)
class Stmt(Node):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class Block(Stmt):
    statements: Tuple[Stmt, ...]


@dataclass(frozen=True)
class VarDecl(Stmt):
    kind: str
    name: str
    initializer: Optional[Expr] = None

    def __post_init__(self):
        if self.kind not in DECLARATION_KINDS:
            raise ValueError(f"Unknown declaration kind {self.kind!r}")

    @property
    def is_constant(self) -> bool:
        return self.kind == 'const'


@dataclass(frozen=True)
class ExpressionStmt(Stmt):
    expression: Expr


@dataclass(frozen=True)
class PrintStmt(Stmt):
    """`print` writes the value as is; `println` follows it with a newline."""
    expression: Expr
    newline: bool = False


@dataclass(frozen=True)
class IfStmt(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt] = None


@dataclass(frozen=True)
class WhileStmt(Stmt):
    condition: Expr
    body: Stmt


@dataclass(frozen=True)
class ReturnStmt(Stmt):
    value: Optional[Expr] = None


@dataclass(frozen=True)
class FunctionDecl(Stmt):
    name: str
    params: Tuple[str, ...]
    body: Block


@dataclass(frozen=True)
class Program(Node):
    statements: Tuple[Stmt, ...]
