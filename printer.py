"""
AST to source printer.

Output re-parses to a structurally equal tree: only Grouping nodes produce
parentheses, so the parse tree's own shape is reproduced exactly.
"""
from ast_nodes import *
from values import format_number

INDENT = "    "

_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
    '\0': '\\0',
}


def quote_string(text: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'


class SourcePrinter:
    def __init__(self):
        self._stmt_printers = {
            Block: self.print_Block,
            VarDecl: self.print_VarDecl,
            ExpressionStmt: self.print_ExpressionStmt,
            PrintStmt: self.print_PrintStmt,
            IfStmt: self.print_IfStmt,
            WhileStmt: self.print_WhileStmt,
            ReturnStmt: self.print_ReturnStmt,
            FunctionDecl: self.print_FunctionDecl,
        }
        self._expr_printers = {
            Literal: self.print_Literal,
            ArrayLiteral: self.print_ArrayLiteral,
            Identifier: lambda e: e.name,
            Grouping: lambda e: f"({self.expr(e.inner)})",
            Assignment: lambda e: f"{self.expr(e.target)} {e.operator} {self.expr(e.value)}",
            Conditional: self.print_Conditional,
            Binary: lambda e: f"{self.expr(e.left)} {e.operator} {self.expr(e.right)}",
            Unary: lambda e: f"{e.operator}{self.expr(e.operand)}",
            Index: lambda e: f"{self.expr(e.target)}[{self.expr(e.index)}]",
            Member: lambda e: f"{self.expr(e.target)}.{e.name}",
            Call: lambda e: f"{self.expr(e.callee)}({self._join(e.arguments)})",
        }

    def program(self, program: Program) -> str:
        return "\n".join(self.stmt(s, 0) for s in program.statements)

    def stmt(self, stmt: Stmt, level: int) -> str:
        """Render a statement whose first line is indented to `level`."""
        printer = self._stmt_printers.get(type(stmt))
        if printer is None:
            raise TypeError(f"Cannot print {type(stmt).__name__}")
        return INDENT * level + printer(stmt, level)

    def expr(self, expr: Expr) -> str:
        printer = self._expr_printers.get(type(expr))
        if printer is None:
            raise TypeError(f"Cannot print {type(expr).__name__}")
        return printer(expr)

    def _join(self, exprs) -> str:
        return ", ".join(self.expr(e) for e in exprs)

    def _body(self, stmt: Stmt, level: int) -> str:
        """Render a nested statement that follows a header on the same line."""
        return self.stmt(stmt, level).lstrip()

    # --- Statements ---
    # Each returns text without the leading indent of its first line.

    def print_Block(self, stmt: Block, level: int) -> str:
        if not stmt.statements:
            return "{}"
        inner = "\n".join(self.stmt(s, level + 1) for s in stmt.statements)
        return "{\n" + inner + "\n" + INDENT * level + "}"

    def print_VarDecl(self, stmt: VarDecl, level: int) -> str:
        if stmt.initializer is None:
            return f"{stmt.kind} {stmt.name};"
        return f"{stmt.kind} {stmt.name} = {self.expr(stmt.initializer)};"

    def print_ExpressionStmt(self, stmt: ExpressionStmt, level: int) -> str:
        return f"{self.expr(stmt.expression)};"

    def print_PrintStmt(self, stmt: PrintStmt, level: int) -> str:
        keyword = "println" if stmt.newline else "print"
        return f"{keyword} {self.expr(stmt.expression)};"

    def print_IfStmt(self, stmt: IfStmt, level: int) -> str:
        text = f"if ({self.expr(stmt.condition)}) {self._body(stmt.then_branch, level)}"
        if stmt.else_branch is not None:
            text += f" else {self._body(stmt.else_branch, level)}"
        return text

    def print_WhileStmt(self, stmt: WhileStmt, level: int) -> str:
        return f"while ({self.expr(stmt.condition)}) {self._body(stmt.body, level)}"

    def print_ReturnStmt(self, stmt: ReturnStmt, level: int) -> str:
        if stmt.value is None:
            return "return;"
        return f"return {self.expr(stmt.value)};"

    def print_FunctionDecl(self, stmt: FunctionDecl, level: int) -> str:
        params = ", ".join(stmt.params)
        return f"function {stmt.name}({params}) {self.print_Block(stmt.body, level)}"

    # --- Expressions ---

    def print_Literal(self, expr: Literal) -> str:
        value = expr.value
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return quote_string(value)
        return format_number(value)

    def print_ArrayLiteral(self, expr: ArrayLiteral) -> str:
        return f"[{self._join(expr.elements)}]"

    def print_Conditional(self, expr: Conditional) -> str:
        return (f"{self.expr(expr.condition)} ? {self.expr(expr.then_branch)}"
                f" : {self.expr(expr.else_branch)}")


def to_source(node: Node) -> str:
    """Render a Program, statement or expression as source text."""
    printer = SourcePrinter()
    if isinstance(node, Program):
        return printer.program(node)
    if isinstance(node, Stmt):
        return printer.stmt(node, 0)
    return printer.expr(node)
