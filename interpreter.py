import logging
import operator
import sys
from dataclasses import dataclass
from typing import Any, Callable as PyCallable, List, Optional

from ast_nodes import *
from environment import Environment
from errors import (
    ArityMismatch, CallDepthExceeded, DivisionByZero, IndexOutOfRange,
    InterpreterError, InvalidAssignmentTarget, NotCallable, StepLimitExceeded,
    TypeMismatch,
)
from values import (
    UserFunction, ValueType, format_value, is_truthy, type_name,
    type_of, values_equal,
)

logger = logging.getLogger(__name__)

PrintSink = PyCallable[[Any, bool], None]

# Python frames budgeted per script-level call when raising the recursion limit.
# Deeper nesting than this still ends in CallDepthExceeded, just at a lower depth.
FRAMES_PER_CALL = 40


class ReturnException(Exception):
    """Unwinds enclosing statements up to the nearest call boundary."""
    def __init__(self, value):
        self.value = value


@dataclass(frozen=True)
class Completion:
    """How a program finished: 'normal', or 'return' with the returned value."""
    kind: str
    value: Any = None

    @property
    def returned(self) -> bool:
        return self.kind == 'return'


@dataclass
class InterpreterConfig:
    # Statements executed before giving up; None means unlimited
    max_steps: Optional[int] = None
    max_call_depth: int = 200


def _default_print_sink(value, newline):
    print(format_value(value), end="\n" if newline else "")


class Interpreter:
    _ARITHMETIC_OPS = {
        '-': operator.sub,
        '*': operator.mul,
        '/': operator.truediv,
    }

    _RELATIONAL_OPS = {
        '<': operator.lt, '<=': operator.le,
        '>': operator.gt, '>=': operator.ge,
    }

    def __init__(self, environment: Optional[Environment] = None,
                 print_sink: Optional[PrintSink] = None,
                 config: Optional[InterpreterConfig] = None):
        self.environment = environment if environment is not None else Environment()
        self.print_sink = print_sink or _default_print_sink
        self.config = config or InterpreterConfig()
        self.step_count = 0
        self.call_depth = 0
        self._init_dispatch_tables()

    def _init_dispatch_tables(self):
        self._stmt_visitors = {
            Block: self.visit_Block,
            VarDecl: self.visit_VarDecl,
            ExpressionStmt: self.visit_ExpressionStmt,
            PrintStmt: self.visit_PrintStmt,
            IfStmt: self.visit_IfStmt,
            WhileStmt: self.visit_WhileStmt,
            ReturnStmt: self.visit_ReturnStmt,
            FunctionDecl: self.visit_FunctionDecl,
        }

        self._expr_evaluators = {
            Literal: self.evaluate_Literal,
            ArrayLiteral: self.evaluate_ArrayLiteral,
            Identifier: self.evaluate_Identifier,
            Grouping: self.evaluate_Grouping,
            Assignment: self.evaluate_Assignment,
            Conditional: self.evaluate_Conditional,
            Binary: self.evaluate_Binary,
            Unary: self.evaluate_Unary,
            Index: self.evaluate_Index,
            Member: self.evaluate_Member,
            Call: self.evaluate_Call,
        }

    def interpret(self, program: Program) -> Completion:
        """Run a whole program. A top-level return ends it early."""
        self.step_count = 0
        self.call_depth = 0
        scope_height = self.environment.stack_height
        saved_limit = sys.getrecursionlimit()
        needed = self.config.max_call_depth * FRAMES_PER_CALL + 1000
        if saved_limit < needed:
            logger.debug("raising recursion limit to %d for this run", needed)
            sys.setrecursionlimit(needed)
        try:
            for stmt in program.statements:
                self.execute(stmt)
        except ReturnException as e:
            return Completion('return', e.value)
        except RecursionError:
            # Nesting deep enough without calls (e.g. thousands of groupings)
            raise CallDepthExceeded("Program nested too deeply to evaluate") from None
        finally:
            # An exit_scope call can itself overflow the host stack while unwinding
            self.environment.unwind(scope_height)
            sys.setrecursionlimit(saved_limit)
        return Completion('normal')

    def execute(self, stmt: Stmt):
        self._count_step()

        visitor = self._stmt_visitors.get(type(stmt))
        if visitor is None:
            raise InterpreterError(f"No visit method for {type(stmt).__name__}")
        try:
            visitor(stmt)
        except InterpreterError as e:
            raise e.with_position(stmt.line, stmt.column)

    def evaluate(self, expr: Expr) -> Any:
        evaluator = self._expr_evaluators.get(type(expr))
        if evaluator is None:
            raise InterpreterError(f"No evaluate method for {type(expr).__name__}")
        try:
            return evaluator(expr)
        except InterpreterError as e:
            raise e.with_position(expr.line, expr.column)

    def _count_step(self):
        self.step_count += 1
        limit = self.config.max_steps
        if limit is not None and self.step_count > limit:
            raise StepLimitExceeded(
                f"Execution stopped after {limit} steps (possible infinite loop)"
            )

    def _execute_scoped(self, stmt: Stmt):
        """Execute a statement in a fresh child frame."""
        self.environment.enter_scope()
        try:
            self.execute(stmt)
        finally:
            self.environment.exit_scope()

    # --- Statement Visitors ---

    def visit_Block(self, stmt: Block):
        self.environment.enter_scope()
        try:
            for s in stmt.statements:
                self.execute(s)
        finally:
            self.environment.exit_scope()

    def visit_VarDecl(self, stmt: VarDecl):
        value = self.evaluate(stmt.initializer) if stmt.initializer is not None else None
        self.environment.declare(stmt.name, value, is_constant=stmt.is_constant)

    def visit_ExpressionStmt(self, stmt: ExpressionStmt):
        self.evaluate(stmt.expression)

    def visit_PrintStmt(self, stmt: PrintStmt):
        self.print_sink(self.evaluate(stmt.expression), stmt.newline)

    def visit_IfStmt(self, stmt: IfStmt):
        if is_truthy(self.evaluate(stmt.condition)):
            self._execute_scoped(stmt.then_branch)
        elif stmt.else_branch is not None:
            self._execute_scoped(stmt.else_branch)

    def visit_WhileStmt(self, stmt: WhileStmt):
        while is_truthy(self.evaluate(stmt.condition)):
            self._execute_scoped(stmt.body)

    def visit_ReturnStmt(self, stmt: ReturnStmt):
        value = self.evaluate(stmt.value) if stmt.value is not None else None
        raise ReturnException(value)

    def visit_FunctionDecl(self, stmt: FunctionDecl):
        function = UserFunction(stmt, self.environment.capture())
        self.environment.declare(stmt.name, function, is_constant=True)

    # --- Calls ---

    def call_value(self, callee: Any, arguments: List[Any]) -> Any:
        if type_of(callee) != ValueType.CALLABLE:
            raise NotCallable(f"Cannot call a {type_name(callee)} value", value=callee)
        if callee.arity is not None and callee.arity != len(arguments):
            raise ArityMismatch(
                f"{callee.name} expects {callee.arity} argument(s), got {len(arguments)}"
            )
        if self.call_depth >= self.config.max_call_depth:
            raise CallDepthExceeded(
                f"Maximum call depth of {self.config.max_call_depth} exceeded in {callee.name}"
            )

        self.call_depth += 1
        try:
            return callee.call(self, arguments)
        except RecursionError:
            # Python's own stack ran out before max_call_depth did
            raise CallDepthExceeded(
                f"Call depth {self.call_depth} exceeded the host stack in {callee.name}"
            ) from None
        finally:
            self.call_depth -= 1

    def call_user_function(self, function: UserFunction, arguments: List[Any]) -> Any:
        decl = function.declaration
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("call %s(%s)", decl.name, ", ".join(format_value(a) for a in arguments))

        self.environment.enter_scope(parent=function.closure)
        try:
            for name, value in zip(decl.params, arguments):
                self.environment.declare(name, value, is_constant=True)
            self.execute(decl.body)
        except ReturnException as e:
            return e.value
        finally:
            self.environment.exit_scope()
        return None

    # --- Expression Evaluators ---

    def evaluate_Literal(self, expr: Literal):
        return expr.value

    def evaluate_ArrayLiteral(self, expr: ArrayLiteral):
        return [self.evaluate(element) for element in expr.elements]

    def evaluate_Identifier(self, expr: Identifier):
        return self.environment.get(expr.name)

    def evaluate_Grouping(self, expr: Grouping):
        return self.evaluate(expr.inner)

    def evaluate_Conditional(self, expr: Conditional):
        if is_truthy(self.evaluate(expr.condition)):
            return self.evaluate(expr.then_branch)
        return self.evaluate(expr.else_branch)

    def evaluate_Unary(self, expr: Unary):
        value = self.evaluate(expr.operand)
        if expr.operator == '!':
            return not is_truthy(value)
        if type_of(value) != ValueType.NUMBER:
            raise TypeMismatch(f"Cannot negate a {type_name(value)} value", value=value)
        return -value

    def evaluate_Binary(self, expr: Binary):
        op = expr.operator
        left = self.evaluate(expr.left)

        # Short-circuit: the result is the last operand evaluated
        if op == '|':
            return left if is_truthy(left) else self.evaluate(expr.right)
        if op == '&':
            return self.evaluate(expr.right) if is_truthy(left) else left

        right = self.evaluate(expr.right)
        return self.binary_op(op, left, right)

    def binary_op(self, op: str, left: Any, right: Any) -> Any:
        """Apply a non-logical binary operator to two evaluated operands."""
        if op == '==':
            return values_equal(left, right)
        if op == '!=':
            return not values_equal(left, right)
        if op == '+':
            return self._add(left, right)

        ltype, rtype = type_of(left), type_of(right)
        if op in self._ARITHMETIC_OPS:
            if ltype != ValueType.NUMBER or rtype != ValueType.NUMBER:
                raise TypeMismatch(
                    f"Operator '{op}' needs numbers, got {type_name(left)} and {type_name(right)}"
                )
            if op == '/' and right == 0:
                raise DivisionByZero("Division by zero")
            return self._ARITHMETIC_OPS[op](left, right)

        if op in self._RELATIONAL_OPS:
            if ltype != rtype or ltype not in (ValueType.NUMBER, ValueType.STRING):
                raise TypeMismatch(
                    f"Cannot compare {type_name(left)} and {type_name(right)} with '{op}'"
                )
            return self._RELATIONAL_OPS[op](left, right)

        raise InterpreterError(f"Unknown operator {op}")

    def _add(self, left: Any, right: Any) -> Any:
        ltype, rtype = type_of(left), type_of(right)
        if ltype == ValueType.NUMBER and rtype == ValueType.NUMBER:
            return left + right
        if ltype == ValueType.STRING or rtype == ValueType.STRING:
            return format_value(left) + format_value(right)
        raise TypeMismatch(f"Cannot add {type_name(left)} and {type_name(right)}")

    def evaluate_Index(self, expr: Index):
        container = self.evaluate(expr.target)
        index = self.evaluate(expr.index)
        ctype = type_of(container)
        if ctype not in (ValueType.ARRAY, ValueType.STRING):
            raise TypeMismatch(f"Cannot index a {type_name(container)} value", value=container)
        return container[self._resolve_index(container, index)]

    def _resolve_index(self, container, index) -> int:
        if type_of(index) != ValueType.NUMBER:
            raise TypeMismatch(f"Index must be a number, got {type_name(index)}", value=index)
        if not index.is_integer():
            raise TypeMismatch(f"Index must be an integer, got {format_value(index)}", value=index)
        position = int(index)
        # Negative indices are rejected rather than counted from the end
        if position < 0 or position >= len(container):
            raise IndexOutOfRange(
                f"Index {position} out of range for {type_name(container)} of length {len(container)}",
                value=index,
            )
        return position

    def evaluate_Member(self, expr: Member):
        target = self.evaluate(expr.target)
        if expr.name == 'length' and type_of(target) in (ValueType.STRING, ValueType.ARRAY):
            return float(len(target))
        raise TypeMismatch(f"{type_name(target)} value has no property '{expr.name}'", value=target)

    def evaluate_Call(self, expr: Call):
        callee = self.evaluate(expr.callee)
        arguments = [self.evaluate(arg) for arg in expr.arguments]
        return self.call_value(callee, arguments)

    # --- Assignment ---

    def evaluate_Assignment(self, expr: Assignment):
        target = expr.target
        if isinstance(target, Identifier):
            return self._assign_identifier(target, expr)
        if isinstance(target, Index):
            return self._assign_index(target, expr)
        if isinstance(target, Member):
            self.evaluate(target.target)
            raise TypeMismatch(f"Property '{target.name}' is read-only")
        raise InvalidAssignmentTarget(f"Cannot assign to {type(target).__name__} expression")

    def _combine(self, expr: Assignment, current: Any) -> Any:
        """Compute the value to store: '=' replaces, 'op=' reads, applies op, writes."""
        value = self.evaluate(expr.value)
        if expr.operator == '=':
            return value
        return self.binary_op(expr.operator[0], current, value)

    def _assign_identifier(self, target: Identifier, expr: Assignment) -> Any:
        binding = self.environment.get_binding(target.name)
        value = self._combine(expr, binding.get())
        binding.set(value)
        return value

    def _assign_index(self, target: Index, expr: Assignment) -> Any:
        container = self.evaluate(target.target)
        index = self.evaluate(target.index)
        ctype = type_of(container)
        if ctype == ValueType.STRING:
            raise TypeMismatch("Strings are immutable; cannot assign to a string index")
        if ctype != ValueType.ARRAY:
            raise TypeMismatch(f"Cannot index a {type_name(container)} value", value=container)
        if expr.operator == '=':
            value = self.evaluate(expr.value)
        else:
            current = container[self._resolve_index(container, index)]
            value = self._combine(expr, current)
        # The right-hand side may have resized the array; check against its length now
        container[self._resolve_index(container, index)] = value
        return value


def execute(program: Program, environment: Optional[Environment] = None,
            print_sink: Optional[PrintSink] = None,
            config: Optional[InterpreterConfig] = None) -> Completion:
    """Run `program` against `environment` (a fresh one if omitted)."""
    return Interpreter(environment, print_sink, config).interpret(program)
