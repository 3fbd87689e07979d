import logging
from typing import List, Optional

from lexer import TokenType, Token
from ast_nodes import *

logger = logging.getLogger(__name__)

# Precedence table for binary operators (Higher value = higher precedence).
# Every level is left-associative.
OPERATOR_PRECEDENCE = {
    TokenType.PIPE: 10,
    TokenType.AMPER: 20,
    TokenType.EQUAL_EQUAL: 30, TokenType.BANG_EQUAL: 30,
    TokenType.LESS: 40, TokenType.LESS_EQUAL: 40,
    TokenType.GREATER: 40, TokenType.GREATER_EQUAL: 40,
    TokenType.PLUS: 50, TokenType.MINUS: 50,
    TokenType.STAR: 60, TokenType.SLASH: 60,
}

_ASSIGNMENT_TOKENS = frozenset({
    TokenType.EQUAL, TokenType.PLUS_EQUAL, TokenType.MINUS_EQUAL,
    TokenType.STAR_EQUAL, TokenType.SLASH_EQUAL,
})

_LITERAL_TOKENS = frozenset({
    TokenType.NUMBER, TokenType.STRING, TokenType.TRUE,
    TokenType.FALSE, TokenType.NULL,
})

# Tokens after which a RETURN carries no value
_RETURN_END_TOKENS = frozenset({
    TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF,
})

# Tokens the parser resynchronises on after a syntax error
_STATEMENT_START_TOKENS = frozenset({
    TokenType.LET, TokenType.CONST, TokenType.FUNCTION, TokenType.IF,
    TokenType.WHILE, TokenType.RETURN, TokenType.PRINT, TokenType.PRINTLN,
    TokenType.LBRACE,
})


class ParserError(Exception):
    def __init__(self, message, token: Optional[Token] = None, expected: Optional[str] = None):
        self.token = token
        self.expected = expected
        self.line = token.line if token else 0
        self.column = token.column if token else 0
        if token is not None:
            message = f"line {self.line}:{self.column}: {message}"
        super().__init__(message)


class ParserErrorGroup(ParserError):
    """Several syntax errors collected in one parse; positioned at the first."""

    def __init__(self, errors: List[ParserError]):
        first = errors[0]
        self.errors = errors
        self.token = first.token
        self.expected = first.expected
        self.line = first.line
        self.column = first.column
        Exception.__init__(self, "\n".join(str(e) for e in errors))


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    return repr(token.lexeme)


class Parser:
    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].type != TokenType.EOF:
            last = tokens[-1] if tokens else None
            tokens = list(tokens) + [Token(
                TokenType.EOF, None, '',
                last.line if last else 1, last.column if last else 1,
            )]
        self.tokens = tokens
        self.pos = 0
        self.current = tokens[0]

        # Statement dispatch table: TokenType → parse method
        self._stmt_dispatch = {
            TokenType.LBRACE: self.parse_block,
            TokenType.LET: self.parse_var_decl,
            TokenType.CONST: self.parse_var_decl,
            TokenType.FUNCTION: self.parse_function_decl,
            TokenType.IF: self.parse_if,
            TokenType.WHILE: self.parse_while,
            TokenType.RETURN: self.parse_return,
            TokenType.PRINT: self.parse_print,
            TokenType.PRINTLN: self.parse_print,
        }

        self._precedence = OPERATOR_PRECEDENCE.copy()

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        old = self.current
        if self.current.type != TokenType.EOF:
            self.pos += 1
            self.current = self.tokens[self.pos]
        return old

    def expect(self, token_type: TokenType, expected: Optional[str] = None) -> Token:
        if self.current.type != token_type:
            expected = expected or token_type.name
            raise ParserError(
                f"Expected {expected}, got {_describe(self.current)}",
                self.current, expected,
            )
        return self.advance()

    def match(self, *token_types: TokenType) -> Optional[Token]:
        if self.current.type in token_types:
            return self.advance()
        return None

    def check(self, *token_types: TokenType) -> bool:
        return self.current.type in token_types

    def error(self, message, expected=None):
        raise ParserError(message, self.current, expected)

    @staticmethod
    def _pos(token: Token) -> dict:
        return {'line': token.line, 'column': token.column}

    # ── Shared parsing helpers ──

    def _has_more_tokens(self) -> bool:
        return self.current.type != TokenType.EOF

    def _skip_terminators(self):
        while self.match(TokenType.SEMICOLON):
            pass

    def _synchronize(self, start_pos: int):
        """Discard tokens until the start of the next statement."""
        if self.pos == start_pos:
            self.advance()
        while self._has_more_tokens():
            if self.match(TokenType.SEMICOLON):
                return
            if self.check(*_STATEMENT_START_TOKENS):
                return
            self.advance()

    # ── Top-level parsing ──

    def parse(self) -> Program:
        statements = []
        errors = []
        self._skip_terminators()
        while self._has_more_tokens():
            start_pos = self.pos
            try:
                statements.append(self.parse_statement())
            except ParserError as e:
                logger.debug("syntax error, resynchronising: %s", e)
                errors.append(e)
                self._synchronize(start_pos)
            except RecursionError:
                errors.append(ParserError("Expression nested too deeply", self.current))
                self._synchronize(start_pos)
            self._skip_terminators()

        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise ParserErrorGroup(errors)
        return Program(tuple(statements), line=1, column=1)

    def parse_statement(self) -> Stmt:
        handler = self._stmt_dispatch.get(self.current.type)
        if handler:
            stmt = handler()
        else:
            stmt = self.parse_expression_stmt()
        self.match(TokenType.SEMICOLON)
        return stmt

    def parse_block(self) -> Block:
        start = self.expect(TokenType.LBRACE, "'{'")
        statements = []
        self._skip_terminators()
        while not self.check(TokenType.RBRACE):
            if not self._has_more_tokens():
                self.error("Expected '}' to close block", "'}'")
            statements.append(self.parse_statement())
            self._skip_terminators()
        self.expect(TokenType.RBRACE, "'}'")
        return Block(tuple(statements), **self._pos(start))

    def parse_var_decl(self) -> VarDecl:
        keyword = self.advance()
        name = self.expect(TokenType.IDENTIFIER, "variable name").value
        initializer = None
        if self.match(TokenType.EQUAL):
            initializer = self.parse_expression()
        elif keyword.type == TokenType.CONST:
            self.error("const declaration requires an initializer", "'='")
        return VarDecl(keyword.lexeme, name, initializer, **self._pos(keyword))

    def parse_function_decl(self) -> FunctionDecl:
        keyword = self.expect(TokenType.FUNCTION)
        name = self.expect(TokenType.IDENTIFIER, "function name").value
        self.expect(TokenType.LPAREN, "'('")
        params = self._parse_params()
        self.expect(TokenType.RPAREN, "')'")
        if not self.check(TokenType.LBRACE):
            self.error(f"Expected '{{' before body of function {name!r}, got {_describe(self.current)}", "'{'")
        body = self.parse_block()
        return FunctionDecl(name, tuple(params), body, **self._pos(keyword))

    def _parse_params(self) -> List[str]:
        params = []
        if self.check(TokenType.RPAREN):
            return params
        while True:
            tok = self.expect(TokenType.IDENTIFIER, "parameter name")
            if tok.value in params:
                raise ParserError(f"Duplicate parameter {tok.value!r}", tok, "parameter name")
            params.append(tok.value)
            if not self.match(TokenType.COMMA):
                break
        return params

    def _parse_condition(self) -> Expr:
        """Parse the parenthesised condition of IF / WHILE."""
        self.expect(TokenType.LPAREN, "'('")
        condition = self.parse_expression()
        self.expect(TokenType.RPAREN, "')'")
        return condition

    def parse_if(self) -> IfStmt:
        keyword = self.expect(TokenType.IF)
        condition = self._parse_condition()
        then_branch = self.parse_statement()
        else_branch = self._parse_else_branch()
        return IfStmt(condition, then_branch, else_branch, **self._pos(keyword))

    def _parse_else_branch(self) -> Optional[Stmt]:
        """Parse the optional ELSE branch of an IF statement."""
        if not self.match(TokenType.ELSE):
            return None
        return self.parse_statement()

    def parse_while(self) -> WhileStmt:
        keyword = self.expect(TokenType.WHILE)
        condition = self._parse_condition()
        body = self.parse_statement()
        return WhileStmt(condition, body, **self._pos(keyword))

    def parse_return(self) -> ReturnStmt:
        keyword = self.expect(TokenType.RETURN)
        if self.check(*_RETURN_END_TOKENS):
            return ReturnStmt(None, **self._pos(keyword))
        return ReturnStmt(self.parse_expression(), **self._pos(keyword))

    def parse_print(self) -> PrintStmt:
        keyword = self.advance()
        newline = keyword.type == TokenType.PRINTLN
        return PrintStmt(self.parse_expression(), newline, **self._pos(keyword))

    def parse_expression_stmt(self) -> ExpressionStmt:
        start = self.current
        return ExpressionStmt(self.parse_expression(), **self._pos(start))

    # ── Expressions ──

    def parse_expression(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        target = self.parse_conditional()
        if self.check(*_ASSIGNMENT_TOKENS):
            op_tok = self.advance()
            # Right-associative: a = b = c parses as a = (b = c)
            value = self.parse_assignment()
            return Assignment(target, op_tok.lexeme, value, **self._pos(op_tok))
        return target

    def parse_conditional(self) -> Expr:
        condition = self.parse_binary()
        if self.check(TokenType.QUESTION):
            op_tok = self.advance()
            then_branch = self.parse_expression()
            self.expect(TokenType.COLON, "':' in conditional expression")
            else_branch = self.parse_conditional()
            return Conditional(condition, then_branch, else_branch, **self._pos(op_tok))
        return condition

    def parse_binary(self, min_prec: int = 0) -> Expr:
        left = self.parse_unary()

        while True:
            prec = self._get_precedence(self.current.type)
            if prec < min_prec:
                break

            op_tok = self.advance()
            right = self.parse_binary(prec + 1)
            left = Binary(op_tok.lexeme, left, right, **self._pos(op_tok))

        return left

    def _get_precedence(self, type_: TokenType) -> int:
        return self._precedence.get(type_, -1)

    def parse_unary(self) -> Expr:
        if self.check(TokenType.MINUS, TokenType.BANG):
            op_tok = self.advance()
            return Unary(op_tok.lexeme, self.parse_unary(), **self._pos(op_tok))
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        """Parse a primary followed by any chain of index, member and call suffixes."""
        expr = self.parse_primary()
        while True:
            if self.check(TokenType.LBRACKET):
                tok = self.advance()
                index = self.parse_expression()
                self.expect(TokenType.RBRACKET, "']'")
                expr = Index(expr, index, **self._pos(tok))
            elif self.check(TokenType.DOT):
                tok = self.advance()
                name = self.expect(TokenType.IDENTIFIER, "property name").value
                expr = Member(expr, name, **self._pos(tok))
            elif self.check(TokenType.LPAREN):
                tok = self.advance()
                args = self._parse_arglist(TokenType.RPAREN, "')'")
                expr = Call(expr, tuple(args), **self._pos(tok))
            else:
                break
        return expr

    def _parse_arglist(self, closing: TokenType, closing_desc: str) -> List[Expr]:
        """Parse a comma-separated expression list (opening token already consumed)."""
        args = []
        if not self.check(closing):
            args.append(self.parse_expression())
            while self.match(TokenType.COMMA):
                args.append(self.parse_expression())
        self.expect(closing, closing_desc)
        return args

    def parse_primary(self) -> Expr:
        tok = self.current

        if self.check(*_LITERAL_TOKENS):
            self.advance()
            return Literal(tok.value, **self._pos(tok))

        if self.match(TokenType.IDENTIFIER):
            return Identifier(tok.value, **self._pos(tok))

        if self.match(TokenType.LPAREN):
            inner = self.parse_expression()
            self.expect(TokenType.RPAREN, "')'")
            return Grouping(inner, **self._pos(tok))

        if self.match(TokenType.LBRACKET):
            elements = self._parse_arglist(TokenType.RBRACKET, "']'")
            return ArrayLiteral(tuple(elements), **self._pos(tok))

        self.error(f"Expected expression, got {_describe(tok)}", "expression")


def parse(tokens: List[Token]) -> Program:
    return Parser(tokens).parse()
