import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator, List


class TokenKind(Enum):
    """Coarse token categories."""
    KEYWORD = auto()
    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    NULL = auto()
    OPERATOR = auto()
    PUNCTUATION = auto()
    EOF = auto()


class TokenType(Enum):
    # Literals and identifiers
    NUMBER = auto()
    STRING = auto()
    IDENTIFIER = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Keywords
    LET = auto()
    CONST = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    RETURN = auto()
    PRINT = auto()
    PRINTLN = auto()
    FUNCTION = auto()

    # Two-character operators (CRITICAL: recognised before their one-char prefixes)
    EQUAL_EQUAL = auto()   # ==
    BANG_EQUAL = auto()    # !=
    LESS_EQUAL = auto()    # <=
    GREATER_EQUAL = auto() # >=
    PLUS_EQUAL = auto()    # +=
    MINUS_EQUAL = auto()   # -=
    STAR_EQUAL = auto()    # *=
    SLASH_EQUAL = auto()   # /=

    # Single-character operators
    EQUAL = auto()
    LESS = auto()
    GREATER = auto()
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    BANG = auto()
    PIPE = auto()          # |  logical or
    AMPER = auto()         # &  logical and
    QUESTION = auto()
    COLON = auto()
    DOT = auto()

    # Punctuation
    COMMA = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    SEMICOLON = auto()     # optional statement terminator

    EOF = auto()


_KEYWORD_TYPES = frozenset({
    TokenType.LET, TokenType.CONST, TokenType.IF, TokenType.ELSE,
    TokenType.WHILE, TokenType.RETURN, TokenType.PRINT, TokenType.PRINTLN,
    TokenType.FUNCTION,
})

_PUNCTUATION_TYPES = frozenset({
    TokenType.COMMA, TokenType.LPAREN, TokenType.RPAREN,
    TokenType.LBRACKET, TokenType.RBRACKET, TokenType.LBRACE,
    TokenType.RBRACE, TokenType.SEMICOLON,
})

_KIND_BY_TYPE = {
    TokenType.NUMBER: TokenKind.NUMBER,
    TokenType.STRING: TokenKind.STRING,
    TokenType.IDENTIFIER: TokenKind.IDENTIFIER,
    TokenType.TRUE: TokenKind.BOOLEAN,
    TokenType.FALSE: TokenKind.BOOLEAN,
    TokenType.NULL: TokenKind.NULL,
    TokenType.EOF: TokenKind.EOF,
}


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: Any
    lexeme: str
    line: int
    column: int

    @property
    def kind(self) -> TokenKind:
        if self.type in _KIND_BY_TYPE:
            return _KIND_BY_TYPE[self.type]
        if self.type in _KEYWORD_TYPES:
            return TokenKind.KEYWORD
        if self.type in _PUNCTUATION_TYPES:
            return TokenKind.PUNCTUATION
        return TokenKind.OPERATOR

    def __repr__(self):
        return f"Token({self.type.name}, {self.lexeme!r}, line={self.line}, col={self.column})"


class LexerError(Exception):
    def __init__(self, message, line=0, column=0):
        super().__init__(message)
        self.line = line
        self.column = column


_ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', '0': '\0',
    '\\': '\\', '"': '"', "'": "'",
}


class Lexer:
    # =====================================================================
    # ORDER IS SEMANTIC: earlier patterns have higher priority in alternation
    # =====================================================================
    TOKEN_SPECS = [
        # Whitespace and comments (discarded after position tracking)
        ('WHITESPACE', r'[ \t\r\n]+'),
        ('COMMENT', r'//[^\n]*'),
        ('BLOCK_COMMENT', r'/\*'),              # nesting handled by _skip_block_comment

        # Literals
        ('NUMBER', r'\d+(?:\.\d+)?'),           # fraction only when a digit follows the dot
        ('STRING', r'"(?:[^"\\]|\\[\s\S])*"|\'(?:[^\'\\]|\\[\s\S])*\''),
        ('UNTERMINATED', r'["\']'),             # a quote that STRING could not close

        ('IDENTIFIER', r'[A-Za-z_][A-Za-z0-9_]*'),

        # =====================================================================
        # CRITICAL SECTION: Multi-character operators BEFORE single-character
        # =====================================================================
        ('EQUAL_EQUAL', r'=='),
        ('BANG_EQUAL', r'!='),
        ('LESS_EQUAL', r'<='),
        ('GREATER_EQUAL', r'>='),
        ('PLUS_EQUAL', r'\+='),
        ('MINUS_EQUAL', r'-='),
        ('STAR_EQUAL', r'\*='),
        ('SLASH_EQUAL', r'/='),

        # Single-character operators and delimiters
        ('EQUAL', r'='),
        ('LESS', r'<'),
        ('GREATER', r'>'),
        ('PLUS', r'\+'),
        ('MINUS', r'-'),
        ('STAR', r'\*'),
        ('SLASH', r'/'),
        ('BANG', r'!'),
        ('PIPE', r'\|'),
        ('AMPER', r'&'),
        ('QUESTION', r'\?'),
        ('COLON', r':'),
        ('DOT', r'\.'),
        ('COMMA', r','),
        ('LPAREN', r'\('),
        ('RPAREN', r'\)'),
        ('LBRACKET', r'\['),
        ('RBRACKET', r'\]'),
        ('LBRACE', r'\{'),
        ('RBRACE', r'\}'),
        ('SEMICOLON', r';'),
    ]

    KEYWORDS = {
        'let': TokenType.LET,
        'const': TokenType.CONST,
        'if': TokenType.IF,
        'else': TokenType.ELSE,
        'while': TokenType.WHILE,
        'return': TokenType.RETURN,
        'print': TokenType.PRINT,
        'println': TokenType.PRINTLN,
        'function': TokenType.FUNCTION,
        'true': TokenType.TRUE,
        'false': TokenType.FALSE,
        'null': TokenType.NULL,
    }

    _SKIPPED = frozenset({'WHITESPACE', 'COMMENT'})

    def __init__(self, source, filename="<input>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    @property
    def _regex(self):
        cls = self.__class__
        if '_MASTER_REGEX' not in cls.__dict__:
            pattern_parts = [f'(?P<{name}>{regex})' for name, regex in cls.TOKEN_SPECS]
            cls._MASTER_REGEX = re.compile('|'.join(pattern_parts))
        return cls._MASTER_REGEX

    def _update_position(self, text):
        newlines = text.count('\n')
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rfind('\n')
        else:
            self.column += len(text)

    def _get_context(self, line) -> str:
        """Extract the given source line and add a ^ pointer for error display."""
        lines = self.source.split('\n')
        if 0 <= line - 1 < len(lines):
            src_line = lines[line - 1]
            pointer = ' ' * (self.column - 1) + '^'
            return f"\n  {src_line}\n  {pointer}"
        return ""

    def error(self, message):
        context = self._get_context(self.line)
        raise LexerError(
            f"{self.filename}:{self.line}:{self.column}: {message}{context}",
            self.line, self.column,
        )

    def tokenize(self) -> List[Token]:
        return list(self.iter_tokens())

    def iter_tokens(self) -> Iterator[Token]:
        while self.pos < len(self.source):
            match = self._regex.match(self.source, self.pos)

            if not match:
                self.error(f"Unexpected character: {self.source[self.pos]!r}")

            kind = match.lastgroup
            value = match.group()

            if kind == 'UNTERMINATED':
                self.error("Unterminated string literal")
            if kind == 'BLOCK_COMMENT':
                self._skip_block_comment()
                continue

            start_line, start_col = self.line, self.column
            self.pos = match.end()
            self._update_position(value)

            if kind in self._SKIPPED:
                continue

            yield self._create_token(kind, value, start_line, start_col)

        yield Token(TokenType.EOF, None, '', self.line, self.column)

    def _skip_block_comment(self):
        """Skip a /* ... */ comment; comments nest."""
        start_pos, start_line, start_col = self.pos, self.line, self.column
        depth = 0
        i = self.pos
        while i < len(self.source):
            pair = self.source[i:i + 2]
            if pair == '/*':
                depth += 1
                i += 2
            elif pair == '*/':
                depth -= 1
                i += 2
                if depth == 0:
                    self._update_position(self.source[start_pos:i])
                    self.pos = i
                    return
            else:
                i += 1
        self.line, self.column = start_line, start_col
        self.error("Unterminated block comment")

    def _decode_string(self, lexeme, line, col) -> str:
        body = lexeme[1:-1]
        if '\\' not in body:
            return body
        out = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch == '\\':
                esc = body[i + 1]
                if esc not in _ESCAPES:
                    self.line, self.column = line, col
                    self.error(f"Invalid escape sequence: '\\{esc}'")
                out.append(_ESCAPES[esc])
                i += 2
            else:
                out.append(ch)
                i += 1
        return ''.join(out)

    def _create_token(self, kind, value, line, col) -> Token:
        if kind == 'IDENTIFIER':
            token_type = self.KEYWORDS.get(value)
            if token_type is TokenType.TRUE:
                return Token(token_type, True, value, line, col)
            if token_type is TokenType.FALSE:
                return Token(token_type, False, value, line, col)
            if token_type is not None:
                return Token(token_type, None, value, line, col)
            return Token(TokenType.IDENTIFIER, value, value, line, col)

        if kind == 'NUMBER':
            return Token(TokenType.NUMBER, float(value), value, line, col)
        if kind == 'STRING':
            return Token(TokenType.STRING, self._decode_string(value, line, col), value, line, col)

        return Token(TokenType[kind], None, value, line, col)


def tokenize(source, filename="<input>") -> List[Token]:
    return Lexer(source, filename).tokenize()
