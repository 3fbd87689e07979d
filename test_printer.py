import pytest
from lexer import tokenize
from parser import parse
from printer import quote_string, to_source
from ast_nodes import *


def reparse(source):
    return parse(tokenize(source))


ROUND_TRIP_SOURCES = [
    "let x = 1; const y = 'two'; let z",
    "print 1 + 2 * 3 - (4 - 5) / 6",
    "print \"no newline\"; println [1, 2]",
    "a = b = c += 2",
    "print a ? b : c ? d : e; print (a ? b : c) ? d : e",
    "print !!x | -y & z != null",
    'print "tab\\tquote\\"slash\\\\newline\\n"',
    "print [1, [2, 3], []][0].length",
    "if (a) if (b) print 1; else print 2",
    "if (a) { if (b) print 1; } else { print 2; }",
    "while (i < 10) { i += 1; { let t = i; } }",
    "function f(a, b) { if (a > b) return a; return; } print f(1, 2)(3)",
    "function empty() {} print empty",
    "return 0.5 + 1000000",
]


@pytest.mark.parametrize("source", ROUND_TRIP_SOURCES)
def test_parse_print_parse_round_trip(source):
    program = reparse(source)
    assert reparse(to_source(program)) == program


def test_program_layout():
    source = "let x = 1; function f(a, b) { if (a > b) { return a; } else return b; } while (x < 3) x += 1; println f(x, 2) * (1 + 2)"
    expected = (
        "let x = 1;\n"
        "function f(a, b) {\n"
        "    if (a > b) {\n"
        "        return a;\n"
        "    } else return b;\n"
        "}\n"
        "while (x < 3) x += 1;\n"
        "println f(x, 2) * (1 + 2);"
    )
    assert to_source(reparse(source)) == expected

def test_empty_program():
    assert to_source(Program(())) == ""

def test_expression_and_statement_nodes():
    assert to_source(Binary('+', Literal(1.0), Grouping(Identifier('x')))) == "1 + (x)"
    assert to_source(Unary('-', Literal(2.5))) == "-2.5"
    assert to_source(VarDecl('const', 'k', Literal(None))) == "const k = null;"
    assert to_source(Block(())) == "{}"

def test_numbers_never_use_exponent_form():
    assert to_source(Literal(1e21)) == "1000000000000000000000"
    assert to_source(Literal(1.5e-07)) == "0.00000015"

def test_quote_string():
    assert quote_string('say "hi"\n') == '"say \\"hi\\"\\n"'
    assert quote_string("it's") == '"it\'s"'

def test_unknown_node_rejected():
    with pytest.raises(TypeError):
        to_source(Expr())
