import logging
import sys

from lexer import Lexer, LexerError
from parser import Parser, ParserError
from interpreter import Interpreter, InterpreterConfig
from environment import Environment
from errors import InterpreterError
from builtins_handler import install_builtins

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SYNTAX_ERROR = 65
EXIT_RUNTIME_ERROR = 70

USAGE = "Usage: python main.py [file.njs] [--dump-ast] [--verbose] [--max-steps N]"


def make_interpreter(config=None):
    """Fresh interpreter whose global frame holds the host built-ins."""
    environment = install_builtins(Environment())
    return Interpreter(environment, config=config)


def run_file(filename, dump_ast=False, config=None):
    with open(filename, 'r', encoding='utf-8') as f:
        source = f.read()
    return run(source, filename, make_interpreter(config), dump_ast)


def run(source, filename="<stdin>", interpreter=None, dump_ast=False):
    """Lex, parse and execute `source`. Returns a process exit code."""
    # Lexing
    lexer = Lexer(source, filename)
    try:
        tokens = lexer.tokenize()
    except LexerError as e:
        print(f"Lexer Error: {e}")
        return EXIT_SYNTAX_ERROR

    # Parsing
    parser = Parser(tokens)
    try:
        program = parser.parse()
    except ParserError as e:
        print(f"Parser Error: {e}")
        return EXIT_SYNTAX_ERROR

    if dump_ast:
        for stmt in program.statements:
            print(stmt)

    # Interpreting
    if interpreter is None:
        interpreter = make_interpreter()
    try:
        completion = interpreter.interpret(program)
    except InterpreterError as e:
        print(f"Runtime Error: {e}")
        return EXIT_RUNTIME_ERROR

    logger.debug("%s finished (%s) after %d steps", filename, completion.kind, interpreter.step_count)
    return EXIT_OK


def repl(config=None, dump_ast=False):
    print("NotJS Interpreter (Type 'exit' to quit)")
    interpreter = make_interpreter(config)
    while True:
        try:
            line = input(">>> ")
        except EOFError:
            print()
            break
        if line.strip() == 'exit':
            break
        if line.strip():
            run(line, "<stdin>", interpreter, dump_ast)
    return EXIT_OK


def parse_args(argv):
    options = {'filename': None, 'dump_ast': False, 'verbose': False, 'max_steps': None}
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == '--dump-ast':
            options['dump_ast'] = True
        elif arg == '--verbose':
            options['verbose'] = True
        elif arg == '--max-steps' and i + 1 < len(argv):
            i += 1
            options['max_steps'] = int(argv[i])
        elif arg.startswith('--') or options['filename'] is not None:
            raise ValueError(f"Unexpected argument: {arg}")
        else:
            options['filename'] = arg
        i += 1
    return options


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        options = parse_args(argv)
    except ValueError as e:
        print(e)
        print(USAGE)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if options['verbose'] else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = InterpreterConfig(max_steps=options['max_steps'])

    if options['filename']:
        try:
            return run_file(options['filename'], options['dump_ast'], config)
        except OSError as e:
            print(f"Error: cannot read {options['filename']}: {e.strerror}")
            return 66
        except UnicodeDecodeError as e:
            print(f"Error: cannot read {options['filename']}: not valid UTF-8 ({e.reason} at byte {e.start})")
            return 66
    return repl(config, options['dump_ast'])


if __name__ == "__main__":
    sys.exit(main())
