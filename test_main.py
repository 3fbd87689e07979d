import pytest
import main
from main import EXIT_OK, EXIT_RUNTIME_ERROR, EXIT_SYNTAX_ERROR, make_interpreter, parse_args, run


def test_run_prints_output(capsys):
    assert run('println "hello " + len([1, 2])') == EXIT_OK
    assert capsys.readouterr().out == "hello 2\n"

def test_lexer_error_reported(capsys):
    assert run("let x = @", "bad.njs") == EXIT_SYNTAX_ERROR
    out = capsys.readouterr().out
    assert out.startswith("Lexer Error: bad.njs:1:9: Unexpected character: '@'")

def test_parser_error_reported(capsys):
    assert run("let = 1") == EXIT_SYNTAX_ERROR
    assert capsys.readouterr().out.startswith("Parser Error: line 1:5: Expected variable name")

def test_runtime_error_reported(capsys):
    assert run("println 1;\nprintln 1 / 0;") == EXIT_RUNTIME_ERROR
    assert capsys.readouterr().out == "1\nRuntime Error: line 2:11: Division by zero\n"

def test_dump_ast(capsys):
    run("println 1", dump_ast=True)
    out = capsys.readouterr().out.splitlines()
    assert out == ["PrintStmt(expression=Literal(value=1.0), newline=True)", "1"]

def test_shared_interpreter_keeps_state(capsys):
    interpreter = make_interpreter()
    run("let a = 2", interpreter=interpreter)
    run("println a * 3", interpreter=interpreter)
    assert capsys.readouterr().out == "6\n"

def test_parse_args():
    assert parse_args(["prog.njs", "--verbose", "--max-steps", "50"]) == {
        'filename': "prog.njs", 'dump_ast': False, 'verbose': True, 'max_steps': 50,
    }
    with pytest.raises(ValueError):
        parse_args(["--bogus"])
    with pytest.raises(ValueError):
        parse_args(["a.njs", "b.njs"])
    with pytest.raises(ValueError):
        parse_args(["--max-steps", "lots"])

def test_main_runs_file(tmp_path, capsys):
    script = tmp_path / "prog.njs"
    script.write_text("function sq(n) { return n * n; }\nprintln sq(7);\n", encoding="utf-8")
    assert main.main([str(script)]) == EXIT_OK
    assert capsys.readouterr().out == "49\n"

def test_main_step_limit(tmp_path, capsys):
    script = tmp_path / "loop.njs"
    script.write_text("while (true) {}", encoding="utf-8")
    assert main.main([str(script), "--max-steps", "20"]) == EXIT_RUNTIME_ERROR
    assert "Execution stopped after 20 steps" in capsys.readouterr().out

def test_main_missing_file(tmp_path, capsys):
    assert main.main([str(tmp_path / "nope.njs")]) == 66
    assert "cannot read" in capsys.readouterr().out

def test_main_bad_arguments(capsys):
    assert main.main(["--bogus"]) == 2
    assert "Usage:" in capsys.readouterr().out

def test_repl_keeps_environment(monkeypatch, capsys):
    lines = iter(["let x = 5", "", "x += 1", "println x", "exit", "println 99"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    assert main.main([]) == EXIT_OK
    out = capsys.readouterr().out
    assert "6\n" in out
    assert "99" not in out

def test_repl_survives_errors_and_eof(monkeypatch, capsys):
    lines = iter(["print missing", "println 1"])

    def fake_input(prompt=""):
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    assert main.repl() == EXIT_OK
    out = capsys.readouterr().out
    assert "Runtime Error: line 1:7: Undefined identifier 'missing'" in out
    assert "1\n" in out

def test_print_without_newline(capsys):
    assert run('print "a"; print 1; println "!"; print [2]') == EXIT_OK
    assert capsys.readouterr().out == "a1!\n[2]"

def test_main_rejects_non_utf8_file(tmp_path, capsys):
    script = tmp_path / "latin1.njs"
    script.write_bytes(b'println "caf\xe9";\n')
    assert main.main([str(script)]) == 66
    assert "not valid UTF-8" in capsys.readouterr().out

def test_array_shrunk_by_assigned_value_is_runtime_error(tmp_path, capsys):
    script = tmp_path / "shrink.njs"
    script.write_text("let a = [1, 2];\na[1] = pop(a);\n", encoding="utf-8")
    assert main.main([str(script)]) == EXIT_RUNTIME_ERROR
    out = capsys.readouterr().out
    assert out.startswith("Runtime Error: line 2:")
    assert "Index 1 out of range for array of length 1" in out
