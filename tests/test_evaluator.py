import pytest

from confex.errors import (
    ArityError, DivisionByZeroError, DuplicateKeyError, InterpolationTypeError,
    ListIndexError, MissingKeyError, NoSuchMethodError, NotCallableError,
    RecursionLimitExceeded, TypeMismatchError, UnboundName,
)
from confex.interpreter import Interpreter, evaluate
from confex.parser import parse_expression
from confex.types import Closure, ListVal, MapVal


def test_literals():
    assert evaluate('42') == 42
    assert evaluate('2.5') == 2.5
    assert evaluate('"text"') == 'text'
    assert evaluate('false') is False


def test_shadowing():
    assert evaluate('let x = 1 in let x = 2 in x') == 2


def test_let_bindings_are_sequential():
    assert evaluate('let a = 1 b = a + 1 in b') == 2
    # a binding cannot see later bindings
    with pytest.raises(UnboundName) as excinfo:
        evaluate('let a = b b = 1 in a')
    assert excinfo.value.unbound == 'b'


def test_let_bindings_are_not_recursive():
    with pytest.raises(UnboundName):
        evaluate('let f = (n) => f(n) in f(1)')


def test_closure_captures_definition_environment():
    source = '''
        let x = 1
            add = (y) => x + y
            x = 10
        in add(5)
    '''
    assert evaluate(source) == 6


def test_lambda_application():
    assert evaluate('let twice = (f, v) => f(f(v)) inc = (n) => n + 1 in twice(inc, 3)') == 5
    assert evaluate('((x) => x * 2)(21)') == 42


def test_arity_error():
    with pytest.raises(ArityError) as excinfo:
        evaluate('let f = (x) => x in f(1, 2)')
    assert excinfo.value.expected == 1
    assert excinfo.value.got == 2


def test_not_callable():
    with pytest.raises(NotCallableError):
        evaluate('let x = 1 in x(2)')


def test_unbound_name():
    with pytest.raises(UnboundName):
        evaluate('missing')


def test_map_literal_keeps_declaration_order():
    value = evaluate('{b: 1, a: 2, c: 3}')
    assert isinstance(value, MapVal)
    assert list(value.entries) == ['b', 'a', 'c']


def test_duplicate_key():
    with pytest.raises(DuplicateKeyError) as excinfo:
        evaluate('{a: 1, a: 2}')
    assert excinfo.value.key == 'a'


def test_interpolated_map_key():
    assert evaluate('let os = "linux" in {"build-${os}": true}') == MapVal({'build-linux': True})
    with pytest.raises(DuplicateKeyError):
        evaluate('let k = "a" in {a: 1, "${k}": 2}')


def test_list_literal_and_index():
    assert evaluate('[1, "two", [3]]') == ListVal([1, 'two', ListVal([3])])
    assert evaluate('[10, 20, 30][1]') == 20


def test_list_index_out_of_range():
    with pytest.raises(ListIndexError) as excinfo:
        evaluate('[1, 2][2]')
    assert excinfo.value.index == 2
    assert excinfo.value.length == 2
    with pytest.raises(ListIndexError):
        evaluate('[1][-1]')


def test_missing_key():
    with pytest.raises(MissingKeyError) as excinfo:
        evaluate('{a: 1}["b"]')
    assert excinfo.value.key == 'b'
    with pytest.raises(MissingKeyError):
        evaluate('{a: 1}.b')


def test_member_access():
    assert evaluate('{a: {b: 7}}.a.b') == 7


def test_method_on_map_member():
    assert evaluate('let obj = {double: (x) => x * 2} in obj.double(21)') == 42


def test_no_such_method():
    with pytest.raises(NoSuchMethodError) as excinfo:
        evaluate('"a".shout()')
    assert excinfo.value.method_name == 'shout'
    with pytest.raises(NoSuchMethodError):
        evaluate('[1].trim()')


def test_interpolation_and_lookup():
    arguments = {'runner_map': MapVal({'linux': 'ubuntu-latest'}), 'os': 'linux'}
    assert evaluate('"${runner_map[os]}"', arguments) == 'ubuntu-latest'


def test_interpolation_renders_scalars():
    assert evaluate('"${true}/${1.5}/${2}/${"s"}"') == 'true/1.5/2/s'


def test_interpolation_rejects_composites():
    with pytest.raises(InterpolationTypeError) as excinfo:
        evaluate('"${[1]}"')
    assert excinfo.value.value_kind == 'List'


def test_arithmetic():
    assert evaluate('1 + 2 * 3') == 7
    assert evaluate('(1 + 2) * 3') == 9
    assert evaluate('7 / 2') == 3
    assert evaluate('-7 / 2') == -3
    assert evaluate('7.0 / 2') == 3.5
    assert evaluate('7 % 3') == 1
    assert evaluate('"a" + "b"') == 'ab'
    assert evaluate('[1] + [2]') == ListVal([1, 2])


def test_arithmetic_errors():
    with pytest.raises(DivisionByZeroError):
        evaluate('1 / 0')
    with pytest.raises(TypeMismatchError):
        evaluate('1 + "a"')
    with pytest.raises(TypeMismatchError):
        evaluate('-"a"')


def test_comparisons_and_logic():
    assert evaluate('1 < 2 and not false') is True
    assert evaluate('"a" >= "b" or 2 != 2') is False
    assert evaluate('{a: [1, {b: 2}]} == {a: [1, {b: 2}]}') is True
    assert evaluate('1 == true') is False
    assert evaluate('1 == 1.0') is True


def test_logic_short_circuits():
    # the right-hand side would fail if evaluated
    assert evaluate('false and missing') is False
    assert evaluate('true or missing') is True
    with pytest.raises(TypeMismatchError):
        evaluate('1 and true')


def test_conditional():
    assert evaluate('if 1 == 1 then "y" else "n"') == 'y'
    assert evaluate('if false then missing else 0') == 0
    with pytest.raises(TypeMismatchError):
        evaluate('if 1 then 2 else 3')


def test_top_level_lambda_takes_arguments_by_name():
    assert evaluate('(os) => "${os}!"', {'os': 'linux'}) == 'linux!'
    with pytest.raises(UnboundName) as excinfo:
        evaluate('(os, arch) => os', {'os': 'linux'})
    assert excinfo.value.unbound == 'arch'


def test_top_level_lambda_without_arguments_is_returned():
    value = evaluate('(x) => x')
    assert isinstance(value, Closure)
    assert value.params == ('x',)


def test_determinism():
    source = 'let m = {a: [1, 2], b: "${os}"} in {first: m, second: m.a[1]}'
    first = evaluate(source, {'os': 'macos'})
    second = evaluate(source, {'os': 'macos'})
    assert first == second


def test_recursion_limit():
    with pytest.raises(RecursionLimitExceeded):
        evaluate('let loop = (self) => self(self) in loop(loop)')


def test_recursion_limit_is_configurable():
    source = '''
        let count = (self, n) => if n == 0 then 0 else 1 + self(self, n - 1)
        in count(count, 5)
    '''
    with pytest.raises(RecursionLimitExceeded) as excinfo:
        evaluate(source, max_depth=3)
    assert excinfo.value.limit == 3
    assert evaluate(source, max_depth=20) == 5


def test_long_operator_chain_is_not_recursion():
    assert evaluate(' + '.join(['1'] * 250)) == 250
    assert evaluate(' + '.join(['"a"'] * 210)) == 'a' * 210
    assert evaluate('[[[[[[1]]]]]]', max_depth=1) == ListVal([ListVal([ListVal([ListVal([ListVal([ListVal([1])])])])])])


def test_deeply_nested_source_raises_recursion_limit():
    with pytest.raises(RecursionLimitExceeded):
        evaluate('[' * 3000 + '1' + ']' * 3000)
    with pytest.raises(RecursionLimitExceeded):
        evaluate(' + '.join(['1'] * 5000))


def test_values_are_immutable():
    value = evaluate('{a: [1]}')
    with pytest.raises(TypeError):
        value.entries['a'] = 2
    assert isinstance(value.entries['a'].items, tuple)


def test_debug_output_goes_to_stderr(capsys):
    interp = Interpreter(debug_level=3)
    assert interp.run(parse_expression('let x = 1 in ((y) => y)(x)')) == 1
    err = capsys.readouterr().err
    assert 'bind x = 1' in err
    assert 'apply <lambda (y)>' in err


def test_debug_output_to_file(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    assert evaluate('let x = 2 in x', debug_level=2, debug_file=str(debug_file)) == 2
    assert 'bind x = 2' in debug_file.read_text(encoding='utf-8')


def test_plain_python_arguments_are_converted():
    assert evaluate('m.targets[1]', {'m': {'targets': ['linux', 'macos']}}) == 'macos'


def test_remainder_matches_truncating_division():
    assert evaluate('-7 / 2') == -3
    assert evaluate('-7 % 2') == -1
    assert evaluate('7 % -2') == 1
    assert evaluate('let a = -7 b = 2 in (a / b) * b + a % b') == -7
    assert evaluate('-7.5 % 2') == -1.5


def test_empty_arguments_still_apply_top_level_lambda():
    assert evaluate('() => 1', {}) == 1
    assert isinstance(evaluate('() => 1'), Closure)


def test_value_equality_keeps_booleans_apart_from_numbers():
    assert evaluate('[1, 2]') == ListVal([1, 2])
    assert evaluate('[1.0]') == ListVal([1])
    assert evaluate('[1]') != ListVal([True])
    assert evaluate('{a: true}') != MapVal({'a': 1})
    assert evaluate('[1] == [true]') is False


def test_debug_output_shows_scopes(capsys):
    interp = Interpreter(debug_level=3)
    assert interp.run(parse_expression('((x) => x)(os)'), {'os': 'linux'}) == 'linux'
    err = capsys.readouterr().err
    assert 'visible names: os, concat' in err
    assert 'apply <lambda (x)> to linux (depth 1, scope 2)' in err
