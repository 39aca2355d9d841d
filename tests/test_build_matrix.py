from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from confex.interpreter import Interpreter, evaluate_file
from confex.parser import parse_expression
from confex.types import ListVal, MapVal, to_plain

EXAMPLE = Path(__file__).resolve().parent.parent / 'examples' / 'build_matrix.cfx'

BUILD_SCRIPT = 'cargo build --release\nzip -j target/app-{os}.zip target/release/app'
RUNNERS = {'linux': 'ubuntu-latest', 'macos': 'macos-latest'}


def test_build_matrix_linux():
    value = evaluate_file(str(EXAMPLE), {'os': 'linux'})
    assert isinstance(value, MapVal)
    assert value.entries['runs-on'] == 'ubuntu-latest'
    steps = value.entries['steps']
    assert isinstance(steps, ListVal)
    assert len(steps) == 4
    assert steps.items[2].entries['run'] == BUILD_SCRIPT.format(os='linux')


def test_build_matrix_macos():
    plain = to_plain(evaluate_file(str(EXAMPLE), {'os': 'macos'}))
    assert plain['runs-on'] == 'macos-latest'
    assert plain['steps'][2]['run'] == BUILD_SCRIPT.format(os='macos')
    assert plain['steps'][3]['with'] == {'name': 'app-macos.zip', 'path': 'target/app-macos.zip'}
    assert list(plain) == ['runs-on', 'steps']


def test_build_matrix_entries_evaluate_concurrently():
    expr = parse_expression(EXAMPLE.read_text(encoding='utf-8'))
    interp = Interpreter()
    targets = ['linux', 'macos'] * 4
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda os_name: to_plain(interp.run(expr, {'os': os_name})), targets))
    for os_name, plain in zip(targets, results):
        assert plain['runs-on'] == RUNNERS[os_name]
        assert plain['steps'][2]['run'] == BUILD_SCRIPT.format(os=os_name)
