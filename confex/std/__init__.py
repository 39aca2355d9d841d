from typing import Any, Dict, List

from confex.builtin_function import BuiltinFunction
from confex.environment import Environment
from confex.errors import TypeMismatchError
from confex.types import Closure, ListVal, MapVal, type_name


def populate_root_environment() -> Environment:
    """Build the outermost frame holding the built-in functions.

    Every built-in is pure: it only combines its arguments into new values.
    """

    def std_concat(interp, args: List[Any], depth: int) -> Any:
        if not args:
            raise TypeMismatchError('at least one List', 'no arguments', 'concat')
        items: List[Any] = []
        for arg in args:
            if not isinstance(arg, ListVal):
                raise TypeMismatchError('List', type_name(arg), 'concat')
            items.extend(arg.items)
        return ListVal(items)

    def std_merge(interp, args: List[Any], depth: int) -> Any:
        if not args:
            raise TypeMismatchError('at least one Map', 'no arguments', 'merge')
        # merge([m1, m2]) is the same as merge(m1, m2)
        maps = args
        if isinstance(args[0], ListVal):
            if len(args) != 1:
                raise TypeMismatchError('several Maps or a single List of Maps', 'List and more', 'merge')
            maps = list(args[0].items)
            if not maps:
                raise TypeMismatchError('at least one Map', 'empty List', 'merge')
        entries: Dict[str, Any] = {}
        for item in maps:
            if not isinstance(item, MapVal):
                raise TypeMismatchError('Map', type_name(item), 'merge')
            entries.update(item.entries)
        return MapVal(entries)

    def std_fold(interp, args: List[Any], depth: int) -> Any:
        initial, func, collection = args
        if not isinstance(func, (Closure, BuiltinFunction)):
            raise TypeMismatchError('Function', type_name(func), 'fold')
        acc = initial
        if isinstance(collection, ListVal):
            for ix, item in enumerate(collection.items):
                acc = interp.call_function(func, [acc, ix, item], depth)
            return acc
        if isinstance(collection, MapVal):
            for key, item in collection.entries.items():
                acc = interp.call_function(func, [acc, key, item], depth)
            return acc
        raise TypeMismatchError('List or Map', type_name(collection), 'fold')

    return Environment({
        'concat': BuiltinFunction('concat', None, std_concat),
        'merge': BuiltinFunction('merge', None, std_merge),
        'fold': BuiltinFunction('fold', 3, std_fold),
    })
