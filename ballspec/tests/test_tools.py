"""Test caching, parallel and configuration tools."""

import pytest
import numpy as np
from ballspec.tools.cache import CachedAttribute, CachedFunction, CachedClass
from ballspec.tools.parallel import map_modes, resolve_workers
from ballspec.tools.config import config
from ballspec.tools.array import resize_axis, readonly
from docopt import docopt, DocoptExit
import ballspec.__main__ as ballspec_main


def test_cached_function():
    calls = []
    @CachedFunction
    def square(x, power=2):
        calls.append(x)
        return x**power
    assert square(3) == 9
    assert square(3, power=2) == 9
    assert square(x=3) == 9
    assert calls == [3]
    assert square(3, 3) == 27
    assert calls == [3, 3]


def test_cached_function_max_size():
    calls = []
    @CachedFunction(max_size=2)
    def identity(x):
        calls.append(x)
        return x
    for x in [1, 2, 3, 1]:
        identity(x)
    # 1 was dropped when 3 was added
    assert calls == [1, 2, 3, 1]
    assert len(identity.cache) == 2


def test_cached_attribute():
    class Thing:
        def __init__(self):
            self.count = 0
        @CachedAttribute
        def value(self):
            self.count += 1
            return [self.count]
    thing = Thing()
    assert thing.value is thing.value
    assert thing.count == 1


def test_cached_class():
    class Box(metaclass=CachedClass):
        def __init__(self, size, label='box'):
            self.size = size
            self.label = label
    a = Box(3)
    assert Box(3, 'box') is a
    assert Box(size=3) is a
    assert Box(4) is not a


@pytest.mark.parametrize('workers', [1, 2, 5])
def test_map_modes_order(workers):
    items = list(range(17))
    assert map_modes(lambda x: x**2, items, workers) == [x**2 for x in items]


def test_map_modes_propagates():
    def fail(x):
        if x == 3:
            raise ArithmeticError(x)
        return x
    with pytest.raises(ArithmeticError):
        map_modes(fail, range(6), workers=3)


def test_resolve_workers():
    assert resolve_workers(3) == 3
    assert resolve_workers() == config['parallelism'].getint('WORKERS')
    with pytest.raises(ValueError):
        resolve_workers(0)


def test_config_sections():
    for section in ['logging', 'grid', 'fields', 'transforms', 'linear algebra', 'helmholtz', 'parallelism']:
        assert section in config
    assert config['helmholtz'].get('BOUNDARY_TYPE').lower() in ('dirichlet', 'neumann')
    assert config['helmholtz'].getfloat('TOLERANCE') > 0


def test_resize_axis():
    data = np.arange(12).reshape(3, 4)
    assert resize_axis(data, 2, 0).shape == (2, 4)
    padded = resize_axis(data, 6, 1)
    assert padded.shape == (3, 6)
    assert np.all(padded[:, 4:] == 0)
    assert np.array_equal(padded[:, :4], data)


def test_readonly():
    data = np.zeros(3)
    view = readonly(data)
    with pytest.raises(ValueError):
        view[0] = 1
    data[0] = 2
    assert view[0] == 2


@pytest.mark.parametrize('argv, command', [(['test'], 'test'),
                                           (['test', '--report'], 'test'),
                                           (['bench'], 'bench'),
                                           (['cov'], 'cov'),
                                           (['get_config'], 'get_config')])
def test_module_usage(argv, command):
    args = docopt(ballspec_main.__doc__, argv=argv)
    assert args[command]
    assert args['--report'] == ('--report' in argv)


def test_module_usage_invalid():
    with pytest.raises(DocoptExit):
        docopt(ballspec_main.__doc__, argv=['get_examples'])
