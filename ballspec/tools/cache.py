"""
Tools for caching computations.

"""

import inspect
import threading
from weakref import WeakValueDictionary
from collections import OrderedDict
from functools import partial


class CachedAttribute:
    """Descriptor building an attribute on first access and storing it on the instance."""

    def __init__(self, method):
        self.method = method
        self.__name__ = method.__name__
        self.__doc__ = method.__doc__

    def __get__(self, instance, owner):
        if instance is None:
            return self
        # Instance attribute shadows the descriptor on later lookups
        attribute = self.method(instance)
        setattr(instance, self.__name__, attribute)
        return attribute


class CachedFunction:
    """
    Decorator caching function outputs by their resolved call signature.

    Parameters
    ----------
    function : callable
        Function to cache.
    max_size : int, optional
        Maximum number of cached outputs; the oldest entry is dropped first.
        Default: unlimited.

    """

    def __new__(cls, function=None, max_size=None):
        # Allow use as @CachedFunction(max_size=...)
        if function is None:
            return partial(cls, max_size=max_size)
        return object.__new__(cls)

    def __init__(self, function, max_size=None):
        self.function = function
        self.__name__ = function.__name__
        self.__doc__ = function.__doc__
        self.max_size = max_size
        self.signature = inspect.signature(function)
        self.cache = OrderedDict()
        self.lock = threading.Lock()

    def key(self, args, kw):
        call = self.signature.bind(*args, **kw)
        call.apply_defaults()
        return tuple(call.arguments.items())

    def __call__(self, *args, **kw):
        key = self.key(args, kw)
        try:
            return self.cache[key]
        except KeyError:
            pass
        result = self.function(*args, **kw)
        with self.lock:
            if key not in self.cache:
                if self.max_size is not None:
                    while len(self.cache) >= self.max_size:
                        self.cache.popitem(last=False)
                self.cache[key] = result
            return self.cache[key]


class CachedClass(type):
    """Metaclass caching instantiation on the processed constructor arguments."""

    def __init__(cls, *args, **kw):
        super().__init__(*args, **kw)
        cls._instance_cache = WeakValueDictionary()
        cls._instance_lock = threading.Lock()
        cls._signature = inspect.signature(cls.__init__)

    def __call__(cls, *args, **kw):
        args, kw = cls._preprocess_args(*args, **kw)
        call = cls._signature.bind(None, *args, **kw)
        call.apply_defaults()
        key = tuple(call.arguments.values())[1:]
        with cls._instance_lock:
            instance = cls._instance_cache.get(key)
            if instance is None:
                instance = super().__call__(*key)
                cls._instance_cache[key] = instance
        return instance

    def _preprocess_args(cls, *args, **kw):
        """Normalize arguments prior to checking the cache."""
        return args, kw

