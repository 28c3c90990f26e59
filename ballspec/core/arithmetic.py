"""
Arithmetic operators.

Linear combinations act on coefficients. Products of fields are formed on the
physical grid with numexpr and transformed back.

"""

import numbers
import numpy as np
import numexpr as ne

from .field import ScalarField, VectorField, SphereScalarField, SphereVectorField

# Public interface
__all__ = ['add',
           'multiply',
           'divide',
           'dot',
           'cross']


def _result_dtype(*dtypes):
    return np.result_type(*dtypes, np.float64)


def _scalar_dtype(value):
    return np.complex128 if isinstance(value, numbers.Complex) and not isinstance(value, numbers.Real) else np.float64


def _require_same_grid(arg0, arg1):
    if arg0.grid is not arg1.grid:
        raise ValueError("Operands must share a grid: %r, %r" % (arg0.grid, arg1.grid))


def _from_products(grid, data):
    # Products are formed internally, so the decay check is skipped
    return ScalarField.from_grid_data(grid, data, check='none')


def add(arg0, arg1):
    """Sum of fields, or of a scalar field and a number."""
    if isinstance(arg0, numbers.Number):
        arg0, arg1 = arg1, arg0
    if isinstance(arg0, ScalarField):
        if isinstance(arg1, numbers.Number):
            arg1 = ScalarField.constant(arg0.grid, arg1)
        if isinstance(arg1, ScalarField):
            _require_same_grid(arg0, arg1)
            return ScalarField(arg0.grid, arg0['c'] + arg1['c'], dtype=_result_dtype(arg0.dtype, arg1.dtype))
    elif isinstance(arg0, VectorField) and isinstance(arg1, VectorField):
        _require_same_grid(arg0, arg1)
        return VectorField([add(a, b) for a, b in zip(arg0, arg1)])
    elif isinstance(arg0, SphereScalarField) and isinstance(arg1, SphereScalarField):
        _require_same_grid(arg0, arg1)
        return SphereScalarField(arg0.grid, arg0['c'] + arg1['c'], dtype=_result_dtype(arg0.dtype, arg1.dtype), radius=arg0.radius)
    elif isinstance(arg0, SphereVectorField) and isinstance(arg1, SphereVectorField):
        _require_same_grid(arg0, arg1)
        arg1 = arg1.to_frame(arg0.frame)
        return SphereVectorField(arg0.grid, arg0['g'] + arg1['g'], frame=arg0.frame, radius=arg0.radius)
    raise TypeError("Cannot add %s and %s." % (type(arg0).__name__, type(arg1).__name__))


def multiply(arg0, arg1):
    """Product of a field with a number, or a grid-space product of fields."""
    if isinstance(arg1, numbers.Number) and not isinstance(arg0, numbers.Number):
        arg0, arg1 = arg1, arg0
    if isinstance(arg0, numbers.Number):
        dtype = _result_dtype(arg1.dtype, _scalar_dtype(arg0))
        if isinstance(arg1, ScalarField):
            return ScalarField(arg1.grid, arg0 * arg1['c'], dtype=dtype)
        elif isinstance(arg1, VectorField):
            return VectorField([multiply(arg0, c) for c in arg1])
        elif isinstance(arg1, SphereScalarField):
            return SphereScalarField(arg1.grid, arg0 * arg1['c'], dtype=dtype, radius=arg1.radius)
        elif isinstance(arg1, SphereVectorField):
            return SphereVectorField(arg1.grid, arg0 * arg1['g'], frame=arg1.frame, radius=arg1.radius)
    elif isinstance(arg0, ScalarField) and isinstance(arg1, ScalarField):
        _require_same_grid(arg0, arg1)
        data0, data1 = arg0['g'], arg1['g']
        return _from_products(arg0.grid, ne.evaluate("data0*data1"))
    elif isinstance(arg0, ScalarField) and isinstance(arg1, VectorField):
        return VectorField([multiply(arg0, c) for c in arg1])
    elif isinstance(arg0, VectorField) and isinstance(arg1, ScalarField):
        return VectorField([multiply(c, arg1) for c in arg0])
    elif isinstance(arg0, SphereScalarField) and isinstance(arg1, SphereScalarField):
        _require_same_grid(arg0, arg1)
        data0, data1 = arg0['g'], arg1['g']
        return SphereScalarField.from_grid_data(arg0.grid, ne.evaluate("data0*data1"), radius=arg0.radius, check='none')
    raise TypeError("Cannot multiply %s and %s." % (type(arg0).__name__, type(arg1).__name__))


def divide(arg0, arg1):
    """Division of a field by a number, or grid-space quotient of scalar fields."""
    if isinstance(arg1, numbers.Number):
        if arg1 == 0:
            raise ZeroDivisionError("Field division by zero.")
        return multiply(1 / arg1, arg0)
    elif isinstance(arg0, ScalarField) and isinstance(arg1, ScalarField):
        _require_same_grid(arg0, arg1)
        data0, data1 = arg0['g'], arg1['g']
        if np.any(data1 == 0):
            raise ZeroDivisionError("Divisor field vanishes on the grid.")
        return _from_products(arg0.grid, ne.evaluate("data0/data1"))
    raise TypeError("Cannot divide %s by %s." % (type(arg0).__name__, type(arg1).__name__))


def dot(arg0, arg1):
    """
    Pointwise dot product (without conjugation).

    VectorField pairs give a ScalarField; SphereVectorField pairs give a
    SphereScalarField.
    """
    if isinstance(arg0, VectorField) and isinstance(arg1, VectorField):
        _require_same_grid(arg0, arg1)
        data00, data01, data02 = arg0['g']
        data10, data11, data12 = arg1['g']
        data = ne.evaluate("data00*data10 + data01*data11 + data02*data12")
        return _from_products(arg0.grid, data)
    elif isinstance(arg0, SphereVectorField) and isinstance(arg1, SphereVectorField):
        _require_same_grid(arg0, arg1)
        arg1 = arg1.to_frame(arg0.frame)
        data00, data01, data02 = arg0['g']
        data10, data11, data12 = arg1['g']
        data = ne.evaluate("data00*data10 + data01*data11 + data02*data12")
        return SphereScalarField.from_grid_data(arg0.grid, data, radius=arg0.radius, check='none')
    raise TypeError("Cannot dot %s and %s." % (type(arg0).__name__, type(arg1).__name__))


def cross(arg0, arg1):
    """Pointwise right-handed cross product of vector fields."""
    if not (isinstance(arg0, VectorField) and isinstance(arg1, VectorField)):
        raise TypeError("Cross product requires VectorFields.")
    _require_same_grid(arg0, arg1)
    data00, data01, data02 = arg0['g']
    data10, data11, data12 = arg1['g']
    data = [ne.evaluate("data01*data12 - data02*data11"),
            ne.evaluate("data02*data10 - data00*data12"),
            ne.evaluate("data00*data11 - data01*data10")]
    return VectorField([_from_products(arg0.grid, d) for d in data])

