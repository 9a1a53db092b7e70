"""Tests for forward evaluation of traced graphs on NumPy arrays."""
import numpy as np
import pytest

import tracegrad as tg
from tracegrad import OpKind, ArityError, ShapeError, UnsupportedOperation
from tracegrad.backends import NumpyBackend
from tracegrad.backends.numpy import KERNELS


def test_every_computed_kind_has_a_kernel():
    missing = [k for k in OpKind if not k.is_leaf and k not in KERNELS]
    assert not missing, f"no NumPy kernel for {missing}"


def test_concrete_scenario():
    print("=== Test f(x, y) = x * y + 1 ===")
    f = tg.compile(lambda x, y: x * y + 1)
    out = f.eval(np.array([1.0, 2.0, 3.0]), np.array([4.0, 5.0, 6.0]))
    print(f"  f = {out}")
    np.testing.assert_array_equal(out, [5.0, 11.0, 19.0])
    assert out.dtype == np.float64


def test_evaluate_directly():
    graph = tg.trace(lambda a, b: (a - b, a / b), [(2,), (2,)]).graph
    outs = tg.evaluate(graph, [np.array([3.0, 8.0]), np.array([1.0, 2.0])], NumpyBackend())
    assert len(outs) == 2
    np.testing.assert_array_equal(outs[0], [2.0, 6.0])
    np.testing.assert_array_equal(outs[1], [3.0, 4.0])

    outs, env = tg.evaluate(graph, [np.array([3.0, 8.0]), np.array([1.0, 2.0])],
                            NumpyBackend(), keep=True)
    assert set(env) == set(range(len(graph)))


def test_evaluation_is_deterministic():
    rng = np.random.default_rng(0)
    x = rng.normal(size=(4, 3))
    w = rng.normal(size=(3, 2))
    f = tg.compile(lambda x, w: tg.tanh(x @ w).sum(axis=0) * 0.5)
    first = f(x, w)
    second = f(x, w)
    np.testing.assert_array_equal(first, second)
    g = tg.compile(lambda x, w: tg.tanh(x @ w).sum(axis=0) * 0.5)
    np.testing.assert_array_equal(first, g(x, w))


def test_wrong_input_count():
    f = tg.compile(lambda x, y: x + y)
    with pytest.raises(ArityError):
        f.eval(np.ones(3))
    with pytest.raises(ArityError):
        f.eval(np.ones(3), np.ones(3), np.ones(3))
    graph = tg.trace(lambda x: x, [(3,)]).graph
    with pytest.raises(ArityError):
        tg.evaluate(graph, [], NumpyBackend())


def test_wrong_input_shape():
    f = tg.compile(lambda x, y: x + y)
    f(np.ones(3), np.ones(3))
    with pytest.raises(ShapeError):
        f(np.ones(4), np.ones(4))
    graph = tg.trace(lambda x: x, [(3,)]).graph
    with pytest.raises(ShapeError):
        tg.evaluate(graph, [np.ones((3, 1))], NumpyBackend())


def test_evaluate_plain_python_inputs():
    """Lists and scalars are accepted and shape-checked like arrays."""
    print("=== list / scalar inputs ===")
    graph = tg.trace(lambda x, s: x * s, [(2,), ()]).graph
    (out,) = tg.evaluate(graph, [[1.0, 2.0], 3.0], NumpyBackend())
    assert isinstance(out, np.ndarray), f"got {type(out)}"
    np.testing.assert_array_equal(out, [3.0, 6.0])
    with pytest.raises(ShapeError):
        tg.evaluate(graph, [[1.0, 2.0, 3.0], 3.0], NumpyBackend())
    with pytest.raises(ShapeError):
        tg.evaluate(graph, [[1.0, 2.0], [3.0]], NumpyBackend())


def test_callers_own_outputs_and_inputs_are_untouched():
    f = tg.compile(lambda x: x)
    x = np.array([1.0, 2.0])
    out = f(x)
    out[0] = 42.0
    np.testing.assert_array_equal(x, [1.0, 2.0])
    np.testing.assert_array_equal(f(x), [1.0, 2.0])

    g = tg.compile(lambda x: (x, 7.0))
    _, c = g(x)
    c[...] = 0.0
    assert g(x)[1] == 7.0


def test_elementwise_ops_match_numpy():
    print("=== Test elementwise ops ===")
    a = np.linspace(0.1, 2.0, 7)

    def fn(a):
        return (tg.tanh(a) * tg.exp(a) - tg.sqrt(a) / tg.log(a + 2)
                + tg.sin(a) * tg.cos(a) - a ** 3 + (-a) + tg.relu(a - 1.0))

    expected = (np.tanh(a) * np.exp(a) - np.sqrt(a) / np.log(a + 2)
                + np.sin(a) * np.cos(a) - a ** 3 + (-a) + np.maximum(a - 1.0, 0))
    np.testing.assert_allclose(tg.compile(fn)(a), expected, rtol=1e-12)
    # the same function runs eagerly on arrays
    np.testing.assert_allclose(fn(a), expected, rtol=1e-12)
    print("  elementwise OK")


def test_reflected_operators():
    f = tg.compile(lambda x: (1.0 - x, 2.0 / x, 2.0 ** x, 3.0 + x, 4.0 * x))
    x = np.array([1.0, 2.0])
    sub, div, pw, add, mul = f(x)
    np.testing.assert_allclose(sub, [0.0, -1.0])
    np.testing.assert_allclose(div, [2.0, 1.0])
    np.testing.assert_allclose(pw, [2.0, 4.0])
    np.testing.assert_allclose(add, [4.0, 5.0])
    np.testing.assert_allclose(mul, [4.0, 8.0])


def test_reductions_and_shape_ops():
    print("=== Test reductions & shape ops ===")
    x = np.arange(6.0).reshape(2, 3)

    f = tg.compile(lambda x: (
        x.sum(), x.sum(axis=1), tg.mean(x, axis=0, keepdims=True), tg.max(x, axis=1),
        x.reshape(3, 2), x.T, tg.transpose(x, (1, 0)),
        tg.broadcast_to(x, (4, 2, 3)),
        tg.sum_to(x, (1, 3)),
    ))
    s, s1, m0, mx, r, t, t2, b, st = f(x)
    assert s == 15.0
    np.testing.assert_array_equal(s1, [3.0, 12.0])
    np.testing.assert_array_equal(m0, [[1.5, 2.5, 3.5]])
    np.testing.assert_array_equal(mx, [2.0, 5.0])
    np.testing.assert_array_equal(r, x.reshape(3, 2))
    np.testing.assert_array_equal(t, x.T)
    np.testing.assert_array_equal(t2, x.T)
    assert b.shape == (4, 2, 3)
    np.testing.assert_array_equal(b[3], x)
    np.testing.assert_array_equal(st, [[3.0, 5.0, 7.0]])
    print("  reductions OK")


def test_matmul_variants():
    rng = np.random.default_rng(1)
    a = rng.normal(size=(4, 2, 3))
    b = rng.normal(size=(3, 5))
    v = rng.normal(size=3)
    f = tg.compile(lambda a, b, v: (a @ b, tg.matmul(v, b), a @ v, v @ v))
    ab, vb, av, vv = f(a, b, v)
    np.testing.assert_allclose(ab, a @ b)
    np.testing.assert_allclose(vb, v @ b)
    np.testing.assert_allclose(av, a @ v)
    np.testing.assert_allclose(vv, v @ v)
    assert vv.shape == ()


def test_constant_output():
    f = tg.compile(lambda x: 3.0, arity=1)
    out = f(np.ones(2))
    assert out.shape == () and out == 3.0


def test_numpy_backend_rejects_leaf_ops():
    b = NumpyBackend()
    with pytest.raises(UnsupportedOperation):
        b.apply(OpKind.INPUT, ())
    with pytest.raises(ArityError):
        b.apply(OpKind.ADD, (np.ones(2),))
    np.testing.assert_array_equal(b.sum_to(np.ones((2, 3)), (3,)), [2.0, 2.0, 2.0])
    np.testing.assert_array_equal(b.zeros((2,)), [0.0, 0.0])
    assert b.zeros((2, 2)).flags.writeable


def test_eager_functional_api():
    np.testing.assert_allclose(tg.exp(np.array([0.0])), [1.0])
    np.testing.assert_array_equal(tg.relu(np.array([-1.0, 2.0])), [0.0, 2.0])
    np.testing.assert_array_equal(tg.sum_to(np.ones((2, 3)), (3,)), [2.0, 2.0, 2.0])
    np.testing.assert_array_equal(tg.sum(np.ones((2, 3)), axis=0), [2.0, 2.0, 2.0])
    np.testing.assert_array_equal(tg.unbroadcast(np.ones((4, 1, 3)), (1, 3)), [[4.0, 4.0, 4.0]])
