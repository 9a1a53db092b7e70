"""Tests for tracing functions into graphs and the graph invariants."""
import numpy as np
import pytest

import tracegrad as tg
from tracegrad import (
    Graph, OpKind, GraphError, ArityError, ShapeError, TraceScopeError,
    UntraceableControlFlow, UnsupportedOperation,
)


def test_trace_records_nodes_in_order():
    print("=== Test trace x * y + 1 ===")
    graph = tg.trace(lambda x, y: x * y + 1, [(3,), (3,)]).graph
    print(graph)
    ops = [n.op for n in graph]
    assert ops == [OpKind.INPUT, OpKind.INPUT, OpKind.MUL, OpKind.CONST, OpKind.ADD], ops
    assert graph.inputs == (0, 1)
    assert graph.outputs == (4,)
    assert graph.input_shapes == ((3,), (3,))
    assert graph.output_shapes == ((3,),)
    assert graph.frozen
    assert graph[1].attrs['index'] == 1
    print("  nodes OK")


def test_inputs_precede_consumers():
    def fn(a, b):
        h = tg.tanh(a @ b)
        return (h * h).sum(axis=0) + h.mean()

    graph = tg.trace(fn, [(2, 3), (3, 4)]).graph
    for node in graph:
        assert all(i < node.id for i in node.inputs), node
        assert len(node.inputs) == node.op.arity
    assert graph.output_shapes == ((4,),)


def test_shapes_are_inferred_at_trace_time():
    def fn(x, w):
        return (x @ w).T.reshape(-1)

    graph = tg.trace(fn, [(5, 2), (2, 3)]).graph
    shapes = [n.shape for n in graph if not n.op.is_leaf]
    assert shapes == [(5, 3), (3, 5), (15,)]


def test_incompatible_shapes_fail_immediately():
    with pytest.raises(ShapeError):
        tg.trace(lambda x, y: x + y, [(3,), (4,)])
    with pytest.raises(ShapeError):
        tg.trace(lambda a, b: a @ b, [(2, 3), (2, 3)])


def test_append_after_freeze_is_rejected():
    graph = tg.trace(lambda x: x * 2, [(2,)]).graph
    with pytest.raises(GraphError):
        graph.append(OpKind.NEG, [0], (2,))
    with pytest.raises(GraphError):
        graph.freeze([0])


def test_forward_reference_is_rejected():
    graph = Graph(tg.float64)
    graph.append(OpKind.INPUT, [], (2,), {'index': 0, 'shape': (2,)})
    with pytest.raises(GraphError):
        graph.append(OpKind.NEG, [1], (2,))
    with pytest.raises(GraphError):
        graph.append(OpKind.NEG, [-1], (2,))
    assert len(graph) == 1


def test_constants_are_frozen_copies():
    data = np.array([1.0, 2.0])
    graph = tg.trace(lambda x: x + data, [(2,)]).graph
    data[0] = 100.0
    const = next(n for n in graph if n.op is OpKind.CONST)
    np.testing.assert_array_equal(const.attrs['value'], [1.0, 2.0])
    assert not const.attrs['value'].flags.writeable
    assert const.attrs['value'].dtype == np.float64
    with pytest.raises(TypeError):
        const.attrs['value'] = np.zeros(2)


def test_graph_dump():
    graph = tg.trace(lambda x: tg.exp(x).sum(), [(2, 2)]).graph
    text = str(graph)
    assert '1: exp [0] -> (2, 2)' in text, text
    assert 'outputs: [2]' in text, text
    assert 'Graph(nodes=3' in repr(graph)


def test_output_forms():
    traced = tg.trace(lambda x: x, [(2,)])
    assert traced.single_output
    assert traced.graph.outputs == (0,)

    traced = tg.trace(lambda x: (x, 2.0), [(2,)])
    assert not traced.single_output
    assert traced.graph.output_shapes == ((2,), ())

    traced = tg.trace(lambda x: [x * 2], [(2,)])
    assert not traced.single_output
    assert len(traced.graph.outputs) == 1


def test_no_outputs_is_an_arity_error():
    with pytest.raises(ArityError):
        tg.trace(lambda x: None, [(2,)])
    with pytest.raises(ArityError):
        tg.trace(lambda x: (), [(2,)])
    with pytest.raises(ArityError):
        tg.trace(lambda x: ((x, x), x), [(2,)])


def test_data_dependent_control_flow_is_detected():
    """Asking a symbol for its value raises UntraceableControlFlow."""
    print("=== Test untraceable control flow ===")

    def branch(x):
        if x > 0:
            return x
        return -x

    def truthy(x):
        return x * 2 if x else x

    def to_float(x):
        return x * float(x)

    def loop(x):
        total = 0
        for v in x:
            total = total + v
        return total

    for fn in (branch, truthy, to_float, loop):
        with pytest.raises(UntraceableControlFlow):
            tg.trace(fn, [(3,)])
        print(f"  {fn.__name__}: raised OK")


def test_symbol_equality_is_not_traceable():
    with pytest.raises(UntraceableControlFlow):
        tg.trace(lambda x, y: x if x == y else y, [(), ()])


def test_symbolic_exponent_is_unsupported():
    with pytest.raises(UnsupportedOperation):
        tg.trace(lambda x, y: x ** y, [(2,), (2,)])


def test_constant_base_must_be_a_positive_scalar():
    """c ** x is recorded as exp(x * log c), so c must be positive."""
    print("=== rpow base check ===")
    for base in [0.0, -2.0, np.array([2.0, 3.0])]:
        with pytest.raises(UnsupportedOperation):
            tg.trace(lambda x: base ** x, [(2,)])
    graph = tg.trace(lambda x: 2.0 ** x, [(2,)]).graph
    assert [n.op for n in graph][-1] is OpKind.EXP, "positive base should trace"


def test_transpose_axes_out_of_range():
    print("=== transpose / swapaxes range checks ===")
    f = tg.compile(lambda x: x.transpose(0, 5))
    with pytest.raises(ShapeError):
        f(np.ones((2, 3)))
    with pytest.raises(ShapeError):
        tg.trace(lambda x: x.swapaxes(0, 3), [(2, 3, 4)])
    with pytest.raises(ShapeError):
        tg.trace(lambda x: x.swapaxes(-4, 1), [(2, 3, 4)])


def test_swapaxes():
    x = np.arange(24.0).reshape(2, 3, 4)
    out = tg.compile(lambda x: x.swapaxes(0, -1))(x)
    assert out.shape == (4, 3, 2), f"swapaxes shape {out.shape}"
    np.testing.assert_array_equal(out, np.swapaxes(x, 0, -1))


def test_symbol_outside_its_trace():
    leaked = []

    def fn(x):
        leaked.append(x)
        return x * 2

    tg.trace(fn, [(2,)])
    assert not leaked[0].trace.active
    with pytest.raises(TraceScopeError):
        leaked[0] + 1
    with pytest.raises(TraceScopeError):
        tg.exp(leaked[0])


def test_symbols_from_two_traces_do_not_mix():
    outer = []

    def inner(y):
        return y + outer[0]

    def fn(x):
        outer.append(x)
        return tg.trace(inner, [(2,)]).graph

    with pytest.raises(TraceScopeError):
        tg.trace(fn, [(2,)])


def test_symbol_surface():
    seen = {}

    def fn(x):
        seen['shape'] = x.shape
        seen['ndim'] = x.ndim
        seen['len'] = len(x)
        seen['T'] = x.T.shape
        seen['repr'] = repr(x)
        seen['symbolic'] = tg.is_symbolic(x)
        return x.sum()

    tg.trace(fn, [(4, 2)])
    assert seen['shape'] == (4, 2)
    assert seen['ndim'] == 2
    assert seen['len'] == 4
    assert seen['T'] == (2, 4)
    assert seen['repr'] == 'Symbol(id=0, shape=(4, 2))'
    assert seen['symbolic'] is True
    assert not tg.is_symbolic(np.ones(2))


def test_numpy_operand_on_the_left():
    """NumPy arrays defer to the symbol's reflected operators."""
    w = np.array([[1.0, 2.0], [3.0, 4.0]])
    graph = tg.trace(lambda x: w @ x + np.ones(2) * x, [(2,)]).graph
    assert graph.output_shapes == ((2,),)
    assert [n.op for n in graph].count(OpKind.CONST) == 2


def test_input_names_come_from_the_signature():
    def f(x, weight):
        return x * weight

    g = tg.compile(f)
    g.trace((2,), (2,))
    assert g.graph[0].attrs['name'] == 'x'
    assert g.graph[1].attrs['name'] == 'weight'
