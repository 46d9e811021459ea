"""Unit tests for the multiplication and composition tables of `DSCompiler`."""

import pytest

from derivstruct import DSCompiler, CompositionTerm, MultiplicationTerm, get_compiler

SHAPES = [(1, 1), (1, 4), (2, 2), (2, 3), (3, 2), (3, 3), (4, 1)]


def test_univariate_multiplication_rows():
    """Tests the Leibniz rule rows for one parameter to order 2."""
    c = get_compiler(1, 2)
    assert c.mult_indirection == (
        (MultiplicationTerm(1, 0, 0),),
        (MultiplicationTerm(1, 0, 1), MultiplicationTerm(1, 1, 0)),
        (MultiplicationTerm(1, 0, 2), MultiplicationTerm(2, 1, 1), MultiplicationTerm(1, 2, 0)),
    )


def test_univariate_composition_rows():
    """Tests the Faa di Bruno rows for one parameter to order 3."""
    c = get_compiler(1, 3)
    assert c.comp_indirection[1] == (CompositionTerm(1, 1, (1,)),)
    assert c.comp_indirection[2] == (CompositionTerm(1, 2, (1, 1)), CompositionTerm(1, 1, (2,)))
    assert c.comp_indirection[3] == (CompositionTerm(1, 3, (1, 1, 1)),
                                     CompositionTerm(3, 2, (1, 2)),
                                     CompositionTerm(1, 1, (3,)))


def test_composition_multiplicities_are_bell_numbers():
    """Tests that the univariate rows partition the order in Bell-number many ways."""
    c = get_compiler(1, 5)
    totals = [sum(t.multiplicity for t in row) for row in c.comp_indirection]
    assert totals == [1, 1, 2, 5, 15, 52]


@pytest.mark.parametrize("p,o", SHAPES)
def test_multiplication_terms_split_the_multi_index(p, o):
    """Tests that each product term splits the row multi-index between its factors."""
    c = get_compiler(p, o)
    assert len(c.mult_indirection) == c.size
    for i, row in enumerate(c.mult_indirection):
        target = list(c.get_partial_derivative_orders(i))
        for term in row:
            left = c.get_partial_derivative_orders(term.left)
            right = c.get_partial_derivative_orders(term.right)
            assert list(left + right) == target


@pytest.mark.parametrize("p,o", SHAPES)
def test_multiplication_multiplicities_sum(p, o):
    """Tests that the multiplicities of a row add up to 2**|alpha|."""
    c = get_compiler(p, o)
    for i, row in enumerate(c.mult_indirection):
        order = int(c.get_partial_derivative_orders(i).sum())
        assert sum(t.multiplicity for t in row) == 2**order


@pytest.mark.parametrize("p,o", SHAPES)
def test_composition_terms_split_the_multi_index(p, o):
    """Tests that each chain-rule term uses f^(n) with n operands covering the row multi-index."""
    c = get_compiler(p, o)
    assert len(c.comp_indirection) == c.size
    for i, row in enumerate(c.comp_indirection):
        target = list(c.get_partial_derivative_orders(i))
        for term in row:
            assert term.f_index == len(term.operands)
            assert list(term.operands) == sorted(term.operands)
            total = [0] * p
            for j in term.operands:
                assert j != 0
                total = [a + b for a, b in zip(total, c.get_partial_derivative_orders(j))]
            assert total == target


@pytest.mark.parametrize("p,o", SHAPES)
def test_rows_are_fully_merged(p, o):
    """Tests that no row holds two terms with the same indices."""
    c = get_compiler(p, o)
    for row in c.mult_indirection:
        keys = [(t.left, t.right) for t in row]
        assert len(keys) == len(set(keys))
        assert all(t.multiplicity > 0 for t in row)
    for row in c.comp_indirection:
        keys = [(t.f_index, t.operands) for t in row]
        assert len(keys) == len(set(keys))
        assert all(t.multiplicity > 0 for t in row)


def test_lower_indirection_drops_top_order():
    """Tests that the lower indirection lists the positions of order < o derivatives."""
    c = get_compiler(2, 3)
    lower = [int(i) for i in c.lower_indirection]
    assert len(lower) == get_compiler(2, 2).size
    orders = [int(c.get_partial_derivative_orders(i).sum()) for i in lower]
    assert all(n < 3 for n in orders)


def test_constructor_checks_dependencies():
    """Tests that the dependency compilers must have the right shape."""
    with pytest.raises(ValueError):
        DSCompiler(2, 2, get_compiler(1, 1), get_compiler(2, 1))
    with pytest.raises(ValueError):
        DSCompiler(2, 2, get_compiler(1, 2), None)
    c = DSCompiler(2, 2, get_compiler(1, 2), get_compiler(2, 1))
    assert c.mult_indirection == get_compiler(2, 2).mult_indirection
    assert c.comp_indirection == get_compiler(2, 2).comp_indirection
