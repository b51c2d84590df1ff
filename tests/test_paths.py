"""Tests for the P/C/S/M path algebra and relationship labels."""

import pytest

from famgraph.graph.paths import PathExpr, compose


class TestParsing:
    def test_round_trip(self):
        assert str(PathExpr.parse("P.S.C")) == "P.S.C"
        assert str(PathExpr.parse(" p.s ")) == "P.S"

    def test_empty_is_self(self):
        assert PathExpr.parse("").classify().kind == "self"

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            PathExpr.parse("P.X")


class TestCanonicalForm:
    def test_parent_child_collapses_to_sibling(self):
        assert str(PathExpr.parse("P.C").canonical()) == "S"

    def test_nested_reduction(self):
        assert str(PathExpr.parse("P.P.C.C").canonical()) == "P.S.C"

    def test_child_parent_is_left_alone(self):
        assert str(PathExpr.parse("C.P").canonical()) == "C.P"

    def test_generation_offset(self):
        assert PathExpr.parse("P.P.S.C").generation_offset == 1
        assert PathExpr.parse("C.C").generation_offset == -2


class TestCompose:
    @pytest.mark.parametrize(
        "up,down,expected",
        [
            (1, 1, "S"),
            (2, 1, "P.S"),
            (1, 2, "S.C"),
            (2, 2, "P.S.C"),
            (3, 2, "P.P.S.C"),
            (3, 3, "P.P.S.C.C"),
        ],
    )
    def test_compose(self, up, down, expected):
        assert str(compose(up, down)) == expected

    def test_compose_accepts_expressions(self):
        assert compose(PathExpr.parse("P.P"), PathExpr.parse("C.C")) == PathExpr.parse("P.S.C")


class TestClassify:
    def test_cousin_degree_and_removal(self):
        kc = compose(3, 2).classify()
        assert (kc.kind, kc.degree, kc.removed) == ("cousin", 1, 1)

    def test_direct_lines(self):
        assert PathExpr.parse("P.P.P").classify() == ("ancestor", 3, 0)
        assert PathExpr.parse("C").classify() == ("descendant", 1, 0)

    def test_in_law_kinds(self):
        assert PathExpr.parse("M.P").classify().kind == "parent_in_law"
        assert PathExpr.parse("S.M").classify().kind == "sibling_spouse"

    def test_unclassifiable(self):
        assert PathExpr.parse("C.P").classify().kind == "relative"


class TestLabels:
    def test_english(self):
        assert PathExpr.parse("P.P").label("en", "male") == "Grandfather"
        assert PathExpr.parse("P.P.P").label("en", "female") == "Great-grandmother"
        assert PathExpr.parse("P.S").label("en", "male") == "Uncle"
        assert PathExpr.parse("S").label("en") == "Sibling"
        assert compose(2, 2).label("en") == "First Cousin"
        assert compose(3, 2).label("en") == "First Cousin, 1x removed"
        assert compose(4, 4).label("en") == "Third Cousin"
        assert PathExpr.parse("M.P").label("en", "male") == "Father-in-law"

    def test_russian(self):
        assert PathExpr.parse("P.S").label("ru", "female") == "Тётя"
        assert PathExpr.parse("S.C").label("ru", "female") == "Племянница"
        assert PathExpr.parse("P.P.P").label("ru", "female") == "Прабабушка"
        assert PathExpr.parse("S").label("ru") == "Брат/Сестра"
        assert compose(2, 2).label("ru", "male") == "Двоюродный брат"
        assert compose(3, 3).label("ru", "female") == "Троюродная сестра"
        assert compose(4, 4).label("ru", "male") == "Четвероюродный брат"

    def test_distant(self):
        assert compose(5, 5).label("ru") == "Дальний родственник"
        assert compose(12, 12).label("en") == "Distant Relative"
