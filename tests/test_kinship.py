"""Tests for kinship phrase resolution."""
from __future__ import annotations

import pytest

from famgraph.kinship import KinshipPhraseResolver, LexicalPatternTable, default_table
from famgraph.models import Gender, ResolutionSource


@pytest.fixture()
def lexical():
    return KinshipPhraseResolver()


def _paths(results):
    return [r.path_expr for r in results]


class TestLexical:
    @pytest.mark.parametrize(
        "phrase,path,label",
        [
            ("сестра мамы", "P.S", "Тётя"),
            ("брат папы", "P.S", "Дядя"),
            ("дочка брата", "S.C", "Племянница"),
            ("бабушка папы", "P.P.P", "Прабабушка"),
            ("моя двоюродная сестра", "P.S.C", "Двоюродная сестра"),
            ("жена брата", "S.M", "Невестка"),
            ("тётя", "P.S", "Тётя"),
        ],
    )
    def test_russian_genitive_chains(self, lexical, phrase, path, label):
        (result,) = lexical.resolve(None, phrase, "ru")
        assert result.path_expr == path
        assert result.label == label
        assert result.source is ResolutionSource.LEXICAL
        assert result.matched_person_ids == []

    @pytest.mark.parametrize(
        "phrase,path,label",
        [
            ("my mother's sister", "P.S", "Aunt"),
            ("sister of my mother", "P.S", "Aunt"),
            ("father's father", "P.P", "Grandfather"),
            ("my cousin", "P.S.C", "First Cousin"),
            ("daughter of my brother", "S.C", "Niece"),
        ],
    )
    def test_english(self, lexical, phrase, path, label):
        (result,) = lexical.resolve(None, phrase)
        assert result.path_expr == path
        assert result.label == label

    def test_mother_child_collapses_to_sibling(self, lexical):
        (result,) = lexical.resolve(None, "дочь мамы", "ru")
        assert result.path_expr == "S"
        assert result.label == "Сестра"

    def test_ambiguous_term_yields_every_path(self, lexical):
        assert sorted(_paths(lexical.resolve(None, "brother-in-law"))) == ["M.S", "S.M"]

    def test_unknown_word(self, lexical):
        assert lexical.resolve(None, "flibbertigibbet") == []
        assert lexical.resolve(None, "сестра флибустьера", "ru") == []
        assert lexical.resolve(None, "") == []

    def test_register_new_pattern(self, lexical):
        assert lexical.resolve(None, "тётушка", "ru") == []
        lexical.register("тётушка", "P.S", "female")
        (result,) = lexical.resolve(None, "тётушка", "ru")
        assert result.label == "Тётя"


class TestTable:
    def test_lookup_normalizes(self):
        table = default_table()
        (entry,) = table.lookup("  МАМА ")
        assert str(entry.path) == "P"
        assert entry.gender is Gender.FEMALE

    def test_gender_hint_only_on_last_hop(self):
        table = LexicalPatternTable()
        table.register("grandma", "P.P", "female")
        (interp,) = table.interpret("grandma")
        assert [g for _, g in interp.hops] == [None, Gender.FEMALE]

    def test_empty_pattern_rejected(self):
        with pytest.raises(ValueError):
            LexicalPatternTable().register("  ", "P")


class TestStructured:
    def test_mothers_sister(self, svc, maternal):
        (result,) = svc.resolve_kinship_phrase(maternal["filip"].id, "сестра мамы", "ru")
        assert result.source is ResolutionSource.STRUCTURED
        assert result.matched_person_ids == [maternal["maria"].id]
        assert result.label == "Тётя"

    def test_mother_without_sister(self, svc, family):
        (result,) = svc.resolve_kinship_phrase(family["filip"].id, "сестра мамы", "ru")
        assert result.source is ResolutionSource.LEXICAL
        assert result.path_expr == "P.S"
        assert result.matched_person_ids == []
        assert result.label == "Тётя"

    def test_unreadable_profile_row_falls_back(self, db, svc, maternal):
        with db.transaction() as conn:
            conn.execute("UPDATE profiles SET gender = 'robot' WHERE id = ?", (maternal["elena"].id,))
        (result,) = svc.resolve_kinship_phrase(maternal["filip"].id, "сестра мамы", "ru")
        assert result.source is ResolutionSource.LEXICAL
        assert result.path_expr == "P.S"
        assert result.matched_person_ids == []

    def test_gender_filter_on_each_hop(self, svc, maternal):
        (result,) = svc.resolve_kinship_phrase(maternal["filip"].id, "mother's brother")
        assert result.matched_person_ids == [maternal["pavel"].id]
        assert result.label == "Uncle"

    def test_ego_is_never_returned(self, svc, maternal):
        # Filip is his father's only son, so the walk finds nobody
        (result,) = svc.resolve_kinship_phrase(maternal["filip"].id, "son of my father")
        assert result.source is ResolutionSource.LEXICAL
        assert result.matched_person_ids == []
        assert result.path_expr == "S"

    def test_only_matching_readings_survive(self, svc, maternal):
        results = svc.resolve_kinship_phrase(maternal["alexander"].id, "brother-in-law")
        assert [(r.path_expr, r.matched_person_ids) for r in results] == [("M.S", [maternal["pavel"].id])]

    def test_unknown_ego_falls_back(self, svc, maternal):
        (result,) = svc.resolve_kinship_phrase("ghost", "сестра мамы", "ru")
        assert result.source is ResolutionSource.LEXICAL
        assert result.path_expr == "P.S"

    def test_no_ego_is_lexical(self, svc, maternal):
        (result,) = svc.resolve_kinship_phrase(None, "сестра мамы", "ru")
        assert result.source is ResolutionSource.LEXICAL
