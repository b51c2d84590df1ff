"""Tests for relationship paths, shared ancestors and depth-bucketed family."""
from __future__ import annotations

import pytest

from famgraph.errors import NotFoundError, ValidationError
from famgraph.graph import degree_of_separation
from famgraph.models import EdgeType, PathDirection, RelationshipCategory
from famgraph.storage import ProfileRepository


def _names(profiles):
    return [p.first_name for p in profiles]


def _deactivate(db, profile):
    with db.transaction() as conn:
        ProfileRepository(conn).deactivate(profile.id)


class TestRelationshipPath:
    def test_mothers_sister(self, svc, maternal):
        result = svc.relationship_path(maternal["filip"].id, maternal["maria"].id)
        assert result.found is True
        assert result.path_length == 3
        assert [s.profile_id for s in result.steps] == [
            maternal["filip"].id,
            maternal["elena"].id,
            maternal["vera"].id,
            maternal["maria"].id,
        ]
        assert [s.step for s in result.steps] == ["P", "P", "C", None]
        assert [s.direction for s in result.steps] == [PathDirection.UP, PathDirection.UP, PathDirection.DOWN, None]
        assert result.steps[0].relationship_type == "parent"
        assert result.steps[2].relationship_type == "child"
        assert result.path_expr == "P.S"
        assert result.label == "Aunt"
        assert result.category is RelationshipCategory.EXTENDED
        assert result.degree_of_separation == "3rd degree"

    def test_russian_labels(self, svc, maternal):
        result = svc.relationship_path(maternal["filip"].id, maternal["maria"].id, locale="ru")
        assert result.label == "Тётя"
        assert result.degree_of_separation == "3-я степень родства"

    def test_half_sibling_through_shared_parent(self, svc, family):
        result = svc.relationship_path(family["filip"].id, family["anna"].id)
        assert result.path_expr == "S"
        assert result.label == "Sister"
        assert result.category is RelationshipCategory.DIRECT
        assert result.path_length == 2

    def test_spouse_and_in_law(self, svc, maternal):
        spouse = svc.relationship_path(maternal["alexander"].id, maternal["elena"].id)
        assert (spouse.path_expr, spouse.label, spouse.degree_of_separation) == ("M", "Wife", "Directly related")

        in_law = svc.relationship_path(maternal["alexander"].id, maternal["vera"].id)
        assert in_law.path_expr == "M.P"
        assert in_law.label == "Mother-in-law"
        assert in_law.category is RelationshipCategory.IN_LAW

    def test_same_person(self, svc, family):
        result = svc.relationship_path(family["filip"].id, family["filip"].id)
        assert result.found is True
        assert result.path_length == 0
        assert [s.profile_id for s in result.steps] == [family["filip"].id]
        assert result.degree_of_separation == "Same person"
        assert result.category is RelationshipCategory.DIRECT

    def test_unconnected(self, svc, person, family):
        stranger = person("Kira", "Petrova")
        result = svc.relationship_path(family["filip"].id, stranger.id)
        assert result.found is False
        assert result.steps == []
        assert result.path_expr is None
        assert result.label == "No connection found"
        assert result.degree_of_separation == "Not connected"

    def test_max_depth_limits_the_walk(self, svc, maternal):
        result = svc.relationship_path(maternal["filip"].id, maternal["maria"].id, max_depth=2)
        assert result.found is False

    def test_discovered_relative_hop_has_no_path_expression(self, svc, person, family):
        kira = person("Kira", "Petrova")
        svc.add_relationship(family["filip"].id, kira.id, EdgeType.DISCOVERED_RELATIVE)
        result = svc.relationship_path(family["filip"].id, kira.id)
        assert result.found is True
        assert result.path_expr is None
        assert result.label == "Connected"
        assert result.category is RelationshipCategory.OTHER
        assert result.steps[0].step is None
        assert result.steps[0].relationship_type == "discovered_relative"
        assert result.steps[0].direction is PathDirection.LATERAL

    def test_inactive_profiles_are_not_walked(self, db, svc, maternal):
        _deactivate(db, maternal["vera"])
        assert svc.relationship_path(maternal["filip"].id, maternal["maria"].id).found is False

    def test_invalid_arguments(self, db, svc, family):
        with pytest.raises(ValidationError):
            svc.relationship_path(family["filip"].id, family["anna"].id, max_depth=0)
        with pytest.raises(NotFoundError):
            svc.relationship_path(family["filip"].id, "ghost")
        _deactivate(db, family["anna"])
        with pytest.raises(NotFoundError):
            svc.relationship_path(family["filip"].id, family["anna"].id)


@pytest.mark.parametrize(
    "hops,text",
    [(0, "Same person"), (1, "Directly related"), (2, "2nd degree"), (4, "4th degree"), (11, "11th degree"), (21, "21st degree")],
)
def test_degree_of_separation(hops, text):
    assert degree_of_separation(hops) == text


class TestSharedAncestors:
    def test_ranked_by_total_depth(self, svc, person, parent, family):
        boris = person("Boris", "Ivanov", birth_date="1935")
        parent(boris, family["alexander"])
        shared = svc.shared_ancestors(family["filip"].id, family["anna"].id)
        assert [(s.ancestor_id, s.depth_a, s.depth_b) for s in shared] == [
            (family["alexander"].id, 1, 1),
            (boris.id, 2, 2),
        ]
        assert shared[1].total_depth == 4
        assert shared[1].display_name == "Boris Ivanov"
        assert shared[1].birth_year == 1935

    def test_uneven_depths(self, svc, maternal):
        (vera,) = svc.shared_ancestors(maternal["filip"].id, maternal["maria"].id)
        assert (vera.ancestor_id, vera.depth_a, vera.depth_b) == (maternal["vera"].id, 2, 1)

    def test_unrelated_pair(self, svc, person, family):
        assert svc.shared_ancestors(family["filip"].id, person("Kira").id) == []

    def test_invalid_pairs(self, svc, family):
        with pytest.raises(ValidationError):
            svc.shared_ancestors(family["filip"].id, family["filip"].id)
        with pytest.raises(NotFoundError):
            svc.shared_ancestors(family["filip"].id, "ghost")


class TestRelativesByDepth:
    def test_grandchild_view(self, svc, person, parent, maternal):
        boris = person("Boris", "Ivanov")
        parent(boris, maternal["alexander"])
        view = svc.relatives_by_depth(maternal["filip"].id)
        assert _names(view.parents) == ["Alexander", "Elena"]
        assert _names(view.grandparents) == ["Boris", "Vera"]
        assert _names(view.siblings) == ["Anna"]
        assert view.children == [] and view.spouses == []

    def test_grandparent_view(self, svc, maternal):
        view = svc.relatives_by_depth(maternal["vera"].id)
        assert _names(view.children) == ["Elena", "Maria", "Pavel"]
        assert _names(view.grandchildren) == ["Filip"]
        assert view.parents == [] and view.grandparents == []

    def test_spouses_and_siblings(self, svc, maternal):
        view = svc.relatives_by_depth(maternal["elena"].id)
        assert _names(view.spouses) == ["Alexander"]
        assert _names(view.siblings) == ["Maria", "Pavel"]
        assert _names(view.parents) == ["Vera"]

    def test_direct_parent_is_not_also_a_grandparent(self, svc, parent, maternal):
        parent(maternal["vera"], maternal["filip"])
        view = svc.relatives_by_depth(maternal["filip"].id)
        assert "Vera" in _names(view.parents)
        assert "Vera" not in _names(view.grandparents)

    def test_inactive_relatives_hidden(self, db, svc, maternal):
        _deactivate(db, maternal["pavel"])
        assert _names(svc.relatives_by_depth(maternal["vera"].id).children) == ["Elena", "Maria"]

    def test_unknown_profile(self, svc):
        with pytest.raises(NotFoundError):
            svc.relatives_by_depth("ghost")
