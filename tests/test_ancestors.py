"""Tests for the ancestor closure cache."""
from __future__ import annotations

import pytest

from famgraph.config import FamGraphConfig
from famgraph.graph import AncestorIndex
from famgraph.service import FamilyGraphService


def _chain(person, parent, n):
    """n profiles, each the parent of the next; returns oldest first."""
    people = [person(f"Gen{i}") for i in range(n)]
    for older, younger in zip(people, people[1:]):
        parent(older, younger)
    return people


class TestAncestorQueries:
    def test_chain_depths_and_paths(self, svc, person, parent):
        g2, g1, child = _chain(person, parent, 3)
        hits = svc.ancestor_paths(child.id)
        assert [(h.ancestor_id, h.depth) for h in hits] == [(g1.id, 1), (g2.id, 2)]
        assert hits[1].path == [g1.id, g2.id]

    def test_max_depth_filter(self, svc, person, parent):
        people = _chain(person, parent, 5)
        child = people[-1]
        assert [d for _, d in svc.get_ancestors(child.id, max_depth=2)] == [1, 2]

    def test_shortest_depth_wins(self, svc, person, parent):
        # top is both a grandparent and a great-grandparent of child
        top, mid, low, child = person("Top"), person("Mid"), person("Low"), person("Child")
        parent(top, mid)
        parent(mid, low)
        parent(low, child)
        parent(top, low)
        depths = dict(svc.get_ancestors(child.id))
        assert depths[top.id] == 2

    def test_no_parents(self, svc, person):
        assert svc.get_ancestors(person("Root").id) == []


class TestIncrementalMaintenance:
    def test_new_grandparent_reaches_descendants(self, svc, person, parent):
        mid, child = person("Mid"), person("Child")
        parent(mid, child)
        top = person("Top")
        parent(top, mid)
        assert dict(svc.get_ancestors(child.id)) == {mid.id: 1, top.id: 2}

    def test_removed_edge_drops_rows(self, svc, person, parent):
        top, mid, child = _chain(person, parent, 3)
        edge = next(e for e in svc.relationships_of(mid.id) if e.person_a == top.id)
        svc.remove_relationship(edge.id)
        assert svc.get_ancestors(child.id) == [(mid.id, 1)]

    def test_cached_rows_match_live_walk(self, db, svc, family):
        with db.transaction() as conn:
            index = AncestorIndex(conn, svc.max_depth)
            for p in family.values():
                cached = [(e.ancestor_id, e.depth) for e in index.cache.get(p.id)]
                live = sorted((e.ancestor_id, e.depth) for e in index.compute(p.id))
                assert sorted(cached) == live

    def test_every_cached_row_is_reachable_downward(self, db, svc, person, parent, family):
        boris = person("Boris", "Ivanov")
        vera = person("Vera", "Ivanova")
        parent(boris, family["alexander"])
        parent(vera, family["elena"])
        # Boris is also a direct parent of Anna: the shorter route wins both ways
        parent(boris, family["anna"])
        with db.transaction() as conn:
            index = AncestorIndex(conn, svc.max_depth)
            rows = conn.execute("SELECT descendant_id, ancestor_id, depth FROM ancestor_cache").fetchall()
            assert rows
            for row in rows:
                below = index.descendant_depths(row["ancestor_id"], svc.max_depth)
                assert below[row["descendant_id"]] == row["depth"]
        assert dict(svc.get_ancestors(family["anna"].id))[boris.id] == 1
        assert dict(svc.get_ancestors(family["filip"].id))[vera.id] == 2

    def test_nobody_is_their_own_ancestor(self, svc, person, parent):
        people = _chain(person, parent, 4)
        parent(people[0], people[3])
        for p in people:
            assert p.id not in dict(svc.get_ancestors(p.id))


class TestDepthBound:
    @pytest.fixture()
    def shallow(self, db):
        return FamilyGraphService(db, config=FamGraphConfig(db_path=db.db_path, max_ancestor_depth=3))

    def test_cache_bound_and_live_beyond(self, db, shallow):
        people = [shallow.create_profile(first_name=f"Gen{i}") for i in range(6)]
        for older, younger in zip(people, people[1:]):
            shallow.add_relationship(older.id, younger.id, "parent")
        child = people[-1]

        assert len(shallow.get_ancestors(child.id)) == 3
        # deeper than the cache bound is walked live
        assert [d for _, d in shallow.get_ancestors(child.id, max_depth=5)] == [1, 2, 3, 4, 5]
        stored = db.run_read(lambda conn: AncestorIndex(conn, 3).cache.get(child.id))
        assert max(e.depth for e in stored) == 3


class TestColdCache:
    def test_read_through_after_clear(self, db, svc, person, parent):
        g1, child = _chain(person, parent, 2)
        with db.transaction() as conn:
            conn.execute("DELETE FROM ancestor_cache")
        assert svc.get_ancestors(child.id) == [(g1.id, 1)]

    def test_rebuild_counts_rows(self, svc, person, parent):
        _chain(person, parent, 4)
        # 1 + 2 + 3 rows for the three non-root profiles
        assert svc.rebuild_ancestor_index() == 6
