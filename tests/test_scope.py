"""
Tests for ministry/scope.py — selections, user scope, labels and ScopeCascade
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ministry.scope import (
    ScopeCascade,
    ScopeSelection,
    UserScope,
    compute_hierarchical_scope_label,
    get_scope_level,
)


class TestScopeSelection:
    def test_with_region_clears_descendants(self):
        sel = ScopeSelection(1, 10, 100, 500).with_region(2)
        assert sel == ScopeSelection(region_id=2)

    def test_with_university_clears_small_group_only(self):
        sel = ScopeSelection(1, 10, 100, 500).with_university("11")
        assert sel == ScopeSelection(1, 11, None, 500)

    def test_with_region_all_clears_everything(self):
        assert ScopeSelection(1, 10).with_region("all").is_empty

    def test_orphan_ids_rejected(self):
        with pytest.raises(ValueError):
            ScopeSelection(university_id=10)
        with pytest.raises(ValueError):
            ScopeSelection(region_id=1, small_group_id=100)
        with pytest.raises(ValueError):
            ScopeSelection(alumni_group_id=500)

    def test_params_round_trip(self):
        sel = ScopeSelection.from_params({"regionId": "1", "universityId": "all", "alumniGroupId": 500})
        assert sel == ScopeSelection(1, None, None, 500)
        assert sel.to_params() == {
            "regionId": 1, "universityId": None, "smallGroupId": None, "alumniGroupId": 500,
        }


class TestUserScope:
    def test_from_api_reads_ids_and_names(self, sample):
        user = UserScope.from_api(sample["scopes"]["university"])
        assert user.scope == "university"
        assert user.region_id == 1
        assert user.university_id == 10
        assert user.university_name == "Makerere"
        assert not user.is_superadmin

    def test_unknown_scope(self):
        with pytest.raises(ValueError):
            UserScope.from_api({"scope": "planet"})

    @pytest.mark.parametrize("scope,expected", [
        ("superadmin", {"region": True, "university": True, "smallGroup": True, "alumniGroup": True}),
        ("region", {"region": False, "university": True, "smallGroup": True, "alumniGroup": True}),
        ("university", {"region": False, "university": False, "smallGroup": True, "alumniGroup": False}),
        ("smallgroup", {"region": False, "university": False, "smallGroup": False, "alumniGroup": False}),
    ])
    def test_visible_fields(self, scope, expected):
        assert UserScope(scope).visible_fields() == expected

    def test_default_selection_drops_orphans(self):
        user = UserScope("university", university_id=10)
        assert user.default_selection() == ScopeSelection()

    def test_constrain_pins_hidden_fields(self, sample):
        user = UserScope.from_api(sample["scopes"]["region"])
        requested = ScopeSelection(2, 20)
        assert user.constrain(requested) == ScopeSelection(1, 20)

    def test_constrain_leaves_superadmin_alone(self):
        requested = ScopeSelection(2, 20)
        assert UserScope("superadmin").constrain(requested) == requested

    def test_constrain_small_group_user(self, sample):
        user = UserScope.from_api(sample["scopes"]["smallgroup"])
        assert user.constrain(ScopeSelection()) == ScopeSelection(1, 10, 100)

    def test_to_dict(self):
        assert UserScope("region", region_id=1).to_dict()["regionId"] == 1


class TestLabels:
    def test_names_joined(self, sample):
        assert compute_hierarchical_scope_label(sample["events"][1]) == "North Makerere"

    @pytest.mark.parametrize("event,label", [
        ({"alumniGroupId": 5, "regionId": 1}, "Alumni Small Group"),
        ({"smallGroupId": 5, "universityId": 2, "regionId": 1}, "Small Group"),
        ({"universityId": 2, "regionId": 1}, "University"),
        ({"regionId": 1}, "Region"),
        ({}, "Super Admin"),
    ])
    def test_fallback_labels(self, event, label):
        assert compute_hierarchical_scope_label(event) == label

    def test_scope_level(self):
        assert get_scope_level({"alumniGroupId": 5}) == "Alumni Group"
        assert get_scope_level({"universityId": 2}) == "University"
        assert get_scope_level({}) == "Super Admin"


class TestScopeCascade:
    def test_initial_state(self, client):
        cascade = ScopeCascade(client)
        assert cascade.load_regions() == [{"id": 1, "name": "North"}, {"id": 2, "name": "South"}]
        assert cascade.enabled() == {
            "region": True, "university": False, "smallGroup": False, "alumniGroup": False,
        }
        assert client.calls_to("list_universities") == []

    def test_select_region_loads_universities_and_alumni(self, client):
        cascade = ScopeCascade(client)
        cascade.select_region("1")
        assert [u["id"] for u in cascade.universities] == [10, 11]
        assert [a["id"] for a in cascade.alumni_groups] == [500]
        assert cascade.enabled()["alumniGroup"]
        assert not cascade.enabled()["smallGroup"]

    def test_changing_region_clears_children(self, client):
        cascade = ScopeCascade(client)
        cascade.select_region(1)
        cascade.select_university(10)
        cascade.select_small_group(100)
        cascade.select_region(2)
        assert cascade.selection == ScopeSelection(region_id=2)
        assert cascade.small_groups == []
        assert [u["id"] for u in cascade.universities] == [20]

    def test_clearing_region_fetches_nothing(self, client):
        cascade = ScopeCascade(client)
        cascade.select_region("all")
        assert cascade.universities == []
        assert client.calls_to("list_universities") == []

    def test_select_university_loads_small_groups(self, client):
        cascade = ScopeCascade(client)
        cascade.select_region(1)
        cascade.select_university(10)
        assert [g["name"] for g in cascade.small_groups] == ["Alpha", "Beta"]
        cascade.select_university("all")
        assert cascade.small_groups == []

    def test_failed_child_fetch_keeps_parent(self, make_client, make_error):
        client = make_client(list_universities=make_error())
        cascade = ScopeCascade(client)
        cascade.select_region(1)
        assert cascade.selection.region_id == 1
        assert cascade.universities == []
        assert cascade.errors == {"universities": "Failed to load universities"}
        assert [a["id"] for a in cascade.alumni_groups] == [500]

    def test_restore(self, client):
        cascade = ScopeCascade(client)
        sel = cascade.restore(ScopeSelection(1, 10, 101, 500))
        assert sel == ScopeSelection(1, 10, 101, 500)
        assert cascade.options()["smallGroups"][1]["id"] == 101
