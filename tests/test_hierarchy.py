from fieldroute.models.domain import Profile, Role, Visit
from fieldroute.services import hierarchy

ADMIN = Profile(id="a1", role=Role.ADMIN)
MANAGER = Profile(id="m1", role=Role.MANAGER)
OTHER_MANAGER = Profile(id="m2", role=Role.MANAGER)
SELLER = Profile(id="s1", role=Role.SELLER, manager_id="m1")
OTHER_SELLER = Profile(id="s2", role=Role.SELLER, manager_id="m2")
PROFILES = {p.id: p for p in (ADMIN, MANAGER, OTHER_MANAGER, SELLER, OTHER_SELLER)}


def _visit(visit_id: str, user_id: str) -> Visit:
    return Visit(id=visit_id, point_id=f"p-{visit_id}", user_id=user_id)


VISITS = [_visit("v1", "s1"), _visit("v2", "s2"), _visit("v3", "m1"), _visit("v4", "m2")]


def _ids(visits) -> list[str]:
    return [visit.id for visit in visits]


def test_seller_sees_only_own_visits() -> None:
    assert _ids(hierarchy.visible_visits(SELLER, VISITS, PROFILES)) == ["v1"]


def test_manager_sees_own_and_direct_reports() -> None:
    assert _ids(hierarchy.visible_visits(MANAGER, VISITS, PROFILES)) == ["v1", "v3"]


def test_admin_sees_everything_and_can_narrow_by_team() -> None:
    assert _ids(hierarchy.visible_visits(ADMIN, VISITS, PROFILES)) == ["v1", "v2", "v3", "v4"]
    assert _ids(hierarchy.visible_visits(ADMIN, VISITS, PROFILES, manager_filter="m2")) == ["v2", "v4"]


def test_manager_filter_is_ignored_for_non_admins() -> None:
    assert _ids(hierarchy.visible_visits(MANAGER, VISITS, PROFILES, manager_filter="m2")) == ["v1", "v3"]


def test_direct_report_is_a_manager_id_match() -> None:
    assert hierarchy.is_direct_report(SELLER, MANAGER)
    assert not hierarchy.is_direct_report(OTHER_SELLER, MANAGER)
    assert not hierarchy.is_direct_report(None, MANAGER)


def test_visible_assignee_ids() -> None:
    assert hierarchy.visible_assignee_ids(ADMIN, list(PROFILES.values())) is None
    assert hierarchy.visible_assignee_ids(MANAGER, list(PROFILES.values())) == {"m1", "s1"}
    assert hierarchy.visible_assignee_ids(SELLER, list(PROFILES.values())) == {"s1"}


def test_distribution_targets_follow_role() -> None:
    everyone = list(PROFILES.values())
    assert [p.id for p in hierarchy.distribution_targets(ADMIN, everyone)] == ["m1", "m2"]
    assert [p.id for p in hierarchy.distribution_targets(MANAGER, everyone)] == ["s1"]
    assert hierarchy.distribution_targets(SELLER, everyone) == []


def test_manager_cannot_target_a_manager_reporting_to_them() -> None:
    nested = Profile(id="m3", role=Role.MANAGER, manager_id="m1")
    assert hierarchy.is_direct_report(nested, MANAGER)
    assert not hierarchy.can_target(MANAGER, nested)
