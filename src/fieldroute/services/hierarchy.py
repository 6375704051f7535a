"""Role-based visibility over visits and profiles.

* seller: only their own visits.
* manager: their own visits plus those of sellers whose ``manager_id`` is them.
* admin: everything; visits are attributed to a team through the assignee's
  manager so an admin can narrow the view to one manager's team.

The same rules back listing, distribution target selection and team edits.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..models.domain import Profile, Role, Visit
from .errors import AuthorizationError


def is_direct_report(member: Optional[Profile], manager: Profile) -> bool:
    return member is not None and member.manager_id == manager.id


def team_manager_id(profile: Optional[Profile]) -> Optional[str]:
    """The manager a profile's work rolls up to (a manager owns their own team)."""

    if profile is None:
        return None
    if profile.role is Role.MANAGER:
        return profile.id
    if profile.role is Role.SELLER:
        return profile.manager_id
    return None


def can_view_profile(actor: Profile, member: Optional[Profile]) -> bool:
    if member is None:
        return False
    if actor.role is Role.ADMIN:
        return True
    if member.id == actor.id:
        return True
    if actor.role is Role.MANAGER:
        return is_direct_report(member, actor)
    return False


def can_view_visit(actor: Profile, visit: Visit, assignee: Optional[Profile]) -> bool:
    if actor.role is Role.ADMIN:
        return True
    if visit.user_id == actor.id:
        return True
    if actor.role is Role.MANAGER:
        return is_direct_report(assignee, actor)
    return False


def visible_visits(
    actor: Profile,
    visits: Iterable[Visit],
    profiles_by_id: Mapping[str, Profile],
    *,
    manager_filter: Optional[str] = None,
) -> list[Visit]:
    """Subset of ``visits`` the actor may see.

    ``manager_filter`` is only honoured for admins and keeps the visits whose
    assignee belongs to that manager's team.
    """

    result = [
        visit
        for visit in visits
        if can_view_visit(actor, visit, profiles_by_id.get(visit.user_id))
    ]
    if manager_filter and actor.role is Role.ADMIN:
        result = [
            visit
            for visit in result
            if team_manager_id(profiles_by_id.get(visit.user_id)) == manager_filter
        ]
    return result


def visible_profiles(actor: Profile, profiles: Iterable[Profile]) -> list[Profile]:
    return [profile for profile in profiles if can_view_profile(actor, profile)]


def visible_assignee_ids(actor: Profile, profiles: Sequence[Profile]) -> Optional[set[str]]:
    """Assignee ids to push down into store queries; ``None`` means unrestricted."""

    if actor.role is Role.ADMIN:
        return None
    ids = {actor.id}
    if actor.role is Role.MANAGER:
        ids.update(profile.id for profile in profiles if is_direct_report(profile, actor))
    return ids


def can_target(actor: Profile, target: Optional[Profile]) -> bool:
    """Whether ``target`` may receive a distribution from ``actor``."""

    if target is None:
        return False
    if actor.role is Role.ADMIN:
        return target.role is Role.MANAGER
    if actor.role is Role.MANAGER:
        return target.role is Role.SELLER and is_direct_report(target, actor)
    return False


def distribution_targets(actor: Profile, profiles: Iterable[Profile]) -> list[Profile]:
    return [profile for profile in profiles if can_target(actor, profile)]


def require_manager_or_admin(actor: Profile, action: str) -> None:
    if actor.role not in (Role.ADMIN, Role.MANAGER):
        raise AuthorizationError(f"Only managers and admins can {action}.")


def require_admin(actor: Profile, action: str) -> None:
    if actor.role is not Role.ADMIN:
        raise AuthorizationError(f"Only admins can {action}.")
