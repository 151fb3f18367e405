from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import AlreadyProcessedError, AuthorizationError, NotFoundError, ValidationError
from app.models import (
    Group,
    GroupJoinRequest,
    GroupMember,
    GroupMemberRole,
    GroupPrivacy,
    GroupStatus,
    JoinRequestStatus,
    User,
)
from app.services.notifications import notify


def get_group_or_404(session: Session, group_id: int) -> Group:
    group = session.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    return group


def is_group_member(session: Session, group_id: int, freelancer_id: int) -> bool:
    member = session.exec(
        select(GroupMember)
        .where(GroupMember.group_id == group_id)
        .where(GroupMember.freelancer_id == freelancer_id)
    ).first()
    return member is not None


def require_group_leader(group: Group, user: User) -> None:
    if group.leader_id != user.id:
        raise AuthorizationError("Only the group leader can do this")


def create_group(
    session: Session,
    leader: User,
    *,
    name: str,
    description: str = "",
    max_members: int = 700,
    privacy: GroupPrivacy = GroupPrivacy.public,
) -> Group:
    if not name or not name.strip():
        raise ValidationError("Group name is required")
    if max_members < 1 or max_members > settings.group_max_members_limit:
        raise ValidationError(
            f"Max members must be between 1 and {settings.group_max_members_limit}"
        )

    group = Group(
        leader_id=leader.id,
        name=name.strip(),
        description=(description or "").strip(),
        max_members=max_members,
        current_members=1,
        privacy=privacy,
        status=GroupStatus.active,
    )
    session.add(group)
    session.flush()
    session.add(
        GroupMember(
            group_id=group.id,
            freelancer_id=leader.id,
            role=GroupMemberRole.leader,
        )
    )
    return group


def _check_joinable(session: Session, group: Group, freelancer_id: int) -> None:
    if group.status != GroupStatus.active:
        raise ValidationError("This group is not active")
    if is_group_member(session, group.id, freelancer_id):
        raise ValidationError("You are already a member of this group")
    if group.current_members >= group.max_members:
        raise ValidationError(f"The group is full ({group.max_members} members)")


def _admit(session: Session, group: Group, freelancer: User) -> GroupMember:
    result = session.exec(
        update(Group)
        .where(Group.id == group.id)
        .where(Group.current_members < Group.max_members)
        .values(current_members=Group.current_members + 1, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        raise ValidationError(f"The group is full ({group.max_members} members)")

    member = GroupMember(group_id=group.id, freelancer_id=freelancer.id, role=GroupMemberRole.member)
    session.add(member)
    session.flush()
    session.refresh(group)
    notify(
        session,
        user_id=group.leader_id,
        event_type="group_member_joined",
        title="عضو جديد انضم للجروب",
        message=f'انضم {freelancer.full_name} إلى جروب "{group.name}"',
    )
    return member


def join_group(session: Session, group: Group, freelancer: User) -> GroupMember:
    """Join a public group straight away; private groups go through ``request_to_join``."""
    _check_joinable(session, group, freelancer.id)
    if group.privacy == GroupPrivacy.private:
        raise AuthorizationError("This group is private, send a join request to its leader")
    return _admit(session, group, freelancer)


def _drop_member(session: Session, group: Group, freelancer_id: int) -> None:
    member = session.exec(
        select(GroupMember)
        .where(GroupMember.group_id == group.id)
        .where(GroupMember.freelancer_id == freelancer_id)
    ).first()
    if member is None:
        raise NotFoundError("Member not found in this group")

    session.delete(member)
    session.exec(
        update(Group)
        .where(Group.id == group.id)
        .values(current_members=Group.current_members - 1, updated_at=datetime.utcnow())
    )
    session.flush()
    session.refresh(group)


def leave_group(session: Session, group: Group, freelancer: User) -> None:
    if group.leader_id == freelancer.id:
        raise ValidationError("The group leader cannot leave the group")
    if not is_group_member(session, group.id, freelancer.id):
        raise ValidationError("You are not a member of this group")
    _drop_member(session, group, freelancer.id)


def remove_member(session: Session, group: Group, leader: User, freelancer_id: int) -> None:
    require_group_leader(group, leader)
    if freelancer_id == group.leader_id:
        raise ValidationError("The group leader cannot be removed")
    _drop_member(session, group, freelancer_id)
    notify(
        session,
        user_id=freelancer_id,
        event_type="group_member_removed",
        title="تمت إزالتك من الجروب",
        message=f'قام قائد الجروب بإزالتك من جروب "{group.name}"',
    )


def list_members(session: Session, group_id: int) -> list[GroupMember]:
    return list(
        session.exec(
            select(GroupMember)
            .where(GroupMember.group_id == group_id)
            .order_by(GroupMember.joined_at, GroupMember.id)
        ).all()
    )


def get_join_request_or_404(session: Session, group: Group, request_id: int) -> GroupJoinRequest:
    request = session.get(GroupJoinRequest, request_id)
    if request is None or request.group_id != group.id:
        raise NotFoundError("Join request not found")
    return request


def request_to_join(session: Session, group: Group, freelancer: User) -> GroupJoinRequest:
    _check_joinable(session, group, freelancer.id)
    pending = session.exec(
        select(GroupJoinRequest)
        .where(GroupJoinRequest.group_id == group.id)
        .where(GroupJoinRequest.freelancer_id == freelancer.id)
        .where(GroupJoinRequest.status == JoinRequestStatus.pending)
    ).first()
    if pending is not None:
        raise ValidationError("You already have a pending join request for this group", request_id=pending.id)

    request = GroupJoinRequest(group_id=group.id, freelancer_id=freelancer.id)
    session.add(request)
    session.flush()
    notify(
        session,
        user_id=group.leader_id,
        event_type="group_join_requested",
        title="طلب انضمام جديد",
        message=f'طلب {freelancer.full_name} الانضمام إلى جروب "{group.name}"',
    )
    return request


def list_join_requests(
    session: Session,
    group: Group,
    leader: User,
    status: Optional[JoinRequestStatus] = JoinRequestStatus.pending,
) -> list[GroupJoinRequest]:
    require_group_leader(group, leader)
    statement = select(GroupJoinRequest).where(GroupJoinRequest.group_id == group.id)
    if status is not None:
        statement = statement.where(GroupJoinRequest.status == status)
    return list(session.exec(statement.order_by(GroupJoinRequest.created_at, GroupJoinRequest.id)).all())


def review_join_request(
    session: Session,
    group: Group,
    request: GroupJoinRequest,
    leader: User,
    decision: JoinRequestStatus,
) -> GroupJoinRequest:
    """Approve or reject a pending request; approval admits the freelancer in the same transaction."""
    require_group_leader(group, leader)
    if decision == JoinRequestStatus.pending:
        raise ValidationError("A join request can only be approved or rejected")

    freelancer = session.get(User, request.freelancer_id)
    if decision == JoinRequestStatus.approved:
        _check_joinable(session, group, freelancer.id)

    result = session.exec(
        update(GroupJoinRequest)
        .where(GroupJoinRequest.id == request.id)
        .where(GroupJoinRequest.status == JoinRequestStatus.pending)
        .values(status=decision, reviewed_at=datetime.utcnow(), reviewed_by=leader.id)
    )
    session.refresh(request)
    if result.rowcount != 1:
        raise AlreadyProcessedError(
            f"Join request {request.id} was already {request.status.value}",
            current_status=request.status.value,
        )

    if decision == JoinRequestStatus.approved:
        _admit(session, group, freelancer)
        notify(
            session,
            user_id=freelancer.id,
            event_type="group_join_approved",
            title="تم قبول طلب انضمامك",
            message=f'تم قبول طلب انضمامك لجروب "{group.name}"',
        )
    else:
        notify(
            session,
            user_id=freelancer.id,
            event_type="group_join_rejected",
            title="تم رفض طلب انضمامك",
            message=f'تم رفض طلب انضمامك لجروب "{group.name}"',
        )
    return request
