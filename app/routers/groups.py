from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel import Session, select

from app.dependencies import get_current_active_user, get_current_freelancer, get_db
from app.models import Group, GroupJoinRequest, GroupMember, GroupStatus, JoinRequestStatus, User
from app.schemas.group import (
    CommissionPreviewRead,
    GroupCreate,
    GroupJoinRequestRead,
    GroupMemberRead,
    GroupRead,
    JoinRequestReview,
)
from app.services.commission import calculate_commission_split
from app.services.groups import (
    create_group,
    get_group_or_404,
    get_join_request_or_404,
    join_group,
    leave_group,
    list_join_requests,
    list_members,
    remove_member,
    request_to_join,
    review_join_request,
)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=GroupRead, status_code=status.HTTP_201_CREATED)
def create(
    payload: GroupCreate,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Group:
    group = create_group(
        db,
        current_user,
        name=payload.name,
        description=payload.description,
        max_members=payload.max_members,
        privacy=payload.privacy,
    )
    db.commit()
    db.refresh(group)
    return group


@router.get("", response_model=list[GroupRead])
def list_groups(db: Session = Depends(get_db)) -> list[Group]:
    return db.exec(
        select(Group)
        .where(Group.status == GroupStatus.active)
        .order_by(Group.created_at.desc())
    ).all()


@router.get("/{group_id}", response_model=GroupRead)
def get_group(group_id: int, db: Session = Depends(get_db)) -> Group:
    return get_group_or_404(db, group_id)


@router.post("/{group_id}/join", response_model=GroupMemberRead, status_code=status.HTTP_201_CREATED)
def join(
    group_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> GroupMember:
    member = join_group(db, get_group_or_404(db, group_id), current_user)
    db.commit()
    db.refresh(member)
    return member


@router.post("/{group_id}/leave", response_model=GroupRead)
def leave(
    group_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Group:
    group = get_group_or_404(db, group_id)
    leave_group(db, group, current_user)
    db.commit()
    db.refresh(group)
    return group


@router.get("/{group_id}/members", response_model=list[GroupMemberRead])
def members(group_id: int, db: Session = Depends(get_db)) -> list[GroupMember]:
    get_group_or_404(db, group_id)
    return list_members(db, group_id)


@router.delete("/{group_id}/members/{freelancer_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(
    group_id: int,
    freelancer_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> Response:
    remove_member(db, get_group_or_404(db, group_id), current_user, freelancer_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{group_id}/requests", response_model=GroupJoinRequestRead, status_code=status.HTTP_201_CREATED)
def create_join_request(
    group_id: int,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> GroupJoinRequest:
    request = request_to_join(db, get_group_or_404(db, group_id), current_user)
    db.commit()
    db.refresh(request)
    return request


@router.get("/{group_id}/requests", response_model=list[GroupJoinRequestRead])
def join_requests(
    group_id: int,
    status_filter: JoinRequestStatus | None = Query(default=JoinRequestStatus.pending, alias="status"),
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> list[GroupJoinRequest]:
    return list_join_requests(db, get_group_or_404(db, group_id), current_user, status_filter)


@router.patch("/{group_id}/requests/{request_id}", response_model=GroupJoinRequestRead)
def review_request(
    group_id: int,
    request_id: int,
    payload: JoinRequestReview,
    current_user: User = Depends(get_current_freelancer),
    db: Session = Depends(get_db),
) -> GroupJoinRequest:
    group = get_group_or_404(db, group_id)
    request = review_join_request(db, group, get_join_request_or_404(db, group, request_id), current_user, payload.status)
    db.commit()
    db.refresh(request)
    return request


@router.get("/{group_id}/commission-preview", response_model=CommissionPreviewRead)
def commission_preview(
    group_id: int,
    budget: Decimal = Query(...),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> CommissionPreviewRead:
    del current_user
    group = get_group_or_404(db, group_id)
    split = calculate_commission_split(budget, group.current_members)
    return CommissionPreviewRead(
        budget=split.budget,
        member_count=split.member_count,
        platform_fee=split.platform_fee,
        leader_commission=split.leader_commission,
        distributable=split.distributable,
        reward_per_member=split.reward_per_member,
        residual=split.residual,
        platform_take=split.platform_take,
    )
