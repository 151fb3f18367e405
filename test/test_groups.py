"""
Tests for group membership, join requests and removal.
"""
import pytest
from sqlmodel import select

from app.core.errors import AlreadyProcessedError, AuthorizationError, NotFoundError, ValidationError
from app.models import GroupMemberRole, GroupPrivacy, JoinRequestStatus, Notification
from app.services.groups import (
    create_group,
    is_group_member,
    join_group,
    leave_group,
    list_join_requests,
    list_members,
    remove_member,
    request_to_join,
    review_join_request,
)


@pytest.fixture()
def members(make_user):
    return [make_user(f"f{index}") for index in range(3)]


class TestGroups:

    def test_creator_is_leader_and_first_member(self, session, members):
        group = create_group(session, members[0], name="فريق")
        session.commit()

        rows = list_members(session, group.id)
        assert group.current_members == 1
        assert [(row.freelancer_id, row.role) for row in rows] == [(members[0].id, GroupMemberRole.leader)]

    def test_join_and_leave_track_count(self, session, members):
        group = create_group(session, members[0], name="فريق")
        join_group(session, group, members[1])
        assert group.current_members == 2

        leave_group(session, group, members[1])
        assert group.current_members == 1

    def test_full_group_rejects_join(self, session, members):
        group = create_group(session, members[0], name="فريق", max_members=2)
        join_group(session, group, members[1])

        with pytest.raises(ValidationError):
            join_group(session, group, members[2])
        assert group.current_members == 2

    def test_cannot_join_twice(self, session, members):
        group = create_group(session, members[0], name="فريق")
        join_group(session, group, members[1])

        with pytest.raises(ValidationError):
            join_group(session, group, members[1])

    def test_leader_cannot_leave(self, session, members):
        group = create_group(session, members[0], name="فريق")

        with pytest.raises(ValidationError):
            leave_group(session, group, members[0])

    def test_max_members_limit(self, session, members):
        with pytest.raises(ValidationError):
            create_group(session, members[0], name="فريق", max_members=701)

    def test_leader_removes_member(self, session, members):
        group = create_group(session, members[0], name="فريق")
        join_group(session, group, members[1])

        remove_member(session, group, members[0], members[1].id)

        assert group.current_members == 1
        assert not is_group_member(session, group.id, members[1].id)
        notice = session.exec(
            select(Notification).where(Notification.user_id == members[1].id)
        ).one()
        assert notice.type == "group_member_removed"

    def test_only_leader_removes_and_never_itself(self, session, members):
        group = create_group(session, members[0], name="فريق")
        join_group(session, group, members[1])
        join_group(session, group, members[2])

        with pytest.raises(AuthorizationError):
            remove_member(session, group, members[1], members[2].id)
        with pytest.raises(ValidationError):
            remove_member(session, group, members[0], members[0].id)
        assert group.current_members == 3

    def test_removing_a_stranger_is_not_found(self, session, members):
        group = create_group(session, members[0], name="فريق")

        with pytest.raises(NotFoundError):
            remove_member(session, group, members[0], members[2].id)


class TestPrivateGroups:

    @pytest.fixture()
    def group(self, session, members):
        group = create_group(session, members[0], name="فريق خاص", privacy=GroupPrivacy.private)
        session.commit()
        return group

    def test_direct_join_is_refused(self, session, members, group):
        with pytest.raises(AuthorizationError):
            join_group(session, group, members[1])
        assert group.current_members == 1

    def test_approved_request_admits_the_member(self, session, members, group):
        request = request_to_join(session, group, members[1])
        assert request.status == JoinRequestStatus.pending
        assert [r.id for r in list_join_requests(session, group, members[0])] == [request.id]

        review_join_request(session, group, request, members[0], JoinRequestStatus.approved)
        session.commit()

        assert request.status == JoinRequestStatus.approved
        assert request.reviewed_at is not None
        assert group.current_members == 2
        assert is_group_member(session, group.id, members[1].id)
        assert list_join_requests(session, group, members[0]) == []

    def test_rejected_request_leaves_group_unchanged(self, session, members, group):
        request = request_to_join(session, group, members[1])

        review_join_request(session, group, request, members[0], JoinRequestStatus.rejected)

        assert request.status == JoinRequestStatus.rejected
        assert group.current_members == 1
        assert not is_group_member(session, group.id, members[1].id)

    def test_request_is_reviewed_once(self, session, members, group):
        request = request_to_join(session, group, members[1])
        review_join_request(session, group, request, members[0], JoinRequestStatus.rejected)

        with pytest.raises(AlreadyProcessedError):
            review_join_request(session, group, request, members[0], JoinRequestStatus.approved)
        assert not is_group_member(session, group.id, members[1].id)

    def test_duplicate_pending_request(self, session, members, group):
        request_to_join(session, group, members[1])

        with pytest.raises(ValidationError):
            request_to_join(session, group, members[1])

    def test_only_leader_reviews(self, session, members, group):
        request = request_to_join(session, group, members[1])

        with pytest.raises(AuthorizationError):
            review_join_request(session, group, request, members[2], JoinRequestStatus.approved)
        with pytest.raises(AuthorizationError):
            list_join_requests(session, group, members[2])
