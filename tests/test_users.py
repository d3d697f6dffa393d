"""
User service tests - sync, profile updates, directory, associations, bookmarks and stats.
"""

import pytest

from conftest import run
from icp_platform.core.errors import ConflictError, ForbiddenError, NotFoundError, UnauthenticatedError
from icp_platform.core.schema import PARTNERS, SOLUTIONS, TICKETS, USERS, Principal

USER = Principal(uid="u1")
OTHER = Principal(uid="u2")
ADMIN = Principal(uid="admin", role="ADMIN")
SUPPORT = Principal(uid="support", role="ICP_SUPPORT")


@pytest.fixture
def user(container):
    return run(container.users.sync(USER, email="ada@example.org"))


@pytest.fixture
def partner(store):
    return run(store.create(PARTNERS, {"organizationName": "Rain Collective", "status": "APPROVED"}, doc_id="p1"))


class TestSync:

    def test_first_sight_creates_regular_user(self, user):
        assert user["id"] == "u1"
        assert user["role"] == "REGULAR"
        assert user["email"] == "ada@example.org"
        assert user["bookmarks"] == [] and user["associatedPartners"] == []

    def test_second_sync_returns_existing(self, container, user):
        again = run(container.users.sync(USER, email="changed@example.org"))
        assert again == user

    def test_profile_cannot_smuggle_role(self, container):
        created = run(container.users.sync(OTHER, profile={"role": "ADMIN", "firstName": "Eve"}))
        assert created["role"] == "REGULAR"
        assert created["firstName"] == "Eve"

    def test_requires_principal(self, container):
        with pytest.raises(UnauthenticatedError):
            run(container.users.sync(None))


class TestProfileUpdate:

    def test_self_update(self, container, user):
        updated = run(container.users.update_profile(USER, "u1", {"firstName": "Ada", "language": "fr"}))
        assert updated["firstName"] == "Ada"
        assert updated["language"] == "fr"

    def test_protected_fields_ignored(self, container, user):
        updated = run(container.users.update_profile(USER, "u1", {"email": "x@y.z", "bookmarks": ["s1"]}))
        assert updated["email"] == "ada@example.org"
        assert updated["bookmarks"] == []

    def test_role_escalation_forbidden(self, container, user):
        with pytest.raises(ForbiddenError):
            run(container.users.update_profile(USER, "u1", {"role": "ADMIN"}))

    def test_admin_changes_role(self, container, user):
        updated = run(container.users.update_profile(ADMIN, "u1", {"role": "ICP_SUPPORT"}))
        assert updated["role"] == "ICP_SUPPORT"

    def test_other_users_forbidden(self, container, user):
        with pytest.raises(ForbiddenError):
            run(container.users.update_profile(OTHER, "u1", {"firstName": "Mallory"}))
        with pytest.raises(ForbiddenError):
            run(container.users.update_profile(SUPPORT, "u1", {"firstName": "Mallory"}))


class TestDirectory:

    def test_admin_only(self, container, user):
        with pytest.raises(ForbiddenError):
            run(container.users.list_users(SUPPORT))

    def test_search_and_role_filter(self, container, store, user):
        run(store.create(USERS, {"firstName": "Grace", "lastName": "Hopper", "email": "grace@navy.mil",
                                 "role": "ICP_SUPPORT"}, doc_id="u9"))

        assert [u["id"] for u in run(container.users.list_users(ADMIN, search="HOPPER")).items] == ["u9"]
        assert [u["id"] for u in run(container.users.list_users(ADMIN, search="example")).items] == ["u1"]
        assert [u["id"] for u in run(container.users.list_users(ADMIN, role="ICP_SUPPORT")).items] == ["u9"]
        page = run(container.users.list_users(ADMIN, page=1, limit=1))
        assert page.total == 2 and page.total_pages == 2


class TestAssociations:

    def test_request_creates_pending_and_ticket(self, container, store, user, partner):
        association = run(container.users.request_association(USER, "u1", "p1"))

        assert association["status"] == "PENDING"
        assert association["partnerName"] == "Rain Collective"
        tickets = run(store.list(TICKETS, {"type": "PARTNER_CONNECT"}))
        assert len(tickets) == 1 and tickets[0]["partnerId"] == "p1"

    def test_duplicate_pending_or_approved_conflicts(self, container, user, partner):
        run(container.users.request_association(USER, "u1", "p1"))
        with pytest.raises(ConflictError):
            run(container.users.request_association(USER, "u1", "p1"))

        run(container.users.decide_association(SUPPORT, "u1", "p1", {"status": "APPROVED"}))
        with pytest.raises(ConflictError):
            run(container.users.request_association(USER, "u1", "p1"))

    def test_rerequest_after_rejection_overwrites_in_place(self, container, store, user, partner):
        run(container.users.request_association(USER, "u1", "p1"))
        run(container.users.decide_association(SUPPORT, "u1", "p1", {"status": "REJECTED"}))

        run(container.users.request_association(USER, "u1", "p1"))

        associations = run(store.get(USERS, "u1"))["associatedPartners"]
        assert len(associations) == 1
        assert associations[0]["status"] == "PENDING"

    def test_only_for_self(self, container, user, partner):
        with pytest.raises(ForbiddenError):
            run(container.users.request_association(OTHER, "u1", "p1"))

    def test_unknown_partner(self, container, user):
        with pytest.raises(NotFoundError):
            run(container.users.request_association(USER, "u1", "nope"))

    def test_decision_is_moderator_only(self, container, user, partner):
        run(container.users.request_association(USER, "u1", "p1"))
        with pytest.raises(ForbiddenError):
            run(container.users.decide_association(USER, "u1", "p1", {"status": "APPROVED"}))

    def test_approval_stamps_time(self, container, user, partner):
        run(container.users.request_association(USER, "u1", "p1"))
        decided = run(container.users.decide_association(ADMIN, "u1", "p1", {"status": "APPROVED"}))
        assert decided["status"] == "APPROVED"
        assert decided["approvedAt"]

    def test_deciding_missing_association(self, container, user):
        with pytest.raises(NotFoundError):
            run(container.users.decide_association(ADMIN, "u1", "p1", {"status": "APPROVED"}))


class TestBookmarks:

    @pytest.fixture
    def solutions(self, store):
        return [run(store.create(SOLUTIONS, {"name": f"Solution {i}"}, doc_id=f"s{i}")) for i in range(3)]

    def test_add_is_idempotent_and_list_is_newest_first(self, container, store, user, solutions):
        for s in solutions:
            run(container.users.add_bookmark(USER, "u1", s["id"]))
        run(container.users.add_bookmark(USER, "u1", "s0"))

        assert len(run(store.get(USERS, "u1"))["bookmarks"]) == 3
        page = run(container.users.list_bookmarks(USER, "u1"))
        assert [b["solutionId"] for b in page.items] == ["s2", "s1", "s0"]
        assert page.items[0]["solutionName"] == "Solution 2"

    def test_remove(self, container, user, solutions):
        run(container.users.add_bookmark(USER, "u1", "s1"))
        run(container.users.remove_bookmark(USER, "u1", "s1"))
        assert run(container.users.list_bookmarks(USER, "u1")).items == []

    def test_unknown_solution(self, container, user):
        with pytest.raises(NotFoundError):
            run(container.users.add_bookmark(USER, "u1", "nope"))

    def test_owner_only(self, container, user, solutions):
        with pytest.raises(ForbiddenError):
            run(container.users.add_bookmark(OTHER, "u1", "s1"))


class TestStats:

    @pytest.fixture
    def data(self, store):
        run(store.create(SOLUTIONS, {"status": "MATURE", "proposedByUserId": "u2"}))
        run(store.create(SOLUTIONS, {"status": "MATURE", "proposedByUserId": "u1"}))
        run(store.create(SOLUTIONS, {"status": "PROPOSED", "proposedByUserId": "u1"}))
        run(store.create(SOLUTIONS, {"status": "PROPOSED", "proposedByUserId": "u2"}))
        run(store.create(PARTNERS, {"status": "APPROVED", "proposedByUserId": "u2"}))
        run(store.create(PARTNERS, {"status": "PROPOSED", "proposedByUserId": "u2"}))
        run(store.create(TICKETS, {"createdByUserId": "u1"}))
        run(store.create(TICKETS, {"createdByUserId": "u2", "assignedToUserId": "u1"}))
        run(store.create(TICKETS, {"createdByUserId": "u2"}))

    def test_anonymous(self, container, data):
        assert run(container.stats.get_stats(None)) == {"solutions": 2, "partners": 1, "tickets": 0}

    def test_owner_counts_union_without_double_counting(self, container, data):
        assert run(container.stats.get_stats(USER)) == {"solutions": 3, "partners": 1, "tickets": 2}

    def test_moderator_counts_everything(self, container, data):
        assert run(container.stats.get_stats(SUPPORT)) == {"solutions": 4, "partners": 2, "tickets": 3}
