"""
Tests for UserService role assignment and member listings.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from memberhub.core.exceptions import (
    AuthorizationError,
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from memberhub.core.hierarchy import BaseRole, Permission
from memberhub.models import AuditLog
from memberhub.services import user_service as user_service_module
from memberhub.services.audit_service import audit_service
from memberhub.services.user_service import user_service


@pytest.fixture
def manager_role(make_role):
    return make_role("Manager", 5, [Permission.MANAGE_MEMBERS, Permission.VIEW_DASHBOARD])


@pytest.fixture
def manager(make_user, manager_role):
    return make_user("manager", custom_role=manager_role)


class TestAssignRole:
    """Gate and side effects of base/custom role assignment."""

    def test_admin_approves_pending_member_with_role(self, db, admin, make_user, make_role):
        crew = make_role("Crew", -1)
        pending = make_user("newbie", BaseRole.PENDING)

        user = user_service.assign_role(db, admin, pending.id, BaseRole.MEMBER, crew.id)

        assert user.base_role is BaseRole.MEMBER
        assert user.custom_role_id == crew.id
        assert user.is_active is True
        entry = db.query(AuditLog).filter(AuditLog.action == "user.role_assigned").one()
        assert '"PENDING"' in entry.old_value_json

    def test_only_admin_grants_admin(self, db, manager, make_user):
        member = make_user("plain")
        with pytest.raises(AuthorizationError):
            user_service.assign_role(db, manager, member.id, BaseRole.ADMIN)

    def test_manager_suspends_lower_member(self, db, manager, make_user):
        member = make_user("plain")
        user = user_service.assign_role(db, manager, member.id, BaseRole.SUSPENDED, reason="spam")
        assert user.base_role is BaseRole.SUSPENDED
        assert user.is_active is False
        assert user.status_reason == "spam"

    def test_suspension_requires_reason(self, db, admin, make_user):
        member = make_user("plain")
        with pytest.raises(ValidationError):
            user_service.assign_role(db, admin, member.id, BaseRole.SUSPENDED, reason="  ")

    def test_manager_cannot_touch_equal_rank(self, db, manager, manager_role, make_user):
        peer = make_user("peer", custom_role=manager_role)
        with pytest.raises(AuthorizationError):
            user_service.assign_role(db, manager, peer.id, BaseRole.MEMBER)

    def test_manager_cannot_touch_admin(self, db, manager, admin):
        with pytest.raises(AuthorizationError):
            user_service.assign_role(db, manager, admin.id, BaseRole.MEMBER)

    def test_manager_cannot_hand_out_own_or_higher_role(self, db, manager, manager_role, make_user, make_role):
        member = make_user("plain")
        higher = make_role("Higher", 7)
        for role in (manager_role, higher):
            with pytest.raises(AuthorizationError):
                user_service.assign_role(db, manager, member.id, BaseRole.MEMBER, role.id)
        db.refresh(member)
        assert member.custom_role_id is None

    def test_manager_hands_out_lower_role(self, db, manager, make_user, make_role):
        member = make_user("plain")
        lower = make_role("Lower", 1)
        user = user_service.assign_role(db, manager, member.id, BaseRole.MEMBER, lower.id)
        assert user.custom_role_id == lower.id

    def test_member_cannot_manage_self(self, db, manager):
        with pytest.raises(AuthorizationError):
            user_service.assign_role(db, manager, manager.id, BaseRole.MEMBER)

    def test_admin_adds_custom_role_to_self(self, db, admin, make_role):
        crew = make_role("Crew", -1)
        user = user_service.assign_role(db, admin, admin.id, BaseRole.ADMIN, crew.id)
        assert user.base_role is BaseRole.ADMIN
        assert user.custom_role_id == crew.id

    def test_admin_cannot_demote_self(self, db, admin):
        with pytest.raises(AuthorizationError):
            user_service.assign_role(db, admin, admin.id, BaseRole.MEMBER)
        db.refresh(admin)
        assert admin.base_role is BaseRole.ADMIN

    def test_custom_role_not_allowed_for_pending(self, db, admin, make_user, make_role):
        crew = make_role("Crew", -1)
        member = make_user("plain")
        with pytest.raises(ValidationError):
            user_service.assign_role(db, admin, member.id, BaseRole.PENDING, crew.id)

    def test_unknown_custom_role(self, db, admin, make_user):
        member = make_user("plain")
        with pytest.raises(ValidationError):
            user_service.assign_role(db, admin, member.id, BaseRole.MEMBER, 4242)

    def test_unknown_base_role(self, db, admin, make_user):
        member = make_user("plain")
        with pytest.raises(ValidationError):
            user_service.assign_role(db, admin, member.id, "OWNER")

    def test_missing_target(self, db, admin):
        with pytest.raises(ResourceNotFoundError):
            user_service.assign_role(db, admin, 777, BaseRole.MEMBER)

    def test_demotion_clears_custom_role(self, db, admin, make_user, make_role):
        crew = make_role("Crew", -1)
        member = make_user("plain", custom_role=crew)
        user = user_service.assign_role(db, admin, member.id, BaseRole.SUSPENDED, reason="inactive")
        assert user.custom_role_id is None


class TestListings:
    def test_list_users_requires_dashboard(self, db, make_user):
        member = make_user("plain")
        with pytest.raises(AuthorizationError):
            user_service.list_users(db, member)

    def test_list_users_capabilities(self, db, manager, admin, make_user):
        junior = make_user("junior")
        rows = {u.username: caps for u, caps in user_service.list_users(db, manager)}
        assert rows["junior"] == {
            "can_manage": True, "can_assign_role": True, "can_assign_custom_role": True,
        }
        assert rows["root"]["can_manage"] is False
        assert rows["manager"]["can_manage"] is False
        assert junior.id

    def test_pending_and_leads(self, db, admin, make_user):
        make_user("waiting", BaseRole.PENDING)
        make_user("lead", is_lead=True)
        make_user("plain")
        assert [u.username for u in user_service.pending_members(db, admin)] == ["waiting"]
        assert [u.username for u in user_service.leads(db, admin)] == ["lead"]

    def test_set_lead_status(self, db, manager, make_user, admin):
        member = make_user("plain")
        assert user_service.set_lead_status(db, manager, member.id, True).is_lead is True
        with pytest.raises(AuthorizationError):
            user_service.set_lead_status(db, manager, admin.id, True)

    def test_set_lead_status_is_audited(self, db, admin, make_user):
        member = make_user("plain")
        user_service.set_lead_status(db, admin, member.id, True)
        entry = db.query(AuditLog).filter(AuditLog.action == "user.lead_status_changed").one()
        assert entry.resource_id == str(member.id)
        assert '"is_lead": true' in entry.new_value_json

    def test_set_lead_status_rolls_back_on_abort(self, db, admin, make_user, monkeypatch):
        member = make_user("plain")

        def aborted(*args, **kwargs):
            raise IntegrityError("INSERT INTO audit_logs", {}, Exception("lock wait"))

        monkeypatch.setattr(user_service_module.audit_service, "log", aborted)
        with pytest.raises(ResourceConflictError):
            user_service.set_lead_status(db, admin, member.id, True)
        db.refresh(member)
        assert member.is_lead is False


class TestAuditQuery:
    def test_requires_dashboard(self, db, make_user):
        member = make_user("plain")
        with pytest.raises(AuthorizationError):
            audit_service.query_logs(db, member)

    def test_filters_by_request_id(self, db, admin, make_user):
        member = make_user("plain")
        user_service.set_lead_status(db, admin, member.id, True, meta={"request_id": "req-1"})
        user_service.set_lead_status(db, admin, member.id, False, meta={"request_id": "req-2"})
        result = audit_service.query_logs(db, admin, request_id="req-2")
        assert result["total"] == 1
        assert result["logs"][0].new_value_json == '{"is_lead": false}'
