"""
Dashboard分享测试（原始存储 + 业务规则）
"""
from unittest.mock import patch

import pytest

from dashhub import crud
from dashhub.core.enums import PermissionLevel
from dashhub.core.exceptions import (
    AccessDeniedError,
    DashboardNotFoundError,
    InvalidPermissionError,
    NotOwnerError,
    SelfShareError,
    ShareNotFoundError,
    UserNotFoundError,
)
from dashhub.models.dashboard_share import DashboardShare
from dashhub.services.share_service import ShareService


@pytest.fixture
def service():
    return ShareService()


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@example.com")


@pytest.fixture
def other(make_user):
    return make_user(email="other@example.com")


@pytest.fixture
def dashboard(make_dashboard, owner):
    return make_dashboard(owner)


class TestShareStore:
    """crud_dashboard_share 原始存储"""

    def test_upsert_is_idempotent(self, db, dashboard, other):
        store = crud.crud_dashboard_share
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.VIEW)
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.VIEW)

        rows = db.query(DashboardShare).filter(DashboardShare.dashboard_id == dashboard.id).all()
        assert len(rows) == 1
        assert rows[0].permission == "VIEW"

    def test_upsert_overwrites_permission(self, db, dashboard, other):
        store = crud.crud_dashboard_share
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.VIEW)
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.EDIT)

        assert store.get_user_permission(db, dashboard_id=dashboard.id, user_id=other.id) == PermissionLevel.EDIT

    def test_upsert_concurrent_insert_becomes_update(self, db, dashboard, other):
        """查询时还没有记录、提交时已被并发插入：唯一约束冲突后按更新处理"""
        store = crud.crud_dashboard_share
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.VIEW)

        original_lookup = store.get_by_dashboard_and_user
        calls = []

        def lookup_missing_once(*args, **kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                return None
            return original_lookup(*args, **kwargs)

        with patch.object(store, "get_by_dashboard_and_user", side_effect=lookup_missing_once):
            share = store.upsert(
                db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.EDIT
            )

        assert len(calls) == 2
        assert share.permission == "EDIT"
        rows = db.query(DashboardShare).filter(DashboardShare.dashboard_id == dashboard.id).all()
        assert len(rows) == 1
        assert rows[0].permission == "EDIT"

    def test_store_accepts_admin_level(self, db, dashboard, other):
        store = crud.crud_dashboard_share
        store.upsert(db, dashboard_id=dashboard.id, user_id=other.id, permission=PermissionLevel.ADMIN)
        assert store.get_user_permission(db, dashboard_id=dashboard.id, user_id=other.id) == PermissionLevel.ADMIN

    def test_delete_missing_raises(self, db, dashboard, other):
        with pytest.raises(ShareNotFoundError):
            crud.crud_dashboard_share.delete(db, dashboard_id=dashboard.id, user_id=other.id)

    def test_has_access_ignores_ownership_and_public(self, db, make_dashboard, owner, other):
        public = make_dashboard(owner, is_public=True)
        store = crud.crud_dashboard_share

        assert store.has_access(db, dashboard_id=public.id, user_id=owner.id) is False
        assert store.has_access(db, dashboard_id=public.id, user_id=other.id) is False
        assert store.get_user_permission(db, dashboard_id=public.id, user_id=other.id) is None


class TestShareService:

    def test_share_creates_record(self, db, service, dashboard, owner, other):
        share = service.share(
            db, dashboard_id=dashboard.id, target_user_id=other.id, permission="EDIT", owner_id=owner.id
        )
        assert share.permission == "EDIT"
        assert service.has_access(db, dashboard_id=dashboard.id, user_id=other.id)

    def test_reshare_updates_permission(self, db, service, dashboard, owner, other):
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="VIEW", owner_id=owner.id)
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="EDIT", owner_id=owner.id)

        assert db.query(DashboardShare).count() == 1
        assert service.get_permission(db, dashboard_id=dashboard.id, user_id=other.id) == PermissionLevel.EDIT

    @pytest.mark.parametrize("permission", ["ADMIN", "OWNER", "view", "", None])
    def test_invalid_permission_rejected(self, db, service, dashboard, owner, other, permission):
        with pytest.raises(InvalidPermissionError):
            service.share(
                db, dashboard_id=dashboard.id, target_user_id=other.id, permission=permission, owner_id=owner.id
            )
        assert db.query(DashboardShare).count() == 0

    def test_non_owner_cannot_share(self, db, service, dashboard, other, make_user):
        third = make_user()
        with pytest.raises(NotOwnerError):
            service.share(
                db, dashboard_id=dashboard.id, target_user_id=third.id, permission="VIEW", owner_id=other.id
            )

    def test_cannot_share_with_self(self, db, service, dashboard, owner):
        with pytest.raises(SelfShareError):
            service.share(
                db, dashboard_id=dashboard.id, target_user_id=owner.id, permission="VIEW", owner_id=owner.id
            )

    def test_unknown_target_user(self, db, service, dashboard, owner):
        with pytest.raises(UserNotFoundError):
            service.share(db, dashboard_id=dashboard.id, target_user_id=424242, permission="VIEW", owner_id=owner.id)

    def test_missing_dashboard(self, db, service, owner, other):
        with pytest.raises(DashboardNotFoundError):
            service.share(db, dashboard_id=424242, target_user_id=other.id, permission="VIEW", owner_id=owner.id)

    def test_share_by_email(self, db, service, dashboard, owner, other):
        share = service.share_by_email(
            db, dashboard_id=dashboard.id, email="other@example.com", permission="VIEW", owner_id=owner.id
        )
        assert share.user_id == other.id

    def test_share_by_unknown_email(self, db, service, dashboard, owner):
        with pytest.raises(UserNotFoundError):
            service.share_by_email(
                db, dashboard_id=dashboard.id, email="nobody@example.com", permission="VIEW", owner_id=owner.id
            )

    def test_revoke(self, db, service, dashboard, owner, other):
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="VIEW", owner_id=owner.id)
        service.revoke(db, dashboard_id=dashboard.id, target_user_id=other.id, owner_id=owner.id)

        assert service.has_access(db, dashboard_id=dashboard.id, user_id=other.id) is False
        with pytest.raises(ShareNotFoundError):
            service.revoke(db, dashboard_id=dashboard.id, target_user_id=other.id, owner_id=owner.id)

    def test_revoke_requires_owner(self, db, service, dashboard, owner, other):
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="VIEW", owner_id=owner.id)
        with pytest.raises(NotOwnerError):
            service.revoke(db, dashboard_id=dashboard.id, target_user_id=other.id, owner_id=other.id)

    def test_update_permission_requires_existing_share(self, db, service, dashboard, owner, other):
        with pytest.raises(ShareNotFoundError):
            service.update_permission(
                db, dashboard_id=dashboard.id, target_user_id=other.id, permission="EDIT", owner_id=owner.id
            )

        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="VIEW", owner_id=owner.id)
        share = service.update_permission(
            db, dashboard_id=dashboard.id, target_user_id=other.id, permission="EDIT", owner_id=owner.id
        )
        assert share.permission == "EDIT"

    def test_get_shared_with_owner_only(self, db, service, dashboard, owner, other, make_user):
        third = make_user(email="third@example.com")
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="VIEW", owner_id=owner.id)
        service.share(db, dashboard_id=dashboard.id, target_user_id=third.id, permission="EDIT", owner_id=owner.id)

        shares = service.get_shared_with(db, dashboard_id=dashboard.id, requester_id=owner.id)
        assert {s.user.email for s in shares} == {"other@example.com", "third@example.com"}

        with pytest.raises(AccessDeniedError):
            service.get_shared_with(db, dashboard_id=dashboard.id, requester_id=other.id)

    def test_get_shared_to_me(self, db, service, make_dashboard, owner, other):
        first = make_dashboard(owner, title="First")
        second = make_dashboard(owner, title="Second")
        deleted = make_dashboard(owner, title="Deleted")
        for d, level in ((first, "VIEW"), (second, "EDIT"), (deleted, "VIEW")):
            service.share(db, dashboard_id=d.id, target_user_id=other.id, permission=level, owner_id=owner.id)
        crud.crud_dashboard.soft_delete(db, dashboard_id=deleted.id)

        items = service.get_shared_to_me(db, user_id=other.id)

        by_title = {item.title: item for item in items}
        assert set(by_title) == {"First", "Second"}
        assert by_title["Second"].shared_permission == PermissionLevel.EDIT
        assert by_title["First"].owner.email == "owner@example.com"
        assert by_title["First"].shared_at is not None

    def test_can_edit(self, db, service, dashboard, owner, other, make_user):
        viewer = make_user()
        service.share(db, dashboard_id=dashboard.id, target_user_id=other.id, permission="EDIT", owner_id=owner.id)
        service.share(db, dashboard_id=dashboard.id, target_user_id=viewer.id, permission="VIEW", owner_id=owner.id)

        assert service.can_edit(db, dashboard_id=dashboard.id, user_id=owner.id) is True
        assert service.can_edit(db, dashboard_id=dashboard.id, user_id=other.id) is True
        assert service.can_edit(db, dashboard_id=dashboard.id, user_id=viewer.id) is False
