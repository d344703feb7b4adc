"""
Tests for ProfileService and SettingsService.
"""

import pytest

from rest_api.models import CafeteriaSetting, Profile
from rest_api.services.domain import ProfileService, SettingsService
from rest_api.services.permissions import RoleResolver
from shared.config.constants import Roles, SettingKeys
from shared.utils.exceptions import ForbiddenError, NotFoundError, ValidationError

from conftest import ADMIN_ID, CUSTOMER_ID, STAFF_ID


class TestProvision:

    def test_first_sign_in_creates_customer(self, db_session):
        profile = ProfileService(db_session).provision("new-identity", "  Carla  ")

        assert profile.role == Roles.CUSTOMER
        assert profile.display_name == "Carla"

    def test_missing_hint_uses_default_name(self, db_session):
        profile = ProfileService(db_session).provision("new-identity")
        assert profile.display_name == "User"

    def test_second_sign_in_is_noop(self, db_session, staff):
        profile = ProfileService(db_session).provision(STAFF_ID, "Someone Else")

        assert profile.role == Roles.STAFF
        assert profile.display_name == "Maria Counter"
        assert db_session.query(Profile).count() == 1


class TestProfileUpdates:

    def test_update_contact(self, db_session, customer):
        profile = ProfileService(db_session).update_contact(
            CUSTOMER_ID, {"email": "ana@campus.edu", "student_id": "S-1001"}
        )
        assert profile.email == "ana@campus.edu"
        assert profile.student_id == "S-1001"
        assert profile.role == Roles.CUSTOMER

    def test_role_not_accepted_in_contact_update(self, db_session, customer):
        with pytest.raises(ValidationError):
            ProfileService(db_session).update_contact(CUSTOMER_ID, {"role": "admin"})

    def test_admin_changes_role(self, db_session, admin, customer):
        resolver = RoleResolver(db_session)
        assert not resolver.is_staff(CUSTOMER_ID)

        ProfileService(db_session).change_role(ADMIN_ID, CUSTOMER_ID, Roles.STAFF)

        # The cached customer role is dropped immediately
        assert resolver.is_staff(CUSTOMER_ID)

    def test_staff_cannot_change_roles(self, db_session, staff, customer):
        with pytest.raises(ForbiddenError):
            ProfileService(db_session).change_role(STAFF_ID, CUSTOMER_ID, Roles.ADMIN)

    def test_unknown_role_rejected(self, db_session, admin, customer):
        with pytest.raises(ValidationError):
            ProfileService(db_session).change_role(ADMIN_ID, CUSTOMER_ID, "superuser")

    def test_change_role_of_unknown_profile(self, db_session, admin):
        with pytest.raises(NotFoundError):
            ProfileService(db_session).change_role(ADMIN_ID, "nobody", Roles.STAFF)


class TestSettings:

    def test_defaults_without_rows(self, db_session):
        service = SettingsService(db_session)
        assert service.get_int(SettingKeys.MAX_CONCURRENT_ORDERS) == 50
        assert service.get(SettingKeys.PEAK_HOURS) == {"start": "11:00", "end": "14:00"}

    def test_seed_defaults_is_idempotent(self, db_session):
        service = SettingsService(db_session)
        assert service.seed_defaults() == 5
        assert service.seed_defaults() == 0
        assert len(service.all()) == 5

    def test_admin_write_visible_immediately(self, db_session, admin):
        service = SettingsService(db_session)
        service.get_int(SettingKeys.AVG_PREP_TIME_MINUTES)

        row = service.set(ADMIN_ID, SettingKeys.AVG_PREP_TIME_MINUTES, 15)

        assert row.updated_by == ADMIN_ID
        assert service.get_int(SettingKeys.AVG_PREP_TIME_MINUTES) == 15

    def test_non_admin_cannot_write(self, db_session, staff):
        with pytest.raises(ForbiddenError):
            SettingsService(db_session).set(STAFF_ID, SettingKeys.MAX_CONCURRENT_ORDERS, 10)

    def test_unknown_key_rejected(self, db_session, admin):
        with pytest.raises(ValidationError):
            SettingsService(db_session).set(ADMIN_ID, "free_lunch", True)

    @pytest.mark.parametrize("value", [-1, "ten", True, 2.5])
    def test_integer_setting_type_checked(self, db_session, admin, value):
        with pytest.raises(ValidationError):
            SettingsService(db_session).set(ADMIN_ID, SettingKeys.MAX_CONCURRENT_ORDERS, value)

    def test_get_row_missing(self, db_session):
        with pytest.raises(NotFoundError):
            SettingsService(db_session).get_row(SettingKeys.OPERATING_HOURS)

    def test_stale_snapshot_within_refresh_window(self, db_session, admin):
        """Writes by another process show up only after the snapshot expires."""
        service = SettingsService(db_session, max_age=3600)
        assert service.get_int(SettingKeys.MAX_CONCURRENT_ORDERS) == 50

        db_session.add(CafeteriaSetting(key=SettingKeys.MAX_CONCURRENT_ORDERS, value=7))
        db_session.commit()

        assert service.get_int(SettingKeys.MAX_CONCURRENT_ORDERS) == 50
        assert SettingsService(db_session, max_age=0).get_int(SettingKeys.MAX_CONCURRENT_ORDERS) == 7
