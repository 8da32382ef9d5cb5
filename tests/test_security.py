from __future__ import annotations

import unittest
from datetime import timedelta
from unittest.mock import patch

from hrdesk.errors import ApiError
from hrdesk.models import EmployeeRole
from hrdesk.security import (
    CallerIdentity,
    accessible_employee_ids,
    create_access_token,
    decode_token,
    ensure_can_access_employee,
    ensure_dashboard_request_allowed,
    reset_dashboard_rate_limits,
)
from hrdesk.settings import Settings
from tests.helpers import add_employee, make_session_factory

TEST_SETTINGS = Settings(jwt_secret="unit-test-secret", dashboard_rate_limit_max=2)


class TokenTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch("hrdesk.security.get_settings", return_value=TEST_SETTINGS)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_token_round_trip(self) -> None:
        token = create_access_token(employee_id=12, role=EmployeeRole.MANAGER)

        identity = decode_token(token)

        self.assertEqual(identity, CallerIdentity(employee_id=12, role=EmployeeRole.MANAGER))
        self.assertFalse(identity.is_admin)

    def test_expired_token_is_rejected(self) -> None:
        token = create_access_token(employee_id=12, role="admin", expires_delta=timedelta(seconds=-5))

        with self.assertRaises(ApiError) as exc:
            decode_token(token)
        self.assertEqual(exc.exception.code, "INVALID_TOKEN")
        self.assertEqual(exc.exception.status_code, 401)

    def test_wrong_token_type_is_rejected(self) -> None:
        token = create_access_token(employee_id=12, role=EmployeeRole.EMPLOYEE)

        with self.assertRaises(ApiError) as exc:
            decode_token(token, expected_type="refresh")
        self.assertEqual(exc.exception.code, "INVALID_TOKEN")

    def test_dashboard_rate_limit(self) -> None:
        reset_dashboard_rate_limits()
        self.addCleanup(reset_dashboard_rate_limits)

        ensure_dashboard_request_allowed("10.1.1.1")
        ensure_dashboard_request_allowed("10.1.1.1")
        with self.assertRaises(ApiError) as exc:
            ensure_dashboard_request_allowed("10.1.1.1")
        self.assertEqual(exc.exception.status_code, 429)

        ensure_dashboard_request_allowed("10.1.1.2")


class AccessScopeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        add_employee(self.db, employee_id=1, role=EmployeeRole.MANAGER)
        add_employee(self.db, employee_id=2, manager_id=1)
        add_employee(self.db, employee_id=3)

    def tearDown(self) -> None:
        self.db.close()

    def test_scopes_by_role(self) -> None:
        admin = CallerIdentity(employee_id=9, role=EmployeeRole.HR_ADMIN)
        manager = CallerIdentity(employee_id=1, role=EmployeeRole.MANAGER)
        employee = CallerIdentity(employee_id=3, role=EmployeeRole.EMPLOYEE)

        self.assertIsNone(accessible_employee_ids(self.db, admin))
        self.assertEqual(sorted(accessible_employee_ids(self.db, manager) or []), [1, 2])
        self.assertEqual(accessible_employee_ids(self.db, employee), [3])

    def test_manager_cannot_reach_outside_team(self) -> None:
        manager = CallerIdentity(employee_id=1, role=EmployeeRole.MANAGER)
        ensure_can_access_employee(self.db, manager, 2)

        with self.assertRaises(ApiError) as exc:
            ensure_can_access_employee(self.db, manager, 3)
        self.assertEqual(exc.exception.code, "FORBIDDEN")


if __name__ == "__main__":
    unittest.main()
