from __future__ import annotations

import json
import logging
import unittest

from hrdesk.logging_utils import JsonFormatter


class JsonFormatterTests(unittest.TestCase):
    def test_extra_fields_are_merged(self) -> None:
        record = logging.LogRecord("hrdesk.attendance", logging.INFO, __file__, 1, "attendance_checkin", (), None)
        record.employee_id = 7
        record.is_late = True

        payload = json.loads(JsonFormatter(service="hrdesk").format(record))

        self.assertEqual(payload["message"], "attendance_checkin")
        self.assertEqual(payload["logger"], "hrdesk.attendance")
        self.assertEqual(payload["service"], "hrdesk")
        self.assertEqual(payload["employee_id"], 7)
        self.assertTrue(payload["is_late"])
        self.assertNotIn("msg", payload)


if __name__ == "__main__":
    unittest.main()
