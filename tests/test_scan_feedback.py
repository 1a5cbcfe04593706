import base64
import json
import unittest
from unittest import mock

from appwrite.exception import AppwriteException

from gradetrackr.core.validation import ValidationError
from gradetrackr.services.feedback_service import Cooldown, FeedbackService, FeedbackServiceError
from gradetrackr.services.functions_service import FunctionServiceError, FunctionsService
from gradetrackr.services.scan_service import MAX_SCAN_BYTES, ScanService, ScanServiceError


def execution(body, status="completed", code=200):
    return {
        "status": status,
        "responseStatusCode": code,
        "responseBody": json.dumps(body) if not isinstance(body, str) else body,
        "errors": "",
    }


class FunctionsServiceTests(unittest.TestCase):
    def setUp(self):
        self.sdk = mock.Mock()
        self.service = FunctionsService("", "", "", functions=self.sdk)

    def test_parses_json_body(self):
        self.sdk.create_execution.return_value = execution({"ok": True})
        self.assertEqual(self.service.execute("fn", {"a": 1}), {"ok": True})
        self.sdk.create_execution.assert_called_once_with("fn", body='{"a": 1}')

    def test_failed_execution_raises_with_message(self):
        self.sdk.create_execution.return_value = execution({"error": "quota exceeded"}, code=500)
        with self.assertRaises(FunctionServiceError) as ctx:
            self.service.execute("fn", {})
        self.assertEqual(str(ctx.exception), "quota exceeded")

        self.sdk.create_execution.return_value = execution("", status="failed", code=0)
        with self.assertRaises(FunctionServiceError):
            self.service.execute("fn", {})

    def test_sdk_errors_are_wrapped(self):
        self.sdk.create_execution.side_effect = AppwriteException("Function not found", 404)
        with self.assertRaises(FunctionServiceError):
            self.service.execute("fn", {})

    def test_missing_configuration(self):
        with self.assertRaises(FunctionServiceError):
            FunctionsService("", "project", "key")


class ScanServiceTests(unittest.TestCase):
    def setUp(self):
        self.functions = mock.Mock(spec=FunctionsService)
        self.scanner = ScanService(self.functions, "image-parse")

    def test_sends_data_url_and_normalises_rows(self):
        self.functions.execute.return_value = {
            "courses": [
                {"name": " Physics ", "creditHours": "3", "grade": "a"},
                {"name": "Lab", "credit_hours": 1, "grade": None},
            ]
        }

        rows = self.scanner.scan_image(b"png-bytes", "image/png")

        function_id, payload = self.functions.execute.call_args[0]
        self.assertEqual(function_id, "image-parse")
        encoded = base64.b64encode(b"png-bytes").decode("ascii")
        self.assertEqual(payload["image"], f"data:image/png;base64,{encoded}")
        self.assertEqual((rows[0].name, rows[0].credit_hours, rows[0].grade), ("Physics", 3.0, "A"))
        self.assertTrue(rows[0].is_complete)
        self.assertFalse(rows[1].is_complete)

    def test_rejects_bad_uploads_before_calling_function(self):
        with self.assertRaises(ScanServiceError):
            self.scanner.scan_image(b"x", "application/pdf")
        with self.assertRaises(ScanServiceError):
            self.scanner.scan_image(b"x" * (MAX_SCAN_BYTES + 1), "image/jpeg")
        self.functions.execute.assert_not_called()

    def test_empty_or_malformed_responses(self):
        self.functions.execute.return_value = {"courses": []}
        with self.assertRaises(ScanServiceError) as ctx:
            self.scanner.scan_image(b"x", "image/png")
        self.assertIn("No courses found", str(ctx.exception))

        self.functions.execute.return_value = {"courses": "Physics A 3"}
        with self.assertRaises(ScanServiceError):
            self.scanner.scan_image(b"x", "image/png")

    def test_function_failure(self):
        self.functions.execute.side_effect = FunctionServiceError("model unavailable")
        with self.assertRaises(ScanServiceError) as ctx:
            self.scanner.scan_image(b"x", "image/png")
        self.assertEqual(str(ctx.exception), "model unavailable")


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CooldownTests(unittest.TestCase):
    def test_counts_down(self):
        clock = FakeClock()
        cooldown = Cooldown(60, clock=clock)
        self.assertFalse(cooldown.active)

        cooldown.start()
        clock.now += 15
        self.assertEqual(cooldown.remaining, 45)
        clock.now += 45
        self.assertFalse(cooldown.active)


class FeedbackServiceTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.functions = mock.Mock(spec=FunctionsService)
        self.service = FeedbackService(self.functions, "send-suggestion-ack", Cooldown(60, clock=self.clock))

    def test_submit_then_cooldown(self):
        self.service.submit(" Idea ", "Dark mode please", "Ada", "ada@example.com")

        self.functions.execute.assert_called_once_with(
            "send-suggestion-ack",
            {"email": "ada@example.com", "name": "Ada", "subject": "Idea", "suggestion": "Dark mode please"},
        )
        with self.assertRaises(FeedbackServiceError) as ctx:
            self.service.submit("Again", "More", "Ada", "ada@example.com")
        self.assertIn("60s", str(ctx.exception))

        self.clock.now += 61
        self.service.submit("Again", "More", "Ada", "ada@example.com")
        self.assertEqual(self.functions.execute.call_count, 2)

    def test_failure_does_not_start_cooldown(self):
        self.functions.execute.side_effect = FunctionServiceError("mail down")
        with self.assertRaises(FeedbackServiceError):
            self.service.submit("Idea", "Body", "Ada", "ada@example.com")
        self.assertFalse(self.service.cooldown.active)

    def test_blank_fields_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.submit("  ", "Body", "Ada", "ada@example.com")
        self.functions.execute.assert_not_called()


if __name__ == "__main__":
    unittest.main()
