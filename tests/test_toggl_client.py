import unittest
from datetime import datetime


class IssueKeyExtractionTests(unittest.TestCase):
    def test_extract_issue_key(self):
        # Import inside test so unittest discovery doesn't fail if deps are missing
        from timelink.services.toggl_client import extract_issue_key

        self.assertEqual(extract_issue_key("AB-123 fix login"), "AB-123")
        self.assertEqual(extract_issue_key("review of PLAT2-7, then AB-1"), "PLAT2-7")
        self.assertIsNone(extract_issue_key("ab-123 lowercase"))
        self.assertIsNone(extract_issue_key("standup"))
        self.assertIsNone(extract_issue_key(None))

    def test_entry_from_report_item(self):
        from timelink.services.toggl_client import entry_from_report_item

        row = entry_from_report_item(
            {
                "id": 42,
                "description": "AB-7 pairing",
                "start": "2025-01-06T10:00:00+01:00",
                "end": "2025-01-06T11:30:00+01:00",
                "dur": 5_400_000,
                "user": "Alice",
                "project": "Platform",
            }
        )
        self.assertEqual(row["id"], 42)
        self.assertEqual(row["start"], datetime(2025, 1, 6, 9, 0))
        self.assertEqual(row["end"], datetime(2025, 1, 6, 10, 30))
        self.assertEqual(row["duration_seconds"], 5400)
        self.assertEqual(row["issue_key"], "AB-7")
        self.assertEqual(row["user_name"], "Alice")
        self.assertEqual(row["project_name"], "Platform")


class TogglClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler):
        import httpx

        from timelink.services.toggl_client import TogglClient

        return TogglClient(
            "tok",
            123,
            base_url="https://toggl.test/reports/api/v2",
            user_agent="tests",
            transport=httpx.MockTransport(handler),
            base_delay_s=0,
        )

    async def test_fetch_detailed_report_pages_until_total_count(self):
        import httpx

        from timelink.dates import DateRange

        requests = []

        def handler(request):
            requests.append(request)
            page = int(request.url.params["page"])
            data = [{"id": 1}, {"id": 2}] if page == 1 else [{"id": 3}]
            return httpx.Response(200, json={"total_count": 3, "per_page": 2, "data": data})

        date_range = DateRange.from_values("2025-01-06", "2025-01-13", tz_name="UTC")
        async with self._client(handler) as client:
            items = await client.fetch_detailed_report(date_range)

        self.assertEqual([i["id"] for i in items], [1, 2, 3])
        self.assertEqual(len(requests), 2)
        params = requests[0].url.params
        self.assertEqual(requests[0].url.path, "/reports/api/v2/details")
        self.assertEqual(params["workspace_id"], "123")
        self.assertEqual(params["user_agent"], "tests")
        self.assertEqual(params["since"], "2025-01-06")
        # Toggl's until is inclusive.
        self.assertEqual(params["until"], "2025-01-12")
        self.assertTrue(requests[0].headers["authorization"].startswith("Basic "))

    async def test_retries_rate_limit_then_succeeds(self):
        import httpx

        from timelink.dates import DateRange

        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, json={})
            return httpx.Response(200, json={"total_count": 0, "data": []})

        date_range = DateRange.from_values("2025-01-06", "2025-01-07", tz_name="UTC")
        async with self._client(handler) as client:
            self.assertEqual(await client.fetch_detailed_report(date_range), [])
        self.assertEqual(len(calls), 2)

    async def test_auth_failure_raises_toggl_error(self):
        import httpx

        from timelink.dates import DateRange
        from timelink.services.toggl_client import TogglApiError

        def handler(request):
            return httpx.Response(401, json={})

        date_range = DateRange.from_values("2025-01-06", "2025-01-07", tz_name="UTC")
        async with self._client(handler) as client:
            with self.assertRaises(TogglApiError) as ctx:
                await client.fetch_detailed_report(date_range)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_missing_credentials_are_rejected(self):
        from timelink.services.toggl_client import TogglClient

        with self.assertRaises(ValueError):
            TogglClient("", 123)


if __name__ == "__main__":
    unittest.main()
