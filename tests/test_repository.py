import unittest
from unittest import mock

from fakes import FakeApiClient

from wikimind.config import Settings
from wikimind.errors import WikimindError
from wikimind.http import HttpClient
from wikimind.repository import EntityRepository

API_ERROR = {"code": "no-such-entity", "info": "Could not find an entity with the ID \"Q1\"."}


def api_response(payload):
    resp = mock.Mock()
    resp.status_code = 200
    resp.json.return_value = payload
    return resp


class ApiErrorPayloadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings(retry_attempts=1)
        self.repository = EntityRepository(HttpClient(self.settings, sleep=lambda _: None))

    @mock.patch("wikimind.http.requests.get")
    def test_get_entities_logs_and_keeps_api_error(self, get) -> None:
        get.return_value = api_response({"error": API_ERROR})
        with self.assertLogs("wikimind.http", level="ERROR") as logs:
            with self.assertRaises(WikimindError) as ctx:
                self.repository.get_entities(["Q1"], props="labels")
        self.assertEqual(ctx.exception.code, "BAD_RESPONSE")
        self.assertEqual(ctx.exception.details, {"ids": ["Q1"], "error": API_ERROR})
        self.assertIn(self.settings.api_url, logs.output[-1])
        self.assertIn("'ids': 'Q1'", logs.output[-1])
        self.assertIn("wbgetentities", logs.output[-1])

    @mock.patch("wikimind.http.requests.get")
    def test_search_logs_and_keeps_api_error(self, get) -> None:
        error = {"code": "badvalue", "info": "Unrecognized value for parameter \"type\"."}
        get.return_value = api_response({"error": error})
        with self.assertLogs("wikimind.http", level="ERROR") as logs:
            with self.assertRaises(WikimindError) as ctx:
                self.repository.search("Tehran", "en", "nonsense")
        self.assertEqual(ctx.exception.code, "BAD_RESPONSE")
        self.assertEqual(ctx.exception.details, {"query": "Tehran", "error": error})
        self.assertIn(self.settings.api_url, logs.output[-1])
        self.assertIn("'search': 'Tehran'", logs.output[-1])

    @mock.patch("wikimind.http.requests.get")
    def test_missing_key_without_error_block(self, get) -> None:
        get.return_value = api_response({"success": 1})
        with self.assertLogs("wikimind.http", level="ERROR"):
            with self.assertRaises(WikimindError) as ctx:
                self.repository.get_entities(["Q2"])
        self.assertEqual(ctx.exception.details, {"ids": ["Q2"]})


class LookupTests(unittest.TestCase):
    def test_missing_entity_is_not_found(self) -> None:
        client = FakeApiClient({})
        with self.assertRaises(WikimindError) as ctx:
            EntityRepository(client).entity("Q404")
        self.assertEqual(ctx.exception.code, "NOT_FOUND")
        self.assertEqual(client.failures, [])

    def test_search_passes_language_and_type(self) -> None:
        client = FakeApiClient(search_hits=[{"id": "Q1", "label": "universe"}])
        hits = EntityRepository(client).search("universe", "fa", "item", 3)
        self.assertEqual(hits, [{"id": "Q1", "label": "universe"}])
        self.assertEqual(
            client.calls[0],
            {
                "action": "wbsearchentities",
                "search": "universe",
                "language": "fa",
                "uselang": "fa",
                "type": "item",
                "limit": 3,
            },
        )


if __name__ == "__main__":
    unittest.main()
