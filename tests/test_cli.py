import contextlib
import io
import json
import unittest
from unittest import mock

from wikimind import cli


class CliTests(unittest.TestCase):
    def _run(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = cli.main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_query_dry_run(self) -> None:
        code, out, _ = self._run(
            [
                "query",
                "--dry-run",
                "--select",
                "item",
                "--where",
                "item",
                "P31",
                "Q5",
                "--order-by",
                "item",
                "--desc",
                "--limit",
                "3",
            ]
        )
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("SELECT ?item WHERE {\n?item wdt:P31 wd:Q5 .\n"))
        self.assertIn("ORDER BY DESC(?item)\nLIMIT 3", out)

    def test_invalid_id_exits_non_zero(self) -> None:
        code, out, err = self._run(["entity", "not-an-id"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("INVALID_ID", err)

    def test_structured_command_prints_json(self) -> None:
        with mock.patch.object(cli, "Wikimind") as factory:
            factory.return_value.structured_info.return_value = {"instance of": ["human"]}
            code, out, _ = self._run(["structured", "Q937", "--lang", "fa", "--max-properties", "5"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {"instance of": ["human"]})
        factory.return_value.structured_info.assert_called_once_with("Q937", "fa", 5)

    def test_profile_command(self) -> None:
        with mock.patch.object(cli, "Wikimind") as factory:
            factory.return_value.short_profile.side_effect = lambda entity_id, lang: {"label": entity_id}
            code, out, _ = self._run(["profile", "Q1", "Q2"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {"Q1": {"label": "Q1"}, "Q2": {"label": "Q2"}})


if __name__ == "__main__":
    unittest.main()
