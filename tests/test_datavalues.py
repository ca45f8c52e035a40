import unittest

from fakes import item_statement, novalue_statement, quantity_statement, string_statement, time_statement

from wikimind.datavalues import (
    EntityRef,
    Other,
    PlainString,
    Time,
    classify,
    classify_statement,
    classify_statements,
    display_time,
    statement_value,
)


class ClassifyTests(unittest.TestCase):
    def test_entity_reference(self) -> None:
        self.assertEqual(classify({"entity-type": "item", "id": "Q5"}), EntityRef("Q5"))

    def test_id_wins_over_time(self) -> None:
        self.assertEqual(classify({"id": "Q5", "time": "+2000-01-01T00:00:00Z"}), EntityRef("Q5"))

    def test_time(self) -> None:
        self.assertEqual(classify({"time": "+1955-01-01T00:00:00Z"}), Time("+1955-01-01T00:00:00Z"))

    def test_plain_string(self) -> None:
        self.assertEqual(classify("Einstein_1921.jpg"), PlainString("Einstein_1921.jpg"))

    def test_other_values_kept_verbatim(self) -> None:
        quantity = {"amount": "+3", "unit": "1"}
        self.assertEqual(classify(quantity), Other(quantity))
        self.assertIs(classify(quantity).raw(), quantity)
        self.assertEqual(classify(12), Other(12))

    def test_null_is_skipped(self) -> None:
        self.assertIsNone(classify(None))

    def test_variants_are_exclusive(self) -> None:
        samples = [{"id": "Q1"}, {"time": "+1-00-00T00:00:00Z"}, "text", 1.5, {"text": "hi", "language": "en"}, None]
        kinds = [type(classify(sample)).__name__ for sample in samples]
        self.assertEqual(kinds, ["EntityRef", "Time", "PlainString", "Other", "Other", "NoneType"])


class StatementTests(unittest.TestCase):
    def test_statement_value_digs_mainsnak(self) -> None:
        self.assertEqual(statement_value(item_statement("Q5")), {"entity-type": "item", "id": "Q5"})
        self.assertIsNone(statement_value(novalue_statement()))
        self.assertIsNone(statement_value({}))
        self.assertIsNone(statement_value("broken"))

    def test_classify_statement(self) -> None:
        self.assertEqual(classify_statement(string_statement("abc")), PlainString("abc"))
        self.assertIsNone(classify_statement(novalue_statement()))

    def test_classify_statements_drops_empty_values(self) -> None:
        variants = classify_statements(
            [item_statement("Q5"), novalue_statement(), time_statement("+1879-03-14T00:00:00Z"), quantity_statement("+1")]
        )
        self.assertEqual(
            variants,
            [EntityRef("Q5"), Time("+1879-03-14T00:00:00Z"), Other({"amount": "+1", "unit": "1"})],
        )
        self.assertEqual(classify_statements(None), [])


class DisplayTimeTests(unittest.TestCase):
    def test_display_time(self) -> None:
        self.assertEqual(display_time("+1955-01-01T00:00:00Z"), "1955-01-01")
        self.assertEqual(Time("-0044-03-15T00:00:00Z").display(), "0044-03-15")


if __name__ == "__main__":
    unittest.main()
