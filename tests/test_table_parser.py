import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from umatrack.core.errors import TableParseError, RemoteFetchError
from umatrack.core.table_parser import parse_choices_table


def page(*rows, header="<tr><th>Choice</th><th>Effect</th></tr>"):
    body = "".join(f"<tr><td>{first}</td><td>{last}</td></tr>" for first, last in rows)
    return f"<html><body><h2>Event</h2><table>{header}{body}</table></body></html>"


class TestParseChoicesTable(unittest.TestCase):
    def test_success_row(self):
        choices = parse_choices_table(page(("<b>Choice 1</b> (Success)", "Speed +10<br>Power +5")))

        self.assertEqual(len(choices), 1)
        self.assertEqual(choices[0].number, 1)
        self.assertEqual(choices[0].success_outcomes, ["Speed +10", "Power +5"])
        self.assertEqual(choices[0].failure_outcomes, [])
        self.assertIsNone(choices[0].label)

    def test_success_and_fail_rows_merge(self):
        choices = parse_choices_table(page(
            ("<b>Choice 1</b> (Success)", "Speed +10"),
            ("<b>Choice 1</b> (Fail)", "Mood -1<br/>Speed -5"),
        ))

        self.assertEqual(len(choices), 1)
        self.assertEqual(choices[0].success_outcomes, ["Speed +10"])
        self.assertEqual(choices[0].failure_outcomes, ["Mood -1", "Speed -5"])

    def test_tag_is_case_insensitive(self):
        choices = parse_choices_table(page(("<b>Choice 2</b> (FAIL)", "Energy -10")))
        self.assertEqual(choices[0].failure_outcomes, ["Energy -10"])
        self.assertEqual(choices[0].success_outcomes, [])

    def test_other_tag_becomes_label(self):
        choices = parse_choices_table(page(("<b>Choice 1</b> (Random)", "Guts +5")))
        self.assertEqual(choices[0].label, "Random")
        self.assertEqual(choices[0].success_outcomes, ["Guts +5"])

    def test_no_tag_defaults_to_success(self):
        choices = parse_choices_table(page(("<b>Choice 3</b>", "Wisdom +10")))
        self.assertEqual(choices[0].number, 3)
        self.assertEqual(choices[0].success_outcomes, ["Wisdom +10"])

    def test_bullets_and_blank_lines_dropped(self):
        choices = parse_choices_table(page(("<b>Choice 1</b>", "・Speed +10<br><br>• Power +5<br>  ")))
        self.assertEqual(choices[0].success_outcomes, ["Speed +10", "Power +5"])

    def test_br_with_attributes_splits_lines(self):
        choices = parse_choices_table(page(("<b>Choice 1</b>", 'Speed +10<br class="sp">Power +5<BR data-x="1" />Guts +3')))
        self.assertEqual(choices[0].success_outcomes, ["Speed +10", "Power +5", "Guts +3"])

    def test_qualifier_ignores_hr_and_whitespace(self):
        choices = parse_choices_table(page(("<b>Choice 1</b><hr>\n   (Success)", "Stamina +5")))
        self.assertEqual(choices[0].success_outcomes, ["Stamina +5"])

    def test_entities_and_inline_markup(self):
        choices = parse_choices_table(page(("<b>Choice 1</b>", "<a href='#'>Charming</a> &amp; Speed +3")))
        self.assertEqual(choices[0].success_outcomes, ["Charming & Speed +3"])

    def test_rows_without_bold_choice_are_skipped(self):
        choices = parse_choices_table(page(
            ("Notes", "Nothing here"),
            ("<b>Tip</b>", "Not a choice"),
            ("<b>Choice 2</b>", "Power +10"),
        ))
        self.assertEqual([c.number for c in choices], [2])

    def test_header_row_is_skipped(self):
        markup = page(("<b>Choice 2</b>", "Power +10"),
                      header="<tr><td><b>Choice 9</b></td><td>Header</td></tr>")
        choices = parse_choices_table(markup)
        self.assertEqual([c.number for c in choices], [2])

    def test_row_with_no_cells_is_skipped(self):
        markup = ("<table><tr><th>Choice</th></tr><tr></tr>"
                  "<tr><td><b>Choice 1</b></td><td>Speed +1</td></tr></table>")
        choices = parse_choices_table(markup)
        self.assertEqual(len(choices), 1)

    def test_choices_sorted_ascending(self):
        choices = parse_choices_table(page(
            ("<b>Choice 2</b>", "Power +10"),
            ("<b>Choice 1</b>", "Speed +10"),
            ("<b>Choice 2</b> (Fail)", "Mood -1"),
        ))
        self.assertEqual([c.number for c in choices], [1, 2])
        self.assertEqual(choices[1].failure_outcomes, ["Mood -1"])

    def test_only_first_table_is_read(self):
        markup = page(("<b>Choice 1</b>", "Speed +10")) + page(("<b>Choice 2</b>", "Power +10"))
        self.assertEqual([c.number for c in parse_choices_table(markup)], [1])

    def test_nested_table_stays_inside_cell(self):
        markup = ("<table><tr><th>Choice</th><th>Effect</th></tr>"
                  "<tr><td><b>Choice 1</b></td><td><table><tr><td>x</td></tr></table>Speed +10</td></tr>"
                  "</table>")
        choices = parse_choices_table(markup)
        self.assertEqual(choices[0].success_outcomes, ["xSpeed +10"])

    def test_single_cell_row_uses_same_cell_for_outcomes(self):
        markup = "<table><tr><th>h</th></tr><tr><td><b>Choice 1</b> Skill hint</td></tr></table>"
        choices = parse_choices_table(markup)
        self.assertEqual(choices[0].number, 1)
        self.assertEqual(choices[0].success_outcomes, ["Choice 1 Skill hint"])

    def test_missing_table_raises(self):
        with self.assertRaises(TableParseError):
            parse_choices_table("<html><body><p>Not found</p></body></html>")
        self.assertTrue(issubclass(TableParseError, RemoteFetchError))

    def test_empty_table_yields_no_choices(self):
        self.assertEqual(parse_choices_table("<table><tr><th>Choice</th></tr></table>"), [])


if __name__ == '__main__':
    unittest.main()
