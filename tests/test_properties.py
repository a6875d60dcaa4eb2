import copy
import unittest
from datetime import date
from zoneinfo import ZoneInfo

from timeblocks.properties import (
    CheckboxField,
    DateField,
    ProjectionContext,
    ReadOnlyField,
    SelectField,
    Template,
    parse_property,
    project_properties,
    project_property,
)


UTC = ZoneInfo("UTC")


def _context(title: str = "Standup") -> ProjectionContext:
    return ProjectionContext(
        reference_date=date(2024, 1, 1),
        target_date=date(2024, 3, 15),
        tz=UTC,
        template_title=title,
    )


def _title(text: str) -> dict:
    return {
        "id": "title",
        "type": "title",
        "title": [{"type": "text", "text": {"content": text}, "plain_text": text}],
    }


def _date(start, end=None) -> dict:
    return {"id": "when", "type": "date", "date": {"start": start, "end": end, "time_zone": None}}


class TestParseProperty(unittest.TestCase):
    def test_every_property_maps_to_one_variant(self) -> None:
        self.assertIsInstance(parse_property({"type": "select", "select": None}), SelectField)
        self.assertIsInstance(parse_property({"type": "date", "date": None}), DateField)
        self.assertIsInstance(parse_property({"type": "checkbox"}), CheckboxField)
        self.assertEqual(parse_property({"type": "formula", "formula": {}}), ReadOnlyField("formula"))
        self.assertEqual(parse_property({"type": "button", "button": {}}), ReadOnlyField("button"))
        self.assertEqual(parse_property("not a property"), ReadOnlyField())

    def test_unknown_type_is_read_only(self) -> None:
        self.assertEqual(parse_property({"type": "place", "place": {}}), ReadOnlyField("place"))


class TestProjectProperties(unittest.TestCase):
    def test_projects_every_writable_type(self) -> None:
        template = Template(
            title="Standup",
            properties={
                "Name": _title("Standup"),
                "Notes": {"id": "n", "type": "rich_text", "rich_text": [{"plain_text": "daily"}]},
                "Points": {"id": "p", "type": "number", "number": 3},
                "Done": {"id": "d", "type": "checkbox", "checkbox": True},
                "Link": {"id": "l", "type": "url", "url": "https://example.com"},
                "Mail": {"id": "m", "type": "email", "email": "team@example.com"},
                "Phone": {"id": "ph", "type": "phone_number", "phone_number": "555-0100"},
                "Area": {"id": "a", "type": "select", "select": {"id": "opt", "name": "Work", "color": "blue"}},
                "Tags": {
                    "id": "t",
                    "type": "multi_select",
                    "multi_select": [{"id": "1", "name": "Focus", "color": "red"}, {"id": "2", "name": "Team"}],
                },
                "Project": {"id": "r", "type": "relation", "relation": [{"id": "page-1"}], "has_more": False},
                "Owner": {
                    "id": "o",
                    "type": "people",
                    "people": [{"object": "user", "id": "user-1", "name": "Sam", "avatar_url": None}],
                },
                "State": {"id": "s", "type": "status", "status": {"id": "st", "name": "Planned", "color": "gray"}},
                "When": _date("2024-01-01T09:00:00.000Z", "2024-01-01T09:30:00.000Z"),
            },
        )

        projected = project_properties(template, _context())

        self.assertEqual(projected["Name"], {"title": template.properties["Name"]["title"]})
        self.assertEqual(projected["Notes"], {"rich_text": [{"plain_text": "daily"}]})
        self.assertEqual(projected["Points"], {"number": 3})
        self.assertEqual(projected["Done"], {"checkbox": True})
        self.assertEqual(projected["Link"], {"url": "https://example.com"})
        self.assertEqual(projected["Mail"], {"email": "team@example.com"})
        self.assertEqual(projected["Phone"], {"phone_number": "555-0100"})
        self.assertEqual(projected["Area"], {"select": {"name": "Work"}})
        self.assertEqual(projected["Tags"], {"multi_select": [{"name": "Focus"}, {"name": "Team"}]})
        self.assertEqual(projected["Project"], {"relation": [{"id": "page-1"}]})
        self.assertEqual(projected["Owner"], {"people": [{"id": "user-1"}]})
        self.assertEqual(projected["State"], {"status": {"name": "Planned"}})
        self.assertEqual(
            projected["When"],
            {"date": {"start": "2024-03-15T09:00:00", "end": "2024-03-15T09:30:00", "time_zone": "UTC"}},
        )

    def test_read_only_properties_never_appear(self) -> None:
        template = Template(
            title="Standup",
            properties={
                "Name": _title("Standup"),
                "Total": {"id": "f", "type": "formula", "formula": {"type": "number", "number": 2}},
                "Sum": {"id": "r", "type": "rollup", "rollup": {"type": "number", "number": 1}},
                "Created": {"id": "c", "type": "created_time", "created_time": "2024-01-01T00:00:00.000Z"},
                "Creator": {"id": "cb", "type": "created_by", "created_by": {"id": "user-1"}},
                "Edited": {"id": "e", "type": "last_edited_time", "last_edited_time": "2024-01-01T00:00:00.000Z"},
                "Editor": {"id": "eb", "type": "last_edited_by", "last_edited_by": {"id": "user-1"}},
                "ID": {"id": "u", "type": "unique_id", "unique_id": {"prefix": "TB", "number": 4}},
            },
        )
        projected = project_properties(template, _context())
        self.assertEqual(list(projected), ["Name"])

    def test_empty_values_get_safe_defaults(self) -> None:
        context = _context()
        self.assertEqual(project_property("Done", parse_property({"type": "checkbox"}), context), {"checkbox": False})
        self.assertEqual(
            project_property("Area", parse_property({"type": "select", "select": None}), context),
            {"select": None},
        )
        self.assertEqual(
            project_property("State", parse_property({"type": "status", "status": None}), context),
            {"status": None},
        )
        self.assertEqual(
            project_property("Tags", parse_property({"type": "multi_select", "multi_select": None}), context),
            {"multi_select": []},
        )
        self.assertEqual(
            project_property("When", parse_property({"type": "date", "date": None}), context),
            {"date": None},
        )

    def test_files_keep_external_links_and_warn_on_uploads(self) -> None:
        uploaded = {
            "name": "notes.pdf",
            "type": "file",
            "file": {"url": "https://files.example.com/notes.pdf", "expiry_time": "2024-01-01T01:00:00.000Z"},
        }
        field = parse_property(
            {
                "type": "files",
                "files": [
                    {"name": "Agenda", "type": "external", "external": {"url": "https://example.com/agenda"}},
                    uploaded,
                ],
            }
        )
        with self.assertLogs("timeblocks.properties", level="WARNING") as logs:
            projected = project_property("Attachments", field, _context())
        self.assertEqual(
            projected,
            {"files": [{"name": "Agenda", "external": {"url": "https://example.com/agenda"}}, uploaded]},
        )
        self.assertIn("notes.pdf", logs.output[0])

    def test_range_across_midnight(self) -> None:
        field = parse_property(_date("2024-01-01T23:00:00.000Z", "2024-01-02T02:00:00.000Z"))
        projected = project_property("When", field, _context("Night shift"))
        self.assertEqual(
            projected,
            {"date": {"start": "2024-03-15T23:00:00", "end": "2024-03-16T02:00:00", "time_zone": "UTC"}},
        )

    def test_start_only_date_keeps_end_absent(self) -> None:
        field = parse_property(_date("2024-01-02T07:15:00.000Z"))
        projected = project_property("When", field, _context())
        self.assertEqual(
            projected,
            {"date": {"start": "2024-03-16T07:15:00", "end": None, "time_zone": "UTC"}},
        )

    def test_all_day_date_has_no_time_zone(self) -> None:
        field = parse_property(_date("2024-01-01", "2024-01-03"))
        projected = project_property("When", field, _context())
        self.assertEqual(projected, {"date": {"start": "2024-03-15", "end": "2024-03-17"}})

    def test_inverted_range_is_dropped_with_warning(self) -> None:
        template = Template(
            title="Backwards",
            properties={
                "Name": _title("Backwards"),
                "When": _date("2024-01-01T10:00:00.000Z", "2024-01-01T09:00:00.000Z"),
            },
        )
        with self.assertLogs("timeblocks.properties", level="WARNING") as logs:
            projected = project_properties(template, _context("Backwards"))
        self.assertNotIn("When", projected)
        self.assertIn("Name", projected)
        self.assertIn("Backwards", logs.output[0])
        self.assertIn("When", logs.output[0])
        self.assertIn("2024-03-15 10:00:00", logs.output[0])

    def test_equal_bounds_are_dropped(self) -> None:
        field = parse_property(_date("2024-01-01T10:00:00.000Z", "2024-01-01T10:00:00.000Z"))
        with self.assertLogs("timeblocks.properties", level="WARNING"):
            self.assertIsNone(project_property("When", field, _context()))

    def test_malformed_date_raises(self) -> None:
        field = parse_property(_date("sometime soon"))
        with self.assertRaises(ValueError):
            project_property("When", field, _context())

    def test_template_is_not_mutated(self) -> None:
        properties = {
            "Name": _title("Standup"),
            "Area": {"id": "a", "type": "select", "select": {"id": "opt", "name": "Work", "color": "blue"}},
            "When": _date("2024-01-01T09:00:00.000Z", "2024-01-01T09:30:00.000Z"),
        }
        template = Template(title="Standup", properties=properties)
        snapshot = copy.deepcopy(properties)
        project_properties(template, _context())
        self.assertEqual(template.properties, snapshot)


class TestTemplate(unittest.TestCase):
    def test_from_page_joins_title_text(self) -> None:
        page = {
            "id": "page-1",
            "properties": {
                "When": _date("2024-01-01T09:00:00.000Z"),
                "Name": {
                    "type": "title",
                    "title": [{"plain_text": "Deep "}, {"plain_text": "work"}],
                },
            },
        }
        template = Template.from_page(page)
        self.assertEqual(template.title, "Deep work")
        self.assertEqual(set(template.properties), {"When", "Name"})

    def test_from_page_without_title_is_untitled(self) -> None:
        self.assertEqual(Template.from_page({"properties": {"Name": {"type": "title", "title": []}}}).title, "Untitled")

    def test_from_payload_requires_mapping(self) -> None:
        with self.assertRaises(ValueError):
            Template.from_payload(["not", "a", "template"])

    def test_date_fields_lists_only_dates(self) -> None:
        template = Template(title="x", properties={"Name": _title("x"), "When": _date("2024-01-01")})
        self.assertEqual(template.date_fields(), [("When", DateField(start="2024-01-01"))])


if __name__ == "__main__":
    unittest.main()
