import tempfile
import unittest
from pathlib import Path

from src.project_rename.validation import (
    RenameRequest,
    RenameValidationError,
    identifier_name,
    is_valid_version,
    snake_case,
    validate_rename_request,
)


class TestRenameValidation(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _validate(self, **kwargs):
        base = {"name": "Task Flow", "app_id": "com.acme.taskflow"}
        base.update(kwargs)
        return validate_rename_request(RenameRequest(**base), project_root=self.root)

    def test_snake_case_collapses_separators(self):
        cases = {
            "Task Flow": "task_flow",
            "  My--Cool   App!  ": "my_cool_app",
            "Purplestack": "purplestack",
            "Nostr 2 Go": "nostr_2_go",
            "__x__": "x",
        }
        for raw, expected in cases.items():
            self.assertEqual(snake_case(raw), expected)

    def test_identifier_name_keeps_pascal_case_input(self):
        self.assertEqual(identifier_name("TaskFlow", "taskflow"), "TaskFlow")
        self.assertEqual(identifier_name("Task Flow", "task_flow"), "TaskFlow")
        self.assertEqual(identifier_name("notes", "notes"), "Notes")

    def test_app_id_rules(self):
        for good in ["com.example.app", "io.nostr.app2", "a.b"]:
            self.assertEqual(self._validate(app_id=good).new_app_id, good)
        for bad in ["app", "Com.example.app", "com.1company.app", "com..app", "com.example.", "com.ex-ample.app", ""]:
            with self.assertRaises(RenameValidationError, msg=bad) as ctx:
                self._validate(app_id=bad)
            self.assertEqual(ctx.exception.field, "app_id")

    def test_digit_leading_segment_is_rejected(self):
        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(app_id="com.1company.app")
        self.assertEqual(ctx.exception.field, "app_id")
        self.assertIn("1company", ctx.exception.message)

    def test_single_segment_app_id_is_rejected(self):
        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(app_id="taskflow")
        self.assertEqual(ctx.exception.field, "app_id")

    def test_version_rules(self):
        self.assertFalse(is_valid_version("1.2"))
        self.assertFalse(is_valid_version("1.2.3-beta"))
        self.assertFalse(is_valid_version("1.2.3+b4"))
        self.assertTrue(is_valid_version("1.2.3"))
        self.assertTrue(is_valid_version("1.2.3+4"))

        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(version="1.2")
        self.assertEqual(ctx.exception.field, "version")
        self.assertEqual(self._validate(version="1.2.3+4").version, "1.2.3+4")

    def test_version_defaults_to_baseline(self):
        self.assertEqual(self._validate().version, "0.1.0")
        self.assertEqual(self._validate(version="  ").version, "0.1.0")

    def test_defaults_for_old_identity(self):
        spec = self._validate(description="  A todo app  ")
        self.assertEqual(spec.old_app_id, "com.example.purplestack")
        self.assertEqual(spec.old_app_name, "Purplestack")
        self.assertEqual(spec.old_app_name_snake_case, "purplestack")
        self.assertEqual(spec.new_app_name_snake_case, "task_flow")
        self.assertEqual(spec.description, "A todo app")
        self.assertFalse(spec.has_icons)

    def test_first_failing_field_is_reported(self):
        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(name="", app_id="bad", version="x")
        self.assertEqual(ctx.exception.field, "name")

    def test_name_must_start_with_letter(self):
        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(name="123 Go")
        self.assertEqual(ctx.exception.field, "name")

    def test_every_missing_icon_is_reported(self):
        (self.root / "icon.png").write_bytes(b"\x89PNG")
        with self.assertRaises(RenameValidationError) as ctx:
            self._validate(
                icon="icon.png",
                adaptive_background="missing-bg.png",
                notification_icon="missing-notify.png",
            )
        err = ctx.exception
        self.assertEqual(err.field, "icons")
        self.assertEqual(len(err.problems), 2)
        self.assertTrue(any("missing-bg.png" in p for p in err.problems))
        self.assertTrue(any("missing-notify.png" in p for p in err.problems))

    def test_icon_paths_resolve_against_project_root(self):
        (self.root / "assets").mkdir()
        (self.root / "assets" / "icon.png").write_bytes(b"\x89PNG")
        spec = self._validate(icon="assets/icon.png")
        self.assertEqual(spec.icon_paths["main"], (self.root / "assets" / "icon.png").resolve())
        self.assertTrue(spec.has_icons)

    def test_reversed_swaps_identity(self):
        spec = self._validate()
        back = spec.reversed()
        self.assertEqual(back.old_app_id, "com.acme.taskflow")
        self.assertEqual(back.new_app_id, "com.example.purplestack")
        self.assertEqual(back.new_app_name_snake_case, "purplestack")
        self.assertEqual(back.reversed(), spec)


if __name__ == "__main__":
    unittest.main()
