"""
Unit tests for the subject and message template stores.
"""

import pytest

from app.errors import InvalidRequest
from app.services.template_store import (
    MESSAGE_DELIMITER,
    MessageTemplateStore,
    SubjectTemplateStore,
)


@pytest.fixture()
def subjects(tmp_path):
    return SubjectTemplateStore(tmp_path / "templates" / "subjects.txt")


@pytest.fixture()
def messages(tmp_path):
    return MessageTemplateStore(tmp_path / "templates" / "messages.txt")


class TestSubjectTemplates:
    """Subjects: one trimmed entry per line, insertion-ordered set."""

    def test_list_missing_file_is_empty(self, subjects):
        assert subjects.list() == []

    def test_add_and_list_in_order(self, subjects):
        subjects.add("Invoice")
        subjects.add("  Weekly report  ")

        assert subjects.list() == ["Invoice", "Weekly report"]
        assert subjects.path.read_text() == "Invoice\nWeekly report"

    def test_duplicate_add_is_noop(self, subjects):
        assert subjects.add("Invoice") is True
        assert subjects.add(" Invoice ") is False
        assert subjects.list() == ["Invoice"]

    def test_empty_subject_rejected(self, subjects):
        with pytest.raises(InvalidRequest):
            subjects.add("   ")

    def test_embedded_newline_kept_on_one_line(self, subjects):
        subjects.add("Hello\nthere")
        assert subjects.list() == ["Hello there"]

    def test_delete_removes_match_and_keeps_order(self, subjects):
        for s in ["A", "B", "C"]:
            subjects.add(s)

        assert subjects.delete(" B ") == 1
        assert subjects.list() == ["A", "C"]

    def test_delete_matches_subject_added_with_newline(self, subjects):
        """Delete cleans up its argument the same way add does."""
        subjects.add("Hello\nthere")

        assert subjects.delete("Hello\nthere") == 1
        assert subjects.list() == []

    def test_delete_unknown_is_noop(self, subjects):
        """Deleting a subject that was never added succeeds and changes nothing."""
        subjects.add("A")
        assert subjects.delete("never added") == 0
        assert subjects.list() == ["A"]

    def test_delete_on_missing_file(self, subjects):
        assert subjects.delete("anything") == 0
        assert not subjects.path.exists()

    def test_reads_hand_edited_file(self, subjects):
        subjects.path.parent.mkdir(parents=True)
        subjects.path.write_text("First\n\n  Second  \n")
        assert subjects.list() == ["First", "Second"]


class TestMessageTemplates:
    """Messages: multi-line entries separated by the delimiter token."""

    def test_multiline_round_trip(self, messages):
        """Adding 'Hello\\nWorld' lists exactly that entry; adding it twice keeps one."""
        messages.add("Hello\nWorld")
        messages.add("Hello\nWorld")

        assert messages.list() == ["Hello\nWorld"]

    def test_on_disk_format(self, messages):
        messages.add("First")
        messages.add("Second\nline")

        assert messages.path.read_text() == (
            f"{MESSAGE_DELIMITER}\nFirst\n{MESSAGE_DELIMITER}\nSecond\nline"
        )

    def test_entries_are_trimmed(self, messages):
        messages.add("\n  Dear team,\n\nthanks.  \n")
        assert messages.list() == ["Dear team,\n\nthanks."]

    def test_delete_keeps_others(self, messages):
        messages.add("One")
        messages.add("Two\nlines")
        messages.add("Three")

        assert messages.delete("Two\nlines") == 1
        assert messages.list() == ["One", "Three"]

    def test_delete_unknown_is_noop(self, messages):
        messages.add("One")
        assert messages.delete("Other") == 0
        assert messages.list() == ["One"]

    def test_reads_file_with_leading_blank_segment(self, messages):
        messages.path.parent.mkdir(parents=True)
        messages.path.write_text(f"\n{MESSAGE_DELIMITER}\nA\n{MESSAGE_DELIMITER}\n\n{MESSAGE_DELIMITER}\nB")
        assert messages.list() == ["A", "B"]

    def test_delimiter_in_message_rejected(self, messages):
        with pytest.raises(InvalidRequest):
            messages.add(f"before {MESSAGE_DELIMITER} after")

    def test_empty_message_rejected(self, messages):
        with pytest.raises(InvalidRequest):
            messages.add("\n\n")
