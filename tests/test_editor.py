"""
Tests for resume_site.webui.editor.

The editor is a plain state container, so these run without an app.
"""

import pytest

from resume_site.errors import ValidationError
from resume_site.webui.editor import (
    MAX_IMAGE_BYTES,
    MAX_UNDO,
    RESUME_PART,
    SHOWCASE_PART,
    DraftRegistry,
    ResumeEditor,
    to_data_uri,
)


@pytest.fixture
def editor():
    return ResumeEditor.from_document({
        "name": "Jane",
        "updatedAt": "2024-01-01T00:00:00.000Z",
        "experiences": [
            {"id": "e1", "jobTitle": "CTO", "duties": ["Lead"], "fullBullets": ["Grew team"]},
            {"id": "e2", "jobTitle": "Engineer", "workLocation": None},
        ],
        "skills": [{"id": "s1", "name": "Python", "level": 9}],
    })


class TestFromDocument:
    def test_fills_missing_sections(self, editor):
        assert editor.items("education") == []
        assert editor.items("showcase") == []
        assert editor.profile["missionTitle"] == "Mission"
        assert editor.dirty is False

    def test_pads_duty_slots(self, editor):
        assert editor.items("experiences")[0]["duties"] == ["Lead", "", ""]

    def test_none_keeps_default(self, editor):
        assert editor.items("experiences")[1]["fullBullets"] == [""]

    def test_empty_document(self):
        editor = ResumeEditor.from_document(None)

        assert editor.profile["name"] == ""
        assert editor.to_payload()["skills"] == []


class TestEdits:
    """One method per logical edit, each undoable."""

    def test_set_profile_field(self, editor):
        editor.set_profile_field("name", "Jane Doe")

        assert editor.profile["name"] == "Jane Doe"
        assert editor.dirty is True

    def test_checkbox_value(self, editor):
        editor.set_profile_field("showMission", "true")

        assert editor.profile["showMission"] is True

    def test_unknown_and_read_only_fields(self, editor):
        with pytest.raises(ValidationError):
            editor.set_profile_field("favouriteColour", "blue")
        with pytest.raises(ValidationError):
            editor.set_profile_field("updatedAt", "2030-01-01")
        assert editor.dirty is False

    def test_set_item_field_coerces(self, editor):
        editor.set_item_field("skills", 0, "level", "12")
        editor.set_item_field("experiences", 1, "workLocation", "")

        assert editor.items("skills")[0]["level"] == 10
        assert editor.items("experiences")[1]["workLocation"] is None

    def test_set_item_field_bad_index(self, editor):
        with pytest.raises(ValidationError):
            editor.set_item_field("skills", 3, "name", "Go")

    def test_set_list_entry(self, editor):
        editor.set_list_entry("experiences", 0, "duties", 2, "Hire")

        assert editor.items("experiences")[0]["duties"] == ["Lead", "", "Hire"]

    def test_add_and_remove_item(self, editor):
        item = editor.add_item("experiences")

        assert item["duties"] == ["", "", ""]
        assert len(editor.items("experiences")) == 3
        editor.remove_item("experiences", 0)
        assert [e["jobTitle"] for e in editor.items("experiences")] == ["Engineer", ""]

    def test_showcase_cap(self, editor):
        for _ in range(6):
            editor.add_item("showcase")

        with pytest.raises(ValidationError):
            editor.add_item("showcase")

    def test_move(self, editor):
        assert editor.move_up("experiences", 0) is False
        assert editor.move_down("experiences", 1) is False
        assert editor.move_down("experiences", 0) is True

        assert [e["id"] for e in editor.items("experiences")] == ["e2", "e1"]

    def test_bullets(self, editor):
        editor.add_bullet(0)
        editor.set_list_entry("experiences", 0, "fullBullets", 1, "Shipped v2")
        editor.remove_bullet(0, 0)

        assert editor.items("experiences")[0]["fullBullets"] == ["Shipped v2"]
        with pytest.raises(ValidationError):
            editor.remove_bullet(0, 5)

    def test_unknown_section(self, editor):
        with pytest.raises(ValidationError):
            editor.add_item("hobbies")


class TestUndo:
    def test_undo_restores_previous_state(self, editor):
        editor.set_profile_field("name", "Changed")
        editor.remove_item("skills", 0)

        assert editor.undo() is True
        assert editor.items("skills")[0]["name"] == "Python"
        assert editor.undo() is True
        assert editor.profile["name"] == "Jane"
        assert editor.dirty is False
        assert editor.undo() is False

    def test_history_is_bounded(self, editor):
        for i in range(MAX_UNDO + 10):
            editor.set_profile_field("title", f"t{i}")

        undone = 0
        while editor.undo():
            undone += 1
        assert undone == MAX_UNDO

    def test_mark_saved_clears_history(self, editor):
        editor.set_profile_field("name", "Saved")
        editor.mark_saved()

        assert editor.dirty is False
        assert editor.can_undo is False


class TestSavedParts:
    """The résumé and the showcase are saved separately."""

    def test_saving_showcase_leaves_resume_unsaved(self, editor):
        editor.set_profile_field("name", "Changed")
        editor.add_item("showcase")

        editor.mark_saved(SHOWCASE_PART)

        assert editor.dirty_parts == {RESUME_PART}
        assert editor.can_undo is True

    def test_saving_resume_leaves_showcase_unsaved(self, editor):
        editor.add_item("showcase")
        editor.remove_item("skills", 0)

        editor.mark_saved(RESUME_PART)

        assert editor.dirty_parts == {SHOWCASE_PART}

    def test_undo_past_save_marks_part_unsaved(self, editor):
        editor.set_profile_field("name", "Saved")
        editor.add_item("showcase")
        editor.mark_saved(RESUME_PART)

        editor.undo()
        assert editor.dirty_parts == set()
        assert editor.profile["name"] == "Saved"

        editor.undo()
        assert editor.profile["name"] == "Jane"
        assert editor.dirty_parts == {RESUME_PART}

    def test_history_cleared_once_everything_is_saved(self, editor):
        editor.set_profile_field("name", "Changed")
        editor.add_item("showcase")

        editor.mark_saved(RESUME_PART)
        editor.mark_saved(SHOWCASE_PART)

        assert editor.dirty is False
        assert editor.can_undo is False


class TestImages:
    def test_data_uri(self):
        assert to_data_uri(b"\x89PNG", "image/png") == "data:image/png;base64,iVBORw=="

    @pytest.mark.parametrize(
        "content, mimetype",
        [(b"", "image/png"), (b"%PDF", "application/pdf"), (b"x" * (MAX_IMAGE_BYTES + 1), "image/jpeg")],
    )
    def test_rejected_uploads(self, content, mimetype):
        with pytest.raises(ValidationError):
            to_data_uri(content, mimetype)

    def test_set_image_on_profile_and_item(self, editor):
        editor.add_item("certifications")

        editor.set_image("profile", "photoUrl", b"GIF89a", "image/gif")
        editor.set_image("certifications", "iconUrl", b"GIF89a", "image/gif", index=0)

        assert editor.profile["photoUrl"].startswith("data:image/gif;base64,")
        assert editor.items("certifications")[0]["iconUrl"].startswith("data:image/gif;base64,")

    def test_set_image_on_text_field(self, editor):
        with pytest.raises(ValidationError):
            editor.set_image("profile", "name", b"GIF89a", "image/gif")


class TestPayload:
    def test_payload_shape(self, editor):
        payload = editor.to_payload()

        assert "updatedAt" not in payload
        assert "showcase" not in payload
        assert payload["name"] == "Jane"
        assert [s["name"] for s in payload["skills"]] == ["Python"]

    def test_payload_is_a_copy(self, editor):
        payload = editor.to_payload()
        payload["skills"].clear()

        assert len(editor.items("skills")) == 1


class TestDraftRegistry:
    def test_lifecycle(self, editor):
        drafts = DraftRegistry()

        draft_id = drafts.create(editor)

        assert drafts.get(draft_id) is editor
        assert len(drafts) == 1
        drafts.discard(draft_id)
        assert drafts.get(draft_id) is None
        assert drafts.get(None) is None
        assert len(drafts) == 0

    def test_idle_drafts_expire(self, editor):
        now = [1000.0]
        drafts = DraftRegistry(max_age=60, clock=lambda: now[0])
        idle_id = drafts.create(editor)
        active_id = drafts.create(ResumeEditor.from_document(None))

        now[0] += 45
        assert drafts.get(active_id) is not None
        now[0] += 30

        assert drafts.get(idle_id) is None
        assert drafts.get(active_id) is not None
        assert len(drafts) == 1

    def test_create_evicts_expired_drafts(self, editor):
        now = [0.0]
        drafts = DraftRegistry(max_age=60, clock=lambda: now[0])
        for _ in range(3):
            drafts.create(ResumeEditor.from_document(None))

        now[0] = 120
        drafts.create(editor)

        assert len(drafts) == 1


class TestArticleOrder:
    """Articles carry an explicit order that moves with them."""

    @pytest.fixture
    def articles_editor(self):
        return ResumeEditor.from_document({
            "articles": [
                {"id": "a1", "title": "First", "order": 10},
                {"id": "a2", "title": "Second", "order": 20},
            ],
        })

    def test_move_swaps_order_values(self, articles_editor):
        articles_editor.move_down("articles", 0)

        articles = articles_editor.items("articles")
        assert [(a["id"], a["order"]) for a in articles] == [("a2", 10), ("a1", 20)]

    def test_new_article_goes_last(self, articles_editor):
        assert articles_editor.add_item("articles")["order"] == 21

    def test_set_order(self, articles_editor):
        articles_editor.set_item_field("articles", 0, "order", "5")

        assert articles_editor.items("articles")[0]["order"] == 5
        with pytest.raises(ValidationError):
            articles_editor.set_item_field("articles", 0, "order", "soon")
