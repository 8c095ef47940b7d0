"""Tests for the project-selection Block Kit builders.

WHY: The rendered buttons are the contract with Slack and with the bot's
action handlers: chunk sizes, action_id naming and the button payload
must stay exactly as the handlers expect.

HOW: render_selection() is pure, so tests call it directly with Project
objects and inspect the returned block dicts.
"""

from __future__ import annotations

import json
import math

import pytest

from project_bridge.api.models import Project
from project_bridge.slack.messages import (
    ACTION_CANCEL_SELECTION,
    build_dispatch_result_blocks,
    build_error_blocks,
    chunk,
    parse_selection_value,
    render_selection,
)


def _projects(n):
    return [
        Project(
            id="rec{}".format(i),
            name="Project {}".format(i),
            owner="acme",
            repo="repo{}".format(i),
            path_prefix="src",
        )
        for i in range(n)
    ]


def _project_groups(blocks):
    """Action blocks holding project buttons (everything but the cancel block)."""
    return [b for b in blocks if b["type"] == "actions"][:-1]


# ---------------------------------------------------------------------------
# Tests: chunk
# ---------------------------------------------------------------------------


class TestChunk:

    def test_splits_in_order(self):
        assert chunk([1, 2, 3, 4, 5, 6, 7], 3) == [[1, 2, 3], [4, 5, 6], [7]]

    def test_empty(self):
        assert chunk([], 5) == []

    def test_exact_multiple(self):
        assert chunk([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]


# ---------------------------------------------------------------------------
# Tests: render_selection structure
# ---------------------------------------------------------------------------


class TestRenderSelectionStructure:

    def test_starts_with_prompt_and_divider(self):
        blocks = render_selection(_projects(2), "F1")
        assert blocks[0]["type"] == "section"
        assert blocks[0]["text"]["type"] == "mrkdwn"
        assert blocks[1] == {"type": "divider"}

    @pytest.mark.parametrize("n", [1, 4, 5, 6, 10, 11, 23])
    def test_group_count_is_ceil_n_over_five(self, n):
        groups = _project_groups(render_selection(_projects(n), "F1"))
        assert len(groups) == math.ceil(n / 5)

    @pytest.mark.parametrize("n", [1, 4, 5, 6, 10, 11, 23])
    def test_last_group_size(self, n):
        groups = _project_groups(render_selection(_projects(n), "F1"))
        expected = n % 5 or 5
        assert len(groups[-1]["elements"]) == expected

    def test_no_group_exceeds_five_buttons(self):
        groups = _project_groups(render_selection(_projects(17), "F1"))
        assert all(len(g["elements"]) <= 5 for g in groups)

    def test_preserves_input_order(self):
        projects = _projects(12)
        groups = _project_groups(render_selection(projects, "F1"))
        ids = [
            json.loads(button["value"])["projectId"]
            for group in groups
            for button in group["elements"]
        ]
        assert ids == [p.id for p in projects]

    @pytest.mark.parametrize("n", [0, 3, 5, 9])
    def test_cancel_group_is_always_last(self, n):
        blocks = render_selection(_projects(n), "F1")
        last = blocks[-1]
        assert last["type"] == "actions"
        assert len(last["elements"]) == 1
        assert last["elements"][0]["action_id"] == ACTION_CANCEL_SELECTION

    def test_empty_projects_has_only_cancel_group(self):
        blocks = render_selection([], "F1")
        assert [b["type"] for b in blocks] == ["section", "divider", "actions"]
        assert blocks[2]["elements"][0]["action_id"] == "cancel_project_selection"

    def test_is_deterministic(self):
        projects = _projects(7)
        first = render_selection(projects, "F1")
        second = render_selection(projects, "F1")
        assert first == second
        assert json.dumps(first) == json.dumps(second)


# ---------------------------------------------------------------------------
# Tests: render_selection buttons
# ---------------------------------------------------------------------------


class TestRenderSelectionButtons:

    def _button(self, project, file_id="F1"):
        return render_selection([project], file_id)[2]["elements"][0]

    def test_label_is_emoji_and_name(self):
        project = Project(
            id="p1", name="Demo", owner="acme", repo="demo", path_prefix="src", emoji="\U0001f680",
        )
        button = self._button(project)
        assert button["text"] == {"type": "plain_text", "text": "\U0001f680 Demo", "emoji": True}

    def test_label_uses_default_emoji(self):
        button = self._button(_projects(1)[0])
        assert button["text"]["text"] == "\U0001f4c1 Project 0"

    def test_action_id_uses_project_id(self):
        assert self._button(_projects(1)[0])["action_id"] == "select_project_rec0"

    def test_primary_style(self):
        assert self._button(_projects(1)[0])["style"] == "primary"

    def test_value_encodes_selection_in_key_order(self):
        button = self._button(_projects(1)[0], file_id="F42")
        assert button["value"] == json.dumps(
            {"projectId": "rec0", "projectName": "Project 0", "fileId": "F42"}
        )
        assert list(json.loads(button["value"])) == ["projectId", "projectName", "fileId"]

    def test_cancel_value_carries_file_id(self):
        cancel = render_selection([], "F42")[-1]["elements"][0]
        assert json.loads(cancel["value"]) == {"fileId": "F42"}


# ---------------------------------------------------------------------------
# Tests: parse_selection_value
# ---------------------------------------------------------------------------


class TestParseSelectionValue:

    def test_decodes_project_button(self):
        button = render_selection(_projects(1), "F9")[2]["elements"][0]
        assert parse_selection_value(button["value"]) == {
            "projectId": "rec0",
            "projectName": "Project 0",
            "fileId": "F9",
        }

    def test_decodes_cancel_button(self):
        assert parse_selection_value('{"fileId": "F9"}') == {"fileId": "F9"}

    def test_rejects_non_json(self):
        with pytest.raises(ValueError):
            parse_selection_value("F9")

    def test_rejects_payload_without_file_id(self):
        with pytest.raises(ValueError):
            parse_selection_value('{"projectId": "rec0"}')

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_selection_value('["F9"]')


# ---------------------------------------------------------------------------
# Tests: result messages
# ---------------------------------------------------------------------------


class TestResultBlocks:

    def test_success_mentions_file_and_project(self):
        text = build_dispatch_result_blocks("notes.txt", "Demo", True)[0]["text"]["text"]
        assert "notes.txt" in text
        assert "Demo" in text

    def test_failure_includes_error(self):
        blocks = build_dispatch_result_blocks("notes.txt", "Demo", False, "Project with ID p9 not found")
        assert "Project with ID p9 not found" in blocks[0]["text"]["text"]

    def test_error_blocks_contain_filename_and_error(self):
        text = build_error_blocks("notes.txt", "boom")[0]["text"]["text"]
        assert "notes.txt" in text
        assert "boom" in text
