"""Block Kit builders for project selection and dispatch results.

WHY: When a .txt file is uploaded, the bot replies with one button per
Airtable project so the user can say where the file belongs. The button
payload is the only thing that links the click back to the upload, so
its encoding lives here next to its decoder.

HOW: render_selection() is a pure function from a project list to Block
Kit blocks. Project buttons are grouped in action blocks of at most five
(Slack's layout limit for a readable row), followed by a cancel button.
parse_selection_value() reverses the button payload encoding.

RULES:
- All builders return list[dict] (Block Kit blocks), never do I/O
- action_id values must match the handler registrations in bot.py
- Button value JSON always uses the key order projectId, projectName, fileId
- Same input -> identical output
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, TypeVar

from project_bridge.api.models import Project

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Action IDs; must match @app.action() registrations in bot.py
ACTION_SELECT_PROJECT_PREFIX = "select_project_"
ACTION_CANCEL_SELECTION = "cancel_project_selection"

BUTTONS_PER_ROW = 5

SELECTION_PROMPT = (
    ":dart: *Choose a project* :dart:\n\n"
    ":open_file_folder: Which project should the uploaded file go to?\n"
    "Use each project's emoji to find it quickly!"
)
CANCEL_LABEL = "Close"


# ---------------------------------------------------------------------------
# Selection message
# ---------------------------------------------------------------------------


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive lists of at most size elements."""
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def render_selection(projects: Sequence[Project], file_id: str) -> List[Dict[str, Any]]:
    """Build the project-selection message for an uploaded file.

    WHY: The user must pick the destination project before the file can
    be dispatched to n8n.

    HOW: A prompt section and a divider, then one actions block per chunk
    of five projects (input order preserved), then an actions block with
    the cancel button.

    RULES:
    - Button label: "<emoji> <name>"
    - Button value: {"projectId", "projectName", "fileId"} as JSON
    - action_id: "select_project_<project id>"
    - Empty project list -> prompt, divider, cancel only (no empty actions block)
    - The cancel block is always last
    """
    blocks = [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": SELECTION_PROMPT},
        },
        {"type": "divider"},
    ]  # type: List[Dict[str, Any]]

    for row in chunk(projects, BUTTONS_PER_ROW):
        blocks.append({
            "type": "actions",
            "elements": [_project_button(project, file_id) for project in row],
        })

    blocks.append({
        "type": "actions",
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "text": CANCEL_LABEL, "emoji": True},
                "value": json.dumps({"fileId": file_id}),
                "action_id": ACTION_CANCEL_SELECTION,
            }
        ],
    })

    return blocks


def _project_button(project: Project, file_id: str) -> Dict[str, Any]:
    return {
        "type": "button",
        "text": {
            "type": "plain_text",
            "text": "{} {}".format(project.emoji, project.name),
            "emoji": True,
        },
        "value": json.dumps({
            "projectId": project.id,
            "projectName": project.name,
            "fileId": file_id,
        }),
        "action_id": "{}{}".format(ACTION_SELECT_PROJECT_PREFIX, project.id),
        "style": "primary",
    }


def parse_selection_value(value: str) -> Dict[str, Any]:
    """Decode a selection or cancel button value.

    RULES:
    - Raises ValueError when value is not a JSON object with a "fileId"
    - Project buttons also carry "projectId" and "projectName"
    """
    data = json.loads(value)
    if not isinstance(data, dict) or "fileId" not in data:
        raise ValueError("Not a project selection payload: {!r}".format(value))
    return data


# ---------------------------------------------------------------------------
# Result messages
# ---------------------------------------------------------------------------


def build_dispatch_result_blocks(
    filename: str,
    project_name: str,
    success: bool,
    error: str = "",
) -> List[Dict[str, Any]]:
    """Build the message that replaces the selection once a project was picked."""
    if success:
        text = ":white_check_mark: *{}* was sent to *{}* for processing.".format(
            filename, project_name,
        )
    else:
        text = ":x: *{}* could not be sent to *{}*.\n```{}```".format(
            filename, project_name, error or "Unknown error",
        )

    return [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": text},
        },
    ]


def build_error_blocks(filename: str, error: str) -> List[Dict[str, Any]]:
    """Build Block Kit blocks for an error message."""
    return [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": "*Could not process {}*\n```{}```".format(filename, error),
            },
        },
    ]
