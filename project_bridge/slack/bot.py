"""Slack bot: Socket Mode event handlers and project-selection actions.

WHY: Users drop .txt files into Slack and pick which project each belongs
to. This module is the glue between Slack and the local bridge API: it
watches uploads, posts the project buttons, and turns a click into a
dispatch request.

HOW: Uses slack-bolt with Socket Mode (no public URL needed). The
file_shared handler asks the API for the selection blocks and posts them
in the file's thread. Project button clicks are acked immediately; a
background thread downloads the file text from Slack, POSTs it to the
API's /dispatch endpoint, replaces the buttons with the outcome and sends
a best-effort analytics event.

RULES:
- All Slack actions must be ack()'d within 3 seconds
- Heavy work runs after ack() in a background thread
- The clicked button's value is the only selection state; nothing is
  remembered between the selection message and the click
- Uses httpx for HTTP calls to the local FastAPI API
- Bot only watches for files in SLACK_CHANNEL_ID (if configured)
- Runnable as: python -m project_bridge.slack.bot
"""

from __future__ import annotations

import logging
import os
import re
import threading
from typing import Any, Dict, List, Optional

import httpx
from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from project_bridge.slack.messages import (
    ACTION_CANCEL_SELECTION,
    ACTION_SELECT_PROJECT_PREFIX,
    build_dispatch_result_blocks,
    build_error_blocks,
    parse_selection_value,
)
from project_bridge.validators import extract_project_id, is_supported_file

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

BRIDGE_API_URL = os.getenv("BRIDGE_API_URL", "http://localhost:8000")
SLACK_CHANNEL_ID = os.getenv("SLACK_CHANNEL_ID", "")

# Slightly above the API's own 30 s n8n timeout plus the Airtable read
API_TIMEOUT_S = 60.0
DOWNLOAD_TIMEOUT_S = 30.0

_SELECT_PROJECT_PATTERN = re.compile("^{}".format(re.escape(ACTION_SELECT_PROJECT_PREFIX)))


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def create_app(bot_token: Optional[str] = None) -> App:
    """Create and configure the Slack Bolt app with all handlers.

    RULES:
    - If bot_token is None, reads from SLACK_BOT_TOKEN env var
    - Project buttons are matched by the select_project_ action_id prefix
    """
    token = bot_token or os.environ.get("SLACK_BOT_TOKEN", "")

    app = App(token=token)

    app.event("file_shared")(handle_file_shared)
    app.action(_SELECT_PROJECT_PATTERN)(handle_project_selected)
    app.action(ACTION_CANCEL_SELECTION)(handle_cancel_selection)

    return app


# ---------------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------------


def handle_file_shared(event: Dict[str, Any], client: Any, logger: Any) -> None:
    """Handle file_shared events: post the project-selection buttons.

    RULES:
    - If SLACK_CHANNEL_ID is set, only watch that channel
    - Only supported files (filetype "txt") get a selection message
    - Failures are logged and reported in the thread, never raised
    """
    file_id = event.get("file_id", "")
    channel_id = event.get("channel_id", "")

    if SLACK_CHANNEL_ID and channel_id != SLACK_CHANNEL_ID:
        return

    try:
        file_info_resp = client.files_info(file=file_id)
    except Exception:
        logger.exception("Failed to fetch file info for %s", file_id)
        return

    file_data = file_info_resp.get("file", {})
    if not is_supported_file(file_data):
        return

    filename = file_data.get("name", "")
    thread_ts = event.get("event_ts") or file_data.get("timestamp") or ""
    thread_ts_str = str(thread_ts) if thread_ts else None

    try:
        blocks = _fetch_selection_blocks(file_id)
    except Exception as exc:
        logger.exception("Failed to build project selection for %s", filename)
        _post_error(client, channel_id, thread_ts_str, filename, str(exc))
        return

    try:
        client.chat_postMessage(
            channel=channel_id,
            thread_ts=thread_ts_str,
            blocks=blocks,
            text="Choose a project for {}".format(extract_project_id(filename) or filename),
        )
    except Exception:
        logger.exception("Failed to post project selection for %s", filename)


def _fetch_selection_blocks(file_id: str) -> List[Dict[str, Any]]:
    with httpx.Client(timeout=API_TIMEOUT_S) as http:
        resp = http.get(
            "{}/projects/selection".format(BRIDGE_API_URL),
            params={"file_id": file_id},
        )
        resp.raise_for_status()
        return resp.json()["blocks"]


# ---------------------------------------------------------------------------
# Action handlers (Block Kit interactions)
# ---------------------------------------------------------------------------


def handle_project_selected(ack: Any, body: Any, client: Any, logger: Any) -> None:
    """Handle a project button click: dispatch the file in the background.

    RULES:
    - ack() FIRST, before any processing
    - The button value carries projectId, projectName and fileId
    - Malformed button values are logged and ignored
    """
    ack()

    action = _find_action(body, ACTION_SELECT_PROJECT_PREFIX)
    try:
        selection = parse_selection_value(action.get("value", ""))
    except ValueError:
        logger.exception("Ignoring malformed project selection %r", action.get("value"))
        return

    message = body.get("message", {})
    context = {
        "file_id": selection["fileId"],
        "project_id": selection.get("projectId", ""),
        "project_name": selection.get("projectName", ""),
        "user_id": body.get("user", {}).get("id", ""),
        "channel": body.get("channel", {}).get("id", ""),
        "message_ts": message.get("ts", ""),
        "thread_ts": message.get("thread_ts") or message.get("ts", ""),
    }

    t = threading.Thread(
        target=_run_dispatch,
        args=(client, context),
        daemon=True,
    )
    t.start()


def handle_cancel_selection(ack: Any, body: Any, client: Any, logger: Any) -> None:
    """Handle the Close button: delete the selection message."""
    ack()

    channel = body.get("channel", {}).get("id", "")
    message_ts = body.get("message", {}).get("ts", "")
    try:
        client.chat_delete(channel=channel, ts=message_ts)
    except Exception:
        logger.exception("Failed to delete selection message %s", message_ts)


def _find_action(body: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    for action in body.get("actions", []):
        if action.get("action_id", "").startswith(prefix):
            return action
    return {}


# ---------------------------------------------------------------------------
# Background dispatch
# ---------------------------------------------------------------------------


def _run_dispatch(client: Any, context: Dict[str, Any]) -> None:
    """Download the file, dispatch it via the API, and report the outcome.

    HOW: files_info -> download url_private with the bot token -> POST
    /dispatch -> chat_update the selection message -> POST /analytics.

    RULES:
    - Runs in a background thread; never raises
    - The selection message is replaced with the dispatch outcome
    - Analytics failures are logged only
    """
    file_id = context["file_id"]
    channel = context["channel"]
    filename = "file"

    try:
        file_info_resp = client.files_info(file=file_id)
        file_data = file_info_resp.get("file", {})
        filename = file_data.get("name", filename)
        url_private = file_data.get("url_private", "")
        if not url_private:
            _post_error(client, channel, context["thread_ts"], filename, "Could not get file download URL")
            return

        with httpx.Client(timeout=DOWNLOAD_TIMEOUT_S) as http:
            dl_resp = http.get(
                url_private,
                headers={"Authorization": "Bearer {}".format(client.token)},
            )
            dl_resp.raise_for_status()
            file_content = dl_resp.text

        with httpx.Client(timeout=API_TIMEOUT_S) as http:
            resp = http.post(
                "{}/dispatch".format(BRIDGE_API_URL),
                json={
                    "file_content": file_content,
                    "file_name": filename,
                    "project_id": context["project_id"],
                    "user_id": context["user_id"],
                    "channel_id": channel,
                    "ts": str(file_data.get("timestamp", context["thread_ts"])),
                    "file_id": file_id,
                },
            )
            resp.raise_for_status()
            result = resp.json()
    except Exception as exc:
        logger.exception("Dispatch pipeline error for %s", file_id)
        _post_error(client, channel, context["thread_ts"], filename, "Unexpected error: {}".format(exc))
        return

    success = bool(result.get("success"))
    _update_message(
        client,
        channel,
        context["message_ts"],
        build_dispatch_result_blocks(
            filename,
            context["project_name"],
            success,
            result.get("error") or "",
        ),
        "{}: {}".format("Sent" if success else "Failed", filename),
    )

    _send_analytics({
        "event": "project_selected",
        "file_id": file_id,
        "file_name": filename,
        "project_id": context["project_id"],
        "user_id": context["user_id"],
        "channel_id": channel,
        "success": success,
    })


def _send_analytics(data: Dict[str, Any]) -> None:
    try:
        with httpx.Client(timeout=API_TIMEOUT_S) as http:
            resp = http.post("{}/analytics".format(BRIDGE_API_URL), json={"data": data})
            resp.raise_for_status()
    except httpx.HTTPError:
        logger.warning("Failed to send analytics for file %s", data.get("file_id"), exc_info=True)


# ---------------------------------------------------------------------------
# Slack message helpers
# ---------------------------------------------------------------------------


def _update_message(
    client: Any,
    channel: str,
    message_ts: str,
    blocks: List[Dict[str, Any]],
    text: str,
) -> None:
    """Edit a Slack message with new blocks."""
    try:
        client.chat_update(channel=channel, ts=message_ts, blocks=blocks, text=text)
    except Exception:
        logger.exception("Failed to update message %s", message_ts)


def _post_error(
    client: Any,
    channel: str,
    thread_ts: Optional[str],
    filename: str,
    error: str,
) -> None:
    """Post an error message in the thread."""
    try:
        client.chat_postMessage(
            channel=channel,
            thread_ts=thread_ts,
            blocks=build_error_blocks(filename, error),
            text="Could not process {}".format(filename),
        )
    except Exception:
        logger.exception("Failed to post error message")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Start the Slack bot in Socket Mode.

    RULES:
    - Requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN environment variables
    - Blocks on the SocketModeHandler.start() call
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    bot_token = os.environ.get("SLACK_BOT_TOKEN", "")
    app_token = os.environ.get("SLACK_APP_TOKEN", "")

    if not bot_token:
        raise ValueError("SLACK_BOT_TOKEN environment variable is required")
    if not app_token:
        raise ValueError("SLACK_APP_TOKEN environment variable is required")

    app = create_app(bot_token=bot_token)

    logger.info("Starting Slack bot in Socket Mode...")
    logger.info("Bridge API URL: %s", BRIDGE_API_URL)
    if SLACK_CHANNEL_ID:
        logger.info("Watching channel: %s", SLACK_CHANNEL_ID)
    else:
        logger.info("Watching all channels the bot is in")

    handler = SocketModeHandler(app, app_token)
    handler.start()


if __name__ == "__main__":
    main()
