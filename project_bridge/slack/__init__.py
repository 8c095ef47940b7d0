"""Slack bot integration for the project bridge.

WHY: Users pick the destination project for an uploaded file directly in
Slack. This package renders the project buttons and handles the clicks.

HOW: The bot runs as a separate process using slack-bolt's Socket Mode
adapter. It acts as an HTTP client to the local FastAPI bridge API,
which owns all Airtable and n8n traffic.

RULES:
- Bot is a separate process from the FastAPI server
- Communication with the API is via httpx HTTP calls
- Socket Mode requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
- All Slack actions must be ack()'d within 3 seconds
"""
