"""Project Bridge: routes Slack file uploads to an n8n workflow per project.

WHY: Text files dropped into Slack need to land in the right repository.
Airtable holds the list of projects (owner/repo/path/branch), a person
picks one from Slack buttons, and n8n does the actual commit. This
package is the glue between those three services.

HOW: Three layers: backend clients (api/, httpx), an HTTP API
(server/, FastAPI) and a Slack bot (slack/, slack-bolt) that talks to
the API. Block Kit rendering and upload checks are pure functions.

RULES:
- The project list is read fresh on every use, never cached
- Selection state travels only in the Slack button value
- Settings are passed in explicitly (see config.BridgeSettings)
"""

__version__ = "0.1.0"
