"""Package entry point for ``python -m project_bridge``.

HOW: ``--api`` starts the FastAPI server with uvicorn. Without it the
Slack bot starts in Socket Mode.
"""

import sys

if __name__ == "__main__":
    if "--api" in sys.argv:
        from project_bridge.server.app import run_api
        run_api()
    else:
        from project_bridge.slack.bot import main
        main()
