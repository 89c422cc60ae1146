"""Application bootstrap for PeerPulse.

Starts the Slack Bolt application via Socket Mode when executed as a script.
Keeping the runtime bootstrap here (instead of in ``peerpulse/app.py``) lets
the app module be imported by unit tests without side-effects.
"""
from __future__ import annotations

import os
import sys
from contextlib import suppress

from slack_bolt.adapter.socket_mode import SocketModeHandler

from peerpulse.app import app, logger, record_store, shutdown_executor


def main() -> None:  # pragma: no cover
    """Start the Slack bot in Socket Mode and block until interrupted."""

    app_token = os.getenv("SLACK_APP_TOKEN")
    if not app_token:
        logger.error(
            "Environment variable SLACK_APP_TOKEN is required to start the bot."
        )
        sys.exit(1)

    logger.info("Launching SocketModeHandler with store=%s", record_store.count())
    handler = SocketModeHandler(app, app_token)

    try:
        logger.info("PeerPulse is ready to receive commands via Socket Mode.")
        handler.start()  # Blocking call
    except KeyboardInterrupt:  # pragma: no cover
        logger.info("Shutdown requested (KeyboardInterrupt). Exiting…")
    finally:
        with suppress(Exception):
            shutdown_executor()
        logger.info("Goodbye.")


if __name__ == "__main__":  # pragma: no cover
    main()
