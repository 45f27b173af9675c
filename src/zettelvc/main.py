#!/usr/bin/env python
"""Main entry point for the zettelvc terminal app."""
import argparse
import atexit
import logging
import sys

from zettelvc import __version__
from zettelvc.config import config
from zettelvc.exceptions import StorageError
from zettelvc.observability import configure_logging, metrics
from zettelvc.services.note_service import NoteService
from zettelvc.storage.git_store import GitStore
from zettelvc.storage.note_repository import NoteRepository
from zettelvc.tui.app import ZettelApp
from zettelvc.tui.controller import ERROR, Controller, ShowStatus


def parse_args(argv=None):
    """Parse command line arguments (only --help; settings come from the environment)."""
    parser = argparse.ArgumentParser(
        prog="zettelvc",
        description="Versioned Zettelkasten in the terminal. "
        "Configure with ZETTELVC_* environment variables or ~/.zettelvc.env.",
    )
    return parser.parse_args(argv)


def _log_metrics_on_exit():
    """Write the session's operation summary to the log on shutdown."""
    summary = metrics.get_summary()
    logging.getLogger(__name__).info(
        f"Session finished: {summary['total_operations']} operations, "
        f"{summary['total_errors']} errors"
    )


def build_controller() -> Controller:
    """Open the repository, load every note and wire up the controller.

    Raises:
        StorageError: If the repository cannot be opened or read.
    """
    logger = logging.getLogger(__name__)

    store = GitStore(
        config.repo_path,
        timeout=config.git_timeout,
        author_name=config.git_author_name,
        author_email=config.git_author_email,
    )
    repository = NoteRepository(store)
    report = repository.load()

    initial_status = None
    if report.skipped:
        initial_status = ShowStatus(
            f"Loaded {report.loaded} notes, {len(report.skipped)} unreadable records skipped",
            ERROR,
        )
    logger.info(f"Opened repository at {store.repo_path}")

    return Controller(
        NoteService(repository),
        export_dir=config.get_export_dir(),
        history_limit=config.history_limit,
        initial_status=initial_status,
    )


def main(argv=None):
    """Run the zettelvc terminal app."""
    parse_args(argv)

    # File logging only: console output would corrupt the full-screen UI
    try:
        log_file = configure_logging(config.log_dir, level=config.get_log_level())
    except OSError as e:
        logging.basicConfig(level=logging.WARNING)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_file = None

    logger = logging.getLogger(__name__)
    logger.info(f"Starting zettelvc {__version__}")
    if log_file:
        logger.info(f"Persistent logging enabled: {log_file}")

    atexit.register(_log_metrics_on_exit)

    try:
        controller = build_controller()
    except StorageError as e:
        logger.error(f"Failed to open repository {config.repo_path}: {e}")
        print(f"zettelvc: cannot open repository {config.repo_path}: {e.message}", file=sys.stderr)
        sys.exit(1)

    app = ZettelApp(controller, sub_title=str(config.repo_path))
    app.run()


if __name__ == "__main__":
    main()
