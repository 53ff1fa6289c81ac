"""
Helpers for talking to the GitHub Actions runner through workflow commands.

See https://docs.github.com/actions/using-workflows/workflow-commands-for-github-actions
"""

import contextlib
import logging
import os
import sys
import uuid

from ado_bridge import logger


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def issue_command(command: str, message: str = "", stream=None):
    stream = stream or sys.stdout
    print(f"::{command}::{escape_data(message)}", file=stream, flush=True)


class WorkflowCommandFormatter(logging.Formatter):
    """Render log records as workflow commands so the runner can annotate them."""

    commands = {
        logging.DEBUG: "debug",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = self.commands.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


def setup_logging(level: str = "INFO", stream=None) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def add_mask(value: str | None):
    if value:
        issue_command("add-mask", value)


@contextlib.contextmanager
def group(title: str):
    issue_command("group", title)
    try:
        yield
    finally:
        issue_command("endgroup")


def set_output(name: str, value: str):
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        logger.debug("GITHUB_OUTPUT is not set, falling back to set-output command")
        print(f"::set-output name={name}::{escape_data(value)}", flush=True)
        return

    with open(output_file, "a", encoding="utf-8") as f:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            f.write(f"{name}={value}\n")


def set_failed(message: str) -> int:
    """Report the step as failed, returns the exit status to use."""
    logger.error(message)
    return 1
