import io
import logging

from ado_bridge import actions, logger


def test_escape_data():
    assert actions.escape_data("50% done\r\nnext") == "50%25 done%0D%0Anext"


def test_workflow_command_formatter():
    stream = io.StringIO()
    actions.setup_logging("DEBUG", stream=stream)

    logger.debug("resolving %s", "pipeline")
    logger.info("plain message")
    logger.warning("multiple\nlines")
    logger.error("failed")

    assert stream.getvalue().splitlines() == [
        "::debug::resolving pipeline",
        "plain message",
        "::warning::multiple%0Alines",
        "::error::failed",
    ]


def test_setup_logging_replaces_handler():
    first = actions.setup_logging("INFO", stream=io.StringIO())
    second = actions.setup_logging("WARNING", stream=io.StringIO())

    assert first not in logger.handlers
    assert second in logger.handlers
    assert logger.level == logging.WARNING


def test_add_mask(capsys):
    actions.add_mask("secret-token")
    actions.add_mask(None)

    assert capsys.readouterr().out == "::add-mask::secret-token\n"


def test_group(capsys):
    with actions.group("Branch info"):
        print("inside")

    assert capsys.readouterr().out == "::group::Branch info\ninside\n::endgroup::\n"


def test_set_output(github_output):
    actions.set_output("run-id", "345")
    actions.set_output("notes", "first\nsecond")

    lines = github_output.read_text().splitlines()
    assert lines[0] == "run-id=345"
    assert lines[1].startswith("notes<<ghadelimiter_")
    delimiter = lines[1].split("<<", 1)[1]
    assert lines[2:] == ["first", "second", delimiter]


def test_set_output_without_file(monkeypatch, capsys):
    monkeypatch.delenv("GITHUB_OUTPUT")

    actions.set_output("run-id", "345")

    assert "::set-output name=run-id::345" in capsys.readouterr().out


def test_set_failed(caplog):
    with caplog.at_level("ERROR", logger="ado_bridge"):
        assert actions.set_failed("Build failed or canceled.") == 1

    assert "Build failed or canceled." in caplog.text
