import nox

nox.options.default_venv_backend = "uv"


@nox.session
def pre_commit(session: nox.Session):
    """Run pre-commit hooks."""
    session.run("uv", "run", "pre-commit", "run", "--all-files")


@nox.session
@nox.parametrize("python", ["3.11", "3.12", "3.13"])
def tests(session: nox.Session):
    """Run the test suite against each supported interpreter."""
    session.run(
        "uv",
        "run",
        "--python",
        session.bin + "/python",
        "--active",
        "--extra",
        "test",
        "pytest",
        *session.posargs,
    )


@nox.session
def dry_run(session: nox.Session):
    """Resolve the configured pipeline without triggering it."""
    session.run(
        "uv", "run", "python", "-m", "ado_bridge", env={"STERILE": "true"}
    )
