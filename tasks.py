"""Tasks for use with Invoke."""

import os

from invoke import task

PACKAGE = "netbox_ssot"
CONFIG_FILE = os.getenv("NETBOX_SSOT_CONFIG", "config.yaml")


# ------------------------------------------------------------------------------
# BUILD
# ------------------------------------------------------------------------------
@task
def build(context):
    """Build the sdist and wheel packages under dist/.

    Args:
        context (obj): Used to run specific commands
    """
    context.run("poetry build", pty=True)


# ------------------------------------------------------------------------------
# ACTIONS
# ------------------------------------------------------------------------------
@task
def sync(context, config=CONFIG_FILE, dry_run=False, verbosity=2, summary=True):
    """Run the sync with the given configuration.

    Args:
        context (obj): Used to run specific commands
        config (str): Path to the YAML configuration file
        dry_run (bool): Do not write any data to NetBox
        verbosity (int): Log verbosity, 0 warning, 1-2 info, 3+ debug
        summary (bool): Print the summary after the sync
    """
    command = f"netbox-ssot --config {config}"
    if verbosity:
        command += " -" + "v" * verbosity
    if dry_run:
        command += " --dry-run"
    if summary:
        command += " --print-summary"
    context.run(command, pty=True)


# ------------------------------------------------------------------------------
# TESTS / LINTING
# ------------------------------------------------------------------------------
@task
def unittest(context, verbosity=1, keyword=""):
    """Run unit tests.

    Args:
        context (obj): Used to run specific commands
        verbosity (int): Verbosity of test output
        keyword (str): Only run tests matching the pytest keyword expression
    """
    command = f"pytest {PACKAGE}/tests"
    if verbosity > 1:
        command += " -" + "v" * (verbosity - 1)
    if keyword:
        command += f" -k '{keyword}'"
    context.run(command, pty=True)


@task
def pylint(context):
    """Run pylint code analysis.

    Args:
        context (obj): Used to run specific commands
    """
    context.run(f"pylint {PACKAGE} tasks.py", pty=True)


@task
def black(context):
    """Run black to check that Python files adhere to its style standards.

    Args:
        context (obj): Used to run specific commands
    """
    context.run("black --check --diff .", pty=True)


@task
def flake8(context):
    """This will run flake8 for the package and tasks.

    Args:
        context (obj): Used to run specific commands
    """
    context.run(f"flake8 {PACKAGE} tasks.py", pty=True)


@task
def pydocstyle(context):
    """Run pydocstyle to validate docstring formatting adheres to standards.

    Args:
        context (obj): Used to run specific commands
    """
    context.run(f"pydocstyle {PACKAGE}", pty=True)


@task
def bandit(context):
    """Run bandit to validate basic static code security analysis.

    Args:
        context (obj): Used to run specific commands
    """
    context.run(f"bandit --recursive {PACKAGE} --exclude {PACKAGE}/tests", pty=True)


@task
def tests(context):
    """Run all tests for this project.

    Args:
        context (obj): Used to run specific commands
    """
    # Sorted loosely from fastest to slowest
    print("Running black...")
    black(context)
    print("Running flake8...")
    flake8(context)
    print("Running bandit...")
    bandit(context)
    print("Running pydocstyle...")
    pydocstyle(context)
    print("Running pylint...")
    pylint(context)
    print("Running unit tests...")
    unittest(context)

    print("All tests have passed!")
