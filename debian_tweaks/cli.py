"""Command-line entry point."""

import sys
from typing import Optional, Tuple

import click

from debian_tweaks import APP_NAME, VERSION
from debian_tweaks.config import SHELLS, load_config
from debian_tweaks.context import build_context
from debian_tweaks.errors import (
    DuplicateStepError,
    FatalStepError,
    PrerequisiteError,
    StepActionError,
)
from debian_tweaks.logging_setup import setup_logger
from debian_tweaks.net import SELECTORS
from debian_tweaks.preflight import check_prerequisites
from debian_tweaks.report import print_status_report
from debian_tweaks.runner import ProvisioningRunner
from debian_tweaks.steps import STAGES, build_steps
from debian_tweaks.ui import (
    console,
    create_header,
    display_panel,
    NordColors,
    print_error,
    print_warning,
)
from debian_tweaks.workspace import RunLock, Workspace

EXIT_OK = 0
EXIT_FATAL_STEP = 1
EXIT_PREREQUISITE = 2


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file overriding configuration defaults",
)
@click.option("--with-virtualization", is_flag=True, help="Set up QEMU/KVM and libvirt")
@click.option("--skip-kernel", is_flag=True, help="Do not install the Liquorix kernel")
@click.option(
    "--skip-stage",
    multiple=True,
    type=click.Choice(STAGES),
    help="Skip every step of a stage (repeatable)",
)
@click.option("--shell", type=click.Choice(SHELLS), help="Login shell to configure")
@click.option(
    "--asset-selector",
    type=click.Choice(sorted(SELECTORS)),
    help="How to pick among several matching release assets",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Append the run log to this file")
@click.option("--dry-run", is_flag=True, help="Evaluate predicates and list planned steps only")
@click.option("--reboot", is_flag=True, help="Reboot after a successful run")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(VERSION, prog_name=APP_NAME)
def main(
    config_path: Optional[str],
    with_virtualization: bool,
    skip_kernel: bool,
    skip_stage: Tuple[str, ...],
    shell: Optional[str],
    asset_selector: Optional[str],
    log_file: Optional[str],
    dry_run: bool,
    reboot: bool,
    debug: bool,
) -> None:
    """Provision a fresh Debian desktop with idempotent steps."""
    try:
        config = load_config(
            config_path,
            with_virtualization=True if with_virtualization else None,
            with_kernel=False if skip_kernel else None,
            skip_stages=list(skip_stage) or None,
            default_shell=shell,
            asset_selector=asset_selector,
            log_file=log_file,
        )
        registry = build_steps(config)
    except (OSError, ValueError, DuplicateStepError) as e:
        print_error(f"Invalid configuration: {e}")
        sys.exit(EXIT_PREREQUISITE)

    logger = setup_logger(config.LOG_FILE, debug=debug, secrets=config.secrets())
    console.print(create_header(APP_NAME))
    logger.info(f"{APP_NAME} v{VERSION} starting{' (dry run)' if dry_run else ''}")
    logger.info(f"Logging to {config.LOG_FILE}")
    if dry_run:
        print_warning("Dry run: predicates are evaluated, no step action runs")

    workspace = Workspace(config.DOWNLOADS_DIR)
    workspace.install_handlers()
    context = build_context(config, logger, workspace)

    exit_code = EXIT_OK
    try:
        check_prerequisites(config, context.commands, dry_run=dry_run)
        with RunLock(config.LOCK_FILE):
            steps = registry.steps(config.SKIP_STAGES)
            logger.info(f"{len(steps)} of {len(registry)} steps selected")
            runner = ProvisioningRunner(context, dry_run=dry_run)
            try:
                report = runner.run(steps)
            except FatalStepError as e:
                logger.error(str(e))
                report = e.report
                exit_code = EXIT_FATAL_STEP
            print_status_report(report, config.LOG_FILE)
    except PrerequisiteError as e:
        logger.error(f"Prerequisite check failed: {e}")
        display_panel(str(e), NordColors.RED, "Cannot start")
        exit_code = EXIT_PREREQUISITE
    finally:
        workspace.cleanup()
        workspace.uninstall_handlers()

    if exit_code == EXIT_OK and reboot and not dry_run:
        logger.info("Rebooting as requested")
        try:
            context.commands.run(["systemctl", "reboot"], privileged=True)
        except StepActionError as e:
            logger.error(f"Reboot failed: {e}")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
