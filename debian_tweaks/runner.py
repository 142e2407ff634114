"""Sequential execution of steps with per-step failure policy."""

import logging
import time
import traceback
from typing import Iterable

from debian_tweaks.context import StepContext
from debian_tweaks.errors import FatalStepError, StepActionError, StepSkipped
from debian_tweaks.models import RunReport, Step, StepResult, StepStatus
from debian_tweaks.predicates import evaluate
from debian_tweaks.ui import (
    NordColors,
    console,
    print_message,
    print_step,
    print_success,
)

logger = logging.getLogger(__name__)


class ProvisioningRunner:
    """
    Execute steps in order, recording one StepResult per step.

    A step whose predicate holds is skipped without running its action. A
    failing warn-and-continue step is recorded and the run goes on; a failing
    fatal step stops the run with FatalStepError carrying the partial report.
    In dry-run mode predicates are evaluated but actions are only planned.
    """

    def __init__(self, context: StepContext, dry_run: bool = False):
        self.context = context
        self.dry_run = dry_run

    def run(self, steps: Iterable[Step]) -> RunReport:
        report = RunReport()
        try:
            for step in steps:
                result = self.run_step(step)
                report.add(result)

                if result.status == StepStatus.SUCCEEDED and step.follow_up:
                    report.add_follow_up(step.follow_up)

                if result.status == StepStatus.FAILED and step.fatal:
                    report.aborted_by = step.name
                    raise FatalStepError(step.name, result.message, report)
        finally:
            report.finished_at = time.time()
        return report

    def run_step(self, step: Step) -> StepResult:
        start = time.monotonic()

        if step.predicate is not None and evaluate(step.predicate, self.context):
            logger.info(f"[{step.name}] already satisfied, skipping")
            print_message(f"{step.description}: already done", NordColors.POLAR_NIGHT_4, "-")
            return StepResult(step.name, StepStatus.SKIPPED, "already satisfied")

        if self.dry_run:
            print_step(f"Would run: {step.description}")
            logger.info(f"[{step.name}] planned (dry run)")
            return StepResult(step.name, StepStatus.PLANNED, step.description)

        logger.info(f"[{step.name}] {step.description}")
        try:
            with console.status(f"[bold {NordColors.FROST_2}]{step.description}..."):
                message = step.action(self.context) or ""
        except StepSkipped as e:
            logger.info(f"[{step.name}] skipped: {e}")
            print_message(f"{step.description}: {e}", NordColors.POLAR_NIGHT_4, "-")
            return StepResult(
                step.name, StepStatus.SKIPPED, str(e), time.monotonic() - start
            )
        except StepActionError as e:
            return self._failed(step, e.diagnostic, e, start)
        except Exception as e:
            logger.debug(f"[{step.name}] traceback:\n{traceback.format_exc()}")
            return self._failed(step, f"Unexpected error: {e}", e, start)

        elapsed = time.monotonic() - start
        print_success(f"{step.description}" + (f": {message}" if message else ""))
        logger.info(f"[{step.name}] succeeded in {elapsed:.1f}s")
        return StepResult(step.name, StepStatus.SUCCEEDED, message, elapsed)

    def _failed(self, step: Step, message: str, error: Exception, start: float) -> StepResult:
        logger.error(f"[{step.name}] {message}")
        return StepResult(
            step.name,
            StepStatus.FAILED,
            message,
            time.monotonic() - start,
            error_type=type(error).__name__,
        )
