"""Tests for the provisioning runner: ordering, policies, idempotence and dry runs."""

import logging

import pytest

from debian_tweaks.errors import FatalStepError, NetworkFetchError, StepActionError, StepSkipped
from debian_tweaks.models import FailurePolicy, Step, StepStatus
from debian_tweaks.predicates import package_installed, path_exists
from debian_tweaks.runner import ProvisioningRunner


def recording_action(log, name, message=None):
    def action(ctx):
        log.append(name)
        return message

    return action


def failing_action(error):
    def action(ctx):
        raise error

    return action


def install_action(name):
    def action(ctx):
        ctx.apt.install([name])

    return action


class TestOrdering:
    def test_steps_run_in_declared_order(self, ctx):
        log = []
        steps = [Step(n, n, recording_action(log, n)) for n in ("a", "b", "c")]

        report = ProvisioningRunner(ctx).run(steps)

        assert log == ["a", "b", "c"]
        assert report.names == ["a", "b", "c"]
        assert all(r.status == StepStatus.SUCCEEDED for r in report.results)
        assert report.finished_at is not None

    def test_action_message_is_recorded(self, ctx):
        report = ProvisioningRunner(ctx).run([Step("a", "a", recording_action([], "a", "done"))])
        assert report.get("a").message == "done"


class TestFailurePolicy:
    def test_fatal_failure_stops_the_run(self, ctx):
        log = []
        steps = [
            Step("first", "first", recording_action(log, "first")),
            Step(
                "broken",
                "broken",
                failing_action(StepActionError("boom")),
                failure_policy=FailurePolicy.FATAL,
            ),
            Step("never", "never", recording_action(log, "never")),
        ]

        with pytest.raises(FatalStepError) as exc_info:
            ProvisioningRunner(ctx).run(steps)

        report = exc_info.value.report
        assert log == ["first"]
        assert report.names == ["first", "broken"]
        assert report.aborted_by == "broken"
        assert report.get("broken").status == StepStatus.FAILED
        assert exc_info.value.step_name == "broken"

    def test_warn_failure_continues(self, ctx):
        log = []
        steps = [
            Step("broken", "broken", failing_action(StepActionError("boom"))),
            Step("after", "after", recording_action(log, "after")),
        ]

        report = ProvisioningRunner(ctx).run(steps)

        assert log == ["after"]
        assert report.get("broken").status == StepStatus.FAILED
        assert report.get("broken").error_type == "StepActionError"
        assert report.get("after").status == StepStatus.SUCCEEDED
        assert [r.name for r in report.failed] == ["broken"]

    def test_unexpected_exception_is_recorded_as_failure(self, ctx):
        steps = [Step("oops", "oops", failing_action(KeyError("missing")))]

        report = ProvisioningRunner(ctx).run(steps)

        result = report.get("oops")
        assert result.status == StepStatus.FAILED
        assert result.message.startswith("Unexpected error:")
        assert result.error_type == "KeyError"

    def test_network_failure_suggests_retry(self, ctx):
        steps = [Step("fetch", "fetch", failing_action(NetworkFetchError("timed out", url="http://x")))]

        report = ProvisioningRunner(ctx).run(steps)

        assert "re-run" in report.get("fetch").message

    def test_failure_is_logged_with_step_name(self, ctx, caplog):
        steps = [Step("broken", "broken", failing_action(StepActionError("boom")))]

        with caplog.at_level(logging.ERROR):
            ProvisioningRunner(ctx).run(steps)

        errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert errors == ["[broken] boom"]


class TestPredicates:
    def test_satisfied_predicate_skips_action(self, ctx, commands):
        """A package already installed is skipped without any install command."""
        commands.installed.add("htop")
        step = Step("install-htop", "htop", install_action("htop"), predicate=package_installed("htop"))

        report = ProvisioningRunner(ctx).run([step])

        assert report.get("install-htop").status == StepStatus.SKIPPED
        assert not commands.ran("apt-get", "install")

    def test_unsatisfied_predicate_runs_action(self, ctx, commands):
        """The install runs and the package database then reports the package."""
        step = Step("install-htop", "htop", install_action("htop"), predicate=package_installed("htop"))

        report = ProvisioningRunner(ctx).run([step])

        assert report.get("install-htop").status == StepStatus.SUCCEEDED
        assert commands.ran("apt-get", "install")
        assert ctx.apt.is_installed("htop")

    def test_predicate_error_fails_closed(self, ctx):
        log = []

        def broken_predicate(ctx):
            raise OSError("unreadable")

        step = Step("a", "a", recording_action(log, "a"), predicate=broken_predicate)

        report = ProvisioningRunner(ctx).run([step])

        assert log == ["a"]
        assert report.get("a").status == StepStatus.SUCCEEDED

    def test_step_skipped_from_action(self, ctx):
        step = Step("ext", "ext", failing_action(StepSkipped("not installed")))

        report = ProvisioningRunner(ctx).run([step])

        assert report.get("ext").status == StepStatus.SKIPPED
        assert report.get("ext").message == "not installed"


class TestIdempotence:
    def test_second_run_only_skips_or_succeeds(self, ctx, tmp_path):
        marker = tmp_path / "marker"

        def create_marker(ctx):
            if marker.exists():
                raise StepActionError("already exists")
            marker.write_text("x")

        steps = [
            Step("install-htop", "htop", install_action("htop"), predicate=package_installed("htop")),
            Step("marker", "marker", create_marker, predicate=path_exists(marker)),
            Step("refresh", "refresh", lambda ctx: None),
        ]

        runner = ProvisioningRunner(ctx)
        first = runner.run(steps)
        second = runner.run(steps)

        assert not first.failed
        assert not second.failed
        assert second.get("install-htop").status == StepStatus.SKIPPED
        assert second.get("marker").status == StepStatus.SKIPPED
        assert second.get("refresh").status == StepStatus.SUCCEEDED


class TestFollowUps:
    def test_follow_up_collected_only_when_step_ran(self, ctx, commands):
        commands.installed.add("zsh")
        steps = [
            Step("ran", "ran", lambda ctx: None, follow_up="Reboot"),
            Step("skipped", "skipped", lambda ctx: None, predicate=package_installed("zsh"),
                 follow_up="Log out"),
            Step("again", "again", lambda ctx: None, follow_up="Reboot"),
        ]

        report = ProvisioningRunner(ctx).run(steps)

        assert report.follow_ups == ["Reboot"]


class TestDryRun:
    def test_dry_run_plans_without_acting(self, ctx, commands):
        commands.installed.add("htop")
        log = []
        steps = [
            Step("install-htop", "htop", install_action("htop"), predicate=package_installed("htop")),
            Step("other", "other", recording_action(log, "other")),
        ]

        report = ProvisioningRunner(ctx, dry_run=True).run(steps)

        assert log == []
        assert report.get("install-htop").status == StepStatus.SKIPPED
        assert report.get("other").status == StepStatus.PLANNED
        assert not commands.ran("apt-get")
