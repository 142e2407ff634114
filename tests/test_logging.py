"""Tests for the persisted log file and secret redaction."""

import logging
import re
import stat

from debian_tweaks.errors import StepActionError
from debian_tweaks.logging_setup import RedactingFilter, setup_logger
from debian_tweaks.models import Step
from debian_tweaks.runner import ProvisioningRunner

FAILURE_LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[ERROR\] \[broken\] boom$")


def read_log(path):
    for handler in logging.getLogger("debian_tweaks").handlers:
        handler.flush()
    return path.read_text()


class TestSetupLogger:
    def test_log_file_is_private_and_appended(self, tmp_path):
        log_file = tmp_path / "Downloads" / "install.log"
        log_file.parent.mkdir()
        log_file.write_text("previous run\n")

        logger = setup_logger(log_file)
        logger.info("second run")

        content = read_log(log_file)
        assert content.startswith("previous run\n")
        assert "[INFO] second run" in content
        assert stat.S_IMODE(log_file.stat().st_mode) == 0o600

    def test_failure_line_format(self, tmp_path, ctx):
        log_file = tmp_path / "install.log"
        setup_logger(log_file)

        def broken(ctx):
            raise StepActionError("boom")

        ProvisioningRunner(ctx).run([Step("broken", "broken", broken)])

        errors = [line for line in read_log(log_file).splitlines() if "[ERROR]" in line]
        assert len(errors) == 1
        assert FAILURE_LINE.match(errors[0])

    def test_debug_records_only_with_debug(self, tmp_path):
        log_file = tmp_path / "install.log"
        logger = setup_logger(log_file)
        logger.debug("hidden detail")
        assert "hidden detail" not in read_log(log_file)

        logger = setup_logger(log_file, debug=True)
        logger.debug("visible detail")
        assert "visible detail" in read_log(log_file)

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path):
        setup_logger(tmp_path / "a.log")
        logger = setup_logger(tmp_path / "a.log")
        assert len(logger.handlers) == 2


class TestRedaction:
    def test_configured_secret_never_reaches_file(self, tmp_path):
        log_file = tmp_path / "install.log"
        logger = setup_logger(log_file, secrets=["ghp_supersecret"])

        logger.info("Using token ghp_supersecret for api.github.com")
        logging.getLogger("debian_tweaks.net").warning("retrying with %s", "ghp_supersecret")

        content = read_log(log_file)
        assert "ghp_supersecret" not in content
        assert content.count("****") == 2

    def test_token_patterns(self):
        redactor = RedactingFilter()

        assert redactor.redact("Authorization: Bearer abc.def") == "Authorization: Bearer ****"
        assert redactor.redact("https://x/?token=abc&x=1") == "https://x/?token=****&x=1"
        assert redactor.redact("password=hunter2 next") == "password=**** next"

