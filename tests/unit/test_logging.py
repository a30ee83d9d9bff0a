import json
import logging

import pytest

from yubiverify.logging import UTCJsonFormatter, setup_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_json_handler(restore_root_logger):
    setup_logging("debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, UTCJsonFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_records_render_as_json_with_extra_fields():
    formatter = UTCJsonFormatter("%(levelname)s %(name)s %(message)s")
    record = logging.LogRecord(
        "yubiverify.test", logging.INFO, __file__, 1, "host timed out", None, None
    )
    record.host = "api.test"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "host timed out"
    assert payload["levelname"] == "INFO"
    assert payload["host"] == "api.test"
