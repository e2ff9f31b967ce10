import logging

import pytest

from orchestrator.logging_config import (
    SUCCESS,
    ConsoleFormatter,
    color_enabled,
    configure_logging,
    level_from_env,
)


def _record(level: int, msg: str = "Successfully provisioned shop") -> logging.LogRecord:
    return logging.LogRecord("orchestrator.test", level, __file__, 1, msg, None, None)


def test_success_level_is_registered_between_info_and_warning():
    assert logging.INFO < SUCCESS < logging.WARNING
    assert logging.getLevelName(SUCCESS) == "SUCCESS"


def test_formatter_colors_level_name_only_when_enabled():
    plain = ConsoleFormatter(color=False).format(_record(SUCCESS))
    colored = ConsoleFormatter(color=True).format(_record(SUCCESS))

    assert "\x1b[" not in plain
    assert "| SUCCESS  | orchestrator.test | Successfully provisioned shop" in plain
    assert "\x1b[32mSUCCESS \x1b[0m | orchestrator.test" in colored
    assert colored.endswith("Successfully provisioned shop")


def test_formatter_leaves_the_record_untouched():
    record = _record(logging.ERROR)
    ConsoleFormatter(color=True).format(record)

    assert record.levelname == "ERROR"


def test_no_color_env_disables_color(monkeypatch):
    class Tty:
        def isatty(self):
            return True

    monkeypatch.delenv("NO_COLOR", raising=False)
    assert color_enabled(Tty()) is True
    monkeypatch.setenv("NO_COLOR", "1")
    assert color_enabled(Tty()) is False


@pytest.mark.parametrize(
    "value, expected",
    [("warning", logging.WARNING), (" debug ", logging.DEBUG), ("success", SUCCESS), ("chatty", logging.INFO)],
)
def test_level_from_env(monkeypatch, value, expected):
    monkeypatch.setenv("ORCHESTRATOR_LOG_LEVEL", value)
    assert level_from_env() == expected


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    quiet = {name: logging.getLogger(name).level for name in ("uvicorn.access", "asyncio")}
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, quiet_level in quiet.items():
        logging.getLogger(name).setLevel(quiet_level)


def test_forced_configuration_installs_a_single_console_handler(restore_root_logger):
    root = restore_root_logger
    foreign = [h for h in root.handlers if not getattr(h, "orchestrator_console", False)]

    configure_logging(level="WARNING", force=True)
    configure_logging(level=logging.DEBUG, force=True)

    ours = [h for h in root.handlers if getattr(h, "orchestrator_console", False)]
    assert len(ours) == 1
    assert ours[0].level == logging.DEBUG
    assert isinstance(ours[0].formatter, ConsoleFormatter)
    assert all(h in root.handlers for h in foreign)
    assert root.level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").level == logging.INFO
