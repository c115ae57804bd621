import logging

from traybridge import cli
from traybridge.config import load_conf


def test_init_writes_template(tmp_path):
    target = tmp_path / "tray.toml"
    assert cli.main(["init", str(target)]) == 0
    assert load_conf(target).menu.items[0].title == "Show"


def test_init_existing_file_fails(tmp_path):
    target = tmp_path / "tray.toml"
    target.write_text("[menu]\n")
    assert cli.main(["init", str(target)]) == 1
    assert target.read_text() == "[menu]\n"


def test_which_prints_resolved_path(monkeypatch, tmp_path, capsys):
    renderer = tmp_path / "tray_linux_release"
    monkeypatch.setattr(
        "traybridge.cli.binary.get_tray_bin_path",
        lambda debug, copy_dir: renderer,
    )
    assert cli.main(["which"]) == 0
    assert str(renderer) in capsys.readouterr().out


def test_which_reports_unsupported_platform(monkeypatch):
    monkeypatch.setattr("traybridge.binary.platform.system", lambda: "Plan9")
    assert cli.main(["which"]) == 1


def test_run_builds_conf_from_flags(tmp_path):
    args = cli.parse_args(["run", "--debug", "--copy-dir", "--bin", "/x/renderer"])
    conf = cli._build_conf(args)
    assert conf.debug is True
    assert conf.copy_dir is True
    assert conf.bin_path == "/x/renderer"
    assert conf.menu.items


def test_run_with_missing_renderer_returns_error(tmp_path):
    missing = tmp_path / "absent"
    assert cli.main(["run", "--bin", str(missing)]) == 1


def test_log_file_flag_configures_logging(tmp_path):
    log_file = tmp_path / "logs" / "traybridge.log"
    package_logger = logging.getLogger("traybridge")
    previous_level = package_logger.level
    try:
        assert cli.main(["--log-file", str(log_file), "init", str(tmp_path / "t.toml")]) == 0
        assert log_file.exists()
    finally:
        for handler in list(package_logger.handlers):
            if isinstance(handler, logging.FileHandler):
                package_logger.removeHandler(handler)
                handler.close()
        package_logger.setLevel(previous_level)
