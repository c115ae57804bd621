import base64
import tomllib

import pytest

from traybridge.config import TrayConf, default_menu, load_conf, write_template
from traybridge.errors import TrayConfigError
from traybridge.models import MenuItem


def test_load_conf_reads_menu_and_flags(tmp_path):
    path = tmp_path / "tray.toml"
    path.write_text(
        """
[tray]
debug = true
copy_dir = "~/renderers"
raw_bootstrap = true

[menu]
icon = "abc"
title = "App"
tooltip = "My app"

[[menu.items]]
title = "Show"
tooltip = "show it"

[[menu.items]]
title = "Mute"
checked = true
enabled = false
""",
        encoding="utf-8",
    )
    conf = load_conf(path)
    assert isinstance(conf, TrayConf)
    assert conf.debug is True
    assert conf.copy_dir == "~/renderers"
    assert conf.raw_bootstrap is True
    assert conf.bin_path is None
    assert conf.menu.icon == "abc"
    assert conf.menu.items == [
        MenuItem(title="Show", tooltip="show it", checked=False, enabled=True),
        MenuItem(title="Mute", tooltip="", checked=True, enabled=False),
    ]


def test_icon_path_is_base64_encoded_relative_to_config(tmp_path):
    (tmp_path / "icon.png").write_bytes(b"\x89PNG")
    path = tmp_path / "tray.toml"
    path.write_text('[menu]\nicon_path = "icon.png"\n', encoding="utf-8")
    conf = load_conf(path)
    assert conf.menu.icon == base64.b64encode(b"\x89PNG").decode("ascii")


def test_missing_icon_file(tmp_path):
    path = tmp_path / "tray.toml"
    path.write_text('[menu]\nicon_path = "nope.png"\n', encoding="utf-8")
    with pytest.raises(TrayConfigError):
        load_conf(path)


@pytest.mark.parametrize(
    "content",
    [
        "[tray\n",
        "[tray]\ndebug = true\n",
        "[tray]\ndebug = 'yes'\n[menu]\n",
        "[tray]\ncopy_dir = 3\n[menu]\n",
        "[menu]\ntitle = 5\n",
        "[menu]\nitems = [1]\n",
    ],
)
def test_invalid_configs(tmp_path, content):
    path = tmp_path / "tray.toml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(TrayConfigError):
        load_conf(path)


def test_missing_file(tmp_path):
    with pytest.raises(TrayConfigError) as excinfo:
        load_conf(tmp_path / "absent.toml")
    assert "traybridge init" in excinfo.value.user_message


def test_template_round_trips_through_loader(tmp_path):
    path = write_template(tmp_path / "conf" / "tray.toml")
    with path.open("rb") as handle:
        parsed = tomllib.load(handle)
    assert parsed["tray"]["debug"] is False
    conf = load_conf(path)
    assert conf.menu == default_menu()
    assert conf.copy_dir is False


def test_template_refuses_overwrite(tmp_path):
    path = write_template(tmp_path / "tray.toml")
    with pytest.raises(TrayConfigError):
        write_template(path)
    assert write_template(path, force=True) == path
