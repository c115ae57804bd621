import pytest

from traybridge.errors import ProtocolDecodeError
from traybridge.models import (
    CHECK_MARKER,
    Menu,
    MenuItem,
    UpdateItemAction,
    UpdateMenuAction,
    UpdateMenuAndItemAction,
    apply_checked_rule,
    render_checked,
)


@pytest.fixture
def on_linux(monkeypatch):
    monkeypatch.setattr("traybridge.models.platform.system", lambda: "Linux")


def test_render_checked_appends_marker_on_linux(on_linux):
    item = render_checked(MenuItem(title="B", checked=True))
    assert item.title == "B (√)"


def test_render_checked_unchecked_title_untouched(on_linux):
    item = render_checked(MenuItem(title="A", checked=False))
    assert item.title == "A"


def test_render_checked_is_idempotent(on_linux):
    item = MenuItem(title="Sync", checked=True)
    for _ in range(3):
        render_checked(item)
    assert item.title == "Sync" + CHECK_MARKER
    assert item.title.count(CHECK_MARKER) == 1


def test_render_checked_toggle_recovers_original_title(on_linux):
    item = render_checked(MenuItem(title="Wi-Fi", checked=True))
    item.checked = False
    render_checked(item)
    assert item.title == "Wi-Fi"


def test_render_checked_only_strips_trailing_marker(on_linux):
    item = MenuItem(title=f"a{CHECK_MARKER}b", checked=False)
    render_checked(item)
    assert item.title == f"a{CHECK_MARKER}b"


def test_render_checked_returns_same_object(on_linux):
    item = MenuItem(title="X", checked=True)
    assert render_checked(item) is item


@pytest.mark.parametrize("system_name", ["Darwin", "Windows"])
def test_render_checked_noop_elsewhere(monkeypatch, system_name):
    monkeypatch.setattr("traybridge.models.platform.system", lambda: system_name)
    item = render_checked(MenuItem(title="B", checked=True))
    assert item.title == "B"


def test_render_checked_explicit_platform_argument():
    item = render_checked(MenuItem(title="B", checked=True), platform_name="linux")
    assert item.title.endswith(CHECK_MARKER)


def test_apply_checked_rule_covers_menu_and_item(on_linux):
    menu = Menu(items=[MenuItem(title="one", checked=True), MenuItem(title="two")])
    extra = MenuItem(title="three", checked=True)
    apply_checked_rule(UpdateMenuAndItemAction(menu=menu, item=extra, seq_id=1))
    assert [item.title for item in menu.items] == ["one (√)", "two"]
    assert extra.title == "three (√)"


def test_action_to_dict_uses_wire_tags():
    item = MenuItem(title="t")
    menu = Menu(icon="i", items=[item])
    assert UpdateItemAction(item=item, seq_id=2).to_dict()["type"] == "update-item"
    assert UpdateMenuAction(menu=menu, seq_id=2).to_dict()["type"] == "update-menu"
    payload = UpdateMenuAndItemAction(menu=menu, item=item, seq_id=2).to_dict()
    assert payload["type"] == "update-menu-and-item"
    assert payload["menu"]["items"][0] == payload["item"]


def test_menu_item_from_dict_defaults_missing_fields():
    item = MenuItem.from_dict({"title": "only"})
    assert item == MenuItem(title="only", tooltip="", checked=False, enabled=True)


def test_menu_item_from_dict_rejects_wrong_types():
    with pytest.raises(ProtocolDecodeError):
        MenuItem.from_dict({"title": 5})
    with pytest.raises(ProtocolDecodeError):
        MenuItem.from_dict({"title": "x", "checked": "yes"})


def test_menu_copy_is_deep():
    menu = Menu(items=[MenuItem(title="a")])
    clone = menu.copy()
    clone.items[0].title = "b"
    assert menu.items[0].title == "a"
