import os
import sys
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def mock_settings_env_vars(tmp_path):
    """Automatically mock HOME so cache copies and logs stay inside tmp_path."""
    fake_home = tmp_path / "fake_home"
    fake_home.mkdir()

    with patch("pathlib.Path.home", return_value=fake_home):
        with patch.dict(os.environ, {"HOME": str(fake_home)}):
            yield


FAKE_RENDERER_SOURCE = textwrap.dedent(
    """
    import json
    import sys

    print(json.dumps({"type": "ready"}), flush=True)
    for raw in sys.stdin:
        message = json.loads(raw)
        kind = message.get("type")
        if kind == "update-menu":
            item = message["menu"]["items"][0]
            print(json.dumps({"type": "clicked", "item": item, "seq_id": 0}), flush=True)
        elif kind == "update-item":
            print(
                json.dumps(
                    {"type": "clicked", "item": message["item"], "seq_id": message["seq_id"]}
                ),
                flush=True,
            )
        elif kind == "quit":
            sys.exit(3)
        else:
            print("not json", flush=True)
    """
)


@pytest.fixture
def fake_renderer(tmp_path) -> Path:
    """Executable script speaking the renderer side of the protocol."""
    script = tmp_path / "fake_renderer"
    script.write_text(f"#!{sys.executable}\n{FAKE_RENDERER_SOURCE}", encoding="utf-8")
    script.chmod(0o755)
    return script
