"""Test fixtures for Layer Atlas."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

LAYER_ONE = """\
boolFalse#bc799737 = Bool;
boolTrue#997275b5 = Bool;
vector#1cb5c415 {t:Type} # [ t ] = Vector t;
resPQ#05162463 nonce:int128 = ResPQ;
---functions---
req_pq#60469778 nonce:int128 = ResPQ;
///////// Main application API
---types---
// peers
inputPeerEmpty#7f3b18ea = InputPeer;
inputPeerUser#7b8e7de6 user_id:int access_hash:long = InputPeer;
user#2e13f4c3 flags:# id:long first_name:flags.1?string = User;
userEmpty#d3bc4b7a id:long = User;
help.config#232566ac date:int = help.Config;
---functions---
users.getUsers#d91a548 id:Vector<InputUser> = Vector<User>;
users.getFullUser#ca30a5b1 id:InputUser = UserFull;
help.getConfig#c4f9186b = help.Config;
invokeWithLayer#da9b0d0d {X:Type} layer:int query:!X = X;
"""

LAYER_TWO = """\
///////// Main application API
---types---
inputPeerEmpty#7f3b18ea = InputPeer;
inputPeerUser#dde8a54c user_id:long access_hash:long = InputPeer;
user#3ff6ecb0 flags:# id:long first_name:flags.1?string username:flags.3?string = User;
help.config#232566ac date:int expires:int = help.Config;
---functions---
users.getUsers#d91a548 id:Vector<InputUser> = Vector<User>;
users.getFullUser#b60f5918 id:InputUser = users.UserFull;
help.getConfig#c4f9186b = help.Config;
invokeWithLayer#da9b0d0d {X:Type} layer:int query:!X = X;
"""


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("LATL_DB_PATH", str(tmp_path / "layers.db"))
    monkeypatch.delenv("LATL_CONFIG", raising=False)
    monkeypatch.delenv("LATL_FETCH_ON_STARTUP", raising=False)
    monkeypatch.delenv("LATL_POLL_ENABLED", raising=False)

    from layer_atlas.api import dependencies as deps

    deps.reset_state()
    yield
    deps.reset_state()


@pytest.fixture(scope="session")
def layer_one_text() -> str:
    return LAYER_ONE


@pytest.fixture(scope="session")
def layer_two_text() -> str:
    return LAYER_TWO


@pytest.fixture
def raw_layers(layer_one_text: str, layer_two_text: str):
    from layer_atlas.models.entities import RawLayer

    return [
        RawLayer(layer_id=1, release_date=date(2015, 3, 1), text=layer_one_text),
        RawLayer(layer_id=2, release_date=date(2016, 7, 1), text=layer_two_text),
    ]


@pytest.fixture
def registry(raw_layers):
    from layer_atlas.schema.registry import SchemaRegistry

    return SchemaRegistry.from_layers(raw_layers)
