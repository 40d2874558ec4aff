"""Tests for the run_client command line."""

import argparse
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import run_client
from kube_mcp.config import KUBECONFIG_FLAG, READ_ONLY_FLAG

MOCK_SERVER = Path(__file__).parent.parent / "kube_mcp" / "servers" / "mock_k8s.py"


def parse(argv):
    return argparse.Namespace(**{
        "command": None, "read_only": False, "kubeconfig": None, "kubeconfig_env": None,
        **argv,
    })


def test_build_config_defaults():
    cfg = run_client.build_config(parse({}))
    assert cfg.command == "npx"
    assert cfg.env is None


def test_build_config_flags(monkeypatch):
    monkeypatch.delenv("KUBECONFIG", raising=False)
    cfg = run_client.build_config(parse({
        "command": ["server", "--x"],
        "read_only": True,
        "kubeconfig": "/a",
        "kubeconfig_env": "/b",
    }))
    assert cfg.args == ("--x", READ_ONLY_FLAG, KUBECONFIG_FLAG, "/a")
    assert cfg.env[-1] == "KUBECONFIG=/b"


def test_parse_tool_args():
    assert run_client.parse_tool_args(None) == {}
    assert run_client.parse_tool_args('{"namespace": "default"}') == {"namespace": "default"}
    with pytest.raises(ValueError):
        run_client.parse_tool_args("[1]")


def test_main_calls_tool_on_mock_server(capsys):
    code = run_client.main([
        "--timeout", "30",
        "--tool", "pods_list_in_namespace",
        "--args", '{"namespace": "default"}',
        "--command", sys.executable, str(MOCK_SERVER),
    ])
    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["web-7d4b9c-x2x9q", "worker-5f6d8-kq7mz"]


def test_main_lists_tools(capsys):
    code = run_client.main(["--list", "--command", sys.executable, str(MOCK_SERVER)])
    assert code == 0
    assert "namespaces_list" in capsys.readouterr().out


def test_main_reports_spawn_error(capsys):
    code = run_client.main(["--command", "kube-mcp-no-such-binary-4f1c"])
    assert code == 1
    assert capsys.readouterr().out.startswith("Error:")


def test_main_rejects_bad_args(capsys):
    assert run_client.main(["--args", "not json"]) == 2


def test_kubeconfig_flags_are_exclusive(capsys):
    with pytest.raises(SystemExit) as excinfo:
        run_client.main(["--kubeconfig", "/a", "--kubeconfig-env", "/b"])
    assert excinfo.value.code == 2
    assert "not allowed with argument" in capsys.readouterr().err
