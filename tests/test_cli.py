from __future__ import annotations

import json
import logging
import sys

import pytest

import az_netgraph.cli as cli
from az_netgraph.config import load_run_config
from az_netgraph.export.jsonl import read_intents_jsonl
from az_netgraph.sink.sqlite import SqliteGraphSink
from az_netgraph.util.errors import ExitCode

PREFIX = "/subscriptions/s/resourceGroups/g/providers"
NSG = f"{PREFIX}/Microsoft.Network/networkSecurityGroups/nsg1"
VM = f"{PREFIX}/Microsoft.Compute/virtualMachines/vm1"
NIC = f"{PREFIX}/Microsoft.Network/networkInterfaces/nic1"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in ("AZ_NETGRAPH_SINK", "AZ_NETGRAPH_INPUT", "AZ_NETGRAPH_PROGRESS", "AZ_NETGRAPH_DB_PATH"):
        monkeypatch.delenv(key, raising=False)


def _write(path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _topology_doc() -> dict:
    return {
        "resources": [
            {"id": NSG, "name": "nsg1"},
            {"id": VM, "name": "vm1", "associations": [{"resourceId": NSG, "associationType": "Contains"}]},
        ]
    }


def test_topology_into_sqlite(tmp_path) -> None:
    src = _write(tmp_path / "topo.json", _topology_doc())
    db = tmp_path / "graph.sqlite"
    _, cfg = load_run_config(argv=["topology", "--input", src, "--db-path", str(db)])

    assert cli.cmd_topology(cfg) == 0
    assert cli.cmd_topology(cfg) == 0

    with SqliteGraphSink.open(db) as sink:
        assert sink.node_count() == 2
        assert sink.edge_count() == 1


def test_connectivity_to_jsonl(tmp_path) -> None:
    src = _write(
        tmp_path / "check.json",
        {
            "hops": [
                {"id": "h1", "resourceId": f"{NIC}/ipConfigurations/c1", "nextHopIds": ["h2"]},
                {"id": "h2", "resourceId": "Internet", "nextHopIds": []},
            ]
        },
    )
    out = tmp_path / "out" / "intents.jsonl"
    _, cfg = load_run_config(argv=["connectivity", "--input", src, "--sink", "jsonl", "--out", str(out)])

    assert cli.cmd_connectivity(cfg) == 0

    rows = read_intents_jsonl(out)
    assert [r["kind"] for r in rows] == ["node", "node", "relationship"]
    assert rows[0] == {"kind": "node", "label": "networkInterfaces", "properties": {"Id": NIC, "Name": "nic1"}}
    assert rows[2]["relationshipType"] == "ConnectedTo"
    assert rows[2]["targetId"] == "Internet"


def test_progress_summary_renders(tmp_path, capsys) -> None:
    src = _write(tmp_path / "topo.json", _topology_doc())
    _, cfg = load_run_config(
        argv=["topology", "--input", src, "--db-path", str(tmp_path / "g.sqlite"), "--progress"]
    )

    assert cli.cmd_topology(cfg) == 0
    assert "Ingest Summary" in capsys.readouterr().err


def test_parse_id_prints_fields(capsys) -> None:
    _, cfg = load_run_config(argv=["parse-id", NSG])

    assert cli.cmd_parse_id(cfg) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["resource_type"] == "networkSecurityGroups"
    assert payload["resource_name"] == "nsg1"
    assert payload["parent_names"] == []


def test_classify_hop_prints_classification(capsys) -> None:
    _, cfg = load_run_config(argv=["classify-hop", f"{NIC}/ipConfigurations/c1"])

    assert cli.cmd_classify_hop(cfg) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload == {"resource_type": "networkInterfaces", "name": "nic1", "resource_id": NIC, "link_source": True}


@pytest.mark.parametrize(
    "payload,command,expected",
    [
        ({"resources": [{"id": "not-an-arm-id"}]}, "topology", ExitCode.MALFORMED_ID),
        (
            {"hops": [{"id": "h1", "resourceId": f"{PREFIX}/Microsoft.Storage/storageAccounts/a"}]},
            "connectivity",
            ExitCode.UNRECOGNIZED_RESOURCE,
        ),
        (
            {"hops": [{"id": "h1", "resourceId": f"{NIC}/ipConfigurations/c1", "nextHopIds": ["nope"]}]},
            "connectivity",
            ExitCode.UNRECOGNIZED_RESOURCE,
        ),
    ],
)
def test_main_maps_ingest_errors_to_exit_codes(tmp_path, monkeypatch, payload, command, expected) -> None:
    src = _write(tmp_path / "doc.json", payload)
    db = tmp_path / "graph.sqlite"
    monkeypatch.setattr(sys, "argv", ["az-netgraph", command, "--input", src, "--db-path", str(db)])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == int(expected)
    # Failed builds never reach the sink.
    assert not db.exists()


def test_main_missing_input_file_is_config_error(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["az-netgraph", "topology", "--input", str(tmp_path / "missing.json")])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == int(ExitCode.CONFIG_ERROR)


def test_main_success_exits_zero(tmp_path, monkeypatch) -> None:
    src = _write(tmp_path / "topo.json", _topology_doc())
    monkeypatch.setattr(
        sys,
        "argv",
        ["az-netgraph", "topology", "--input", src, "--sink", "jsonl", "--out", str(tmp_path / "i.jsonl")],
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 0


def test_main_unwritable_db_path_is_sink_error(tmp_path, monkeypatch) -> None:
    src = _write(tmp_path / "topo.json", _topology_doc())
    # A directory cannot be opened as a SQLite database file.
    db_dir = tmp_path / "graph-dir"
    db_dir.mkdir()
    monkeypatch.setattr(sys, "argv", ["az-netgraph", "topology", "--input", src, "--db-path", str(db_dir)])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == int(ExitCode.SINK_ERROR)


def test_main_error_message_names_offending_id(tmp_path, monkeypatch, caplog) -> None:
    src = _write(tmp_path / "topo.json", {"resources": [{"id": "/subscriptions/s/not-an-arm-id"}]})
    monkeypatch.setattr(sys, "argv", ["az-netgraph", "topology", "--input", src, "--sink", "jsonl"])
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    with caplog.at_level(logging.ERROR, logger="az_netgraph.cli"):
        with pytest.raises(SystemExit) as excinfo:
            cli.main()

    assert excinfo.value.code == int(ExitCode.MALFORMED_ID)
    messages = [r.getMessage() for r in caplog.records if r.name == "az_netgraph.cli"]
    assert any("/subscriptions/s/not-an-arm-id" in m for m in messages)
