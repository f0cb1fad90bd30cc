"""Tests for loading snapshots from files."""

import json

import pytest
import yaml

from pam_forecast.sources import SnapshotError, load_snapshot


def test_load_yaml(tmp_path, snapshot_payload):
    path = tmp_path / "snapshot.yaml"
    path.write_text(yaml.safe_dump(snapshot_payload))

    snapshot = load_snapshot(path)

    assert len(snapshot.invoices) == 2
    assert snapshot.scenarios[0].name == "Growth"


def test_load_json(tmp_path, snapshot_payload):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_payload))

    snapshot = load_snapshot(str(path))

    assert snapshot.retainers[0].agency_id == "globex"


def test_empty_file_is_empty_snapshot(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    snapshot = load_snapshot(path)

    assert snapshot.invoices == ()
    assert snapshot.settings is None


def test_missing_file(tmp_path):
    with pytest.raises(SnapshotError, match="cannot read"):
        load_snapshot(tmp_path / "missing.yaml")


def test_top_level_list_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")

    with pytest.raises(SnapshotError, match="must be a mapping"):
        load_snapshot(path)


def test_invalid_syntax(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("invoices: [\n")

    with pytest.raises(SnapshotError, match="invalid snapshot syntax"):
        load_snapshot(path)
