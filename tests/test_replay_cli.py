"""Tests for replay, consistency checks, exports and the CLI."""

import json
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd
from click.testing import CliRunner

from emblem.cli import main
from emblem.config.loader import load_config
from emblem.engine.errors import MissingEntityError
from emblem.engine.models import Account, EntityStats, NameSignal
from emblem.replay.runner import ReplayRunner, iter_events
from emblem.reporting.export import POSITION_COLUMNS, export_positions_csv, export_state_json, positions_frame
from emblem.store.backend import FileStore, MemoryStore
from emblem.validation.sanity_checks import LedgerChecker

EVENTS = [
    {"type": "subgraph_published", "owner": "0xowner", "subgraph_number": "0",
     "block_number": 1000, "transaction_hash": "0xaa", "timestamp": 1600000000},
    {"type": "deposit", "curator": "0xalice", "subgraph_id": "0xowner-0",
     "name_signal": 10, "signal": "10", "tokens": 500000000000000000000,
     "block_number": 1050, "transaction_hash": "0xbb", "timestamp": 1600000600},
]


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text("\n".join(json.dumps(event) for event in EVENTS) + "\n\n")
    return path


@pytest.fixture
def replayed_store():
    store = MemoryStore()
    ReplayRunner(load_config(), store).run(EVENTS)
    return store


class TestReplayRunner:
    """Replaying recorded events."""

    def test_run_counts_events(self):
        """Result reports per-type counts and final stats."""
        config = load_config()
        result = ReplayRunner(config, MemoryStore()).run(EVENTS)

        assert result.events_processed == 2
        assert result.event_counts == {"subgraph_published": 1, "deposit": 1}
        assert result.config_hash == config.compute_hash()
        assert result.stats.curator_count == 1
        assert result.stats.award_count == 2
        assert result.stats.voter_count == 1

    def test_iter_events_skips_blank_lines(self, events_file):
        """Blank lines in the event file are ignored."""
        assert list(iter_events(events_file)) == EVENTS

    def test_invalid_json_line(self, tmp_path):
        """A broken line is reported with its line number."""
        path = tmp_path / "bad.jsonl"
        path.write_text('{"type": "deposit"}\n{oops\n')
        with pytest.raises(ValueError, match="bad.jsonl:2"):
            list(iter_events(path))

    def test_unknown_event_type(self):
        """Unknown event types stop the replay."""
        runner = ReplayRunner(load_config(), MemoryStore())
        with pytest.raises(ValueError):
            runner.run([{"type": "rebate"}])

    def test_float_amounts_rejected(self):
        """JSON floats in integer or decimal fields are refused, not truncated."""
        store = MemoryStore()
        runner = ReplayRunner(load_config(), store)
        runner.apply(EVENTS[0])

        for field, value in (("name_signal", 1.9), ("tokens", 2.7), ("signal", 0.5), ("tokens", "2.7")):
            with pytest.raises(ValueError, match=field):
                runner.apply(dict(EVENTS[1], **{field: value}))

        assert store.count(NameSignal) == 0

    def test_integer_strings_accepted(self):
        """Large amounts may be given as strings."""
        store = MemoryStore()
        runner = ReplayRunner(load_config(), store)
        runner.run([EVENTS[0], dict(EVENTS[1], name_signal="10", tokens="500000000000000000000")])

        position = store.load(NameSignal, "0xalice-0xowner-0")
        assert position.name_signal == 10
        assert position.signalled_tokens == 500000000000000000000

    def test_failure_keeps_earlier_events(self):
        """Events before a failing one stay applied."""
        store = MemoryStore()
        runner = ReplayRunner(load_config(), store)
        orphan = dict(EVENTS[1], subgraph_id="0xnobody-0")
        with pytest.raises(MissingEntityError):
            runner.run([EVENTS[0], orphan])

        assert store.load(EntityStats, "1").publisher_count == 1
        assert store.count(NameSignal) == 0


class TestLedgerChecker:
    """Consistency checks."""

    def test_clean_replay_has_no_issues(self, replayed_store):
        """A replayed store is consistent."""
        assert LedgerChecker(replayed_store).run_all() == []

    def test_counter_mismatch_is_error(self, replayed_store):
        """A tampered counter is reported."""
        stats = replayed_store.load(EntityStats, "1")
        stats.curator_count = 5
        replayed_store.save(stats)

        warnings = LedgerChecker(replayed_store).check_counters()
        assert len(warnings) == 1
        assert warnings[0].severity == "error"
        assert "curator_count" in warnings[0].message

    def test_voting_power_matches_awards(self, replayed_store):
        """Voting power above the summed award weights is reported."""
        assert LedgerChecker(replayed_store).check_voting_power() == []

        account = replayed_store.load(Account, "0xalice")
        account.winner.voting_power += 1
        account.graph_account.voting_power += 1
        replayed_store.save(account)

        warnings = LedgerChecker(replayed_store).check_voting_power()
        assert [(w.severity, w.category) for w in warnings] == [("error", "voting_power")]

    def test_stale_per_unit_is_error(self, replayed_store):
        """An empty position with a per-unit cost basis is reported."""
        position = replayed_store.all(NameSignal)[0]
        position.name_signal = 0
        replayed_store.save(position)

        warnings = LedgerChecker(replayed_store).check_positions()
        assert [w.category for w in warnings] == ["cost_basis"]


class TestExport:
    """CSV and JSON exports."""

    def test_positions_frame_keeps_big_integers(self, replayed_store):
        """Token amounts come out as exact strings."""
        df = positions_frame(replayed_store)
        assert list(df.columns) == POSITION_COLUMNS
        assert df.loc[0, 'signalled_tokens'] == "500000000000000000000"

    def test_export_csv(self, replayed_store, tmp_path):
        """CSV export has one row per position."""
        path = tmp_path / "positions.csv"
        export_positions_csv(replayed_store, path)

        df = pd.read_csv(path, dtype=str)
        assert len(df) == 1
        assert df.loc[0, 'id'] == "0xalice-0xowner-0"
        assert df.loc[0, 'name_signal_cost_basis_per_unit'] == "50000000000000000000.000000000000000000"

    def test_export_json(self, replayed_store, tmp_path):
        """JSON export lists awards in global order."""
        path = tmp_path / "state.json"
        export_state_json(replayed_store, path)

        with open(path) as f:
            data = json.load(f)
        assert data['stats']['award_count'] == 2
        assert [award['global_award_number'] for award in data['awards']] == [1, 2]
        assert data['accounts'][0]['id'] == "0xalice"


class TestCli:
    """Command line entry points."""

    def test_replay_check_export(self, events_file, tmp_path):
        """replay, check and export run against one store directory."""
        runner = CliRunner()
        store_dir = tmp_path / "state"

        result = runner.invoke(main, ["replay", str(events_file), "--store", str(store_dir)])
        assert result.exit_code == 0, result.output
        assert "Events processed: 2" in result.output
        assert "Curators: 1  Publishers: 1  Voters: 1  Awards: 2" in result.output

        result = runner.invoke(main, ["check", "--store", str(store_dir)])
        assert result.exit_code == 0, result.output
        assert "No issues found" in result.output

        csv_path = tmp_path / "positions.csv"
        result = runner.invoke(main, ["export", "--store", str(store_dir), "--csv", str(csv_path)])
        assert result.exit_code == 0, result.output
        assert csv_path.exists()

    def test_check_reports_errors(self, tmp_path):
        """check exits non-zero when an error is found."""
        store = FileStore(tmp_path)
        store.save(EntityStats(id="1", curator_count=3))

        result = CliRunner().invoke(main, ["check", "--store", str(tmp_path)])
        assert result.exit_code == 1
        assert "curator_count" in result.output

    def test_export_requires_output(self, tmp_path):
        """export with no output option is a usage error."""
        result = CliRunner().invoke(main, ["export", "--store", str(tmp_path)])
        assert result.exit_code == 2

    def test_replay_failure_is_reported(self, tmp_path):
        """A failing replay exits with an error message."""
        path = tmp_path / "events.jsonl"
        path.write_text(json.dumps({"type": "rebate"}) + "\n")

        result = CliRunner().invoke(main, ["replay", str(path), "--store", str(tmp_path / "state")])
        assert result.exit_code == 1
        assert "Replay failed" in result.output
