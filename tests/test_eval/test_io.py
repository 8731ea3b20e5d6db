"""Test JSONL helpers and provenance metadata."""

from bottom_tournament.eval._io import git_commit_short, load_jsonl, provenance_dict, write_jsonl


def test_jsonl_round_trip(tmp_path):
    path = tmp_path / "records.jsonl"
    records = [{"a": 1, "b": [1, 2]}, {"a": 2, "b": None}]
    assert write_jsonl(path, records) == 2
    assert load_jsonl(path) == records


def test_load_jsonl_skips_blank_lines(tmp_path):
    path = tmp_path / "gaps.jsonl"
    path.write_text('{"x": 1}\n\n   \n{"x": 2}\n')
    assert load_jsonl(path) == [{"x": 1}, {"x": 2}]


def test_write_jsonl_accepts_generator(tmp_path):
    path = tmp_path / "gen.jsonl"
    assert write_jsonl(path, ({"i": i} for i in range(3))) == 3
    assert len(path.read_text().splitlines()) == 3


def test_git_commit_short_is_string():
    assert isinstance(git_commit_short(), str)


def test_provenance_dict():
    p = provenance_dict()
    assert {"git_commit", "timestamp", "python_version"} <= set(p)
    assert "environment" not in p

    p_env = provenance_dict(include_env=True)
    env = p_env["environment"]
    assert env["horizons"] == ["15m", "1h", "4h", "24h"]
    assert len(env["composite_weights"]) == 4

