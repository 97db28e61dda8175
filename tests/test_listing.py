"""Tests for pagination and session/decision listings."""

import json
import tempfile
from pathlib import Path

from kindex.index.manager import IndexManager
from kindex.query.listing import ListParams, filter_sessions, list_decisions, list_sessions, paginate, parse_list_params
from kindex.storage.memory import MemoryIndexStore


def test_second_page_of_twenty_five():
    items = list(range(1, 26))
    result = paginate(items, page=2, limit=10)
    assert result["data"] == list(range(11, 21))
    assert result["pagination"] == {
        "page": 2,
        "limit": 10,
        "total": 25,
        "totalPages": 3,
        "hasNext": True,
        "hasPrev": True,
    }


def test_last_and_out_of_range_pages():
    items = list(range(25))
    last = paginate(items, page=3, limit=10)
    assert len(last["data"]) == 5
    assert last["pagination"]["hasNext"] is False

    beyond = paginate(items, page=9, limit=10)
    assert beyond["data"] == []
    assert beyond["pagination"]["hasPrev"] is True

    empty = paginate([], page=1, limit=20)
    assert empty["pagination"]["totalPages"] == 0
    assert empty["pagination"]["hasNext"] is False
    assert empty["pagination"]["hasPrev"] is False


def test_limit_and_page_are_clamped():
    assert parse_list_params({"limit": "500"}).limit == 100
    assert parse_list_params({"limit": "0"}).limit == 1
    assert parse_list_params({"limit": "-3"}).limit == 1
    assert parse_list_params({"limit": "abc"}).limit == 20
    assert parse_list_params({}).limit == 20
    assert parse_list_params({"page": "0"}).page == 1
    assert parse_list_params({"page": "x"}).page == 1
    assert parse_list_params({"limit": "50"}, max_limit=30).limit == 30


def test_flags_parse_only_true():
    params = parse_list_params({"showUntitled": "TRUE", "allMonths": "1", "tag": ""})
    assert params.show_untitled is True
    assert params.all_months is False
    assert params.scope == "recent"
    assert params.tag is None


def _item(id: str, **fields) -> dict:
    item = {"id": id, "title": f"Session {id}", "goal": None, "tags": [], "hasSummary": True,
            "sessionType": None, "projectName": None, "repository": None}
    item.update(fields)
    return item


def test_session_filters():
    items = [
        _item("1", tags=["auth"], sessionType="debug", repository="acme/web"),
        _item("2", title="Untitled", hasSummary=False, tags=["auth"]),
        _item("3", goal="Speed up CI", projectName="infra"),
        _item("4", tags=["ui"], repository="acme/webapp"),
    ]
    assert [i["id"] for i in filter_sessions(items, ListParams())] == ["1", "3", "4"]
    assert [i["id"] for i in filter_sessions(items, ListParams(show_untitled=True, tag="auth"))] == ["1", "2"]
    assert [i["id"] for i in filter_sessions(items, ListParams(type="debug"))] == ["1"]
    assert [i["id"] for i in filter_sessions(items, ListParams(project="web"))] == ["1"]
    assert [i["id"] for i in filter_sessions(items, ListParams(project="infra"))] == ["3"]
    assert [i["id"] for i in filter_sessions(items, ListParams(search="ci"))] == ["3"]


def test_listings_read_through_the_manager():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        for n in range(1, 13):
            path = root / "sessions" / "2026" / "01" / f"s{n:02d}.json"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps({
                "id": f"s{n:02d}",
                "createdAt": f"2026-01-{n:02d}T08:00:00Z",
                "summary": {"title": f"Session {n}"},
            }))
        path = root / "decisions" / "2025" / "06" / "d1.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"id": "d1", "createdAt": "2025-06-01T00:00:00Z", "title": "Use SQLite"}))

        manager = IndexManager(root, MemoryIndexStore())
        page = list_sessions(manager, parse_list_params({"page": "2", "limit": "5"}))
        assert [s["id"] for s in page["data"]] == ["s07", "s06", "s05", "s04", "s03"]
        assert page["pagination"]["totalPages"] == 3

        decisions = list_decisions(manager, parse_list_params({"search": "sqlite", "allMonths": "true"}))
        assert [d["id"] for d in decisions["data"]] == ["d1"]
