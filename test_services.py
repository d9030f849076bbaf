# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Service-layer tests for the cold-call core
==========================================
Run:  pytest test_services.py -v
Exercises selection, the score ledger and the roster CSV codec directly
against the in-memory SQLite engine, without going through HTTP.
"""

import random
from collections import Counter
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from coldcall.core.database import engine
from coldcall.core.errors import DuplicateEmail, DuplicateUni, EmptyRoster, InvalidScore, NotFound
from coldcall.core.security import AuthContext, hash_secret
from coldcall.models.tables import cold_calls
from coldcall.repositories import ClassRepository, ColdCallRepository, StudentRepository, UserRepository
from coldcall.services import roster_csv
from coldcall.services.class_service import ClassService, compute_status, format_date, format_time
from coldcall.services.score_service import ScoreService, validate_score
from coldcall.services.selection_service import SelectionService

class_repo = ClassRepository(engine)
student_repo = StudentRepository(engine)
cold_call_repo = ColdCallRepository(engine)
user_repo = UserRepository(engine)

classes = ClassService(class_repo, student_repo, cold_call_repo)
scores = ScoreService(class_repo, cold_call_repo)

CLASS_FIELDS = {
    "name": "Operating Systems",
    "classroom": "CSB 451",
    "code": "COMS 4118",
    "start_time": "10:10",
    "end_time": "11:25",
    "start_date": date(2026, 1, 20),
    "end_date": date(2099, 5, 1),
}


# ============================================
# Helpers
# ============================================
def _teacher(email="prof@school.edu", scoped=True) -> AuthContext:
    user = user_repo.create_user(email, hash_secret("pw12"))
    return AuthContext(user_id=user["id"], email=email, scoped=scoped)


def _class_with(ctx, *names) -> dict:
    roster = [{"name": n, "uni": f"{n.lower()}1234"} for n in names]
    return classes.create_class(ctx, dict(CLASS_FIELDS), roster)


def _selector(rng=None) -> SelectionService:
    return SelectionService(class_repo, student_repo, cold_call_repo, rng=rng)


def _scripted(*indices) -> MagicMock:
    """An rng whose randrange returns the given indices in order."""
    return MagicMock(randrange=MagicMock(side_effect=list(indices)))


def _cold_call_count(class_id) -> int:
    with engine.connect() as conn:
        return conn.execute(
            select(func.count()).select_from(cold_calls).where(cold_calls.c.class_id == class_id)
        ).scalar()


def _stats_by_name(ctx, class_id) -> dict:
    return {s["name"]: s for s in scores.compute_stats(ctx, class_id)["students"]}


# ============================================
# Selection
# ============================================
class TestSelection:
    def test_returns_member_public_fields(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        picked = _selector().select_random_member(ctx, cls["id"])
        assert picked["name"] == "Alice"
        assert picked["uni"] == "alice1234"
        assert picked["id"] == cls["students"][0]["id"]
        assert picked["cold_call_id"]
        assert picked["called_at"]

    def test_each_selection_records_one_cold_call(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob")
        selector = _selector()
        for expected in range(1, 4):
            selector.select_random_member(ctx, cls["id"])
            assert _cold_call_count(cls["id"]) == expected

    def test_distribution_is_uniform(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob", "Carol", "Dan")
        selector = _selector(random.Random(20260119))
        draws = 2000
        counts = Counter(selector.select_random_member(ctx, cls["id"])["name"] for _ in range(draws))
        assert set(counts) == {"Alice", "Bob", "Carol", "Dan"}
        for name, n in counts.items():
            # expected 500 each, sd ~19
            assert 400 <= n <= 600, (name, n)

    def test_repeats_are_allowed(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob")
        selector = _selector(_scripted(0, 0, 0))
        picks = [selector.select_random_member(ctx, cls["id"])["name"] for _ in range(3)]
        assert picks == ["Alice", "Alice", "Alice"]

    def test_draw_is_over_current_roster_size(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob", "Carol")
        rng = _scripted(2)
        _selector(rng).select_random_member(ctx, cls["id"])
        rng.randrange.assert_called_once_with(3)

    def test_empty_roster_raises_and_writes_nothing(self):
        ctx = _teacher()
        cls = classes.create_class(ctx, dict(CLASS_FIELDS), [])
        with pytest.raises(EmptyRoster):
            _selector().select_random_member(ctx, cls["id"])
        assert _cold_call_count(cls["id"]) == 0

    def test_roster_emptied_by_removal_raises(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        classes.remove_student(ctx, cls["id"], cls["students"][0]["id"])
        with pytest.raises(EmptyRoster):
            _selector().select_random_member(ctx, cls["id"])

    def test_unknown_class_not_found(self):
        ctx = _teacher()
        with pytest.raises(NotFound):
            _selector().select_random_member(ctx, "no-such-class")

    def test_foreign_class_not_found_when_scoped(self):
        owner = _teacher()
        intruder = _teacher("intruder@school.edu")
        cls = _class_with(owner, "Alice")
        with pytest.raises(NotFound):
            _selector().select_random_member(intruder, cls["id"])
        assert _cold_call_count(cls["id"]) == 0

    def test_foreign_class_visible_when_unscoped(self):
        owner = _teacher()
        colleague = _teacher("colleague@school.edu", scoped=False)
        cls = _class_with(owner, "Alice")
        assert _selector().select_random_member(colleague, cls["id"])["name"] == "Alice"


# ============================================
# Score validation
# ============================================
class TestValidateScore:
    @pytest.mark.parametrize("value", [-2, -1, 0, 1, 2])
    def test_integers_in_range(self, value):
        assert validate_score(value) == value

    def test_none_clears(self):
        assert validate_score(None) is None

    def test_integral_float_accepted_as_int(self):
        result = validate_score(2.0)
        assert result == 2
        assert isinstance(result, int)

    @pytest.mark.parametrize("value", [6, 3, -3, 1.5, -0.5, True, False, "1", float("nan")])
    def test_rejected(self, value):
        with pytest.raises(InvalidScore):
            validate_score(value)


# ============================================
# Score ledger
# ============================================
class TestScoreLedger:
    def _one_call(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        call = _selector().select_random_member(ctx, cls["id"])
        return ctx, cls, call["cold_call_id"]

    @pytest.mark.parametrize("value", [-2, -1, 0, 1, 2])
    def test_score_reflected_in_stats(self, value):
        ctx, cls, call_id = self._one_call()
        assert scores.set_score(ctx, call_id, value) == {"ok": True, "id": call_id, "score": value}
        alice = _stats_by_name(ctx, cls["id"])["Alice"]
        assert alice["cumulative_score"] == value
        assert alice["average_score"] == float(value)

    def test_overwrite_is_last_write_wins(self):
        ctx, cls, call_id = self._one_call()
        scores.set_score(ctx, call_id, 2)
        scores.set_score(ctx, call_id, -1)
        scores.set_score(ctx, call_id, -1)
        assert cold_call_repo.get_visible(call_id, None)["score"] == -1

    @pytest.mark.parametrize("bad", [6, 1.5])
    def test_invalid_score_leaves_prior_unchanged(self, bad):
        ctx, cls, call_id = self._one_call()
        scores.set_score(ctx, call_id, 1)
        with pytest.raises(InvalidScore):
            scores.set_score(ctx, call_id, bad)
        assert cold_call_repo.get_visible(call_id, None)["score"] == 1

    def test_validation_precedes_lookup(self):
        ctx = _teacher()
        with pytest.raises(InvalidScore):
            scores.set_score(ctx, "missing", 6)

    def test_unknown_cold_call_not_found(self):
        ctx = _teacher()
        with pytest.raises(NotFound):
            scores.set_score(ctx, "missing", 1)

    def test_foreign_cold_call_not_found(self):
        ctx, cls, call_id = self._one_call()
        intruder = _teacher("intruder@school.edu")
        with pytest.raises(NotFound):
            scores.set_score(intruder, call_id, 2)
        assert cold_call_repo.get_visible(call_id, None)["score"] is None

    def test_clear_keeps_times_called(self):
        ctx, cls, call_id = self._one_call()
        scores.set_score(ctx, call_id, 2)
        scores.set_score(ctx, call_id, None)
        alice = _stats_by_name(ctx, cls["id"])["Alice"]
        assert alice["times_called"] == 1
        assert alice["cumulative_score"] == 0
        assert alice["average_score"] is None

    def test_batch_reports_each_item(self):
        ctx, cls, call_id = self._one_call()
        results = scores.set_scores(ctx, [(call_id, 2), ("missing", 1), (call_id, 9)])
        assert results == [
            {"cold_call_id": call_id, "ok": True, "score": 2},
            {"cold_call_id": "missing", "ok": False, "error": "NotFound"},
            {"cold_call_id": call_id, "ok": False, "error": "InvalidScore"},
        ]
        assert cold_call_repo.get_visible(call_id, None)["score"] == 2


# ============================================
# Statistics
# ============================================
class TestStats:
    def test_never_called_student_listed_with_zeroes(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        stats = scores.compute_stats(ctx, cls["id"])
        assert stats["class_name"] == "Operating Systems"
        assert stats["total_calls"] == 0
        assert stats["students"] == [{
            "id": cls["students"][0]["id"], "name": "Alice", "uni": "alice1234",
            "times_called": 0, "cumulative_score": 0, "average_score": None,
            "last_called_at": None,
        }]

    def test_unscored_calls_have_no_average(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        selector = _selector()
        selector.select_random_member(ctx, cls["id"])
        selector.select_random_member(ctx, cls["id"])
        alice = _stats_by_name(ctx, cls["id"])["Alice"]
        assert alice["times_called"] == 2
        assert alice["cumulative_score"] == 0
        assert alice["average_score"] is None
        assert alice["last_called_at"] is not None

    def test_average_ignores_unscored_calls(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        selector = _selector()
        first = selector.select_random_member(ctx, cls["id"])
        selector.select_random_member(ctx, cls["id"])
        scores.set_score(ctx, first["cold_call_id"], 1)
        alice = _stats_by_name(ctx, cls["id"])["Alice"]
        assert alice["times_called"] == 2
        assert alice["average_score"] == 1.0

    def test_last_called_at_is_latest_call(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        selector = _selector()
        selector.select_random_member(ctx, cls["id"])
        latest = selector.select_random_member(ctx, cls["id"])
        assert _stats_by_name(ctx, cls["id"])["Alice"]["last_called_at"] == latest["called_at"]

    def test_three_student_scenario(self):
        ctx = _teacher()
        cls = _class_with(ctx, "A", "B", "C")
        selector = _selector(_scripted(0, 1, 1))
        calls = [selector.select_random_member(ctx, cls["id"]) for _ in range(3)]
        assert [c["name"] for c in calls] == ["A", "B", "B"]

        scores.set_score(ctx, calls[0]["cold_call_id"], 2)
        scores.set_score(ctx, calls[1]["cold_call_id"], -1)
        scores.set_score(ctx, calls[2]["cold_call_id"], 1)

        stats = scores.compute_stats(ctx, cls["id"])
        assert stats["total_calls"] == 3
        rows = stats["students"]
        assert rows[0]["name"] == "A"
        assert {r["name"] for r in rows[1:]} == {"B", "C"}

        by_name = {r["name"]: r for r in rows}
        assert (by_name["A"]["times_called"], by_name["A"]["cumulative_score"], by_name["A"]["average_score"]) == (1, 2, 2.0)
        assert (by_name["B"]["times_called"], by_name["B"]["cumulative_score"], by_name["B"]["average_score"]) == (2, 0, 0.0)
        assert (by_name["C"]["times_called"], by_name["C"]["cumulative_score"], by_name["C"]["average_score"]) == (0, 0, None)

        # removing B takes both of B's calls with it
        b_id = by_name["B"]["id"]
        result = classes.remove_student(ctx, cls["id"], b_id)
        assert result["cold_calls_removed"] == 2
        after = scores.compute_stats(ctx, cls["id"])
        assert [r["name"] for r in after["students"]] == ["A", "C"]
        assert after["total_calls"] == 1

    def test_sorted_by_cumulative_score_descending(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob", "Carol")
        selector = _selector(_scripted(0, 1, 2))
        calls = [selector.select_random_member(ctx, cls["id"]) for _ in range(3)]
        for call, value in zip(calls, (-2, 1, 2)):
            scores.set_score(ctx, call["cold_call_id"], value)
        names = [s["name"] for s in scores.compute_stats(ctx, cls["id"])["students"]]
        assert names == ["Carol", "Bob", "Alice"]

    def test_stats_for_foreign_class_not_found(self):
        owner = _teacher()
        cls = _class_with(owner, "Alice")
        with pytest.raises(NotFound):
            scores.compute_stats(_teacher("intruder@school.edu"), cls["id"])


# ============================================
# Class service
# ============================================
class TestClassService:
    def test_delete_class_cascades(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob")
        _selector().select_random_member(ctx, cls["id"])
        classes.delete_class(ctx, cls["id"])
        assert _cold_call_count(cls["id"]) == 0
        assert student_repo.list_students(cls["id"]) == []
        with pytest.raises(NotFound):
            classes.get_class(ctx, cls["id"])

    def test_duplicate_uni_in_new_roster_rejected(self):
        ctx = _teacher()
        roster = [{"name": "Alice", "uni": "ab1"}, {"name": "Alicia", "uni": "ab1"}]
        with pytest.raises(DuplicateUni, match="Duplicate UNI: ab1"):
            classes.create_class(ctx, dict(CLASS_FIELDS), roster)
        assert classes.list_classes(ctx) == []

    def test_duplicate_uni_against_existing_roster_rejected(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        with pytest.raises(DuplicateUni, match="Duplicate UNI"):
            classes.add_students(ctx, cls["id"], [{"name": "Other", "uni": "alice1234"}])

    def test_roster_unique_constraint_surfaces_as_duplicate_uni(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        # straight to the repository, past the service-level check
        with pytest.raises(DuplicateUni):
            student_repo.add_students(cls["id"], [{"name": "Other", "uni": "alice1234"}])
        assert len(student_repo.list_students(cls["id"])) == 1

    def test_user_unique_email_surfaces_as_duplicate_email(self):
        _teacher("dup@school.edu")
        with pytest.raises(DuplicateEmail):
            user_repo.create_user("dup@school.edu", hash_secret("pw12"))

    def test_same_uni_allowed_in_different_classes(self):
        ctx = _teacher()
        _class_with(ctx, "Alice")
        second = _class_with(ctx, "Alice")
        assert second["student_count"] == 1

    def test_add_students_requires_one(self):
        ctx = _teacher()
        cls = _class_with(ctx)
        with pytest.raises(ValueError):
            classes.add_students(ctx, cls["id"], [])

    def test_remove_unknown_student_not_found(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice")
        with pytest.raises(NotFound):
            classes.remove_student(ctx, cls["id"], "missing")

    def test_list_filters_by_status(self):
        ctx = _teacher()
        classes.create_class(ctx, dict(CLASS_FIELDS), [])
        past = dict(CLASS_FIELDS, name="Old Course", start_date=date(2020, 1, 1), end_date=date(2020, 5, 1))
        classes.create_class(ctx, past, [])
        assert [c["name"] for c in classes.list_classes(ctx, "ARCHIVED")] == ["Old Course"]
        assert [c["name"] for c in classes.list_classes(ctx, "ACTIVE")] == ["Operating Systems"]

    def test_history_newest_first(self):
        ctx = _teacher()
        cls = _class_with(ctx, "Alice", "Bob")
        selector = _selector(_scripted(0, 1))
        first = selector.select_random_member(ctx, cls["id"])
        second = selector.select_random_member(ctx, cls["id"])
        history = classes.list_cold_calls(ctx, cls["id"])
        assert [h["id"] for h in history] == [second["cold_call_id"], first["cold_call_id"]]
        assert history[0]["student"]["name"] == "Bob"


class TestPresentationHelpers:
    def test_compute_status(self):
        assert compute_status(date(2026, 5, 1), today=date(2026, 5, 1)) == "ACTIVE"
        assert compute_status(date(2026, 5, 1), today=date(2026, 5, 2)) == "ARCHIVED"

    @pytest.mark.parametrize("raw,expected", [
        ("00:05", "12:05 AM"), ("09:30", "9:30 AM"), ("12:00", "12:00 PM"), ("13:10", "1:10 PM"),
    ])
    def test_format_time(self, raw, expected):
        assert format_time(raw) == expected

    def test_format_date(self):
        assert format_date(date(2026, 1, 5)) == "Jan 5, 2026"


# ============================================
# Roster CSV
# ============================================
class TestRosterCsv:
    def test_parses_rows(self):
        raw = b"name,uni\nAlice Smith,as1234\nBob Jones,bj5678\n"
        assert roster_csv.parse_roster_csv(raw, 1024) == [
            {"name": "Alice Smith", "uni": "as1234"},
            {"name": "Bob Jones", "uni": "bj5678"},
        ]

    def test_headers_case_insensitive_with_bom_and_blank_lines(self):
        raw = "\ufeffName , UNI\n  Alice , as1 \n\n,\n".encode("utf-8")
        assert roster_csv.parse_roster_csv(raw, 1024) == [{"name": "Alice", "uni": "as1"}]

    def test_missing_column(self):
        with pytest.raises(ValueError, match='"name" and "uni"'):
            roster_csv.parse_roster_csv(b"name,email\nAlice,a@x.edu\n", 1024)

    def test_reports_every_bad_row(self):
        raw = b"name,uni\nAlice,\n,bj1\nCarol,cc1\n"
        with pytest.raises(ValueError) as exc:
            roster_csv.parse_roster_csv(raw, 1024)
        assert str(exc.value) == "Row 2: Missing name or UNI, Row 3: Missing name or UNI"

    def test_empty_file(self):
        with pytest.raises(ValueError):
            roster_csv.parse_roster_csv(b"", 1024)

    def test_header_only(self):
        with pytest.raises(ValueError, match="no students"):
            roster_csv.parse_roster_csv(b"name,uni\n", 1024)

    def test_too_large(self):
        with pytest.raises(ValueError, match="File size"):
            roster_csv.parse_roster_csv(b"x" * 2048, 1024)

    def test_not_utf8(self):
        with pytest.raises(ValueError, match="UTF-8"):
            roster_csv.parse_roster_csv(b"name,uni\n\xff\xfe,ab1\n", 1024)

    def test_render_stats(self):
        out = roster_csv.render_stats_csv([
            {"id": "1", "name": "Alice", "uni": "a1", "times_called": 3, "cumulative_score": 2,
             "average_score": 2 / 3, "last_called_at": "2026-02-01T10:00:00+00:00"},
            {"id": "2", "name": "Bob", "uni": "b1", "times_called": 0, "cumulative_score": 0,
             "average_score": None, "last_called_at": None},
        ])
        lines = out.splitlines()
        assert lines[0] == "name,uni,times_called,cumulative_score,average_score,last_called_at"
        assert lines[1] == "Alice,a1,3,2,0.67,2026-02-01T10:00:00+00:00"
        assert lines[2] == "Bob,b1,0,0,,"
