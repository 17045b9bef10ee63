from datetime import timedelta

from recall import sm2
from recall.review_recorder import submit_review
from recall.sm2 import LearningStatus
from scripts import reset_progress, session_report


def test_reset_script_with_confirmation_flag(db, now):
    sm2.create_memory_state("alice", 1, now - timedelta(days=1))
    submit_review("alice", 1, 3, now=now - timedelta(days=1))

    assert reset_progress.main(["--learner", "alice", "--yes"]) == 1
    assert sm2.load_memory_state("alice", 1).status == LearningStatus.NEW


def test_reset_script_cancelled(db, now, monkeypatch):
    sm2.create_memory_state("alice", 1, now)
    submit_review("alice", 1, 3, now=now)
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    assert reset_progress.main(["--learner", "alice"]) == 0
    assert sm2.load_memory_state("alice", 1).status == LearningStatus.REVIEW


def test_session_report_uses_default_learner(db, now, monkeypatch, capsys):
    monkeypatch.setenv("DEFAULT_LEARNER_ID", "carol")
    sm2.create_memory_state("carol", 4, now - timedelta(days=1))

    session = session_report.main(["--limit", "5"])

    assert session.learner_id == "carol"
    assert session.card_ids == [4]
    assert "Streak: 0 days" in capsys.readouterr().out
