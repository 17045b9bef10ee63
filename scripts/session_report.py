"""
Print the current review session and progress figures for a learner.

Usage:
    python -m scripts.session_report --learner alice
    python -m scripts.session_report --learner alice --limit 50 --no-new
"""

import argparse

from recall import sm2
from recall.analytics import build_learning_stats
from recall.session_builder import build_session


def main(argv=None):
    parser = argparse.ArgumentParser(description="Show due cards and learning statistics")
    parser.add_argument("--learner", default=None, help="Learner id (defaults to DEFAULT_LEARNER_ID)")
    parser.add_argument("--limit", type=int, default=None, help="Session size (1-100)")
    parser.add_argument(
        "--status",
        choices=[status.value for status in sm2.LearningStatus],
        default=None,
        help="Only include cards with this status"
    )
    parser.add_argument("--no-new", action="store_true", help="Exclude new cards")
    args = parser.parse_args(argv)

    learner_id = args.learner or sm2.get_default_learner_id()
    sm2.init_db()

    session = build_session(
        learner_id,
        limit=args.limit,
        status=args.status,
        include_new=not args.no_new
    )
    stats = build_learning_stats(learner_id)

    print("=" * 60)
    print(f"Session {session.session_id}")
    print("=" * 60)
    print(f"Total due: {session.total_due} (new: {session.new_cards}, review: {session.review_cards})")
    if session.is_empty:
        print("\nAll caught up - nothing is due.")
    else:
        print()
        for position, card in enumerate(session.cards, 1):
            state = card.state
            print(
                f"  {position:>3}. card {card.card_id:<8} {state.status.value:<10} "
                f"EF={state.easiness_factor:.2f} interval={state.interval}d "
                f"due {state.next_review_date:%Y-%m-%d %H:%M}"
            )

    print("\n" + "-" * 60)
    print("Progress")
    print("-" * 60)
    print(f"Cards: {stats.total_cards}")
    for status, count in stats.by_status.items():
        print(f"  {status}: {count}")
    print(f"Due today: {stats.due_today}  Overdue: {stats.overdue}")
    print(f"Reviews: {stats.total_reviews} total, {stats.reviews_today} today")
    print(f"Retention: {stats.retention_rate:.0%}  Average EF: {stats.average_easiness_factor:.2f}")
    print(f"Streak: {stats.streak_days} days")
    return session


if __name__ == "__main__":
    main()
