"""
Reset a learner's progress back to new-card state.

Every memory state returns to status=new, EF=2.5, interval=0 and is due
immediately. Review history is kept.

Usage:
    python -m scripts.reset_progress --learner alice
    python -m scripts.reset_progress --learner alice --yes
"""

import argparse

from recall import sm2
from recall.review_recorder import reset_progress


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reset a learner's spaced-repetition progress")
    parser.add_argument(
        "--learner",
        default=None,
        help="Learner id (defaults to DEFAULT_LEARNER_ID)"
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip the confirmation prompt"
    )
    args = parser.parse_args(argv)

    learner_id = args.learner or sm2.get_default_learner_id()

    print("=" * 60)
    print(f"WARNING: Reset Learning Progress for '{learner_id}'")
    print("=" * 60)
    print()
    print("This will return every card to its initial state:")
    print("  - status=new, easiness factor 2.5, interval 0")
    print("  - repetitions and lapses set to 0")
    print("Review history is NOT deleted.")
    print()

    if not args.yes:
        response = input("Are you sure you want to reset? (type 'yes' to confirm): ")
        if response.lower() != "yes":
            print("\nCancelled. No changes made.")
            return 0

    sm2.init_db()
    reset_count = reset_progress(learner_id)
    print(f"\n✓ Reset {reset_count} cards.")
    return reset_count


if __name__ == "__main__":
    main()
