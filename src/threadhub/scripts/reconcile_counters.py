"""
Recompute denormalized post counters from the edge tables.

Run after a crash or a partially applied mutation to repair ``like_count``,
``repost_count`` and ``reply_count`` drift:

    python -m threadhub.scripts.reconcile_counters            # every post
    python -m threadhub.scripts.reconcile_counters --post 42  # one post
"""
from __future__ import annotations

import argparse
import sys

from threadhub.core.context import build_context
from threadhub.core.logging import configure_logging
from threadhub.core.settings import get_settings
from threadhub.services.graph import CounterRepair, GraphMutationEngine


def reconcile(engine: GraphMutationEngine, post_id: int | None = None) -> list[CounterRepair]:
    """Reconcile one post, or every post when ``post_id`` is None."""
    if post_id is not None:
        repair = engine.reconcile_counters(post_id)
        return [repair] if repair.changed else []
    return engine.reconcile_all()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--post", type=int, default=None, help="Only reconcile this post id")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    context = build_context(settings)
    try:
        with context.session_factory() as db:
            engine = GraphMutationEngine(db, context.blob_store)
            repairs = reconcile(engine, args.post)
    finally:
        context.close()

    for repair in repairs:
        print(f"post {repair.post_id}: likes/reposts/replies {repair.before} -> {repair.after}")
    print(f"Repaired {len(repairs)} post(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
