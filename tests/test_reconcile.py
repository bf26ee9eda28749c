"""Tests for the counter reconciliation script."""

import asyncio
from collections.abc import Callable

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from threadhub.core.context import AppContext
from threadhub.models import Post, User
from threadhub.scripts import reconcile_counters
from threadhub.services import GraphMutationEngine


def _drift(db_session: Session, post_id: int, **values: int) -> None:
    db_session.execute(update(Post).where(Post.id == post_id).values(**values))
    db_session.commit()


def test_reconcile_single_post(
    graph: GraphMutationEngine,
    db_session: Session,
    make_post: Callable[..., Post],
    alice: User,
    bob: User,
) -> None:
    post = make_post(alice, "hello")
    graph.toggle_like(post.id, bob)
    _drift(db_session, post.id, like_count=0, reply_count=4)

    repairs = reconcile_counters.reconcile(graph, post.id)

    assert len(repairs) == 1
    assert repairs[0].before == (0, 0, 4)
    assert repairs[0].after == (1, 0, 0)
    assert reconcile_counters.reconcile(graph, post.id) == []


def test_reconcile_all_reports_only_changed_posts(
    graph: GraphMutationEngine,
    db_session: Session,
    make_post: Callable[..., Post],
    alice: User,
    bob: User,
) -> None:
    healthy = make_post(alice, "fine")
    broken = make_post(alice, "drifted")
    make_post(bob, None, kind="repost", original_id=broken.id)
    _drift(db_session, broken.id, repost_count=0)

    repairs = reconcile_counters.reconcile(graph)

    assert [repair.post_id for repair in repairs] == [broken.id]
    assert repairs[0].after == (0, 1, 0)
    assert healthy.id not in [repair.post_id for repair in repairs]


def test_reconcile_after_full_delete_finds_nothing(
    graph: GraphMutationEngine,
    make_post: Callable[..., Post],
    alice: User,
    bob: User,
) -> None:
    parent = make_post(alice, "parent")
    reply = make_post(bob, "reply", kind="reply", parent_id=parent.id)
    make_post(alice, "nested", kind="reply", parent_id=reply.id)
    make_post(alice, None, kind="repost", original_id=reply.id)

    asyncio.run(graph.delete_post(reply.id, bob, "full"))

    assert reconcile_counters.reconcile(graph) == []


def test_main_prints_repairs(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    context: AppContext,
    db_session: Session,
    make_post: Callable[..., Post],
    alice: User,
) -> None:
    post = make_post(alice, "hello")
    _drift(db_session, post.id, like_count=3)
    monkeypatch.setattr(reconcile_counters, "build_context", lambda settings: context)

    assert reconcile_counters.main(["--post", str(post.id)]) == 0

    output = capsys.readouterr().out
    assert f"post {post.id}: likes/reposts/replies (3, 0, 0) -> (0, 0, 0)" in output
    assert "Repaired 1 post(s)" in output
