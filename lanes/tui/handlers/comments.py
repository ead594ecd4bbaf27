"""
FILE: lanes/tui/handlers/comments.py
PURPOSE: CommentsView / CommentEdit - the comment list of one task
EXPORTS:
  - handle_comments(ctl, key)
NOTES:
  - Both modes behave the same; they differ only in where esc returns
    (ViewTask or the still-open task form)
  - Deleting does not ask for confirmation
"""

import logging

from ..forms import CommentFormSession
from ..modes import Mode

logger = logging.getLogger(__name__)


def handle_comments(ctl, key: str):
    comments = ctl.comment_list
    if comments is None:
        ctl.set_mode(Mode.NORMAL)
        return None

    if key == "esc":
        ctl.comment_list = None
        ctl.set_mode(comments.return_mode)
    elif key in ("up", "k"):
        comments.move_up()
    elif key in ("down", "j"):
        comments.move_down()
    elif key in ("a", "n"):
        ctl.comment_form = CommentFormSession.open_new(comments.task_id, ctl.mode)
        ctl.set_mode(Mode.COMMENT_FORM)
    elif key in ("enter", "e"):
        comment = comments.current()
        if comment is None:
            ctl.notifications.info("No comment selected")
            return None
        ctl.comment_form = CommentFormSession.open_existing(comment, ctl.mode)
        ctl.set_mode(Mode.COMMENT_FORM)
    elif key == "d":
        _delete_comment(ctl, comments)
    return None


def _delete_comment(ctl, comments) -> None:
    comment = comments.current()
    if comment is None:
        ctl.notifications.info("No comment selected")
        return
    ok, _ = ctl.attempt("Failed to delete comment", ctl.store.delete_comment, comment.id)
    if not ok:
        return
    ok, remaining = ctl.attempt("Failed to load comments", ctl.store.list_comments, comments.task_id)
    if ok:
        comments.replace(remaining)
    ctl.notifications.info("Comment deleted")
