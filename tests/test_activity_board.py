"""
ActivityBoard — optimistic kanban moves against a mocked backend.

The in-place snapshot must always equal a from-scratch recomputation, and a
late response for an older move must never override a newer one.
"""

from unittest.mock import MagicMock

import pytest

from conecta.integrations.conecta_gateway import GatewayError
from conecta.services.activity_board import ActivityBoard
from conecta.services.progress_engine import (
    CANCELLED,
    COMPLETED,
    IN_PROGRESS,
    LABEL_COMPLETED,
    LABEL_IN_PROGRESS,
    LABEL_NOT_STARTED,
    NOT_STARTED,
    ActivityView,
    CategoryView,
    summarize_project,
)


def _categories():
    return [
        CategoryView(id=1, name="Obra civil", activities=[
            ActivityView(id=11, status=NOT_STARTED, category_id=1),
            ActivityView(id=12, status=NOT_STARTED, category_id=1),
        ]),
        CategoryView(id=2, name="Instalaciones", activities=[
            ActivityView(id=21, status=COMPLETED, category_id=2),
            ActivityView(id=22, status=CANCELLED, category_id=2),
        ]),
    ]


@pytest.fixture()
def backend():
    return MagicMock()


@pytest.fixture()
def changes():
    return []


@pytest.fixture()
def board(backend, changes):
    return ActivityBoard(
        5, _categories(), backend=backend,
        on_status_change=lambda *args: changes.append(args),
    )


def _assert_consistent(board):
    assert board.summary == summarize_project(board.project_id, board.categories)


class TestMoveActivity:
    def test_successful_move_updates_progress_and_notifies(self, board, backend, changes):
        assert board.progress == 33

        assert board.move_activity(11, COMPLETED) is True

        backend.update_activity_status.assert_called_once_with(5, 1, 11, COMPLETED)
        assert board.progress == 67
        assert board.label == LABEL_IN_PROGRESS
        assert board.is_confirmed(11)
        assert changes == [(5, 67, LABEL_IN_PROGRESS)]
        _assert_consistent(board)

    def test_failed_move_keeps_optimistic_status_unconfirmed(self, board, backend, changes):
        backend.update_activity_status.side_effect = GatewayError("boom", status_code=500)

        assert board.move_activity(11, IN_PROGRESS) is False

        _, activity = board.find(11)
        assert activity.status == IN_PROGRESS
        assert not board.is_confirmed(11)
        assert changes == []
        _assert_consistent(board)

    def test_rollback_restores_last_confirmed_status(self, board, backend):
        backend.update_activity_status.side_effect = GatewayError("boom")
        board.move_activity(11, IN_PROGRESS)
        board.move_activity(11, COMPLETED)

        assert board.rollback(11) is True

        _, activity = board.find(11)
        assert activity.status == NOT_STARTED
        assert board.is_confirmed(11)
        assert board.label == LABEL_IN_PROGRESS  # activity 21 is still completed
        _assert_consistent(board)

    def test_rollback_of_confirmed_activity_is_noop(self, board):
        assert board.rollback(11) is False

    def test_completing_everything(self, board, changes):
        board.move_activity(11, COMPLETED)
        board.move_activity(12, COMPLETED)
        assert board.progress == 100
        assert changes[-1] == (5, 100, LABEL_COMPLETED)

    def test_unknown_status_rejected(self, board, backend):
        with pytest.raises(ValueError):
            board.move_activity(11, "archived")
        backend.update_activity_status.assert_not_called()

    def test_unknown_activity(self, board):
        with pytest.raises(KeyError):
            board.begin_move(999, COMPLETED)


class TestStaleResponses:
    def test_older_response_ignored(self, board, changes):
        first = board.begin_move(11, IN_PROGRESS)
        second = board.begin_move(11, COMPLETED)

        assert board.resolve_move(second, True) is True
        assert board.resolve_move(first, False) is False

        _, activity = board.find(11)
        assert activity.status == COMPLETED
        assert board.is_confirmed(11)
        assert len(changes) == 1
        _assert_consistent(board)

    def test_older_success_does_not_confirm_newer_move(self, board, changes):
        first = board.begin_move(11, IN_PROGRESS)
        board.begin_move(11, COMPLETED)

        assert board.resolve_move(first, True) is False
        assert not board.is_confirmed(11)
        assert changes == []

    def test_response_after_rollback_is_stale(self, board):
        pending = board.begin_move(12, COMPLETED)
        board.rollback(12)
        assert board.resolve_move(pending, True) is False
        _, activity = board.find(12)
        assert activity.status == NOT_STARTED


class TestRemoveActivity:
    def test_remove_drops_activity_from_progress(self, board, backend, changes):
        assert board.remove_activity(11) is True

        backend.delete_activity.assert_called_once_with(5, 1, 11)
        # completed 1 of qualifying {12, 21}
        assert board.progress == 50
        assert changes == [(5, 50, LABEL_IN_PROGRESS)]
        _assert_consistent(board)

    def test_failed_remove_changes_nothing(self, board, backend, changes):
        backend.delete_activity.side_effect = GatewayError("offline")
        assert board.remove_activity(11) is False
        _, activity = board.find(11)
        assert activity.is_deleted is False
        assert changes == []


class TestLoad:
    def test_load_from_loader(self):
        loader = MagicMock()
        loader.load.return_value = [
            CategoryView(id=3, name="Pruebas", activities=[ActivityView(id=31)]),
        ]
        board = ActivityBoard.load(9, loader)
        loader.load.assert_called_once_with(9)
        assert board.progress == 0
        assert board.label == LABEL_NOT_STARTED
