import logging

from shopledger.extensions import db, deferred
from shopledger.models import ActivityLogEntry
from shopledger.services import activity_service


def test_eager_task_runs_before_submit_returns(account):
    deferred.submit("probe", activity_service.log_activity, account.id, activity_service.SETTINGS_UPDATE, "probe")

    assert db.session.query(ActivityLogEntry).filter_by(description="probe").count() == 1


def test_failing_task_is_logged_not_raised(app, account, caplog):
    def _explode():
        raise RuntimeError("bookkeeping exploded")

    with caplog.at_level(logging.ERROR):
        deferred.submit("explode", _explode)

    assert "Deferred task explode failed" in caplog.text


def test_failed_task_does_not_block_later_tasks(account):
    account_id = account.id

    def _explode():
        activity_service.log_activity(account_id, activity_service.SETTINGS_UPDATE, "half written", commit=False)
        raise RuntimeError("late failure")

    deferred.submit("explode", _explode)
    deferred.submit("probe", activity_service.log_activity, account_id, activity_service.SETTINGS_UPDATE, "after")

    descriptions = [e.description for e in activity_service.list_activity(account_id)]
    assert "half written" not in descriptions
    assert "after" in descriptions


def test_threaded_task_completes_after_wait(app, account):
    app.config["DEFERRED_TASKS_EAGER"] = False
    try:
        deferred.submit(
            "threaded", activity_service.log_activity, account.id, activity_service.SETTINGS_UPDATE, "threaded"
        )
        assert deferred.wait(timeout=5) == 0
    finally:
        app.config["DEFERRED_TASKS_EAGER"] = True

    assert deferred.pending_count() == 0
    assert db.session.query(ActivityLogEntry).filter_by(description="threaded").count() == 1
